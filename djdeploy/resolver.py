"""
Resolution of a DjangoResource into a fully specified ResolvedDjango.

Explicit attribute values are collected first. Defaults are then computed
in dependency order, scanning the application tree for settings.py,
wsgi.py and manage.py when the corresponding attribute is unset. Every
computed value is memoized, so a resolver answers the same way for the whole
convergence run.
"""

from __future__ import annotations

import logging
import os
import sys
from types import MappingProxyType
from typing import Any, Callable, Dict, Optional, Union

from .analyzer import find_file, module_to_path, path_to_module
from .database import resolve_database
from .resource import DjangoResource, ResolvedDjango
from .templates import LOCAL_SETTINGS_TEMPLATE, local_settings_context, read_template, render_template

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.py"
WSGI_FILE = "wsgi.py"
MANAGE_FILE = "manage.py"
LOCAL_SETTINGS_FILE = "local_settings.py"


class AttributeResolver:
    """Lazily computes and caches the defaults of one DjangoResource."""

    def __init__(self, resource: DjangoResource):
        resource.validate()
        self.resource = resource
        self._cache: Dict[str, Any] = {}
        self._explicit = self._collect_explicit()

    def _collect_explicit(self) -> Dict[str, Any]:
        r = self.resource
        explicit: Dict[str, Any] = {}
        for name in ("settings_module", "wsgi_module"):
            value = getattr(r, name)
            if value is not None:
                explicit[name] = value
        if r.manage_path is not None:
            explicit["manage_path"] = r.expand_path(r.manage_path)
        if r.local_settings_path is not None:
            value = r.local_settings_path
            explicit["local_settings_path"] = r.expand_path(value) if value else False
        return explicit

    def _memo(self, name: str, compute: Callable[[], Any]) -> Any:
        if name not in self._cache:
            if name in self._explicit:
                self._cache[name] = self._explicit[name]
            else:
                self._cache[name] = compute()
                logger.debug(f"Inferred {name}={self._cache[name]!r} for {self.resource.path}")
        return self._cache[name]

    def _find_module(self, filename: str) -> str:
        return path_to_module(find_file(self.resource.path, filename), self.resource.path)

    def settings_module(self) -> Union[str, bool]:
        return self._memo("settings_module", lambda: self._find_module(SETTINGS_FILE))

    def wsgi_module(self) -> Union[str, bool]:
        return self._memo("wsgi_module", lambda: self._find_module(WSGI_FILE))

    def manage_path(self) -> str:
        return self._memo("manage_path", lambda: find_file(self.resource.path, MANAGE_FILE))

    def local_settings_path(self) -> Union[str, bool]:
        if self.resource.settings_module is False:
            if self.resource.local_settings_path:
                logger.warning(
                    f"Ignoring local_settings_path for {self.resource.path}: settings_module is disabled"
                )
            self._cache["local_settings_path"] = False
            return False
        return self._memo("local_settings_path", self._default_local_settings_path)

    def _default_local_settings_path(self) -> str:
        settings_path = module_to_path(self.settings_module(), self.resource.path)
        return os.path.join(os.path.dirname(settings_path), LOCAL_SETTINGS_FILE)

    def database(self) -> Dict[str, Any]:
        return self._memo("database", lambda: resolve_database(self.resource.database, self.resource.path))

    def python(self) -> str:
        return self._memo("python", lambda: self.resource.python or sys.executable)

    def local_settings(self) -> Optional[str]:
        return self._memo("local_settings", self._render_local_settings)

    def _template_source(self) -> str:
        source = self.resource.local_settings_source
        if not source:
            return LOCAL_SETTINGS_TEMPLATE
        return read_template(self.resource.expand_path(source))

    def _render_local_settings(self) -> Optional[str]:
        if not self.local_settings_path():
            return None
        if self.resource.local_settings_content is not None:
            return self.resource.local_settings_content
        context = local_settings_context(
            self.resource.path,
            self.settings_module(),
            self.database(),
            self.resource.local_settings_options,
        )
        return render_template(self._template_source(), context)

    def resolve(self) -> ResolvedDjango:
        r = self.resource
        # manage/settings/wsgi are independent; local settings depend on settings
        manage_path = self.manage_path()
        settings_module = self.settings_module()
        wsgi_module = self.wsgi_module()
        local_settings_path = self.local_settings_path()
        database = self.database()
        return ResolvedDjango(
            path=r.path,
            collectstatic=r.collectstatic,
            migrate=r.migrate,
            syncdb=r.syncdb,
            database=MappingProxyType(dict(database)),
            settings_module=settings_module,
            wsgi_module=wsgi_module,
            manage_path=manage_path,
            local_settings_path=local_settings_path,
            local_settings=self.local_settings(),
            python=self.python(),
            environment=MappingProxyType(dict(r.environment)),
        )


def resolve_resource(resource: DjangoResource) -> ResolvedDjango:
    return AttributeResolver(resource).resolve()

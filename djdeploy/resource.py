"""
Declared desired state for a Django application deployment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from .database import DatabaseFields, DatabaseValue, DatabaseURL, coerce_database
from .errors import ResourceValidationError

# A module or path attribute is either unset (None, inferred on resolution),
# disabled (False) or an explicit string.
Toggle = Union[None, bool, str]

BOOLEAN_FLAGS = ("collectstatic", "migrate", "syncdb")
TOGGLE_ATTRIBUTES = ("settings_module", "wsgi_module", "local_settings_path")


@dataclass
class DjangoResource:
    """
    A Django application deployment, identified by its base path.

    Example:
        DjangoResource(
            path="/srv/blog",
            database="postgres://blog@db/blog",
            migrate=True,
        )
    """
    path: str
    collectstatic: bool = True
    migrate: bool = False
    syncdb: bool = False
    database: Optional[DatabaseValue] = None
    settings_module: Toggle = None
    wsgi_module: Toggle = None
    manage_path: Optional[str] = None
    local_settings_path: Toggle = None
    local_settings_content: Optional[str] = None
    local_settings_source: Optional[str] = None
    local_settings_options: Dict[str, Any] = field(default_factory=dict)
    python: Optional[str] = None
    environment: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.path, str) or not self.path:
            raise ResourceValidationError("path must be a non-empty string")
        object.__setattr__(self, "path", os.path.abspath(self.path))
        self.database = coerce_database(self.database)
        self.validate()

    def __setattr__(self, name: str, value) -> None:
        if name == "path" and "path" in self.__dict__:
            raise AttributeError("path is the resource identity and cannot be changed")
        super().__setattr__(name, value)

    @property
    def name(self) -> str:
        return self.path

    def validate(self) -> None:
        for flag in BOOLEAN_FLAGS:
            value = getattr(self, flag)
            if not isinstance(value, bool):
                raise ResourceValidationError(f"{flag} must be true or false, got {value!r}")
        for attr in TOGGLE_ATTRIBUTES:
            value = getattr(self, attr)
            if value is True or not (value is None or value is False or isinstance(value, str)):
                raise ResourceValidationError(f"{attr} must be a string, false or unset, got {value!r}")
            if isinstance(value, str) and not value:
                raise ResourceValidationError(f"{attr} must not be empty")
        if self.manage_path is not None and (not isinstance(self.manage_path, str) or not self.manage_path):
            raise ResourceValidationError(f"manage_path must be a non-empty string, got {self.manage_path!r}")
        for key in self.environment:
            if not isinstance(key, str) or not key:
                raise ResourceValidationError(f"environment keys must be non-empty strings, got {key!r}")

    def database_options(self, **fields) -> "DjangoResource":
        """Merge block-form database fields into this resource."""
        current = self.database
        if isinstance(current, DatabaseURL):
            merged: Dict[str, Any] = {"url": current.url}
        elif isinstance(current, DatabaseFields):
            merged = dict(current.fields)
        else:
            merged = {}
        merged.update(fields)
        self.database = DatabaseFields(merged)
        return self

    def expand_path(self, value: str) -> str:
        """Expand a possibly relative path against the application path."""
        return os.path.normpath(os.path.join(self.path, value))


@dataclass(frozen=True)
class ResolvedDjango:
    """Every attribute of a DjangoResource after defaults have been computed."""
    path: str
    collectstatic: bool
    migrate: bool
    syncdb: bool
    database: Mapping[str, Any]
    settings_module: Union[str, bool]
    wsgi_module: Union[str, bool]
    manage_path: str
    local_settings_path: Union[str, bool]
    local_settings: Optional[str]
    python: str
    environment: Mapping[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "collectstatic": self.collectstatic,
            "migrate": self.migrate,
            "syncdb": self.syncdb,
            "database": dict(self.database),
            "settings_module": self.settings_module,
            "wsgi_module": self.wsgi_module,
            "manage_path": self.manage_path,
            "local_settings_path": self.local_settings_path,
            "python": self.python,
            "environment": dict(self.environment),
        }

"""
Rendering and writing of generated configuration files.
"""

from __future__ import annotations

import logging
import pprint
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import FileAccessError

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{([A-Za-z_][A-Za-z0-9_]*)\}\}")
SETTING_NAME = re.compile(r"^[A-Z][A-Z0-9_]*$")


LOCAL_SETTINGS_TEMPLATE = """{{HEADER}}
#
# Settings module: {{SETTINGS_MODULE}}
{{DATABASE_SETTINGS}}{{EXTRA_SETTINGS}}"""


def render_template(template: str, context: Mapping[str, Any]) -> str:
    """
    Replace ``{{NAME}}`` placeholders with values from context.

    Args:
        template: Template text
        context: Variables available to the template

    Returns:
        str: Rendered text. Unknown placeholders are left in place.
    """
    # one pass, so substituted values are never expanded again
    rendered = PLACEHOLDER.sub(lambda m: str(context.get(m.group(1), m.group(0))), template)
    leftover = sorted(name for name in set(PLACEHOLDER.findall(template)) if name not in context)
    if leftover:
        logger.warning(f"Template placeholders without a value: {', '.join(leftover)}")
    return rendered


def python_literal(value: Any) -> str:
    return pprint.pformat(value, indent=4, sort_dicts=True)


def local_settings_context(
    path: str,
    settings_module: str,
    database: Mapping[str, Any],
    options: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Variables passed to the local settings template."""
    options = dict(options or {})
    default_db = {k: v for k, v in database.items() if k != "URL"}
    extra_lines = [
        f"{name} = {python_literal(value)}"
        for name, value in sorted(options.items())
        if SETTING_NAME.match(name)
    ]
    databases = python_literal({"default": default_db}) if default_db else ""
    context: Dict[str, Any] = {k: v for k, v in options.items() if not SETTING_NAME.match(k)}
    context.update({
        "HEADER": f"# Generated by djdeploy for {path}. Local changes will be overwritten.",
        "PATH": path,
        "SETTINGS_MODULE": settings_module,
        "DATABASES": databases,
        # no database configured: leave the project's DATABASES alone
        "DATABASE_SETTINGS": f"\nDATABASES = {databases}\n" if databases else "",
        "EXTRA_SETTINGS": "\n" + "\n".join(extra_lines) + "\n" if extra_lines else "",
    })
    return context


def write_file(path: str | Path, content: str) -> bool:
    """
    Write content to path unless the file already holds exactly that content.

    Returns:
        bool: True if the file was created or modified
    """
    p = Path(path)
    try:
        if p.exists():
            with open(p, "r", encoding="utf-8") as f:
                if f.read() == content:
                    logger.debug(f"{p} is up to date")
                    return False
        with open(p, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise FileAccessError(str(p), f"cannot write: {e}") from e
    logger.info(f"Wrote {p}")
    return True


def read_template(path: str | Path) -> str:
    """Read a template file, raising FileAccessError when it cannot be read."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise FileAccessError(str(path), f"cannot read template: {e}") from e

"""
Database configuration for Django's DATABASES setting.

A database can be declared either as a single connection URL or as a block
of individual fields. Both forms resolve to the same record: a dict keyed by
Django's own names (ENGINE, NAME, USER, ...), holding only the keys that
actually have a value, plus the original URL when one was given.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import unquote, urlsplit

from .errors import InvalidURL, ResourceValidationError
from .redact import redact_url

logger = logging.getLogger(__name__)


# Aliases for Django database engine names, following dj-database-url.
ENGINE_ALIASES = {
    "postgres": "django.db.backends.postgresql_psycopg2",
    "postgresql": "django.db.backends.postgresql_psycopg2",
    "pgsql": "django.db.backends.postgresql_psycopg2",
    "postgis": "django.contrib.gis.db.backends.postgis",
    "mysql2": "django.db.backends.mysql",
    "mysqlgis": "django.contrib.gis.db.backends.mysql",
    "spatialite": "django.contrib.gis.db.backends.spatialite",
    "sqlite": "django.db.backends.sqlite3",
}

ENGINE_NAMESPACE = "django"

FIELD_ALIASES = {
    "DATABASE": "NAME",
    "USERNAME": "USER",
}


def engine_for(scheme: str) -> str:
    """Map a URL scheme (or short engine name) to a Django backend path."""
    return ENGINE_ALIASES.get(scheme) or f"{ENGINE_NAMESPACE}.db.backends.{scheme}"


def _is_file_engine(engine: Optional[str]) -> bool:
    return bool(engine) and "sqlite" in engine


def _absolute_name(name: str, app_path: str) -> str:
    if name == ":memory:":
        return name
    if os.path.isabs(name):
        return os.path.normpath(name)
    # Reference resolution: the last segment of the base path is replaced.
    return os.path.normpath(os.path.join(os.path.dirname(app_path), name))


def _host(netloc: str) -> str:
    """Host part of a netloc, as written (urlsplit's hostname lowercases it)."""
    hostinfo = netloc.rpartition("@")[2]
    if hostinfo.startswith("["):
        return hostinfo[1:hostinfo.find("]")]
    return hostinfo.partition(":")[0]


def parse_database_url(url: str, app_path: str) -> Dict[str, Any]:
    """
    Format a database URL as a Django DATABASES entry.

    Args:
        url: Connection URL, e.g. ``postgres://user:pw@db:5432/blog``
        app_path: Application base path, used to anchor SQLite file names

    Returns:
        Dict with URL always present and ENGINE, NAME, USER, PASSWORD,
        HOST and PORT present only when the URL supplies them.

    Raises:
        InvalidURL: If the string cannot be parsed as a URI
    """
    if not isinstance(url, str):
        raise InvalidURL(url, "not a string")
    if any(ch.isspace() or ord(ch) < 32 for ch in url):
        raise InvalidURL(url, "contains whitespace or control characters")

    try:
        parsed = urlsplit(url)
        port = parsed.port
    except ValueError as e:
        raise InvalidURL(url, str(e)) from e

    db: Dict[str, Any] = {"URL": url}
    if parsed.scheme:
        db["ENGINE"] = engine_for(parsed.scheme)

    name = parsed.path[1:] if parsed.path.startswith("/") else parsed.path
    name = unquote(name)
    if name and _is_file_engine(db.get("ENGINE")):
        name = _absolute_name(name, app_path)
    if name:
        db["NAME"] = name
    if parsed.username:
        db["USER"] = unquote(parsed.username)
    if parsed.password:
        db["PASSWORD"] = unquote(parsed.password)
    host = _host(parsed.netloc)
    if host:
        db["HOST"] = host
    if port is not None:
        db["PORT"] = port

    logger.debug(f"Parsed database URL {redact_url(url)} -> engine {db.get('ENGINE')}")
    return db


def build_database_config(fields: Mapping[str, Any], app_path: str) -> Dict[str, Any]:
    """
    Build a DATABASES entry from block-form fields.

    Field names are case-insensitive. A ``url`` field is parsed first and the
    remaining fields override what it produced.
    """
    normalized: Dict[str, Any] = {}
    for key, value in fields.items():
        upper = str(key).upper()
        normalized[FIELD_ALIASES.get(upper, upper)] = value

    db: Dict[str, Any] = {}
    url = normalized.pop("URL", None)
    if url:
        db.update(parse_database_url(url, app_path))

    for key, value in normalized.items():
        if value is None or value == "":
            continue
        if key == "ENGINE" and "." not in str(value):
            value = engine_for(str(value))
        elif key == "PORT" and isinstance(value, str):
            if not value.isdigit():
                raise ResourceValidationError(f"Database port must be numeric, got {value!r}")
            value = int(value)
        db[key] = value

    # ENGINE decides whether NAME is a file, wherever either came from
    if db.get("NAME") and _is_file_engine(db.get("ENGINE")):
        db["NAME"] = _absolute_name(str(db["NAME"]), app_path)
    return db


@dataclass(frozen=True)
class DatabaseURL:
    url: str


@dataclass(frozen=True)
class DatabaseFields:
    fields: Mapping[str, Any] = field(default_factory=dict)


DatabaseValue = Union[DatabaseURL, DatabaseFields]


def coerce_database(value) -> Optional[DatabaseValue]:
    """Wrap a raw declaration value (URL string or mapping) in its tagged form."""
    if value is None or isinstance(value, (DatabaseURL, DatabaseFields)):
        return value
    if isinstance(value, str):
        return DatabaseURL(value)
    if isinstance(value, Mapping):
        return DatabaseFields(dict(value))
    raise ResourceValidationError(f"database must be a URL string or a mapping, got {type(value).__name__}")


def resolve_database(value, app_path: str) -> Dict[str, Any]:
    tagged = coerce_database(value)
    if tagged is None:
        return {}
    if isinstance(tagged, DatabaseURL):
        return parse_database_url(tagged.url, app_path)
    return build_database_config(tagged.fields, app_path)

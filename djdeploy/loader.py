"""
Loading of resource declarations from YAML files.

A declaration file holds either one application mapping or a list of them
under ``applications``:

    applications:
      - path: /srv/blog
        database: postgres://blog@db/blog
        migrate: true
      - path: /srv/shop
        settings_module: shop.settings.production
        database:
          engine: mysql2
          name: shop
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, StrictBool, ValidationError, field_validator

from .errors import DeclarationError, DeployError
from .resource import DjangoResource

logger = logging.getLogger(__name__)


class DjangoDeclaration(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str
    collectstatic: StrictBool = True
    migrate: StrictBool = False
    syncdb: StrictBool = False
    database: Optional[Union[str, Dict[str, Any]]] = None
    settings_module: Optional[Union[StrictBool, str]] = None
    wsgi_module: Optional[Union[StrictBool, str]] = None
    manage_path: Optional[str] = None
    local_settings_path: Optional[Union[StrictBool, str]] = None
    local_settings_content: Optional[str] = None
    local_settings_source: Optional[str] = None
    local_settings_options: Dict[str, Any] = {}
    python: Optional[str] = None
    environment: Dict[str, str] = {}

    @field_validator("settings_module", "wsgi_module", "local_settings_path")
    @classmethod
    def _false_or_string(cls, value):
        if value is True:
            raise ValueError("must be a string or false")
        return value

    def to_resource(self, base_dir: Optional[Union[str, Path]] = None) -> DjangoResource:
        data = self.model_dump()
        path = data.pop("path")
        if base_dir is not None and not os.path.isabs(path):
            path = os.path.join(str(base_dir), path)
        return DjangoResource(path=path, **data)


def parse_declarations(data: Any, base_dir: Optional[Union[str, Path]] = None) -> List[DjangoResource]:
    """
    Build resources from already-parsed declaration data.

    Raises:
        DeclarationError: If the data does not describe valid applications
    """
    if isinstance(data, dict) and "applications" in data:
        entries = data["applications"]
        if not isinstance(entries, list):
            raise DeclarationError("'applications' must be a list")
    elif isinstance(data, dict):
        entries = [data]
    else:
        raise DeclarationError("Declaration must be a mapping or contain an 'applications' list")

    resources: List[DjangoResource] = []
    seen = set()
    for index, entry in enumerate(entries):
        try:
            resource = DjangoDeclaration.model_validate(entry).to_resource(base_dir)
        except ValidationError as e:
            raise DeclarationError(f"Application #{index + 1} is invalid: {e}") from e
        except DeployError as e:
            raise DeclarationError(f"Application #{index + 1} is invalid: {e}") from e
        if resource.path in seen:
            raise DeclarationError(f"Application path {resource.path} is declared more than once")
        seen.add(resource.path)
        resources.append(resource)
    return resources


def load_declarations(file: Union[str, Path]) -> List[DjangoResource]:
    """
    Read a YAML declaration file.

    Args:
        file: Path of the YAML file; relative application paths resolve
            against its directory

    Returns:
        List of DjangoResource, in file order
    """
    p = Path(file)
    try:
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise DeclarationError(f"Cannot read declaration file {p}: {e}") from e
    except yaml.YAMLError as e:
        raise DeclarationError(f"Invalid YAML in {p}: {e}") from e

    resources = parse_declarations(data, base_dir=p.resolve().parent)
    logger.info(f"Loaded {len(resources)} application(s) from {p}")
    return resources

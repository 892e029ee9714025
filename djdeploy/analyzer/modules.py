from __future__ import annotations

import os
from typing import Optional

from ..errors import DeployError


def path_to_module(path: str, base: Optional[str] = None) -> str:
    """Convert a .py file path into a dotted module name, relative to base."""
    if base:
        base = os.path.normpath(os.path.abspath(base))
        path = os.path.normpath(os.path.join(base, path))
        if not path.startswith(base + os.sep):
            raise DeployError(f"Path {path} is not inside base path {base}")
        path = path[len(base) + 1:]
    if path.endswith(".py"):
        path = path[:-3]
    return path.replace(os.sep, ".")


def module_to_path(module: str, base: Optional[str] = None) -> str:
    """Convert a dotted module name into a .py file path, optionally under base."""
    path = module.replace(".", os.sep) + ".py"
    if base:
        path = os.path.join(base, path)
    return path

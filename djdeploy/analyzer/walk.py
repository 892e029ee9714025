from __future__ import annotations

import os
from pathlib import Path
from typing import Generator, List

from ..errors import FileNotFound


def iter_matches(root: str | Path, filename: str) -> Generator[str, None, None]:
    """Yield every path under root (root included) whose last segment is filename."""
    root_path = str(root)
    if os.path.basename(os.path.normpath(root_path)) == filename:
        yield root_path
    for dirpath, dirnames, filenames in os.walk(root_path):
        for name in dirnames + filenames:
            if name == filename:
                yield os.path.join(dirpath, name)


def _nearest_key(path: str):
    # shallower wins, then plain string order
    return (path.count(os.sep), path)


def find_file(root: str | Path, filename: str) -> str:
    """
    Find the match for filename nearest to root.

    Args:
        root: Directory to search
        filename: Exact file name to look for

    Returns:
        str: Path of the shallowest match, ties broken lexicographically

    Raises:
        FileNotFound: If nothing under root matches
    """
    matches: List[str] = list(iter_matches(root, filename))
    if not matches:
        raise FileNotFound(filename, str(root))
    return min(matches, key=_nearest_key)

"""
Convergence run identifiers.

A run id names the directory holding that run's event log, so it is both
sortable by start time and safe to use as a path segment.
"""

import random
import re
import string
from datetime import datetime
from typing import Optional

RUN_ID_PREFIX = "r"
RUN_ID_PATTERN = re.compile(r"^r-(\d{8})-(\d{6})-([a-z0-9]{4})$")


def new_run_id(now: Optional[datetime] = None) -> str:
    """Return a run id of the form r-YYYYMMDD-hhmmss-xxxx."""
    now = now or datetime.now()
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=4))
    return f"{RUN_ID_PREFIX}-{now:%Y%m%d-%H%M%S}-{suffix}"


def is_valid_run_id(run_id: str) -> bool:
    if not isinstance(run_id, str):
        return False
    return RUN_ID_PATTERN.match(run_id) is not None


def run_started_at(run_id: str) -> Optional[datetime]:
    """Start time encoded in a run id, or None if the id is malformed."""
    m = RUN_ID_PATTERN.match(run_id) if isinstance(run_id, str) else None
    if not m:
        return None
    try:
        return datetime.strptime(f"{m.group(1)}{m.group(2)}", "%Y%m%d%H%M%S")
    except ValueError:
        return None

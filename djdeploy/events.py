"""
Run events, recorded as NDJSON under ``<log_dir>/<run_id>/events.ndjson``.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

EVENTS_FILE = "events.ndjson"


class EventTypes:
    RUN_START = "RUN_START"
    RESOLVED = "RESOLVED"
    SET_STATE = "SET_STATE"
    STEP_START = "STEP_START"
    STEP_SKIPPED = "STEP_SKIPPED"
    STEP_DONE = "STEP_DONE"
    DONE = "DONE"
    ERROR = "ERROR"


# Run status after each kind of event; the last event decides.
RUN_STATUS = {
    EventTypes.RUN_START: "started",
    EventTypes.RESOLVED: "resolved",
    EventTypes.SET_STATE: "converging",
    EventTypes.STEP_START: "converging",
    EventTypes.STEP_SKIPPED: "converging",
    EventTypes.STEP_DONE: "converging",
    EventTypes.DONE: "converged",
    EventTypes.ERROR: "failed",
}


def events_path(log_dir: Path, run_id: str) -> Path:
    return Path(log_dir) / run_id / EVENTS_FILE


def make_event(event_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "ts": datetime.now().isoformat(),
        "type": event_type,
        "data": data,
    }


def append_event(logs_file: Path, event: Dict[str, Any]) -> None:
    logs_file.parent.mkdir(parents=True, exist_ok=True)
    with open(logs_file, "a") as f:
        f.write(json.dumps(event, default=str) + "\n")
        f.flush()


def read_events(logs_file: Path) -> List[Dict[str, Any]]:
    """
    Load the events of one run, oldest first.

    A missing file reads as no events. Lines that are not JSON objects, such
    as a line cut short by an interrupted run, are skipped.
    """
    logs_file = Path(logs_file)
    if not logs_file.exists():
        return []

    events = []
    skipped = 0
    with open(logs_file, "r") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                skipped += 1
                continue
            if isinstance(event, dict):
                events.append(event)
            else:
                skipped += 1
    if skipped:
        logger.warning(f"Skipped {skipped} malformed line(s) in {logs_file}")
    return events


def get_last_event(events: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    return events[-1] if events else None


def get_status_from_events(events: List[Dict[str, Any]]) -> str:
    last_event = get_last_event(events)
    if not last_event:
        return "unknown"
    return RUN_STATUS.get(last_event.get("type", ""), "unknown")


def deployed_paths(events: List[Dict[str, Any]]) -> Dict[str, str]:
    """Outcome per application path: "changed", "up to date" or "failed"."""
    outcomes: Dict[str, str] = {}
    for event in events:
        data = event.get("data") or {}
        path = data.get("path")
        if not path:
            continue
        if event.get("type") == EventTypes.DONE:
            outcomes[path] = "changed" if data.get("changed") else "up to date"
        elif event.get("type") == EventTypes.ERROR:
            outcomes[path] = "failed"
    return outcomes

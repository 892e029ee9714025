"""
Shared deployment state for one convergence run.

Resources deploying the same application path share one DeploymentState per
run: the Django provider publishes environment variables and the WSGI module
there, and sibling resources (an application server, a worker) read them.
"""

import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from .errors import StateConflict
from .events import EventTypes, append_event, events_path, make_event
from .ids import new_run_id
from .redact import redact_environment

logger = logging.getLogger(__name__)

SETTINGS_MODULE_ENV = "DJANGO_SETTINGS_MODULE"
DATABASE_URL_ENV = "DATABASE_URL"
APP_MODULE_KEY = "python_app_module"


def get_djdeploy_home() -> Optional[Path]:
    """
    Get the default directory for run event logs.

    Returns:
        Path from DJDEPLOY_HOME, or None when unset
    """
    home = os.environ.get("DJDEPLOY_HOME")
    return Path(home).resolve() if home else None


class DeploymentState:
    """Environment and app-module values published for one application path."""

    def __init__(self, path: str):
        self.path = path
        self._environment: Dict[str, str] = {}
        self._app_state: Dict[str, Any] = {}

    @property
    def environment(self) -> Mapping[str, str]:
        return MappingProxyType(self._environment)

    @property
    def app_state(self) -> Mapping[str, Any]:
        return MappingProxyType(self._app_state)

    def _publish(self, target: Dict[str, Any], key: str, value: Any) -> bool:
        if key in target:
            if target[key] != value:
                raise StateConflict(key, target[key], value)
            return False
        target[key] = value
        return True

    def publish_environment(self, key: str, value: str) -> bool:
        """Publish an environment variable. Returns True if it was new."""
        return self._publish(self._environment, key, value)

    def publish_app_state(self, key: str, value: Any) -> bool:
        """Publish an application state value. Returns True if it was new."""
        return self._publish(self._app_state, key, value)

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        return {
            "environment": dict(self._environment),
            "app_state": dict(self._app_state),
        }


class ConvergenceRun:
    """
    Lifetime of one convergence run.

    Holds the DeploymentState for each application path and the run's event
    log. States are created on first use and dropped when the run closes.

    Example:
        with ConvergenceRun() as run:
            DjangoProvider(resource, run).action_deploy()
            run.state_for(resource.path).app_state["python_app_module"]
    """

    def __init__(self, run_id: Optional[str] = None, log_dir: Optional[Path] = None):
        self.run_id = run_id or new_run_id()
        self.log_dir = Path(log_dir) if log_dir else None
        self.events: List[Dict[str, Any]] = []
        self._states: Dict[str, DeploymentState] = {}
        self.closed = False

    @property
    def events_file(self) -> Optional[Path]:
        if not self.log_dir:
            return None
        return events_path(self.log_dir, self.run_id)

    def state_for(self, path: str) -> DeploymentState:
        if self.closed:
            raise RuntimeError(f"Convergence run {self.run_id} is closed")
        if path not in self._states:
            self._states[path] = DeploymentState(path)
        return self._states[path]

    def has_state(self, path: str) -> bool:
        return path in self._states

    def emit(self, event_type: str, data: Dict[str, Any]) -> None:
        event = make_event(event_type, data)
        self.events.append(event)
        if self.events_file:
            append_event(self.events_file, event)

    def summary(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "states": {
                path: {
                    "environment": redact_environment(state.environment),
                    "app_state": dict(state.app_state),
                }
                for path, state in self._states.items()
            },
        }

    def close(self) -> None:
        if not self.closed:
            logger.debug(f"Closing convergence run {self.run_id}")
            self._states.clear()
            self.closed = True

    def __enter__(self) -> "ConvergenceRun":
        self.emit(EventTypes.RUN_START, {"run_id": self.run_id})
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

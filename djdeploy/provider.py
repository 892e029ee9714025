"""
Convergence of a DjangoResource onto the host.

The deploy action resolves the resource completely, then walks a fixed
sequence of steps: publish state, syncdb, migrate, collectstatic, write
local settings. Each step reports whether it changed anything; the deploy
result is changed if any step was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import DeployError
from .events import EventTypes
from .execute import Executor, run_command
from .redact import redact_url
from .resolver import AttributeResolver
from .resource import DjangoResource, ResolvedDjango
from .state import (
    APP_MODULE_KEY,
    DATABASE_URL_ENV,
    SETTINGS_MODULE_ENV,
    ConvergenceRun,
    DeploymentState,
)
from .templates import write_file

logger = logging.getLogger(__name__)

NOINPUT = "--noinput"


@dataclass
class StepResult:
    name: str
    changed: bool = False
    skipped: bool = False


@dataclass
class DeployResult:
    path: str
    steps: List[StepResult] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return any(step.changed for step in self.steps)

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "changed": self.changed,
            "steps": [
                {"name": s.name, "changed": s.changed, "skipped": s.skipped}
                for s in self.steps
            ],
        }


class DjangoProvider:
    """Deploys a DjangoResource within a ConvergenceRun."""

    def __init__(self, resource: DjangoResource, run: ConvergenceRun, executor: Optional[Executor] = None):
        self.new_resource = resource
        self.run = run
        self.executor = executor or run_command
        self.resolved: Optional[ResolvedDjango] = None

    @property
    def state(self) -> DeploymentState:
        return self.run.state_for(self.new_resource.path)

    def action_deploy(self) -> DeployResult:
        path = self.new_resource.path
        try:
            # Inference failures abort here, before anything is touched.
            self.resolved = AttributeResolver(self.new_resource).resolve()
            self.run.emit(EventTypes.RESOLVED, {"path": path})

            result = DeployResult(path=path)
            result.steps.append(self.set_state())
            result.steps.append(self._guarded("syncdb", self.resolved.syncdb, self.run_syncdb))
            result.steps.append(self._guarded("migrate", self.resolved.migrate, self.run_migrate))
            result.steps.append(
                self._guarded("collectstatic", self.resolved.collectstatic, self.run_collectstatic)
            )
            result.steps.append(
                self._guarded("write_config", bool(self.resolved.local_settings_path), self.write_config)
            )
        except DeployError as e:
            logger.error(f"Deploy of {path} failed: {e}")
            self.run.emit(EventTypes.ERROR, {"path": path, "reason": str(e), "error": type(e).__name__})
            raise

        self.run.emit(EventTypes.DONE, result.to_dict())
        logger.info(f"Deploy of {path} finished ({'changed' if result.changed else 'up to date'})")
        return result

    def _guarded(self, name: str, enabled: bool, step) -> StepResult:
        if not enabled:
            logger.debug(f"Skipping {name} for {self.new_resource.path}")
            self.run.emit(EventTypes.STEP_SKIPPED, {"path": self.new_resource.path, "step": name})
            return StepResult(name=name, skipped=True)
        self.run.emit(EventTypes.STEP_START, {"path": self.new_resource.path, "step": name})
        changed = step()
        self.run.emit(EventTypes.STEP_DONE, {"path": self.new_resource.path, "step": name, "changed": changed})
        return StepResult(name=name, changed=changed)

    def set_state(self) -> StepResult:
        """Publish settings, database URL and WSGI module for later services."""
        resolved = self.resolved
        state = self.state
        changed = False
        if resolved.settings_module:
            changed |= state.publish_environment(SETTINGS_MODULE_ENV, resolved.settings_module)
        if resolved.database.get("URL"):
            changed |= state.publish_environment(DATABASE_URL_ENV, resolved.database["URL"])
        for key, value in resolved.environment.items():
            changed |= state.publish_environment(key, value)
        if resolved.wsgi_module:
            changed |= state.publish_app_state(APP_MODULE_KEY, resolved.wsgi_module)

        if DATABASE_URL_ENV in state.environment:
            logger.info(f"Published {DATABASE_URL_ENV}={redact_url(state.environment[DATABASE_URL_ENV])}")
        self.run.emit(EventTypes.SET_STATE, {
            "path": resolved.path,
            "environment": sorted(state.environment),
            "app_module": state.app_state.get(APP_MODULE_KEY),
        })
        return StepResult(name="set_state", changed=changed)

    def run_syncdb(self) -> bool:
        self.manage_py_execute("syncdb", NOINPUT)
        return True

    def run_migrate(self) -> bool:
        self.manage_py_execute("migrate", NOINPUT)
        return True

    def run_collectstatic(self) -> bool:
        self.manage_py_execute("collectstatic", NOINPUT)
        return True

    def write_config(self) -> bool:
        if not self.resolved.local_settings_path:
            return False
        return write_file(self.resolved.local_settings_path, self.resolved.local_settings or "")

    def manage_py_execute(self, *cmd: str) -> str:
        logger.info(f"manage.py {' '.join(cmd)} for {self.resolved.path}")
        command = [self.resolved.python, self.resolved.manage_path, *cmd]
        return self.executor(command, dict(self.state.environment), self.resolved.path)


def deploy(resource: DjangoResource, run: Optional[ConvergenceRun] = None, executor: Optional[Executor] = None) -> DeployResult:
    """Deploy one resource, in its own run unless one is given."""
    if run is not None:
        return DjangoProvider(resource, run, executor).action_deploy()
    with ConvergenceRun() as own_run:
        return DjangoProvider(resource, own_run, executor).action_deploy()

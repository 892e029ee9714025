from pathlib import Path

import pytest

from djdeploy.errors import SubprocessFailure


def make_django_tree(root: Path, settings=True, wsgi=True, manage=True) -> Path:
    """Lay out a minimal django-admin startproject tree under root."""
    root.mkdir(parents=True, exist_ok=True)
    pkg = root / "blog"
    pkg.mkdir(exist_ok=True)
    (pkg / "__init__.py").write_text("")
    if manage:
        (root / "manage.py").write_text("#!/usr/bin/env python\nimport sys\n")
    if settings:
        (pkg / "settings.py").write_text("INSTALLED_APPS = []\n")
    if wsgi:
        (pkg / "wsgi.py").write_text("application = None\n")
    return root


class RecordingExecutor:
    """Stands in for run_command, recording every management command."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def __call__(self, command, environment, cwd):
        self.calls.append((list(command), dict(environment), cwd))
        if self.fail_on and self.fail_on in command:
            raise SubprocessFailure(command, 1, [f"{self.fail_on} exploded"])
        return ""

    @property
    def subcommands(self):
        return [command[2] for command, _, _ in self.calls]


@pytest.fixture
def django_app(tmp_path):
    return make_django_tree(tmp_path / "app")


@pytest.fixture
def executor():
    return RecordingExecutor()

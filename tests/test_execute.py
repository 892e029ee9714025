import os
import sys

import pytest

from djdeploy.errors import SubprocessFailure
from djdeploy.execute import run_command


def test_returns_output():
    assert run_command([sys.executable, "-c", "print('hello')"]) == "hello"


def test_environment_is_merged_over_process_env():
    output = run_command(
        [sys.executable, "-c", "import os; print(os.environ['DJANGO_SETTINGS_MODULE']); print('PATH' in os.environ)"],
        {"DJANGO_SETTINGS_MODULE": "blog.settings"},
    )
    assert output.splitlines() == ["blog.settings", "True"]


def test_runs_in_cwd(tmp_path):
    output = run_command([sys.executable, "-c", "import os; print(os.getcwd())"], cwd=str(tmp_path))
    assert os.path.realpath(output) == os.path.realpath(str(tmp_path))


def test_non_zero_exit_raises_with_tail():
    with pytest.raises(SubprocessFailure) as exc:
        run_command([sys.executable, "-c", "import sys; print('no such table'); sys.exit(3)"])
    assert exc.value.returncode == 3
    assert exc.value.last_lines == ["no such table"]
    assert "exit code 3" in str(exc.value)


def test_missing_program_raises():
    with pytest.raises(SubprocessFailure) as exc:
        run_command(["/nonexistent/bin/python-does-not-exist", "manage.py"])
    assert exc.value.returncode == 127


def test_on_line_callback():
    lines = []
    run_command([sys.executable, "-c", "print('a'); print(''); print('b')"], on_line=lines.append)
    assert lines == ["a", "b"]

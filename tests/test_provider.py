"""
Tests for the deploy action of DjangoProvider.
"""

import pytest

from djdeploy.errors import FileAccessError, FileNotFound, StateConflict, SubprocessFailure
from djdeploy.events import EventTypes, get_status_from_events
from djdeploy.provider import DjangoProvider, deploy
from djdeploy.resource import DjangoResource
from djdeploy.state import ConvergenceRun
from tests.conftest import RecordingExecutor, make_django_tree


def make_resource(app, **kw):
    base = dict(path=str(app), python="/usr/bin/python3")
    base.update(kw)
    return DjangoResource(**base)


def test_full_deploy_runs_steps_in_order(django_app, executor):
    resource = make_resource(
        django_app, syncdb=True, migrate=True,
        database="postgres://blog:pw@db/blog",
        environment={"SECRET_KEY": "abc"},
    )
    with ConvergenceRun() as run:
        result = DjangoProvider(resource, run, executor).action_deploy()
        state = run.state_for(resource.path)

        assert executor.subcommands == ["syncdb", "migrate", "collectstatic"]
        for command, env, cwd in executor.calls:
            assert command[:2] == ["/usr/bin/python3", str(django_app / "manage.py")]
            assert command[-1] == "--noinput"
            assert cwd == str(django_app)
            assert env["DJANGO_SETTINGS_MODULE"] == "blog.settings"
            assert env["DATABASE_URL"] == "postgres://blog:pw@db/blog"
            assert env["SECRET_KEY"] == "abc"

        assert state.app_state["python_app_module"] == "blog.wsgi"
        assert result.changed is True
        assert [s.name for s in result.steps] == [
            "set_state", "syncdb", "migrate", "collectstatic", "write_config",
        ]

    local_settings = django_app / "blog" / "local_settings.py"
    assert local_settings.exists()
    assert "'NAME': 'blog'" in local_settings.read_text()


def test_destructive_steps_are_opt_in(django_app, executor):
    deploy(make_resource(django_app), executor=executor)
    assert executor.subcommands == ["collectstatic"]


def test_repeat_deploy_is_idempotent(django_app, executor):
    resource = make_resource(django_app, collectstatic=False, database="sqlite:///db.sqlite3")
    with ConvergenceRun() as run:
        provider = DjangoProvider(resource, run, executor)
        first = provider.action_deploy()
        snapshot_one = run.state_for(resource.path).snapshot()
        second = provider.action_deploy()
        snapshot_two = run.state_for(resource.path).snapshot()

    assert executor.calls == []
    assert snapshot_one == snapshot_two
    assert first.changed is True
    assert second.changed is False
    assert all(s.skipped for s in second.steps if s.name in ("syncdb", "migrate", "collectstatic"))


def test_separate_runs_publish_identical_state(django_app, executor):
    resource = make_resource(django_app, collectstatic=False)
    snapshots = []
    for _ in range(2):
        with ConvergenceRun() as run:
            DjangoProvider(resource, run, executor).action_deploy()
            snapshots.append(run.state_for(resource.path).snapshot())
    assert snapshots[0] == snapshots[1]
    assert executor.calls == []


def test_subprocess_failure_stops_remaining_steps(django_app):
    executor = RecordingExecutor(fail_on="migrate")
    resource = make_resource(django_app, syncdb=True, migrate=True)
    with ConvergenceRun() as run:
        with pytest.raises(SubprocessFailure) as exc:
            DjangoProvider(resource, run, executor).action_deploy()
        assert run.events[-1]["type"] == EventTypes.ERROR

    assert exc.value.returncode == 1
    assert executor.subcommands == ["syncdb", "migrate"]
    assert not (django_app / "blog" / "local_settings.py").exists()


def test_missing_inference_aborts_before_mutation(tmp_path, executor):
    app = make_django_tree(tmp_path / "app", wsgi=False)
    resource = make_resource(app, migrate=True)
    with ConvergenceRun() as run:
        with pytest.raises(FileNotFound) as exc:
            DjangoProvider(resource, run, executor).action_deploy()
        assert not run.has_state(resource.path)
    assert exc.value.filename == "wsgi.py"
    assert executor.calls == []


def test_disabled_settings_and_wsgi(tmp_path, executor):
    app = make_django_tree(tmp_path / "app", settings=False, wsgi=False)
    resource = make_resource(app, settings_module=False, wsgi_module=False, collectstatic=False)
    with ConvergenceRun() as run:
        result = DjangoProvider(resource, run, executor).action_deploy()
        state = run.state_for(resource.path)
        assert "DJANGO_SETTINGS_MODULE" not in state.environment
        assert "python_app_module" not in state.app_state

    write_config = [s for s in result.steps if s.name == "write_config"][0]
    assert write_config.skipped is True
    assert result.changed is False


def test_no_database_url_not_published(django_app, executor):
    resource = make_resource(django_app, database={"engine": "postgresql", "name": "blog"})
    with ConvergenceRun() as run:
        DjangoProvider(resource, run, executor).action_deploy()
        assert "DATABASE_URL" not in run.state_for(resource.path).environment


def test_conflicting_sibling_state(django_app, executor):
    resource = make_resource(django_app)
    with ConvergenceRun() as run:
        run.state_for(resource.path).publish_environment("DJANGO_SETTINGS_MODULE", "other.settings")
        with pytest.raises(StateConflict):
            DjangoProvider(resource, run, executor).action_deploy()
    assert executor.calls == []


def test_local_settings_rewritten_when_changed(django_app, executor):
    local_settings = django_app / "blog" / "local_settings.py"
    local_settings.write_text("stale\n")
    resource = make_resource(django_app, collectstatic=False, local_settings_content="FRESH = True\n")
    result = deploy(resource, executor=executor)
    assert local_settings.read_text() == "FRESH = True\n"
    assert [s for s in result.steps if s.name == "write_config"][0].changed is True


def test_events_recorded(django_app, executor):
    with ConvergenceRun() as run:
        deploy(make_resource(django_app), run=run, executor=executor)
        types = [e["type"] for e in run.events]
    assert types[0] == EventTypes.RUN_START
    assert EventTypes.RESOLVED in types
    assert EventTypes.SET_STATE in types
    assert types.count(EventTypes.STEP_SKIPPED) == 2
    assert types[-1] == EventTypes.DONE


def test_unwritable_local_settings_path_fails_run(django_app, executor):
    resource = make_resource(django_app, collectstatic=False, local_settings_path="nope/local.py")
    with ConvergenceRun() as run:
        with pytest.raises(FileAccessError) as exc:
            DjangoProvider(resource, run, executor).action_deploy()
        assert run.events[-1]["type"] == EventTypes.ERROR
        assert get_status_from_events(run.events) == "failed"
    assert exc.value.path == str(django_app / "nope" / "local.py")


def test_missing_template_source_fails_before_mutation(django_app, executor):
    resource = make_resource(django_app, migrate=True, local_settings_source="missing.tmpl")
    with ConvergenceRun() as run:
        with pytest.raises(FileAccessError) as exc:
            DjangoProvider(resource, run, executor).action_deploy()
        assert run.events[-1]["type"] == EventTypes.ERROR
        assert not run.has_state(resource.path)
    assert exc.value.path == str(django_app / "missing.tmpl")
    assert executor.calls == []

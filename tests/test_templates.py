import pytest

from djdeploy.errors import FileAccessError
from djdeploy.templates import (
    LOCAL_SETTINGS_TEMPLATE,
    local_settings_context,
    read_template,
    render_template,
    write_file,
)


def test_render_replaces_placeholders():
    assert render_template("A={{A}} B={{B}}", {"A": 1, "B": "two"}) == "A=1 B=two"


def test_render_leaves_unknown_placeholders():
    assert render_template("X={{MISSING}}", {}) == "X={{MISSING}}"


def test_write_file_change_detection(tmp_path):
    target = tmp_path / "local_settings.py"
    assert write_file(target, "DEBUG = False\n") is True
    assert write_file(target, "DEBUG = False\n") is False
    assert write_file(target, "DEBUG = True\n") is True
    assert target.read_text() == "DEBUG = True\n"


def test_context_splits_settings_from_variables():
    context = local_settings_context(
        "/srv/app",
        "blog.settings",
        {"URL": "sqlite:///x", "ENGINE": "django.db.backends.sqlite3", "NAME": "/srv/x"},
        {"ALLOWED_HOSTS": ["example.com"], "owner": "ops"},
    )
    assert context["owner"] == "ops"
    assert "ALLOWED_HOSTS" not in context
    assert "ALLOWED_HOSTS = ['example.com']" in context["EXTRA_SETTINGS"]
    assert "'URL'" not in context["DATABASES"]
    assert context["DATABASE_SETTINGS"].startswith("\nDATABASES = ")


def test_default_template_renders_cleanly():
    context = local_settings_context("/srv/app", "blog.settings", {})
    rendered = render_template(LOCAL_SETTINGS_TEMPLATE, context)
    assert "{{" not in rendered
    assert rendered.endswith("# Settings module: blog.settings\n")


def test_render_does_not_expand_substituted_values():
    rendered = render_template("{{owner}} {{SETTINGS_MODULE}}", {"owner": "{{SETTINGS_MODULE}}", "SETTINGS_MODULE": "blog.settings"})
    assert rendered == "{{SETTINGS_MODULE}} blog.settings"


def test_write_file_into_missing_directory(tmp_path):
    target = tmp_path / "missing" / "local_settings.py"
    with pytest.raises(FileAccessError) as exc:
        write_file(target, "DEBUG = False\n")
    assert exc.value.path == str(target)


def test_read_template_missing(tmp_path):
    with pytest.raises(FileAccessError):
        read_template(tmp_path / "missing.tmpl")

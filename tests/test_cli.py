"""Tests for the console-mcp CLI."""

from __future__ import annotations

from typer.testing import CliRunner

from console_mcp.cli import app

runner = CliRunner()


def test_run_prints_stdout(make_console, monkeypatch):
    script = make_console('echo "ran: $@"')
    monkeypatch.setenv("EXECUTION_MODE", "local")
    monkeypatch.setenv("PATH_CONSOLE", str(script))

    result = runner.invoke(app, ["run", "cache:clear"])

    assert result.exit_code == 0
    assert "ran: cache:clear" in result.output


def test_run_error_response_exits_1(make_console, monkeypatch):
    script = make_console('echo "boom" >&2\nexit 4')
    monkeypatch.setenv("EXECUTION_MODE", "local")
    monkeypatch.setenv("PATH_CONSOLE", str(script))

    result = runner.invoke(app, ["run", "app:sync"])

    assert result.exit_code == 1
    assert "Exit Code: 4" in result.output
    assert "boom" in result.output


def test_run_denied_characters_exit_2(make_console, monkeypatch):
    script = make_console('echo "should not run"')
    monkeypatch.setenv("EXECUTION_MODE", "local")
    monkeypatch.setenv("PATH_CONSOLE", str(script))

    result = runner.invoke(app, ["run", "list; id"])

    assert result.exit_code == 2
    assert "INVALID_ARGUMENT" in result.output
    assert "should not run" not in result.output


def test_run_missing_config_exit_2(monkeypatch):
    monkeypatch.setenv("EXECUTION_MODE", "local")

    result = runner.invoke(app, ["run", "list"])

    assert result.exit_code == 2
    assert "CONFIGURATION_ERROR" in result.output


def test_list_validates_json(make_console, monkeypatch):
    script = make_console('echo "not json"')
    monkeypatch.setenv("EXECUTION_MODE", "local")
    monkeypatch.setenv("PATH_CONSOLE", str(script))

    result = runner.invoke(app, ["list"])

    assert result.exit_code == 1
    assert "Failed to parse JSON output" in result.output


def test_help_appends_flag(make_console, monkeypatch):
    script = make_console('echo "$@"')
    monkeypatch.setenv("EXECUTION_MODE", "local")
    monkeypatch.setenv("PATH_CONSOLE", str(script))

    result = runner.invoke(app, ["help", "cache:clear"])

    assert result.exit_code == 0
    assert "cache:clear --help" in result.output


def test_config_shows_target(monkeypatch):
    monkeypatch.setenv("CONTAINER_NAME", "app_1")

    result = runner.invoke(app, ["config"])

    assert result.exit_code == 0
    assert "app_1" in result.output
    assert "/www/bin/console" in result.output


def test_config_reports_missing_container():
    result = runner.invoke(app, ["config"])

    assert result.exit_code == 0
    assert "CONTAINER_NAME" in result.output


def test_config_reports_unsplittable_console_path(monkeypatch):
    monkeypatch.setenv("EXECUTION_MODE", "local")
    monkeypatch.setenv("PATH_CONSOLE", "php 'bin/console")

    result = runner.invoke(app, ["config"])

    assert result.exit_code == 0
    assert "Invalid console path" in result.output


def test_run_unsplittable_console_path_exit_2(monkeypatch):
    monkeypatch.setenv("EXECUTION_MODE", "local")
    monkeypatch.setenv("PATH_CONSOLE", "php 'bin/console")

    result = runner.invoke(app, ["run", "list"])

    assert result.exit_code == 2
    assert "CONFIGURATION_ERROR" in result.output


def test_config_prints_bracketed_values_literally(monkeypatch):
    monkeypatch.setenv("CONTAINER_NAME", "app[1]")
    monkeypatch.setenv("PATH_CONSOLE", "/srv/[bold]/console")

    result = runner.invoke(app, ["config"])

    assert result.exit_code == 0
    assert "app[1]" in result.output
    assert "/srv/[bold]/console" in result.output

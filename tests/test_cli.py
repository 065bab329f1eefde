"""Tests for the vote-gate command line interface"""

import pytest
from rich.console import Console
from typer.testing import CliRunner

from vote_gate import __version__
from vote_gate.cli import app
from vote_gate.github_app import webhook_handler
from vote_gate.github_app.check_store import CheckStore
from vote_gate.utils.schema import CheckConclusion, CheckStatus

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path):
    """Provides a config file pointing at a temporary database."""
    path = tmp_path / ".vote-gate.yml"
    path.write_text(f"database_path: {tmp_path / 'checks.db'}\n")
    return path


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_db(config_path, tmp_path):
    result = runner.invoke(app, ["init-db", "--config", str(config_path)])

    assert result.exit_code == 0
    assert (tmp_path / "checks.db").exists()


def test_checks_lists_rows(config_path, tmp_path, monkeypatch):
    monkeypatch.setattr("vote_gate.cli.console", Console(width=200))
    store = CheckStore(tmp_path / "checks.db")
    store.create_check_run("parliament", "laws", 4242, "abcdef123")
    store.create_check_run("parliament", "budget", 4343, "abcdef123")
    store.update_check_run_status(4242, CheckStatus.COMPLETED, CheckConclusion.CANCELLED)

    result = runner.invoke(app, ["checks", "--config", str(config_path), "--repo", "laws"])

    assert result.exit_code == 0
    assert "4242" in result.output
    assert "cancelled" in result.output
    assert "4343" not in result.output


def test_checks_empty(config_path):
    result = runner.invoke(app, ["checks", "--config", str(config_path)])

    assert result.exit_code == 0
    assert "No check runs recorded" in result.output


def test_init_config_writes_sample(tmp_path):
    target = tmp_path / "vote-gate.yml"

    result = runner.invoke(app, ["init-config", str(target)])

    assert result.exit_code == 0
    assert "check_name: Legislation Vote" in target.read_text()


def test_init_config_refuses_overwrite(tmp_path):
    target = tmp_path / "vote-gate.yml"
    target.write_text("keep: me\n")

    result = runner.invoke(app, ["init-config", str(target)])

    assert result.exit_code == 1
    assert target.read_text() == "keep: me\n"


def test_serve_requires_webhook_secret(config_path, monkeypatch):
    calls = []
    monkeypatch.delenv("GITHUB_WEBHOOK_SECRET", raising=False)
    monkeypatch.setattr("vote_gate.cli.logging_config.setup_logging", lambda *a, **kw: None)
    monkeypatch.setattr("uvicorn.run", lambda *a, **kw: calls.append(kw))

    result = runner.invoke(app, ["serve", "--config", str(config_path)])

    assert result.exit_code == 1
    assert calls == []


def test_serve_starts_uvicorn(config_path, monkeypatch):
    calls = {}
    monkeypatch.setattr(webhook_handler, "settings", None)
    monkeypatch.setenv("GITHUB_WEBHOOK_SECRET", "s3cret")
    monkeypatch.setattr("uvicorn.run", lambda app, **kw: calls.update(kw))
    monkeypatch.setattr("vote_gate.cli.logging_config.setup_logging", lambda *a, **kw: None)

    result = runner.invoke(app, ["serve", "--config", str(config_path), "--port", "9123"])

    assert result.exit_code == 0
    assert calls["port"] == 9123
    assert calls["host"] == "0.0.0.0"

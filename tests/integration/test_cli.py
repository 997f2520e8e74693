"""Tests for the datagate command-line interface."""

from unittest.mock import patch

import pytest
import structlog
from click.testing import CliRunner

from datagate.cli import cli
from datagate.core.config import get_settings
from datagate.domain.services import DataPermissionService
from datagate.infrastructure.persistence import database


@pytest.fixture
def sqlite_env(tmp_path, monkeypatch):
    """Point the CLI at a fresh SQLite file."""
    db_file = tmp_path / "data" / "datagate.db"
    monkeypatch.setenv("DATAGATE_DATABASE_URL", f"sqlite+aiosqlite:///{db_file}")
    monkeypatch.setenv("DATAGATE_ENVIRONMENT", "testing")
    monkeypatch.setenv("DATAGATE_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("DATAGATE_LOG_FORMAT", "console")
    get_settings.cache_clear()
    monkeypatch.setattr(database, "_db_manager", None)
    yield db_file
    get_settings.cache_clear()


def test_info_shows_configuration(sqlite_env):
    """info prints the database URL and cache TTLs."""
    result = CliRunner().invoke(cli, ["info"])

    assert result.exit_code == 0
    assert str(sqlite_env) in result.output
    assert "Access:       900" in result.output


def test_init_db_then_check(sqlite_env):
    """A fresh database denies an unknown user."""
    runner = CliRunner()

    result = runner.invoke(cli, ["init-db", "--force"])
    assert result.exit_code == 0
    assert "Database initialized successfully." in result.output
    assert sqlite_env.exists()

    result = runner.invoke(cli, ["check", "ghost", "Posts", "read", "--resource-id", "p1"])
    assert result.exit_code == 1
    assert "denied" in result.output

    result = runner.invoke(cli, ["scope", "ghost"])
    assert result.exit_code == 0
    assert "No access" in result.output

    result = runner.invoke(cli, ["stats"])
    assert result.exit_code == 0
    assert "Active rules:" in result.output
    assert result.output.split("Active rules:")[1].split()[0] == "0"


def test_grant_reports_failure(sqlite_env):
    runner = CliRunner()
    runner.invoke(cli, ["init-db", "--force"])

    result = runner.invoke(cli, ["grant", "ghost", "Posts", "p1", "read", "--minutes", "5"])

    assert result.exit_code == 1
    assert "user_not_found" in result.output


def test_grant_requires_expiry(sqlite_env):
    result = CliRunner().invoke(cli, ["grant", "u1", "Posts", "p1", "read"])

    assert result.exit_code == 2
    assert "Provide --minutes or --expires-at" in result.output


def test_init_db_refuses_production_without_force(sqlite_env, monkeypatch):
    monkeypatch.setenv("DATAGATE_ENVIRONMENT", "production")
    get_settings.cache_clear()

    result = CliRunner().invoke(cli, ["init-db"])

    assert result.exit_code == 1
    assert "Use migrations" in result.output


def test_commands_log_with_command_and_correlation_id(sqlite_env):
    """Commands bind a correlation ID and their name, and clear both afterwards."""
    runner = CliRunner()
    runner.invoke(cli, ["init-db", "--force"])
    seen: list[dict] = []

    async def fake_check(self, *args, **kwargs):
        seen.append(structlog.contextvars.get_contextvars())
        return False

    with patch.object(DataPermissionService, "can_access_resource", new=fake_check):
        runner.invoke(cli, ["check", "u1", "Posts", "read"])
        runner.invoke(cli, ["check", "u1", "Posts", "read"])

    assert [context["command"] for context in seen] == ["check", "check"]
    assert len(seen[0]["correlation_id"]) == 32
    assert seen[0]["correlation_id"] != seen[1]["correlation_id"]
    assert structlog.contextvars.get_contextvars() == {}

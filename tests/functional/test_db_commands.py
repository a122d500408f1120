"""Functional tests for the ``huntkeeper db`` subcommands against SQLite."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from huntkeeper.entrypoints.cli.db import (
    MISSING_DB_URL_MSG,
    UPGRADE_SCHEMA_INSTRUCTIONS,
    UPGRADE_SCHEMA_WARNING,
)
from huntkeeper.entrypoints.cli.main import huntkeeper as huntkeeper_cli

# pylint: disable=redefined-outer-name

HEAD_REVISION = "3c7a1f0e9b42"


@pytest.fixture
def log_env(tmp_path: Path) -> dict[str, str]:
    return {"HUNTKEEPER_LOG_PATH": str(tmp_path / "logs" / "latest.log")}


@pytest.mark.parametrize(
    "cmd", [["db", "current"], ["db", "history", "-i"], ["db", "upgrade"]]
)
def test_db_commands_need_url(cmd, log_env):
    runner = CliRunner(env={**log_env, "HUNTKEEPER_DB_URL": ""})
    result = runner.invoke(huntkeeper_cli, cmd)
    assert result.exit_code == 1
    assert MISSING_DB_URL_MSG in result.output


def test_heads_without_url(log_env):
    runner = CliRunner(env={**log_env, "HUNTKEEPER_DB_URL": ""})
    result = runner.invoke(huntkeeper_cli, ["db", "heads"])
    assert result.exit_code == 0, result.output
    assert HEAD_REVISION in result.output


def test_onboarding_a_new_sqlite_database(log_env, sqlite_url):
    runner = CliRunner(env={**log_env, "HUNTKEEPER_DB_URL": sqlite_url})

    # fresh database: no revision yet
    result = runner.invoke(huntkeeper_cli, ["db", "status"])
    assert result.exit_code == 0, result.output
    assert "uninitialized" in result.output
    assert UPGRADE_SCHEMA_INSTRUCTIONS in result.output

    # declining the prompt aborts
    result = runner.invoke(huntkeeper_cli, ["db", "upgrade"], input="n\n")
    assert result.exit_code == 1
    assert UPGRADE_SCHEMA_WARNING in result.output

    result = runner.invoke(huntkeeper_cli, ["db", "upgrade"], input="y\n")
    assert result.exit_code == 0, result.output
    assert "Upgrade complete!" in result.output

    result = runner.invoke(huntkeeper_cli, ["db", "current"])
    assert result.exit_code == 0, result.output
    assert HEAD_REVISION in result.output

    result = runner.invoke(huntkeeper_cli, ["db", "status"])
    assert f"{HEAD_REVISION} (up to date)" in result.output
    assert "Backend : sqlite" in result.output
    assert "Registry: not written yet" in result.output
    assert "Orgs    : 0" in result.output


def test_upgrade_sql_dry_run(log_env, sqlite_url):
    runner = CliRunner(env={**log_env, "HUNTKEEPER_DB_URL": sqlite_url})
    result = runner.invoke(huntkeeper_cli, ["db", "upgrade", "--sql"])
    assert result.exit_code == 0, result.output
    assert "CREATE TABLE registry_entities" in result.output

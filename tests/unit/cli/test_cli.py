"""Unit tests for the galleria command line interface."""

import sqlite3

import pytest
from click.testing import CliRunner
from rich.console import Console
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine

from galleria import cli as cli_module
from galleria.cli import cli
from galleria.db.models import Base
from galleria.db.session import Database


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def sqlite_database(tmp_path, monkeypatch):
    """Point the CLI at a file-backed SQLite database with the schema created."""
    path = tmp_path / "galleria.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    def from_config(config=None):
        return Database(create_async_engine(f"sqlite+aiosqlite:///{path}"))

    monkeypatch.setattr(cli_module.Database, "from_config", staticmethod(from_config))
    # Wide enough that table cells never wrap
    monkeypatch.setattr(cli_module, "console", Console(width=200))
    return path


class TestRlsSql:
    def test_prints_policies(self, runner):
        result = runner.invoke(cli, ["db", "rls-sql"])

        assert result.exit_code == 0
        assert "ALTER TABLE albums ENABLE ROW LEVEL SECURITY;" in result.output
        assert "CREATE POLICY tenant_isolation_policy ON photos" in result.output
        assert "GRANT" not in result.output

    def test_grant_role(self, runner):
        result = runner.invoke(cli, ["db", "rls-sql", "--grant-role", "galleria_app"])

        assert result.exit_code == 0
        assert "GRANT USAGE ON SCHEMA public TO galleria_app;" in result.output

    def test_includes_role_assignments(self, runner):
        result = runner.invoke(cli, ["db", "rls-sql"])

        assert "CREATE POLICY tenant_isolation_policy ON user_roles" in result.output


class TestSeedRoles:
    def test_seed_is_idempotent(self, runner, sqlite_database):
        first = runner.invoke(cli, ["db", "seed-roles"])
        second = runner.invoke(cli, ["db", "seed-roles"])

        assert first.exit_code == 0, first.output
        assert second.exit_code == 0, second.output
        assert "admin, user, viewer" in second.output

        with sqlite3.connect(sqlite_database) as conn:
            names = [row[0] for row in conn.execute("SELECT name FROM roles ORDER BY name")]
        assert names == ["admin", "user", "viewer"]


class TestTenantCommands:
    def test_create_and_list(self, runner, sqlite_database):
        created = runner.invoke(cli, ["tenants", "create", "Acme Corp", "--external-id", "org-acme"])
        assert created.exit_code == 0, created.output
        assert "acme-corp" in created.output

        listed = runner.invoke(cli, ["tenants", "list"])
        assert listed.exit_code == 0
        assert "Acme Corp" in listed.output
        assert "org-acme" in listed.output

    def test_show_by_slug(self, runner, sqlite_database):
        runner.invoke(cli, ["tenants", "create", "Acme Corp", "--external-id", "org-acme"])

        result = runner.invoke(cli, ["tenants", "show", "acme-corp"])

        assert result.exit_code == 0, result.output
        assert "Acme Corp (acme-corp)" in result.output
        assert "External reference: org-acme" in result.output

    def test_show_unknown_slug_fails(self, runner, sqlite_database):
        result = runner.invoke(cli, ["tenants", "show", "nope"])

        assert result.exit_code != 0
        assert "Tenant not found" in result.output

    def test_duplicate_slug_fails(self, runner, sqlite_database):
        runner.invoke(cli, ["tenants", "create", "Acme", "acme"])

        result = runner.invoke(cli, ["tenants", "create", "Acme", "acme"])

        assert result.exit_code != 0
        assert "already exists" in result.output

    def test_invalid_slug_fails(self, runner, sqlite_database):
        result = runner.invoke(cli, ["tenants", "create", "Acme", "Not Valid"])

        assert result.exit_code != 0

    def test_empty_list(self, runner, sqlite_database):
        result = runner.invoke(cli, ["tenants", "list"])

        assert result.exit_code == 0
        assert "No tenants" in result.output


class TestGlobalOptions:
    def test_invalid_environment_is_reported(self, runner, monkeypatch):
        monkeypatch.setenv("GALLERIA_ENVIRONMENT", "nowhere")

        result = runner.invoke(cli, ["db", "rls-sql"])

        assert result.exit_code != 0
        assert "Config error" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0

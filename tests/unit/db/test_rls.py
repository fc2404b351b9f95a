"""Unit tests for the connection-level row level security bridge."""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine

from galleria.db import rls
from galleria.tenant.context import RequestContextScope


class FakeDriverConnection:
    """Records statements the way asyncpg's connection would receive them."""

    def __init__(self):
        self.executed = []

    async def execute(self, sql, *args):
        self.executed.append((sql, args))


class FakeDBAPIConnection:
    """Mimics SQLAlchemy's asyncpg adapter ``run_async`` hook."""

    def __init__(self):
        self.driver = FakeDriverConnection()

    def run_async(self, fn):
        coro = fn(self.driver)
        # Drive the coroutine to completion synchronously
        try:
            coro.send(None)
        except StopIteration:
            return
        raise AssertionError("statement did not complete synchronously")


class TestCurrentSessionValues:
    def test_outside_context_is_empty(self):
        assert rls.current_session_values() == ("", "")

    def test_context_without_tenant(self):
        user_id = uuid4()
        with RequestContextScope(user_id=user_id):
            assert rls.current_session_values() == ("", str(user_id))

    def test_context_with_tenant_and_user(self):
        tenant_id, user_id = uuid4(), uuid4()
        with RequestContextScope(tenant_id=tenant_id, user_id=user_id):
            assert rls.current_session_values() == (str(tenant_id), str(user_id))


class TestCheckoutHook:
    def test_sets_both_settings_on_checkout(self):
        tenant_id, user_id = uuid4(), uuid4()
        conn = FakeDBAPIConnection()

        with RequestContextScope(tenant_id=tenant_id, user_id=user_id):
            rls._on_checkout(conn, MagicMock(), MagicMock())

        assert conn.driver.executed == [
            (rls.SET_SESSION_VARIABLES_SQL, (str(tenant_id), str(user_id)))
        ]

    def test_clears_settings_without_context(self):
        conn = FakeDBAPIConnection()

        rls._on_checkout(conn, MagicMock(), MagicMock())

        # A reused pooled connection must not keep a previous request's tenant
        assert conn.driver.executed == [(rls.SET_SESSION_VARIABLES_SQL, ("", ""))]

    def test_statement_is_session_scoped(self):
        assert "set_config('app.tenant_id', $1, false)" in rls.SET_SESSION_VARIABLES_SQL
        assert "set_config('app.user_id', $2, false)" in rls.SET_SESSION_VARIABLES_SQL


class TestInstallBridge:
    @pytest.mark.asyncio
    async def test_postgres_engine_gets_listener_once(self):
        engine = create_async_engine("postgresql+asyncpg://app:pw@localhost:5432/galleria")
        try:
            assert rls.install_rls_bridge(engine) is True
            assert rls.install_rls_bridge(engine) is True
            assert event.contains(engine.sync_engine, "checkout", rls._on_checkout)

            rls.remove_rls_bridge(engine)
            assert not event.contains(engine.sync_engine, "checkout", rls._on_checkout)
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_sqlite_engine_is_skipped(self, database):
        assert database.rls_enabled is False
        assert not event.contains(database.engine.sync_engine, "checkout", rls._on_checkout)


class TestPolicyStatements:
    def test_tenant_tables_are_forced(self):
        statements = list(rls.rls_statements())

        for table in ("albums", "photos", "user_roles", "user_tenants"):
            assert f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY" in statements
            assert f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY" in statements

    def test_global_tables_have_no_policies(self):
        sql = "\n".join(rls.rls_statements())

        assert " ON tenants" not in sql
        assert " ON users" not in sql
        assert " ON roles" not in sql

    def test_role_assignments_use_tenant_isolation(self):
        statements = list(rls.tenant_isolation_statements("user_roles"))

        assert set(statements) <= set(rls.rls_statements())
        assert any(s.startswith("CREATE POLICY tenant_isolation_policy ON user_roles") for s in statements)

    def test_missing_setting_matches_nothing(self):
        sql = "\n".join(rls.rls_statements())

        assert "NULLIF(current_setting('app.tenant_id', true), '')::uuid" in sql

    def test_drop_reverses_every_policy(self):
        created = [s for s in rls.rls_statements() if s.startswith("CREATE POLICY")]
        dropped = [s for s in rls.drop_rls_statements() if s.startswith("DROP POLICY")]

        assert len(created) == len(dropped)

    def test_membership_policies_stand_alone(self):
        created = list(rls.membership_statements())
        dropped = list(rls.drop_membership_statements())

        assert all("user_tenants" in s for s in created + dropped)
        assert "ALTER TABLE user_tenants DISABLE ROW LEVEL SECURITY" in dropped

    def test_grants(self):
        statements = list(rls.grant_statements("galleria_app"))

        assert "GRANT USAGE ON SCHEMA public TO galleria_app" in statements

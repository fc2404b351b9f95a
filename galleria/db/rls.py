"""PostgreSQL row level security: policy DDL and the checkout bridge.

Every connection handed out by the pool is primed with two session
settings before any statement runs:

    app.tenant_id  - tenant of the active request context, '' if none
    app.user_id    - user of the active request context, '' if none

The policies created by :func:`rls_statements` compare each row against
those settings. ``NULLIF(..., '')::uuid`` turns the empty sentinel into
NULL, and ``tenant_id = NULL`` is never true, so a connection without a
tenant sees and touches no scoped rows at all.

The settings are session-scoped (``set_config(..., false)``), so they stay in
place for the whole time a connection is checked out and are overwritten at
the next checkout by whoever borrows the connection next.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional, Tuple
from uuid import UUID

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from galleria.logging_config import get_logger
from galleria.tenant.context import get_context_or_none

logger = get_logger(__name__)

TENANT_SETTING = "app.tenant_id"
USER_SETTING = "app.user_id"

SET_SESSION_VARIABLES_SQL = (
    f"SELECT set_config('{TENANT_SETTING}', $1, false), "
    f"set_config('{USER_SETTING}', $2, false)"
)

# Tables whose rows belong to exactly one tenant
TENANT_SCOPED_TABLES: Tuple[str, ...] = ("albums", "photos", "user_roles")

# Global tables; readable before a tenant is known
GLOBAL_TABLES: Tuple[str, ...] = ("tenants", "users", "roles")

_CURRENT_TENANT = f"NULLIF(current_setting('{TENANT_SETTING}', true), '')::uuid"
_CURRENT_USER = f"NULLIF(current_setting('{USER_SETTING}', true), '')::uuid"


def current_session_values() -> Tuple[str, str]:
    """Tenant and user ids for the next connection, '' meaning absent.

    Never raises: if the context cannot be read the connection gets
    empty values and therefore sees no tenant-scoped rows.
    """
    try:
        ctx = get_context_or_none()
    except Exception:
        logger.warning("Request context lookup failed during checkout", exc_info=True)
        return "", ""
    if ctx is None:
        return "", ""
    tenant = str(ctx.tenant_id) if ctx.tenant_id is not None else ""
    user = str(ctx.user_id) if ctx.user_id is not None else ""
    return tenant, user


def _on_checkout(dbapi_connection: Any, connection_record: Any, connection_proxy: Any) -> None:
    tenant, user = current_session_values()
    # asyncpg adapter: run the statement on the raw driver connection
    dbapi_connection.run_async(
        lambda conn: conn.execute(SET_SESSION_VARIABLES_SQL, tenant, user)
    )


def install_rls_bridge(engine: AsyncEngine) -> bool:
    """Prime every pool checkout of ``engine`` with the context settings.

    Only PostgreSQL has session settings and row level security; for other
    dialects nothing is installed and False is returned.
    """
    if engine.dialect.name != "postgresql":
        logger.info(
            "Row level security bridge not installed",
            extra={"dialect": engine.dialect.name},
        )
        return False
    if not event.contains(engine.sync_engine, "checkout", _on_checkout):
        event.listen(engine.sync_engine, "checkout", _on_checkout)
    return True


def remove_rls_bridge(engine: AsyncEngine) -> None:
    if event.contains(engine.sync_engine, "checkout", _on_checkout):
        event.remove(engine.sync_engine, "checkout", _on_checkout)


async def set_local_tenant(session: AsyncSession, tenant_id: UUID) -> None:
    """Point ``app.tenant_id`` at ``tenant_id`` until the transaction ends.

    ``set_config(..., true)`` is transaction-local: at commit or rollback
    the connection falls back to the value set at checkout. Used where a
    request has to write rows into a tenant other than its active one,
    e.g. the owner's role right after the tenant is created.
    """
    if session.get_bind().dialect.name != "postgresql":
        return
    await session.execute(
        text(f"SELECT set_config('{TENANT_SETTING}', :tenant_id, true)"),
        {"tenant_id": str(tenant_id)},
    )


def _enable(table: str) -> Iterator[str]:
    yield f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY"
    # FORCE applies the policies to the table owner as well
    yield f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY"


def _disable(table: str) -> Iterator[str]:
    yield f"ALTER TABLE {table} NO FORCE ROW LEVEL SECURITY"
    yield f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY"


def tenant_isolation_statements(table: str) -> Iterator[str]:
    """Enable RLS on ``table`` and restrict every command to the current tenant."""
    yield from _enable(table)
    yield (
        f"CREATE POLICY tenant_isolation_policy ON {table} "
        f"FOR ALL "
        f"USING (tenant_id = {_CURRENT_TENANT}) "
        f"WITH CHECK (tenant_id = {_CURRENT_TENANT})"
    )


def drop_tenant_isolation_statements(table: str) -> Iterator[str]:
    yield f"DROP POLICY IF EXISTS tenant_isolation_policy ON {table}"
    yield from _disable(table)


def membership_statements() -> Iterator[str]:
    """Policies for ``user_tenants``.

    Memberships are visible by user as well, so "list my tenants" works
    before a tenant has been selected.
    """
    yield from _enable("user_tenants")
    yield (
        "CREATE POLICY user_tenant_select_policy ON user_tenants FOR SELECT "
        f"USING (user_id = {_CURRENT_USER} OR tenant_id = {_CURRENT_TENANT})"
    )
    yield (
        "CREATE POLICY user_tenant_update_policy ON user_tenants FOR UPDATE "
        f"USING (tenant_id = {_CURRENT_TENANT}) "
        f"WITH CHECK (tenant_id = {_CURRENT_TENANT})"
    )
    yield (
        "CREATE POLICY user_tenant_delete_policy ON user_tenants FOR DELETE "
        f"USING (user_id = {_CURRENT_USER} OR tenant_id = {_CURRENT_TENANT})"
    )
    # Provisioning and membership sync add rows before any tenant is active
    yield (
        "CREATE POLICY user_tenant_insert_policy ON user_tenants FOR INSERT "
        "WITH CHECK (true)"
    )


def drop_membership_statements() -> Iterator[str]:
    for policy in ("select", "update", "delete", "insert"):
        yield f"DROP POLICY IF EXISTS user_tenant_{policy}_policy ON user_tenants"
    yield from _disable("user_tenants")


def rls_statements() -> Iterator[str]:
    """DDL enabling row level security and creating every policy."""
    for table in TENANT_SCOPED_TABLES:
        yield from tenant_isolation_statements(table)
    yield from membership_statements()


def drop_rls_statements() -> Iterator[str]:
    """DDL reverting :func:`rls_statements`."""
    for table in TENANT_SCOPED_TABLES:
        yield from drop_tenant_isolation_statements(table)
    yield from drop_membership_statements()


def grant_statements(role: str, schema: Optional[str] = "public") -> Iterator[str]:
    """Privileges for the non-superuser application role.

    Superusers and roles with BYPASSRLS ignore every policy, so the service
    must connect as an ordinary role.
    """
    yield f"GRANT USAGE ON SCHEMA {schema} TO {role}"
    yield f"GRANT SELECT, INSERT, UPDATE, DELETE ON ALL TABLES IN SCHEMA {schema} TO {role}"

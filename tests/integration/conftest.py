"""Integration fixtures for PostgreSQL row level security tests.

``DATABASE_URL`` must point at a disposable PostgreSQL database. The schema
is recreated for every test. Queries run under an ordinary role
(``SET ROLE`` on connect) because superusers bypass every policy, so the
connecting user must be a superuser or a member of that role.
"""

import os

import pytest_asyncio
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import create_async_engine

from galleria.config import normalize_database_url
from galleria.db.models import Base
from galleria.db.rls import grant_statements, rls_statements
from galleria.db.session import Database

APP_ROLE = "galleria_rls_test"


def _database_url() -> str:
    return normalize_database_url(os.environ["DATABASE_URL"])


async def _recreate_schema() -> None:
    admin = create_async_engine(_database_url())
    try:
        async with admin.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
            for statement in rls_statements():
                await conn.execute(text(statement))
            await conn.execute(
                text(
                    "DO $$ BEGIN "
                    f"IF NOT EXISTS (SELECT FROM pg_roles WHERE rolname = '{APP_ROLE}') THEN "
                    f"CREATE ROLE {APP_ROLE} NOLOGIN; "
                    "END IF; END $$"
                )
            )
            for statement in grant_statements(APP_ROLE):
                await conn.execute(text(statement))
    finally:
        await admin.dispose()


@pytest_asyncio.fixture
async def pg_database():
    """Database whose connections run as the non-superuser application role."""
    await _recreate_schema()
    engine = create_async_engine(_database_url(), pool_size=2, max_overflow=0)

    @event.listens_for(engine.sync_engine, "connect")
    def _set_role(dbapi_connection, connection_record):
        dbapi_connection.run_async(lambda conn: conn.execute(f"SET ROLE {APP_ROLE}"))

    database = Database(engine)
    assert database.rls_enabled
    yield database
    await database.dispose()

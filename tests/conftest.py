"""Global pytest configuration and fixtures.

Unit tests run against in-memory SQLite (aiosqlite) with the schema created
from the models; row level security only exists on PostgreSQL, so isolation
itself is covered by ``tests/integration`` when ``DATABASE_URL`` is set.
"""

import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from galleria.cache.sessions import InMemorySessionStore
from galleria.config import GalleriaConfig, reset_config
from galleria.db.models import Base
from galleria.db.session import Database
from galleria.tenant.context import _request_context

# Add project root to path so tests can import the tests.factories package
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


# =============================================================================
# Environment Detection
# =============================================================================


def _has_postgres() -> bool:
    url = os.getenv("DATABASE_URL", "")
    return url.startswith("postgres")


def pytest_collection_modifyitems(config, items):
    """Skip integration tests when no PostgreSQL is available."""
    if _has_postgres():
        return
    skip_pg = pytest.mark.skip(reason="DATABASE_URL for PostgreSQL not set")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_pg)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_globals():
    """No request context or cached config leaks between tests."""
    token = _request_context.set(None)
    reset_config()
    yield
    _request_context.reset(token)
    reset_config()


@pytest_asyncio.fixture
async def database():
    """Database over a single shared in-memory SQLite connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    db = Database(engine)
    yield db
    await engine.dispose()


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def config():
    """Development configuration with in-memory sessions."""
    return GalleriaConfig()

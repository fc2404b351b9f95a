"""Database session management for async SQLAlchemy.

:class:`Database` owns the async engine and session factory. For PostgreSQL
it installs the row level security bridge (``galleria.db.rls``), so every
connection checked out of the pool carries the active request's tenant and
user ids.

Repositories open one short-lived session per operation; each session
checks out its own connection and therefore re-reads the request context.
Operations that need several statements to see one consistent tenant view
use :meth:`Database.transaction`, which keeps a single connection for the
whole block.
"""

from __future__ import annotations

import ssl
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from galleria.config import DatabaseConfig, get_config
from galleria.db.rls import install_rls_bridge
from galleria.logging_config import get_logger

logger = get_logger(__name__)


def _parse_database_url(url: str) -> tuple[str, dict]:
    """Parse a database URL and extract asyncpg-incompatible params.

    asyncpg doesn't support sslmode in the URL, so it is removed and
    converted to an SSL context for connect_args.

    Returns:
        Tuple of (cleaned_url, connect_args)
    """
    parsed = urlparse(url)
    query_params = parse_qs(parsed.query)
    if "sslmode" not in query_params:
        # urlunparse drops the empty authority of "sqlite+aiosqlite://" on some versions
        return url, {}

    sslmode = query_params.pop("sslmode", [None])[0]

    new_query = urlencode({k: v[0] for k, v in query_params.items()}, doseq=False)
    cleaned_url = urlunparse((
        parsed.scheme,
        parsed.netloc,
        parsed.path,
        parsed.params,
        new_query,
        parsed.fragment,
    ))

    connect_args: dict = {}
    if sslmode in ("require", "verify-ca", "verify-full"):
        ssl_context = ssl.create_default_context()
        if sslmode == "require":
            # Encrypt only, don't verify the certificate
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = ssl_context

    return cleaned_url, connect_args


def create_engine_from_config(config: DatabaseConfig) -> AsyncEngine:
    """Create the async engine described by ``config``."""
    url, connect_args = _parse_database_url(config.url)
    options: dict = {"echo": config.echo, "connect_args": connect_args}
    if url.startswith("postgresql"):
        options.update(
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_pre_ping=True,
        )
    return create_async_engine(url, **options)


class Database:
    """Engine plus session factory, with the RLS bridge installed."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self.rls_enabled = install_rls_bridge(engine)

    @classmethod
    def from_config(cls, config: Optional[DatabaseConfig] = None) -> "Database":
        return cls(create_engine_from_config(config or get_config().database))

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Short-lived session; commits on success, rolls back on error."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Session inside an explicit transaction on one connection."""
        async with self.session_factory() as session:
            async with session.begin():
                yield session

    async def connectivity_check(self) -> None:
        """Run ``SELECT 1``; raises if the database is unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database connections closed")


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that provides a session on the application's database.

    Usage:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(Item))
            return result.scalars().all()
    """
    async with request.app.state.services.database.session() as session:
        yield session

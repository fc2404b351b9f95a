"""Redis-backed storage for Galleria.

Holds the shared Redis client and builds the server-side session store.
Without ``REDIS_URL`` sessions fall back to process memory, which is fine
for a single development process but not for multiple workers.

FastAPI Dependency Injection:
    ```python
    from galleria.cache import build_session_store

    store = await build_session_store()
    ```
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Optional

import redis.asyncio as aioredis

from galleria.cache.sessions import (
    DEFAULT_SESSION_TTL_SECONDS,
    InMemorySessionStore,
    RedisSessionStore,
    ServerSession,
    SessionData,
    SessionStore,
    TenantSelectionSession,
)
from galleria.config import GalleriaConfig, get_config
from galleria.logging_config import get_logger

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = get_logger(__name__)

__all__ = [
    "DEFAULT_SESSION_TTL_SECONDS",
    "InMemorySessionStore",
    "RedisSessionStore",
    "ServerSession",
    "SessionData",
    "SessionStore",
    "TenantSelectionSession",
    "get_redis_client",
    "close_redis_client",
    "build_session_store",
]

_redis_client: Optional["Redis"] = None
_redis_lock: Optional[asyncio.Lock] = None


def _get_redis_lock() -> asyncio.Lock:
    global _redis_lock
    if _redis_lock is None:
        _redis_lock = asyncio.Lock()
    return _redis_lock


async def get_redis_client(redis_url: Optional[str] = None) -> Optional["Redis"]:
    """Get or create the shared Redis client.

    Returns:
        Redis client, or None when no URL is configured
    """
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    redis_url = redis_url or get_config().redis.url
    if not redis_url:
        logger.debug("REDIS_URL not set, using in-memory sessions")
        return None

    async with _get_redis_lock():
        if _redis_client is not None:
            return _redis_client
        client = aioredis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=get_config().redis.socket_timeout,
            socket_connect_timeout=get_config().redis.socket_timeout,
        )
        await client.ping()
        _redis_client = client
        logger.info("Redis client connected for sessions")
        return _redis_client


async def close_redis_client() -> None:
    """Close the shared Redis client."""
    global _redis_client

    if _redis_client is not None:
        try:
            await _redis_client.aclose()
        except Exception as e:
            logger.warning(f"Error closing Redis client: {e}")
        _redis_client = None


async def build_session_store(config: Optional[GalleriaConfig] = None) -> SessionStore:
    """Session store for ``config``: Redis when configured, else in-memory.

    A configured but unreachable Redis raises instead of falling back.
    """
    config = config or get_config()
    client = await get_redis_client(config.redis.url)
    if client is None:
        if config.is_production:
            logger.warning("Production is using in-memory sessions; set REDIS_URL")
        return InMemorySessionStore()
    return RedisSessionStore(client, key_prefix=config.session.key_prefix)

"""Server-side sessions keyed by an opaque cookie id.

Session payloads live in Redis (or in process memory for development and
tests); the browser only holds a random identifier. A session is written
to the store only once something has been put into it, so anonymous
requests never create entries.

The core reads and writes ``current_tenant_id`` here. Anything that
redirects based on session state must ``await session.save()`` first.
"""

from __future__ import annotations

import asyncio
import secrets
import time
from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol, Tuple
from uuid import UUID

from pydantic import BaseModel, Field, ValidationError

from galleria.logging_config import get_logger

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = get_logger(__name__)

DEFAULT_SESSION_TTL_SECONDS = 86400


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionData(BaseModel):
    """Everything stored for one browser session."""

    user_id: Optional[UUID] = Field(None, description="Authenticated user")
    current_tenant_id: Optional[UUID] = Field(None, description="Selected tenant")
    oauth_state: Optional[str] = Field(None, description="Pending OIDC state parameter")
    oauth_nonce: Optional[str] = Field(None, description="Pending OIDC nonce")
    return_to: Optional[str] = Field(None, description="Where to go after login")

    def is_empty(self) -> bool:
        return all(value is None for value in self.model_dump().values())


class TenantSelectionSession(Protocol):
    """The slice of a session that tenant resolution and switching use."""

    current_tenant_id: Optional[UUID]

    async def save(self) -> None: ...


class SessionStore(Protocol):
    async def load(self, session_id: str) -> Optional[SessionData]: ...

    async def save(self, session_id: str, data: SessionData, ttl_seconds: int) -> None: ...

    async def delete(self, session_id: str) -> None: ...


class RedisSessionStore:
    """Session store backed by Redis, one JSON string per session.

    Example:
        ```python
        store = RedisSessionStore(redis)
        await store.save(sid, SessionData(user_id=user.id), ttl_seconds=3600)
        data = await store.load(sid)
        ```
    """

    def __init__(self, redis: "Redis", key_prefix: str = "galleria:session:"):
        self.redis = redis
        self.key_prefix = key_prefix

    def _key(self, session_id: str) -> str:
        return f"{self.key_prefix}{session_id}"

    async def load(self, session_id: str) -> Optional[SessionData]:
        raw = await self.redis.get(self._key(session_id))
        if raw is None:
            return None
        try:
            return SessionData.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable session payload: {e}")
            return None

    async def save(self, session_id: str, data: SessionData, ttl_seconds: int) -> None:
        await self.redis.set(self._key(session_id), data.model_dump_json(), ex=ttl_seconds)

    async def delete(self, session_id: str) -> None:
        await self.redis.delete(self._key(session_id))


class InMemorySessionStore:
    """Process-local session store with TTL expiry."""

    def __init__(self) -> None:
        self._entries: Dict[str, Tuple[float, str]] = {}
        self._lock = asyncio.Lock()

    async def load(self, session_id: str) -> Optional[SessionData]:
        async with self._lock:
            entry = self._entries.get(session_id)
            if entry is None:
                return None
            expires_at, raw = entry
            if expires_at <= time.monotonic():
                del self._entries[session_id]
                return None
        return SessionData.model_validate_json(raw)

    async def save(self, session_id: str, data: SessionData, ttl_seconds: int) -> None:
        async with self._lock:
            self._entries[session_id] = (time.monotonic() + ttl_seconds, data.model_dump_json())

    async def delete(self, session_id: str) -> None:
        async with self._lock:
            self._entries.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._entries)


class ServerSession:
    """Mutable handle on one request's session, at ``request.state.session``.

    Attribute writes mark the session modified; the session middleware
    saves unsaved modifications after the handler returns, but handlers
    that redirect save explicitly.
    """

    _FIELDS = frozenset(SessionData.model_fields)

    def __init__(
        self,
        store: SessionStore,
        session_id: Optional[str] = None,
        data: Optional[SessionData] = None,
        ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
    ):
        object.__setattr__(self, "_store", store)
        object.__setattr__(self, "_ttl", ttl_seconds)
        object.__setattr__(self, "id", session_id or new_session_id())
        object.__setattr__(self, "is_new", session_id is None or data is None)
        object.__setattr__(self, "data", data or SessionData())
        object.__setattr__(self, "modified", False)
        object.__setattr__(self, "destroyed", False)
        object.__setattr__(self, "id_changed", False)
        object.__setattr__(self, "persisted", data is not None)

    def __getattr__(self, name: str) -> Any:
        if name in ServerSession._FIELDS:
            return getattr(self.data, name)
        raise AttributeError(name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in ServerSession._FIELDS:
            setattr(self.data, name, value)
            object.__setattr__(self, "modified", True)
            return
        object.__setattr__(self, name, value)

    def update(self, **fields: Any) -> None:
        for name, value in fields.items():
            if name not in ServerSession._FIELDS:
                raise AttributeError(f"Unknown session field: {name}")
            setattr(self, name, value)

    @property
    def needs_cookie(self) -> bool:
        """True when the browser must receive (a new) session id."""
        return self.persisted and not self.destroyed and (self.is_new or self.id_changed)

    async def save(self) -> None:
        """Persist the session now."""
        await self._store.save(self.id, self.data, self._ttl)
        object.__setattr__(self, "modified", False)
        object.__setattr__(self, "persisted", True)
        object.__setattr__(self, "destroyed", False)

    def clear(self) -> None:
        object.__setattr__(self, "data", SessionData())
        object.__setattr__(self, "modified", True)

    async def regenerate(self) -> None:
        """Move the data to a fresh id (call at login to prevent fixation)."""
        if self.persisted:
            await self._store.delete(self.id)
        object.__setattr__(self, "id", new_session_id())
        object.__setattr__(self, "id_changed", True)
        object.__setattr__(self, "modified", True)

    async def destroy(self) -> None:
        await self._store.delete(self.id)
        object.__setattr__(self, "data", SessionData())
        object.__setattr__(self, "modified", False)
        object.__setattr__(self, "destroyed", True)

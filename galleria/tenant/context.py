"""Async-safe request context propagation using ContextVar.

Each inbound request runs inside exactly one :class:`RequestContext`. The
context is bound in a ``ContextVar``, so it follows the request through
every ``await``, every task spawned from it, and every SQLAlchemy greenlet,
while concurrent requests on the same event loop each see their own.

Unlike an immutable snapshot, the context object itself is mutable: tenant
resolution fills in ``tenant_id``/``user_id`` after the context was bound,
and every holder of the object sees the update.

Usage:
    # Request entry point (see RequestContextMiddleware)
    ctx = RequestContext(app_state=request.app.state)
    response = await run_with_context(ctx, call_next, request)

    # Anywhere downstream
    ctx = get_context()
    update_context(tenant_id=tenant.id)

    # Scripts and background jobs
    async with RequestContextScope(RequestContext(tenant_id=tenant_id)):
        await albums.list()
"""

from contextvars import ContextVar, Token
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from functools import partial
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar, Union
from uuid import UUID
import inspect
import logging

from galleria.errors import NoActiveContextError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_request_context: ContextVar[Optional["RequestContext"]] = ContextVar(
    "request_context", default=None
)


@dataclass
class RequestContext:
    """Per-request state shared by everything running for that request.

    Attributes:
        tenant_id: Resolved tenant, None until (or unless) resolution succeeds
        user_id: Authenticated user, None for anonymous requests
        app_state: Handle to shared application state (FastAPI ``app.state``)
        request_id: Correlation id for logs
        created_at: When the context was created
    """

    tenant_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    app_state: Any = None
    request_id: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc)

    @property
    def has_tenant(self) -> bool:
        return self.tenant_id is not None

    def to_log_context(self) -> Dict[str, Any]:
        """Convert to dict for structured logging.

        Returns only the fields that are set.
        """
        ctx: Dict[str, Any] = {}
        if self.tenant_id is not None:
            ctx["tenant_id"] = str(self.tenant_id)
        if self.user_id is not None:
            ctx["user_id"] = str(self.user_id)
        if self.request_id:
            ctx["request_id"] = self.request_id
        return ctx


_FIELD_NAMES = frozenset(f.name for f in fields(RequestContext))


def get_context() -> RequestContext:
    """Get the context bound to the currently executing task.

    Raises:
        NoActiveContextError: If called outside any context scope
    """
    ctx = _request_context.get()
    if ctx is None:
        raise NoActiveContextError(
            "No active request context. Ensure RequestContextMiddleware is "
            "installed or wrap the call in run_with_context()."
        )
    return ctx


def get_context_or_none() -> Optional[RequestContext]:
    """Best-effort lookup; None outside any context scope."""
    return _request_context.get()


def update_context(**changes: Any) -> RequestContext:
    """Merge fields into the active context in place.

    Fields not named in ``changes`` keep their current values.

    Raises:
        NoActiveContextError: If no context is active
        TypeError: If a field name is unknown
    """
    unknown = set(changes) - _FIELD_NAMES
    if unknown:
        raise TypeError(f"Unknown request context field(s): {', '.join(sorted(unknown))}")
    ctx = get_context()
    for name, value in changes.items():
        setattr(ctx, name, value)
    logger.debug("Request context updated", extra=ctx.to_log_context())
    return ctx


def bind_context(ctx: RequestContext) -> Token[Optional[RequestContext]]:
    """Bind ``ctx`` as the current context; returns the reset token."""
    return _request_context.set(ctx)


def reset_context(token: Token[Optional[RequestContext]]) -> None:
    """Restore whatever context was bound before ``bind_context``."""
    _request_context.reset(token)


def run_with_context(
    ctx: RequestContext,
    fn: Callable[..., Union[T, Awaitable[T]]],
    *args: Any,
    **kwargs: Any,
) -> Union[T, Awaitable[T]]:
    """Run ``fn`` with ``ctx`` as the active context.

    For a plain callable the result is returned directly. For a coroutine
    function (or any callable returning an awaitable) an awaitable is
    returned; the context is bound for the whole time it runs, including
    after every suspension point and inside tasks it spawns. The previously
    bound context is restored afterwards, so calls nest.
    """
    if inspect.iscoroutinefunction(fn) or (
        isinstance(fn, partial) and inspect.iscoroutinefunction(fn.func)
    ):
        return _run_async(ctx, fn, args, kwargs)

    token = bind_context(ctx)
    try:
        result = fn(*args, **kwargs)
    finally:
        reset_context(token)

    if inspect.isawaitable(result):
        return _await_with_context(ctx, result)
    return result


async def _run_async(ctx: RequestContext, fn: Callable[..., Awaitable[T]], args, kwargs) -> T:
    token = bind_context(ctx)
    try:
        return await fn(*args, **kwargs)
    finally:
        reset_context(token)


async def _await_with_context(ctx: RequestContext, awaitable: Awaitable[T]) -> T:
    token = bind_context(ctx)
    try:
        return await awaitable
    finally:
        reset_context(token)


def get_current_tenant_id() -> Optional[UUID]:
    """Tenant of the active context, or None (also outside any context)."""
    ctx = _request_context.get()
    return ctx.tenant_id if ctx else None


def get_current_user_id() -> Optional[UUID]:
    """User of the active context, or None (also outside any context)."""
    ctx = _request_context.get()
    return ctx.user_id if ctx else None


class RequestContextScope:
    """Context manager for scoped request context.

    Provides a cleaner syntax for scripts and background jobs:

        async with RequestContextScope(RequestContext(tenant_id=tid)) as ctx:
            await some_operation()
        # previous context restored
    """

    def __init__(self, ctx: Optional[RequestContext] = None, **fields_: Any):
        self.ctx = ctx if ctx is not None else RequestContext(**fields_)
        self._token: Optional[Token[Optional[RequestContext]]] = None

    def __enter__(self) -> RequestContext:
        self._token = bind_context(self.ctx)
        return self.ctx

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            reset_context(self._token)
            self._token = None

    async def __aenter__(self) -> RequestContext:
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)

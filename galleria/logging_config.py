"""Structured logging setup for Galleria.

Log records are produced with the standard library ``logging`` API (so
``logger.info("...", extra={...})`` works everywhere) and rendered by
structlog. Context bound with :func:`set_context` or :class:`LogContext`
is stored in structlog's contextvars and merged into every record emitted
from the same async task, which is how correlation and tenant ids reach
log lines without being passed around.

Usage:
    from galleria.logging_config import configure_logging, get_logger

    configure_logging(level="INFO", json_output=True)
    logger = get_logger(__name__)

    with LogContext(operation="sync_memberships", user_id=str(user.id)):
        logger.info("Syncing memberships")
"""

from __future__ import annotations

import functools
import logging
import sys
import time
from typing import Any, Callable, Optional, TypeVar

import structlog

F = TypeVar("F", bound=Callable[..., Any])

_configured = False


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure stdlib logging and structlog together.

    Args:
        level: Root log level name
        json_output: Render JSON lines instead of the console renderer
        log_file: Optional file to write to in addition to stderr
    """
    global _configured

    renderer: Any
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = handlers
    root.setLevel(level.upper())

    # uvicorn installs its own handlers; route them through ours
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers = []
        uv_logger.propagate = True

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def is_configured() -> bool:
    return _configured


def get_logger(name: str) -> logging.Logger:
    """Get a module logger.

    Returns a plain stdlib logger; rendering and context merging happen in
    the handler installed by :func:`configure_logging`.
    """
    return logging.getLogger(name)


def set_context(**kwargs: Any) -> None:
    """Bind key/value pairs into the log context of the current task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop everything bound with :func:`set_context`."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Temporarily bind log context for a block.

    Works with both ``with`` and ``async with``; the previous values are
    restored on exit.
    """

    def __init__(self, **kwargs: Any):
        self.kwargs = kwargs
        self._tokens: Optional[dict] = None

    def __enter__(self) -> "LogContext":
        self._tokens = structlog.contextvars.bind_contextvars(**self.kwargs)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._tokens is not None:
            structlog.contextvars.reset_contextvars(**self._tokens)
            self._tokens = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def log_operation(operation: str) -> Callable[[F], F]:
    """Decorator logging start, completion and duration of a coroutine."""

    def decorator(func: F) -> F:
        logger = get_logger(func.__module__)

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            with LogContext(operation=operation):
                logger.debug(f"{operation} started")
                try:
                    result = await func(*args, **kwargs)
                except Exception:
                    logger.exception(
                        f"{operation} failed",
                        extra={"duration_ms": round((time.perf_counter() - start) * 1000, 2)},
                    )
                    raise
                logger.debug(
                    f"{operation} completed",
                    extra={"duration_ms": round((time.perf_counter() - start) * 1000, 2)},
                )
                return result

        return wrapper  # type: ignore[return-value]

    return decorator

"""Tests for structured logging setup."""

import io
import json
import logging

import pytest
import structlog

from galleria import logging_config
from galleria.logging_config import (
    LogContext,
    clear_context,
    configure_logging,
    get_logger,
    log_operation,
    set_context,
)


@pytest.fixture
def json_stream():
    """Configure JSON logging into a buffer; restore the root logger afterwards."""
    root = logging.getLogger()
    saved = (root.handlers[:], root.level, logging_config._configured)

    configure_logging(level="DEBUG", json_output=True)
    stream = io.StringIO()
    root.handlers[0].setStream(stream)

    yield stream

    clear_context()
    root.handlers, root.level, logging_config._configured = saved[0], saved[1], saved[2]


def records(stream: io.StringIO, logger: str = "galleria.test") -> list:
    """Records emitted by ``logger``; asyncio and friends log into the same root."""
    parsed = [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]
    return [record for record in parsed if record.get("logger") == logger]


def test_extra_fields_rendered(json_stream):
    get_logger("galleria.test").info("Album created", extra={"album_id": "a1"})

    [record] = records(json_stream)
    assert record["event"] == "Album created"
    assert record["album_id"] == "a1"
    assert record["level"] == "info"
    assert record["logger"] == "galleria.test"


def test_bound_context_merged(json_stream):
    set_context(correlation_id="req-1")

    get_logger("galleria.test").info("hello")

    assert records(json_stream)[0]["correlation_id"] == "req-1"


def test_log_context_restores_previous_values(json_stream):
    logger = get_logger("galleria.test")
    set_context(tenant_id="outer")

    with LogContext(tenant_id="inner"):
        logger.info("inside")
    logger.info("outside")

    inside, outside = records(json_stream)
    assert inside["tenant_id"] == "inner"
    assert outside["tenant_id"] == "outer"


@pytest.mark.asyncio
async def test_log_context_async(json_stream):
    async with LogContext(operation="sync"):
        get_logger("galleria.test").info("inside")

    assert records(json_stream)[0]["operation"] == "sync"
    assert "operation" not in structlog.contextvars.get_contextvars()


@pytest.mark.asyncio
async def test_log_operation_records_duration(json_stream):
    @log_operation("provision")
    async def provision():
        return 42

    assert await provision() == 42

    started, completed = records(json_stream, logger=__name__)
    assert started["event"] == "provision started"
    assert completed["operation"] == "provision"
    assert "duration_ms" in completed


@pytest.mark.asyncio
async def test_log_operation_reraises(json_stream):
    @log_operation("provision")
    async def provision():
        raise ValueError("nope")

    with pytest.raises(ValueError):
        await provision()

    failed = records(json_stream, logger=__name__)[-1]
    assert failed["event"] == "provision failed"
    assert failed["level"] == "error"
    assert "ValueError" in failed["exception"]


def test_is_configured_after_configure(json_stream):
    assert logging_config.is_configured() is True

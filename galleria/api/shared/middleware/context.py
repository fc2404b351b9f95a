"""Request context middleware.

Establishes a fresh :class:`RequestContext` for every request before any
other application middleware runs. Everything downstream (session loading,
tenant resolution, handlers, database checkouts) reads and amends this same
object, and concurrent requests never see each other's.
"""

import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from galleria.logging_config import get_logger
from galleria.tenant.context import RequestContext, run_with_context

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = getattr(request.state, "correlation_id", None) or str(uuid.uuid4())
        ctx = RequestContext(app_state=request.app.state, request_id=request_id)
        request.state.context = ctx
        return await run_with_context(ctx, call_next, request)

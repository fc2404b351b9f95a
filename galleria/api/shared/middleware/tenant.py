"""Tenant resolution middleware for multi-tenant isolation.

Runs after the session and the authenticated user are known and merges the
resolved tenant (bearer claim, then session selection, then automatic
selection or provisioning) into the request context. The database layer
picks it up from there on every connection checkout.

Usage:
    app.add_middleware(TenantResolutionMiddleware)
"""

from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, Response

from galleria.api.shared.helpers.errors import domain_error_response
from galleria.errors import InvalidTenantIdentifierError
from galleria.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_SKIP_PATHS = [
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
    "/auth/login",
    "/auth/callback",
    "/auth/logout",
]


class TenantResolutionMiddleware(BaseHTTPMiddleware):
    """Sets the request's tenant before the handler runs.

    Configuration:
        skip_paths: Path prefixes that never resolve a tenant
    """

    def __init__(self, app, skip_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.skip_paths = skip_paths if skip_paths is not None else list(DEFAULT_SKIP_PATHS)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if any(path.startswith(skip) for skip in self.skip_paths):
            return await call_next(request)

        resolver = request.app.state.services.resolver
        try:
            tenant_id = await resolver.resolve(
                request.headers.get("authorization"),
                getattr(request.state, "session", None),
                getattr(request.state, "user", None),
            )
        except InvalidTenantIdentifierError as e:
            logger.warning("Invalid tenant identifier in bearer token", extra={"path": path})
            return JSONResponse(status_code=e.status_code, content=domain_error_response(e))

        response = await call_next(request)
        if tenant_id is not None:
            response.headers["X-Tenant-ID"] = str(tenant_id)
        return response

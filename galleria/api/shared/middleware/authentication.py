"""Loads the signed-in user named by the session into ``request.state.user``."""

from uuid import UUID

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from galleria.logging_config import get_logger

logger = get_logger(__name__)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.user = None
        session = getattr(request.state, "session", None)
        if session is not None and session.user_id:
            services = request.app.state.services
            user = await services.users.find_by_id(UUID(str(session.user_id)))
            if user is None:
                # User row was removed since login
                logger.info("Clearing session of unknown user", extra={"user_id": str(session.user_id)})
                session.clear()
            request.state.user = user
        return await call_next(request)

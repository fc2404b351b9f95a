"""Server-side session middleware.

Loads the session named by the cookie into ``request.state.session`` and,
after the handler, persists unsaved changes and (re)issues or clears the
cookie. Anonymous requests that never touch the session get no cookie.
"""

from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from galleria.cache.sessions import ServerSession, SessionStore
from galleria.config import SessionConfig
from galleria.logging_config import get_logger

logger = get_logger(__name__)


class ServerSessionMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, config: Optional[SessionConfig] = None):
        super().__init__(app)
        self.config = config or SessionConfig()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        store: SessionStore = request.app.state.session_store
        session_id = request.cookies.get(self.config.cookie_name)
        data = await store.load(session_id) if session_id else None
        if session_id and data is None:
            logger.debug("Session cookie refers to an unknown or expired session")
            session_id = None

        session = ServerSession(
            store,
            session_id=session_id,
            data=data,
            ttl_seconds=self.config.ttl_seconds,
        )
        request.state.session = session

        response = await call_next(request)

        if session.modified and not session.destroyed:
            if session.persisted or not session.data.is_empty():
                await session.save()

        if session.destroyed:
            response.delete_cookie(self.config.cookie_name, path="/")
        elif session.needs_cookie:
            response.set_cookie(
                self.config.cookie_name,
                session.id,
                max_age=self.config.ttl_seconds,
                path="/",
                httponly=True,
                samesite="lax",
                secure=self.config.cookie_secure,
            )
        return response

"""Request-scoped middleware for API requests."""

import logging
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from core.models import Role
from utils.user_context import Actor, set_current_actor, clear_current_actor

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a unique request ID to every request."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class ActorMiddleware(BaseHTTPMiddleware):
    """Reads the caller's role and user id from headers and sets actor context.

    The upstream auth layer is trusted to have set both headers. A missing or
    non-numeric user id is rejected; an unrecognised role falls back to the
    least-privileged role rather than failing.

    Public paths bypass the check entirely.
    """

    PUBLIC_PATHS = [
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def __init__(self, app, role_header: str = "X-Role", user_header: str = "X-User-Id"):
        super().__init__(app)
        self._role_header = role_header
        self._user_header = user_header

    def _is_public_path(self, path: str) -> bool:
        return any(path == public or path.startswith(public) for public in self.PUBLIC_PATHS)

    async def dispatch(self, request: Request, call_next):
        if self._is_public_path(request.url.path):
            return await call_next(request)

        raw_user_id = request.headers.get(self._user_header, "")
        if not raw_user_id.strip().isdigit():
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    f"{self._user_header} header with a numeric user id is required",
                ).model_dump(mode="json"),
            )

        role = Role.parse(request.headers.get(self._role_header))
        user_id = int(raw_user_id)

        set_current_actor(user_id, role)
        request.state.actor = Actor(user_id=user_id, role=role)

        try:
            return await call_next(request)
        finally:
            clear_current_actor()


def get_actor(request: Request) -> Actor:
    """Actor set by ActorMiddleware for this request."""
    actor = getattr(request.state, "actor", None)
    if actor is None:
        raise PermissionError("No acting user for this request")
    return actor

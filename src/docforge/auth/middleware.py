"""Authentication middleware for FastAPI."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from docforge.auth.jwt_service import JWTError, JWTService
from docforge.auth.types import Requester

logger = logging.getLogger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that extracts a JWT from the Authorization header.

    The middleware:
    1. Extracts Bearer token from Authorization header
    2. Decodes and validates the JWT
    3. Sets request.state.requester

    If no token is present or the token is invalid, requester is set to None.
    The middleware does NOT reject unauthenticated requests - permissions
    decide what anonymous requesters may do.
    """

    def __init__(self, app, jwt_service: JWTService):
        super().__init__(app)
        self._jwt_service = jwt_service

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.requester = None

        if self._should_skip_auth(request.url.path):
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header[7:]
            try:
                claims = self._jwt_service.decode_token(token)
                if claims.type == "access":
                    request.state.requester = claims.to_requester()
            except JWTError as e:
                # Invalid token - treat as anonymous
                logger.debug("Ignoring bearer token: %s", e)

        return await call_next(request)

    def _should_skip_auth(self, path: str) -> bool:
        skip_paths = ["/openapi.json", "/swagger"]
        return any(path.startswith(p) for p in skip_paths)


def get_requester(request: Request) -> Requester | None:
    """Get the requester from the request state.

    Args:
        request: The FastAPI/Starlette request

    Returns:
        Requester if authenticated, None otherwise
    """
    return getattr(request.state, "requester", None)

"""Security middleware for FastAPI - token validation and principal."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from auth.config import AuthConfig
from auth.exceptions import InvalidTokenError, SessionExpiredError
from auth.tokens import TokenVerifier
from api.base import error_response, ErrorCodes

logger = logging.getLogger(__name__)


def _unauthorized(code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content=error_response(code, message).model_dump(mode="json"),
    )


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that validates the access token and sets the principal.

    For protected routes:
    1. Extracts the token from the auth cookie or an Authorization: Bearer header
    2. Verifies it via TokenVerifier
    3. Sets request.state.principal for get_request_context

    Public paths bypass authentication entirely.
    """

    def __init__(self, app, verifier: TokenVerifier, config: AuthConfig | None = None):
        super().__init__(app)
        self._verifier = verifier
        self._config = config or AuthConfig()

    def _is_public_path(self, path: str) -> bool:
        """Check if path is in public paths list."""
        for public_path in self._config.public_paths:
            if path == public_path or path.startswith(public_path + "/"):
                return True
        return False

    def _extract_token(self, request: Request) -> str | None:
        token = request.cookies.get(self._config.cookie_name)
        if token:
            return token

        header = request.headers.get("Authorization", "")
        scheme, _, credentials = header.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
        return None

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        if self._is_public_path(request.url.path):
            return await call_next(request)

        token = self._extract_token(request)
        if not token:
            return _unauthorized(ErrorCodes.NOT_AUTHENTICATED, "Authentication required")

        try:
            principal = self._verifier.verify(token)
        except SessionExpiredError:
            return _unauthorized(ErrorCodes.SESSION_EXPIRED, "Session has expired")
        except InvalidTokenError as e:
            logger.warning("Rejected token on %s: %s", request.url.path, e)
            return _unauthorized(ErrorCodes.INVALID_TOKEN, "Invalid authentication token")

        request.state.principal = principal
        return await call_next(request)

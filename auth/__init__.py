"""Authentication modules."""

from auth.exceptions import (
    AuthError,
    InvalidTokenError,
    SessionExpiredError,
)
from auth.types import Principal
from auth.config import AuthConfig
from auth.tokens import TokenVerifier
from auth.security_middleware import AuthMiddleware

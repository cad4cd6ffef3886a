"""Typed exceptions for auth failures."""


class AuthError(Exception):
    """Base class for authentication errors."""


class InvalidTokenError(AuthError):
    """Token is malformed, signed with another key, or lacks required claims."""


class SessionExpiredError(AuthError):
    """Token has expired and user must re-authenticate."""

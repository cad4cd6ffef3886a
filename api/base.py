"""Unified API response format and error codes."""

from typing import Any
from datetime import datetime

from pydantic import BaseModel, Field

from utils.timezone import now_utc


class APIError(BaseModel):
    """Error details in API response."""

    code: str = Field(..., description="Machine-readable error code")
    detail: str | None = Field(None, description="Exception detail, only in debug mode")


class APIResponse(BaseModel):
    """
    Unified response format for all API endpoints.

    Every endpoint returns this structure, making client parsing predictable.
    """

    success: bool
    message: str
    data: Any | None = None
    error: APIError | None = None
    timestamp: datetime = Field(default_factory=now_utc, description="Response timestamp (UTC)")


def success_response(data: Any, message: str = "OK") -> APIResponse:
    """Create a success response."""
    return APIResponse(success=True, message=message, data=data)


def error_response(code: str, message: str, detail: str | None = None) -> APIResponse:
    """Create an error response."""
    return APIResponse(
        success=False,
        message=message,
        error=APIError(code=code, detail=detail),
    )


class ErrorCodes:
    """Standard error codes for consistent error handling."""

    # Authentication & Authorization
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    NOT_A_MEMBER = "NOT_A_MEMBER"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Resource Errors
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"

    # Lifecycle
    INVALID_STATE = "INVALID_STATE"

    # Task dependencies
    CIRCULAR_DEPENDENCY = "CIRCULAR_DEPENDENCY"

    # Infrastructure
    INTERNAL_ERROR = "INTERNAL_ERROR"

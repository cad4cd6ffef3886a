"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from core.exceptions import (
    ConflictError,
    CycleDetectedError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
)

logger = logging.getLogger(__name__)


# Most specific first: lookup walks this in order.
ERROR_STATUS: list[tuple[type[Exception], int, str]] = [
    (NotFoundError, 404, ErrorCodes.NOT_FOUND),
    (ConflictError, 409, ErrorCodes.ALREADY_EXISTS),
    (CycleDetectedError, 400, ErrorCodes.CIRCULAR_DEPENDENCY),
    (InvalidStateError, 400, ErrorCodes.INVALID_STATE),
    (InvalidRequestError, 400, ErrorCodes.INVALID_REQUEST),
    (PermissionDeniedError, 403, ErrorCodes.PERMISSION_DENIED),
]


HTTP_STATUS_CODES = {
    401: ErrorCodes.NOT_AUTHENTICATED,
    403: ErrorCodes.PERMISSION_DENIED,
    404: ErrorCodes.NOT_FOUND,
}


def _json_error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, detail).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI, debug: bool = False) -> None:
    """
    Register global exception handlers on the app.

    Args:
        app: Application to register on
        debug: Include exception text in 500 responses
    """

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        message = str(exc)
        for exc_type, status_code, code in ERROR_STATUS:
            if isinstance(exc, exc_type):
                return _json_error(status_code, code, message)

        if "not found" in message.lower():
            return _json_error(404, ErrorCodes.NOT_FOUND, message)
        return _json_error(400, ErrorCodes.INVALID_REQUEST, message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = getattr(exc, "code", None) or HTTP_STATUS_CODES.get(exc.status_code, ErrorCodes.INVALID_REQUEST)
        return _json_error(exc.status_code, code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _json_error(
            422,
            ErrorCodes.VALIDATION_ERROR,
            "Request validation failed",
            str(exc.errors()),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return _json_error(
            500,
            ErrorCodes.INTERNAL_ERROR,
            "An internal error occurred",
            str(exc) if debug else None,
        )

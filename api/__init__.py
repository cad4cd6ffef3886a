"""HTTP layer: response envelope, error mapping and the resource routers."""

from api.base import (
    APIError,
    APIResponse,
    success_response,
    error_response,
    ErrorCodes,
)
from api.errors import register_error_handlers
from api.dependencies import get_request_context

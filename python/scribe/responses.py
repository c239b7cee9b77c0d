"""Error response helpers and exception handlers.

Every error response is a flat JSON object:
    { "error": "<message>", "code": "E_...", "request_id": "..." }

The `error` field is always a human-readable string. The request_id is
included for debugging and support.
"""

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from scribe.errors import ApiError, ApiErrorCode
from scribe.logging import get_logger, get_request_id

logger = get_logger(__name__)


def error_response(
    code: ApiErrorCode, message: str, request_id: str | None = None
) -> dict[str, Any]:
    """Create an error response body.

    Args:
        code: The error code enum value.
        message: Human-readable error message.
        request_id: Optional request ID (auto-populated from context if None).

    Returns:
        Dict with "error" message, "code" and (when known) "request_id".
    """
    if request_id is None:
        request_id = get_request_id()

    body: dict[str, Any] = {"error": message, "code": code.value}
    if request_id:
        body["request_id"] = request_id
    return body


def error_json_response(code: ApiErrorCode, message: str, status_code: int) -> JSONResponse:
    """Create a JSONResponse carrying an error body."""
    return JSONResponse(status_code=status_code, content=error_response(code, message))


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Handle ApiError exceptions and return proper JSON response."""
    return error_json_response(exc.code, exc.message, exc.status_code)


async def http_exception_handler(request: Request, exc: Any) -> JSONResponse:
    """Handle Starlette HTTPException and return proper JSON response."""
    status_to_code = {
        400: ApiErrorCode.E_INVALID_REQUEST,
        401: ApiErrorCode.E_UNAUTHENTICATED,
        404: ApiErrorCode.E_NOT_FOUND,
        422: ApiErrorCode.E_INVALID_REQUEST,
    }
    code = status_to_code.get(exc.status_code, ApiErrorCode.E_INTERNAL)
    message = str(exc.detail) if exc.detail else "An error occurred"
    return error_json_response(code, message, exc.status_code)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions and return 500 with the error message.

    The stack trace is logged server-side only.
    """
    logger.exception("unhandled_exception", error_type=type(exc).__name__)

    return error_json_response(ApiErrorCode.E_INTERNAL, str(exc) or "Unknown error", 500)


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle request body validation failures, including malformed JSON."""
    return error_json_response(ApiErrorCode.E_INVALID_REQUEST, "Invalid request body", 400)

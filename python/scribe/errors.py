"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Authentication errors (401)
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"
    E_INVALID_TOKEN_FORMAT = "E_INVALID_TOKEN_FORMAT"
    E_INVALID_TOKEN = "E_INVALID_TOKEN"
    E_TOKEN_REVOKED = "E_TOKEN_REVOKED"

    # Payment required (402)
    E_LLM_PAYMENT_REQUIRED = "E_LLM_PAYMENT_REQUIRED"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_SESSION_NOT_FOUND = "E_SESSION_NOT_FOUND"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_NAME_INVALID = "E_NAME_INVALID"
    E_TITLE_INVALID = "E_TITLE_INVALID"
    E_NO_TRANSCRIPT = "E_NO_TRANSCRIPT"

    # Rate limiting (429)
    E_RATE_LIMITED = "E_RATE_LIMITED"
    E_LLM_RATE_LIMITED = "E_LLM_RATE_LIMITED"

    # Server errors
    E_AUTH_UNAVAILABLE = "E_AUTH_UNAVAILABLE"  # 503
    E_INTERNAL = "E_INTERNAL"  # 500
    E_LLM_UPSTREAM = "E_LLM_UPSTREAM"  # 500
    E_STORAGE_ERROR = "E_STORAGE_ERROR"  # 500


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_INVALID_TOKEN_FORMAT: 401,
    ApiErrorCode.E_INVALID_TOKEN: 401,
    ApiErrorCode.E_TOKEN_REVOKED: 401,
    ApiErrorCode.E_LLM_PAYMENT_REQUIRED: 402,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_SESSION_NOT_FOUND: 404,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_NAME_INVALID: 400,
    ApiErrorCode.E_TITLE_INVALID: 400,
    ApiErrorCode.E_NO_TRANSCRIPT: 400,
    ApiErrorCode.E_RATE_LIMITED: 429,
    ApiErrorCode.E_LLM_RATE_LIMITED: 429,
    ApiErrorCode.E_AUTH_UNAVAILABLE: 503,
    ApiErrorCode.E_INTERNAL: 500,
    ApiErrorCode.E_LLM_UPSTREAM: 500,
    ApiErrorCode.E_STORAGE_ERROR: 500,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(ApiError):
    """Resource not found error.

    Also used for resources that exist but are owned by someone else.
    """

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class UnauthorizedError(ApiError):
    """Authentication failure error."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_UNAUTHENTICATED, message: str = "Unauthorized"
    ):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Invalid request error."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)


class RateLimitedError(ApiError):
    """Per-identity rate limit exceeded."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_RATE_LIMITED, message: str = "Rate limit exceeded"
    ):
        super().__init__(code, message)

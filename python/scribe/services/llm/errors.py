"""Gateway failure classification.

The router turns every adapter failure into an LLMError carrying one of the
classes below; the summarization service maps classes onto API error codes.
"""

from enum import Enum

import httpx


class LLMErrorClass(str, Enum):
    RATE_LIMIT = "E_LLM_RATE_LIMIT"  # 429
    PAYMENT_REQUIRED = "E_LLM_PAYMENT_REQUIRED"  # 402
    INVALID_KEY = "E_LLM_INVALID_KEY"  # 401/403, or no key configured
    TIMEOUT = "E_LLM_TIMEOUT"
    PROVIDER_DOWN = "E_LLM_PROVIDER_DOWN"  # 5xx, network, anything else
    INVALID_RESPONSE = "E_LLM_INVALID_RESPONSE"  # 2xx without the forced tool call


STATUS_TO_ERROR_CLASS: dict[int, LLMErrorClass] = {
    401: LLMErrorClass.INVALID_KEY,
    402: LLMErrorClass.PAYMENT_REQUIRED,
    403: LLMErrorClass.INVALID_KEY,
    429: LLMErrorClass.RATE_LIMIT,
}


class LLMError(Exception):
    def __init__(self, error_class: LLMErrorClass, message: str, status_code: int | None = None):
        self.error_class = error_class
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def classify_gateway_error(
    status_code: int | None, exception: Exception | None = None
) -> LLMErrorClass:
    """Class for an upstream HTTP status, or for a transport exception when there is none."""
    if isinstance(exception, httpx.TimeoutException):
        return LLMErrorClass.TIMEOUT
    if status_code is None:
        return LLMErrorClass.PROVIDER_DOWN
    return STATUS_TO_ERROR_CLASS.get(status_code, LLMErrorClass.PROVIDER_DOWN)

"""LLM router: error normalization and observability around the gateway adapter.

- Wraps adapter calls with error normalization (one place, not per adapter)
- Emits llm.request.started / llm.request.finished / llm.request.failed
- All events use safe_kv(); prompts and transcript text are never logged

Error handling:
- Gateway 429 → RATE_LIMIT
- Gateway 402 → PAYMENT_REQUIRED
- Gateway 401/403 or no key configured → INVALID_KEY
- Timeout → TIMEOUT
- Missing or malformed tool call → INVALID_RESPONSE
- Other → PROVIDER_DOWN
"""

import time

import httpx

from scribe.logging import get_logger
from scribe.services.llm.adapter import LLMAdapter
from scribe.services.llm.errors import LLMError, LLMErrorClass, classify_gateway_error
from scribe.services.llm.gateway_adapter import GatewayAdapter
from scribe.services.llm.types import StructuredRequest, StructuredResponse
from scribe.services.redact import safe_kv

logger = get_logger(__name__)

DEFAULT_TIMEOUT_S = 60


class LLMRouter:
    """Calls the configured gateway and normalizes its failures."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        gateway_url: str,
        api_key: str | None,
        timeout_s: int = DEFAULT_TIMEOUT_S,
        adapter: LLMAdapter | None = None,
    ):
        """Initialize router with shared HTTP client.

        Args:
            client: Shared httpx.AsyncClient for connection pooling.
            gateway_url: Chat completions endpoint.
            api_key: Gateway bearer key; calls fail with INVALID_KEY when unset.
            timeout_s: Per-request timeout in seconds.
            adapter: Override the gateway adapter (tests).
        """
        self._client = client
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._adapter = adapter or GatewayAdapter(client, gateway_url)

    async def generate_structured(
        self, req: StructuredRequest, *, operation: str = "other"
    ) -> StructuredResponse:
        """Forced tool-call generation with error normalization.

        Raises:
            LLMError: With normalized error class on failure.
        """
        base = {
            "model_name": req.model_name,
            "tool_name": req.tool.name,
            "llm_operation": operation,
        }

        if not self._api_key:
            logger.error("llm.request.failed", **safe_kv(**base, error_class="missing_key"))
            raise LLMError(LLMErrorClass.INVALID_KEY, "LLM gateway key is not configured")

        logger.info(
            "llm.request.started",
            **safe_kv(**base, message_chars=sum(len(m.content) for m in req.messages)),
        )

        start = time.monotonic()

        try:
            response = await self._adapter.generate_structured(
                req, api_key=self._api_key, timeout_s=self._timeout_s
            )
        except httpx.TimeoutException as e:
            self._log_failure(base, LLMErrorClass.TIMEOUT, start)
            raise LLMError(LLMErrorClass.TIMEOUT, "Request timed out") from e
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            error_class = classify_gateway_error(status_code)
            self._log_failure(
                base,
                error_class,
                start,
                status_code=status_code,
                provider_request_id=e.response.headers.get("x-request-id"),
            )
            raise LLMError(
                error_class, f"Gateway returned HTTP {status_code}", status_code=status_code
            ) from e
        except httpx.NetworkError as e:
            self._log_failure(base, LLMErrorClass.PROVIDER_DOWN, start)
            raise LLMError(LLMErrorClass.PROVIDER_DOWN, "Network error") from e
        except LLMError as e:
            self._log_failure(base, e.error_class, start)
            raise
        except Exception as e:
            self._log_failure(base, LLMErrorClass.PROVIDER_DOWN, start)
            raise LLMError(
                LLMErrorClass.PROVIDER_DOWN, f"Unexpected error: {type(e).__name__}"
            ) from e

        usage = response.usage
        logger.info(
            "llm.request.finished",
            **safe_kv(
                **base,
                outcome="success",
                latency_ms=int((time.monotonic() - start) * 1000),
                tokens_input=usage.prompt_tokens if usage else None,
                tokens_output=usage.completion_tokens if usage else None,
                tokens_total=usage.total_tokens if usage else None,
                provider_request_id=response.provider_request_id,
            ),
        )
        return response

    def _log_failure(
        self, base: dict, error_class: LLMErrorClass, start: float, **extra
    ) -> None:
        logger.error(
            "llm.request.failed",
            **safe_kv(
                **base,
                outcome="error",
                error_class=error_class.value,
                latency_ms=int((time.monotonic() - start) * 1000),
                **extra,
            ),
        )

"""Abstract base class for LLM adapters.

- Async adapters with httpx.AsyncClient
- No retries inside adapters
- No DB access
- No logging of request/response bodies
- Raw transport errors bubble up to the router for classification
"""

from abc import ABC, abstractmethod

import httpx

from scribe.services.llm.types import StructuredRequest, StructuredResponse


class LLMAdapter(ABC):
    """Abstract base class for chat-completions adapters."""

    def __init__(self, client: httpx.AsyncClient):
        """Initialize adapter with shared HTTP client.

        Args:
            client: Shared httpx.AsyncClient for connection pooling.
        """
        self._client = client

    @abstractmethod
    async def generate_structured(
        self,
        req: StructuredRequest,
        *,
        api_key: str,
        timeout_s: int,
    ) -> StructuredResponse:
        """Force a single tool call and return its decoded arguments.

        Raises:
            httpx.HTTPStatusError: On non-2xx HTTP response.
            httpx.TimeoutException: On request timeout.
            httpx.NetworkError: On network failure.
            LLMError(INVALID_RESPONSE): When no usable tool call is returned.
        """

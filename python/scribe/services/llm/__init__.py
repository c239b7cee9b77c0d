"""LLM gateway layer for structured summarization.

- GatewayAdapter: OpenAI-compatible chat completions with a forced tool call
- LLMRouter: error normalization and llm.request.* events
- prompt: the create_summary tool schema and language-specific prompts

Usage:
    from scribe.services.llm import LLMRouter, StructuredRequest

    router = LLMRouter(httpx_client, gateway_url=url, api_key=key)
    response = await router.generate_structured(
        StructuredRequest(model_name=model, messages=messages, tool=SUMMARY_TOOL)
    )
    response.arguments  # decoded tool-call JSON
"""

from scribe.services.llm.adapter import LLMAdapter
from scribe.services.llm.errors import LLMError, LLMErrorClass, classify_gateway_error
from scribe.services.llm.gateway_adapter import GatewayAdapter
from scribe.services.llm.prompt import (
    PROMPT_VERSION,
    SUMMARY_TOOL,
    build_summary_messages,
    detect_language,
    render_transcript,
)
from scribe.services.llm.router import LLMRouter
from scribe.services.llm.types import (
    LLMUsage,
    StructuredRequest,
    StructuredResponse,
    ToolSpec,
    Turn,
)

__all__ = [
    # Core types
    "Turn",
    "ToolSpec",
    "StructuredRequest",
    "StructuredResponse",
    "LLMUsage",
    # Adapters and routing
    "LLMAdapter",
    "GatewayAdapter",
    "LLMRouter",
    # Errors
    "LLMError",
    "LLMErrorClass",
    "classify_gateway_error",
    # Prompting
    "PROMPT_VERSION",
    "SUMMARY_TOOL",
    "build_summary_messages",
    "detect_language",
    "render_transcript",
]

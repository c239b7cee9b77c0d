"""Shared type definitions for the LLM adapter layer.

- Turn: Provider-agnostic conversation turn
- ToolSpec: Function-calling schema the model must answer through
- StructuredRequest: Request forcing a single tool call
- LLMUsage: Token usage from provider response
- StructuredResponse: Parsed tool-call arguments plus metadata
"""

from dataclasses import dataclass, field
from typing import Any, Literal


@dataclass(frozen=True)
class Turn:
    """Provider-agnostic conversation turn.

    Attributes:
        role: One of "system", "user", or "assistant"
        content: The text content of the turn
    """

    role: Literal["system", "user", "assistant"]
    content: str


@dataclass(frozen=True)
class ToolSpec:
    """A function the model is forced to call.

    Attributes:
        name: Function name, e.g. "create_summary"
        description: Short description shown to the model
        parameters: JSON schema for the function arguments
    """

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass(frozen=True)
class StructuredRequest:
    """Request whose only acceptable answer is a call to `tool`.

    Attributes:
        model_name: The model identifier (e.g., "google/gemini-3-flash-preview")
        messages: List of Turn objects (system turn first)
        tool: The forced tool
        max_tokens: Optional completion cap, None uses provider default
    """

    model_name: str
    messages: list[Turn]
    tool: ToolSpec
    max_tokens: int | None = None


@dataclass(frozen=True)
class LLMUsage:
    """Token usage from provider response.

    All fields are optional as not every gateway reports every metric.
    """

    prompt_tokens: int | None
    completion_tokens: int | None
    total_tokens: int | None


@dataclass(frozen=True)
class StructuredResponse:
    """Parsed result of a forced tool call.

    Attributes:
        arguments: Decoded JSON arguments of the tool call
        usage: Token usage information (may be None)
        provider_request_id: Gateway request ID for debugging (may be None)
    """

    arguments: dict[str, Any]
    usage: LLMUsage | None = None
    provider_request_id: str | None = field(default=None)

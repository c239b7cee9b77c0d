"""OpenAI-compatible chat completions gateway adapter.

Request body:
{
  "model": "<model_name>",
  "messages": [{"role": "system", ...}, {"role": "user", ...}],
  "tools": [{"type": "function", "function": {"name", "description", "parameters"}}],
  "tool_choice": {"type": "function", "function": {"name": "<tool name>"}}
}

Response - extract:
- arguments = json.loads(choices[0].message.tool_calls[0].function.arguments)
- usage = direct mapping
- provider_request_id = response header x-request-id or body id

A reply without a tool call (e.g. free text) is rejected; tool_choice forces
the call, so its absence is an upstream fault.
"""

import json
from typing import Any

import httpx

from scribe.services.llm.adapter import LLMAdapter
from scribe.services.llm.errors import LLMError, LLMErrorClass
from scribe.services.llm.types import (
    LLMUsage,
    StructuredRequest,
    StructuredResponse,
    Turn,
)


class GatewayAdapter(LLMAdapter):
    """Adapter for an OpenAI-compatible /chat/completions endpoint."""

    def __init__(self, client: httpx.AsyncClient, url: str):
        super().__init__(client)
        self._url = url

    async def generate_structured(
        self,
        req: StructuredRequest,
        *,
        api_key: str,
        timeout_s: int,
    ) -> StructuredResponse:
        response = await self._client.post(
            self._url,
            headers=self._build_headers(api_key),
            json=self._build_request_body(req),
            timeout=httpx.Timeout(timeout_s, connect=10.0),
        )
        response.raise_for_status()

        try:
            data = response.json()
        except ValueError as e:
            raise LLMError(
                LLMErrorClass.INVALID_RESPONSE, "Gateway returned non-JSON body"
            ) from e
        return self._parse_response(data, req.tool.name, response.headers)

    def _build_headers(self, api_key: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def _build_request_body(self, req: StructuredRequest) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": req.model_name,
            "messages": [self._turn_to_message(turn) for turn in req.messages],
            "tools": [
                {
                    "type": "function",
                    "function": {
                        "name": req.tool.name,
                        "description": req.tool.description,
                        "parameters": req.tool.parameters,
                    },
                }
            ],
            "tool_choice": {"type": "function", "function": {"name": req.tool.name}},
        }
        if req.max_tokens is not None:
            body["max_tokens"] = req.max_tokens
        return body

    def _turn_to_message(self, turn: Turn) -> dict[str, str]:
        return {"role": turn.role, "content": turn.content}

    def _parse_response(
        self, data: Any, tool_name: str, headers: httpx.Headers
    ) -> StructuredResponse:
        if not isinstance(data, dict):
            raise LLMError(LLMErrorClass.INVALID_RESPONSE, "Gateway response is not an object")

        choices = data.get("choices") or []
        message = (choices[0].get("message") or {}) if choices else {}
        tool_calls = message.get("tool_calls") or []
        function = (tool_calls[0].get("function") or {}) if tool_calls else {}
        raw_arguments = function.get("arguments")

        if not raw_arguments:
            raise LLMError(LLMErrorClass.INVALID_RESPONSE, "Gateway response has no tool call")
        if function.get("name") not in (None, tool_name):
            raise LLMError(
                LLMErrorClass.INVALID_RESPONSE,
                f"Gateway called unexpected tool {function.get('name')!r}",
            )

        if isinstance(raw_arguments, dict):
            arguments = raw_arguments
        else:
            try:
                arguments = json.loads(raw_arguments)
            except (TypeError, json.JSONDecodeError) as e:
                raise LLMError(
                    LLMErrorClass.INVALID_RESPONSE, "Tool call arguments are not valid JSON"
                ) from e
        if not isinstance(arguments, dict):
            raise LLMError(LLMErrorClass.INVALID_RESPONSE, "Tool call arguments are not an object")

        usage = None
        usage_data = data.get("usage")
        if usage_data:
            usage = LLMUsage(
                prompt_tokens=usage_data.get("prompt_tokens"),
                completion_tokens=usage_data.get("completion_tokens"),
                total_tokens=usage_data.get("total_tokens"),
            )

        return StructuredResponse(
            arguments=arguments,
            usage=usage,
            provider_request_id=headers.get("x-request-id") or data.get("id"),
        )

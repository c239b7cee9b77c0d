"""Test helpers for authentication and common test operations.

Provides:
- Session JWT minting and Authorization headers
- API token creation through the dashboard routes
- Canned gateway payloads for summarization
"""

import json
import time
from typing import Any
from uuid import UUID, uuid4

import jwt
from fastapi.testclient import TestClient

from tests.support.jwt_verifier import TEST_AUDIENCE, TEST_ISSUER, MockJwtVerifier

DEFAULT_EXPIRES_IN = 3600  # 1 hour

TEST_GATEWAY_URL = "https://llm-gateway.test/v1/chat/completions"


def mint_test_token(
    user_id: UUID | str,
    expires_in: int = DEFAULT_EXPIRES_IN,
    issuer: str = TEST_ISSUER,
    audience: str = TEST_AUDIENCE,
    private_key: bytes | None = None,
    **extra_claims,
) -> str:
    """Mint a signed session JWT for user_id.

    Args:
        user_id: The `sub` claim.
        expires_in: Validity in seconds from now; negative for an expired token.
        issuer: The `iss` claim.
        audience: The `aud` claim.
        private_key: Signing key; defaults to the MockJwtVerifier key.
    """
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "iss": issuer,
        "aud": audience,
        "iat": now,
        "exp": now + expires_in,
        **extra_claims,
    }
    return jwt.encode(payload, private_key or MockJwtVerifier.get_private_key(), algorithm="RS256")


def mint_token_with_bad_signature(user_id: UUID | str) -> str:
    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric import rsa

    other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = other_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return mint_test_token(user_id, private_key=pem)


def auth_headers(user_id: UUID | str, **token_kwargs) -> dict[str, str]:
    """Session (dashboard) Authorization header for user_id."""
    return {"Authorization": f"Bearer {mint_test_token(user_id, **token_kwargs)}"}


def api_headers(raw_token: str) -> dict[str, str]:
    """Device Authorization header for a dnk_ API token."""
    return {"Authorization": f"Bearer {raw_token}"}


def create_test_user_id() -> UUID:
    return uuid4()


def create_api_token(client: TestClient, user_id: UUID, name: str = "Pixel 9") -> str:
    """Mint an API token for user_id through POST /tokens; returns the plaintext."""
    response = client.post("/tokens", json={"name": name}, headers=auth_headers(user_id))
    assert response.status_code == 200, response.text
    return response.json()["token"]


def create_session(client: TestClient, raw_token: str, title: str = "Standup", **extra) -> dict:
    response = client.post("/sessions", json={"title": title, **extra}, headers=api_headers(raw_token))
    assert response.status_code == 200, response.text
    return response.json()["session"]


def add_chunk(
    client: TestClient,
    raw_token: str,
    session_id: str,
    text: str = "Let's ship on Friday.",
    **extra,
) -> dict:
    body = {"start_time": "00:00:01", "end_time": "00:00:05", "text": text, **extra}
    response = client.post(
        f"/sessions/{session_id}/chunks", json=body, headers=api_headers(raw_token)
    )
    assert response.status_code == 200, response.text
    return response.json()


SUMMARY_ARGUMENTS: dict[str, Any] = {
    "summaryBullets": ["Release moves to Friday", "QA needs another pass"],
    "actionItems": [
        {"task": "Send the release notes", "priority": "high", "dueDate": "2026-10-23"},
        {"task": "Book the demo room", "priority": "low", "context": "Room B preferred"},
    ],
    "agendaSuggestions": [
        {
            "title": "Release retro",
            "datetime": "2026-10-26T10:00:00Z",
            "durationMinutes": 30,
            "context": "After the release",
        }
    ],
    "reminders": [{"text": "Ping QA", "triggerDateTime": "2026-10-22T09:00:00Z"}],
    "importantFactsToRemember": ["Budget is capped at 10k"],
    "openQuestions": ["Who owns the changelog?"],
}


def gateway_completion(
    arguments: dict[str, Any] | str | None = None,
    tool_name: str = "create_summary",
) -> dict[str, Any]:
    """OpenAI-compatible chat completion carrying one tool call."""
    if arguments is None:
        arguments = SUMMARY_ARGUMENTS
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    return {
        "id": "chatcmpl-test-1",
        "object": "chat.completion",
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": None,
                    "tool_calls": [
                        {
                            "id": "call_1",
                            "type": "function",
                            "function": {"name": tool_name, "arguments": arguments},
                        }
                    ],
                },
                "finish_reason": "tool_calls",
            }
        ],
        "usage": {"prompt_tokens": 120, "completion_tokens": 80, "total_tokens": 200},
    }

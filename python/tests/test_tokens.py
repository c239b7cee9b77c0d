"""Tests for API token lifecycle routes.

- POST /tokens mints a dnk_ token; plaintext appears only in that response
- GET /tokens never exposes the secret or its digest
- DELETE /tokens/{id} is an idempotent, owner-scoped soft delete
- A revoked token is rejected on every API-token route
"""

from uuid import uuid4

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from scribe.auth.tokens import API_TOKEN_PREFIX, hash_api_token
from scribe.db.models import ApiToken
from scribe.services.rate_limit import TOKENS_PER_MINUTE
from tests.helpers import api_headers, auth_headers, create_api_token


class TestCreateToken:
    def test_create_returns_plaintext_once(self, client: TestClient, test_user_id):
        response = client.post("/tokens", json={"name": "Pixel 9"}, headers=auth_headers(test_user_id))

        assert response.status_code == 200
        data = response.json()
        assert data["token"].startswith(API_TOKEN_PREFIX)
        assert len(data["token"]) == len(API_TOKEN_PREFIX) + 64
        assert data["name"] == "Pixel 9"
        assert set(data) == {"token", "tokenId", "name", "created_at"}

    def test_only_digest_is_stored(self, client: TestClient, db_session: Session, test_user_id):
        raw = create_api_token(client, test_user_id)

        stored = db_session.scalars(select(ApiToken)).one()
        assert stored.token_hash == hash_api_token(raw)
        assert stored.token_hash != raw
        assert stored.user_id == test_user_id
        assert stored.revoked_at is None

    def test_name_is_trimmed(self, client: TestClient, db_session: Session, test_user_id):
        response = client.post(
            "/tokens", json={"name": "  Work phone  "}, headers=auth_headers(test_user_id)
        )
        assert response.json()["name"] == "Work phone"
        assert db_session.scalars(select(ApiToken.name)).one() == "Work phone"

    def test_blank_name_rejected(self, client: TestClient, test_user_id):
        for body in ({"name": "   "}, {}, {"name": 42}, {"name": "x" * 101}):
            response = client.post("/tokens", json=body, headers=auth_headers(test_user_id))
            assert response.status_code == 400, body
            assert response.json()["code"] == "E_NAME_INVALID"
            assert response.json()["error"] == "name is required (max 100 chars)"

    def test_name_at_limit_accepted(self, client: TestClient, test_user_id):
        response = client.post("/tokens", json={"name": "x" * 100}, headers=auth_headers(test_user_id))
        assert response.status_code == 200

    def test_requires_session_auth(self, client: TestClient):
        response = client.post("/tokens", json={"name": "Pixel"})
        assert response.status_code == 401
        assert response.json()["code"] == "E_UNAUTHENTICATED"

    def test_api_token_cannot_mint_tokens(self, client: TestClient, api_token: str):
        response = client.post("/tokens", json={"name": "Pixel"}, headers=api_headers(api_token))
        assert response.status_code == 401

    def test_rate_limited_after_budget(self, client: TestClient, test_user_id):
        headers = auth_headers(test_user_id)
        for i in range(TOKENS_PER_MINUTE):
            assert client.post("/tokens", json={"name": f"t{i}"}, headers=headers).status_code == 200

        response = client.post("/tokens", json={"name": "one too many"}, headers=headers)
        assert response.status_code == 429
        assert response.json()["code"] == "E_RATE_LIMITED"

        # Budgets are per user
        other = client.post("/tokens", json={"name": "other"}, headers=auth_headers(uuid4()))
        assert other.status_code == 200


class TestListTokens:
    def test_lists_only_callers_tokens_newest_first(self, client: TestClient, test_user_id):
        create_api_token(client, test_user_id, name="first")
        create_api_token(client, test_user_id, name="second")
        create_api_token(client, uuid4(), name="someone else")

        response = client.get("/tokens", headers=auth_headers(test_user_id))

        assert response.status_code == 200
        tokens = response.json()["tokens"]
        assert [t["name"] for t in tokens] == ["second", "first"]
        for token in tokens:
            assert "token" not in token
            assert "token_hash" not in token
            assert set(token) == {"id", "name", "created_at", "last_used_at", "revoked_at"}

    def test_empty_list(self, client: TestClient, test_user_id):
        response = client.get("/tokens", headers=auth_headers(test_user_id))
        assert response.json() == {"tokens": []}


class TestRevokeToken:
    def test_revoked_token_is_rejected(self, client: TestClient, test_user_id):
        raw = create_api_token(client, test_user_id)
        assert client.get("/sessions", headers=api_headers(raw)).status_code == 200

        token_id = client.get("/tokens", headers=auth_headers(test_user_id)).json()["tokens"][0]["id"]
        response = client.delete(f"/tokens/{token_id}", headers=auth_headers(test_user_id))
        assert response.status_code == 200
        assert response.json() == {"success": True}

        rejected = client.get("/sessions", headers=api_headers(raw))
        assert rejected.status_code == 401
        assert rejected.json()["code"] == "E_TOKEN_REVOKED"
        assert rejected.json()["error"] == "Token has been revoked"

    def test_revoke_is_idempotent_and_keeps_first_timestamp(
        self, client: TestClient, db_session: Session, test_user_id
    ):
        create_api_token(client, test_user_id)
        token = db_session.scalars(select(ApiToken)).one()
        headers = auth_headers(test_user_id)

        client.delete(f"/tokens/{token.id}", headers=headers)
        db_session.expire_all()
        first = db_session.get(ApiToken, token.id).revoked_at
        assert first is not None

        assert client.delete(f"/tokens/{token.id}", headers=headers).status_code == 200
        db_session.expire_all()
        assert db_session.get(ApiToken, token.id).revoked_at == first

    def test_cannot_revoke_other_users_token(
        self, client: TestClient, db_session: Session, test_user_id
    ):
        raw = create_api_token(client, test_user_id)
        token = db_session.scalars(select(ApiToken)).one()

        response = client.delete(f"/tokens/{token.id}", headers=auth_headers(uuid4()))

        assert response.status_code == 200
        assert client.get("/sessions", headers=api_headers(raw)).status_code == 200

    def test_unknown_and_malformed_ids_succeed(self, client: TestClient, test_user_id):
        headers = auth_headers(test_user_id)
        assert client.delete(f"/tokens/{uuid4()}", headers=headers).status_code == 200
        assert client.delete("/tokens/not-a-uuid", headers=headers).status_code == 200


class TestLastUsed:
    def test_api_token_use_stamps_last_used_at(
        self, client: TestClient, db_session: Session, drain, test_user_id
    ):
        raw = create_api_token(client, test_user_id)
        assert db_session.scalars(select(ApiToken.last_used_at)).one() is None

        client.get("/sessions", headers=api_headers(raw))
        drain()

        db_session.expire_all()
        assert db_session.scalars(select(ApiToken.last_used_at)).one() is not None

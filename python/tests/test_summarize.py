"""Tests for summarization.

- Device trigger (POST /sessions/{id}/summarize) and dashboard trigger
  (POST /summarize) share one orchestrator and one budget
- Gateway failures map to stable API errors
- The Summary row is authoritative; derived rows are a projection of it
"""

import json
from typing import Any
from uuid import UUID, uuid4

import httpx
import pytest
import respx
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from scribe.config import DEFAULT_SUMMARY_MODEL
from scribe.db.models import ActionItem, AgendaItem, ImportantFact, Reminder, Summary
from scribe.services import summarize as summarize_service
from scribe.services.llm import LLMAdapter, LLMRouter, StructuredRequest, StructuredResponse
from scribe.services.rate_limit import SUMMARIZE_PER_MINUTE
from tests.helpers import (
    SUMMARY_ARGUMENTS,
    TEST_GATEWAY_URL,
    add_chunk,
    api_headers,
    auth_headers,
    create_api_token,
    create_session,
    gateway_completion,
)


class StubAdapter(LLMAdapter):
    """Adapter returning canned arguments (or raising) without any HTTP."""

    def __init__(self, arguments: Any = None, error: Exception | None = None):
        super().__init__(client=None)  # type: ignore[arg-type]
        self.arguments = SUMMARY_ARGUMENTS if arguments is None else arguments
        self.error = error
        self.requests: list[StructuredRequest] = []

    async def generate_structured(self, req, *, api_key, timeout_s) -> StructuredResponse:
        self.requests.append(req)
        if self.error is not None:
            raise self.error
        return StructuredResponse(arguments=self.arguments)


def install_adapter(client: TestClient, adapter: LLMAdapter, api_key: str | None = "k") -> None:
    client.app.state.llm_router = LLMRouter(
        client.app.state.httpx_client,
        gateway_url=TEST_GATEWAY_URL,
        api_key=api_key,
        adapter=adapter,
    )


def gateway_status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", TEST_GATEWAY_URL)
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError("gateway error", request=request, response=response)


def _count(db: Session, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


@pytest.fixture
def stub(client: TestClient) -> StubAdapter:
    adapter = StubAdapter()
    install_adapter(client, adapter)
    return adapter


@pytest.fixture
def transcribed_session(client: TestClient, api_token: str) -> dict:
    session = create_session(client, api_token, title="Release sync")
    add_chunk(client, api_token, session["id"], text="We ship Friday.", start_time="00:00:01")
    add_chunk(client, api_token, session["id"], text="QA needs a pass.", start_time="00:00:09")
    return session


class TestSummarizeBySessionToken:
    def test_success_persists_summary_and_items(
        self,
        client: TestClient,
        db_session: Session,
        stub,
        api_token,
        transcribed_session,
        test_user_id,
    ):
        response = client.post(
            f"/sessions/{transcribed_session['id']}/summarize", headers=api_headers(api_token)
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["success"] is True
        assert data["raw_json"] == SUMMARY_ARGUMENTS

        summary = db_session.get(Summary, UUID(data["summary_id"]))
        assert summary.session_id == UUID(transcribed_session["id"])
        assert summary.user_id == test_user_id
        assert summary.scope == "session"
        assert summary.model == DEFAULT_SUMMARY_MODEL
        assert summary.prompt_version == "v1"
        assert summary.raw_json == SUMMARY_ARGUMENTS

        items = db_session.scalars(select(ActionItem).order_by(ActionItem.task)).all()
        assert [(i.task, i.priority, i.status) for i in items] == [
            ("Book the demo room", "low", "open"),
            ("Send the release notes", "high", "open"),
        ]
        assert items[0].context == "Room B preferred"
        assert items[1].due_date == "2026-10-23"

        agenda = db_session.scalars(select(AgendaItem)).one()
        assert agenda.title == "Release retro"
        assert agenda.scheduled_for == "2026-10-26T10:00:00Z"
        assert agenda.duration_minutes == 30
        assert agenda.notes == "After the release"

        reminder = db_session.scalars(select(Reminder)).one()
        assert (reminder.text, reminder.trigger_datetime, reminder.status) == (
            "Ping QA",
            "2026-10-22T09:00:00Z",
            "open",
        )
        assert db_session.scalars(select(ImportantFact.fact)).all() == ["Budget is capped at 10k"]

    def test_prompt_carries_title_and_ordered_transcript(
        self, client: TestClient, stub, api_token, transcribed_session
    ):
        client.post(f"/sessions/{transcribed_session['id']}/summarize", headers=api_headers(api_token))

        request = stub.requests[0]
        assert request.tool.name == "create_summary"
        assert request.model_name == DEFAULT_SUMMARY_MODEL
        system, user = request.messages
        assert system.role == "system"
        assert "summarizer" in system.content
        assert '"Release sync"' in user.content
        assert user.content.endswith("[00:00:01] We ship Friday.\n\n[00:00:09] QA needs a pass.")

    def test_dutch_session_gets_dutch_prompt(self, client: TestClient, stub, api_token):
        session = create_session(client, api_token, title="Weekoverleg", language="nl-NL")
        add_chunk(client, api_token, session["id"], text="We leveren vrijdag.")

        client.post(f"/sessions/{session['id']}/summarize", headers=api_headers(api_token))

        system, user = stub.requests[0].messages
        assert system.content.startswith("Je bent")
        assert user.content.startswith('Vat dit transcript samen van sessie "Weekoverleg"')

    def test_empty_arrays_store_summary_only(
        self, client: TestClient, db_session: Session, api_token, transcribed_session
    ):
        empty = {key: [] for key in SUMMARY_ARGUMENTS}
        install_adapter(client, StubAdapter(arguments=empty))

        response = client.post(
            f"/sessions/{transcribed_session['id']}/summarize", headers=api_headers(api_token)
        )

        assert response.status_code == 200
        assert _count(db_session, Summary) == 1
        for model in (ActionItem, AgendaItem, Reminder, ImportantFact):
            assert _count(db_session, model) == 0

    def test_missing_priority_defaults_to_med(
        self, client: TestClient, db_session: Session, api_token, transcribed_session
    ):
        arguments = {**SUMMARY_ARGUMENTS, "actionItems": [{"task": "Write it down"}]}
        install_adapter(client, StubAdapter(arguments=arguments))

        client.post(f"/sessions/{transcribed_session['id']}/summarize", headers=api_headers(api_token))

        assert db_session.scalars(select(ActionItem.priority)).one() == "med"

    def test_zero_duration_is_kept(
        self, client: TestClient, db_session: Session, api_token, transcribed_session
    ):
        agenda = [{"title": "Quick check-in", "durationMinutes": 0}, {"title": "Open slot"}]
        install_adapter(client, StubAdapter(arguments={**SUMMARY_ARGUMENTS, "agendaSuggestions": agenda}))

        client.post(f"/sessions/{transcribed_session['id']}/summarize", headers=api_headers(api_token))

        durations = dict(db_session.execute(select(AgendaItem.title, AgendaItem.duration_minutes)).all())
        assert durations == {"Quick check-in": 0, "Open slot": None}

    def test_no_chunks(self, client: TestClient, stub, api_token):
        session = create_session(client, api_token)

        response = client.post(f"/sessions/{session['id']}/summarize", headers=api_headers(api_token))

        assert response.status_code == 400
        assert response.json()["code"] == "E_NO_TRANSCRIPT"
        assert response.json()["error"] == "No transcript chunks found"
        assert stub.requests == []

    def test_other_users_session_is_not_found(
        self, client: TestClient, stub, transcribed_session
    ):
        intruder = create_api_token(client, uuid4())

        response = client.post(
            f"/sessions/{transcribed_session['id']}/summarize", headers=api_headers(intruder)
        )

        assert response.status_code == 404
        assert response.json()["code"] == "E_SESSION_NOT_FOUND"
        assert stub.requests == []

    def test_rate_limited(
        self, client: TestClient, stub, api_token, transcribed_session, test_user_id, rate_limiter
    ):
        for _ in range(SUMMARIZE_PER_MINUTE):
            rate_limiter.admit(f"summarize:{test_user_id}", SUMMARIZE_PER_MINUTE)

        response = client.post(
            f"/sessions/{transcribed_session['id']}/summarize", headers=api_headers(api_token)
        )

        assert response.status_code == 429
        assert response.json()["code"] == "E_RATE_LIMITED"
        assert stub.requests == []


class TestGatewayFailures:
    @pytest.mark.parametrize(
        "error,status,code,message",
        [
            (
                gateway_status_error(429),
                429,
                "E_LLM_RATE_LIMITED",
                "AI rate limit exceeded. Try again shortly.",
            ),
            (gateway_status_error(402), 402, "E_LLM_PAYMENT_REQUIRED", "AI credits exhausted."),
            (gateway_status_error(500), 500, "E_LLM_UPSTREAM", "AI processing failed"),
            (gateway_status_error(401), 500, "E_LLM_UPSTREAM", "AI processing failed"),
            (httpx.ReadTimeout("slow"), 500, "E_LLM_UPSTREAM", "AI processing failed"),
        ],
    )
    def test_error_mapping(
        self,
        client: TestClient,
        db_session: Session,
        api_token,
        transcribed_session,
        error,
        status,
        code,
        message,
    ):
        install_adapter(client, StubAdapter(error=error))

        response = client.post(
            f"/sessions/{transcribed_session['id']}/summarize", headers=api_headers(api_token)
        )

        assert response.status_code == status
        assert response.json()["code"] == code
        assert response.json()["error"] == message
        assert _count(db_session, Summary) == 0

    def test_malformed_payload_is_rejected(
        self, client: TestClient, db_session: Session, api_token, transcribed_session
    ):
        install_adapter(client, StubAdapter(arguments={"summaryBullets": ["only this"]}))

        response = client.post(
            f"/sessions/{transcribed_session['id']}/summarize", headers=api_headers(api_token)
        )

        assert response.status_code == 500
        assert response.json()["error"] == "AI returned unexpected format"
        assert _count(db_session, Summary) == 0

    def test_missing_gateway_key(
        self, client: TestClient, db_session: Session, api_token, transcribed_session
    ):
        adapter = StubAdapter()
        install_adapter(client, adapter, api_key=None)

        response = client.post(
            f"/sessions/{transcribed_session['id']}/summarize", headers=api_headers(api_token)
        )

        assert response.status_code == 500
        assert response.json()["error"] == "AI processing failed"
        assert adapter.requests == []

    def test_fanout_failure_keeps_summary(
        self,
        client: TestClient,
        db_session: Session,
        stub,
        api_token,
        transcribed_session,
        monkeypatch,
    ):
        real_insert = summarize_service._insert_rows

        def insert_rows(session_factory, rows):
            if isinstance(rows[0], ActionItem):
                raise RuntimeError("disk full")
            real_insert(session_factory, rows)

        monkeypatch.setattr(summarize_service, "_insert_rows", insert_rows)

        response = client.post(
            f"/sessions/{transcribed_session['id']}/summarize", headers=api_headers(api_token)
        )

        assert response.status_code == 500
        assert response.json()["code"] == "E_STORAGE_ERROR"
        assert response.json()["error"] == "Failed to save summary items"
        assert _count(db_session, Summary) == 1
        assert _count(db_session, ActionItem) == 0
        assert _count(db_session, Reminder) == 1


class TestGatewayWire:
    def test_end_to_end_through_gateway(
        self, client: TestClient, db_session: Session, api_token, transcribed_session
    ):
        with respx.mock(assert_all_called=True) as mock:
            route = mock.post(TEST_GATEWAY_URL).respond(
                200, json=gateway_completion(), headers={"x-request-id": "gw-req-1"}
            )
            response = client.post(
                f"/sessions/{transcribed_session['id']}/summarize", headers=api_headers(api_token)
            )

        assert response.status_code == 200, response.text
        assert response.json()["raw_json"] == SUMMARY_ARGUMENTS

        sent = route.calls.last.request
        assert sent.headers["Authorization"] == "Bearer test-gateway-key"
        body = json.loads(sent.content)
        assert body["model"] == DEFAULT_SUMMARY_MODEL
        assert body["tool_choice"] == {"type": "function", "function": {"name": "create_summary"}}
        assert body["tools"][0]["function"]["name"] == "create_summary"
        assert [m["role"] for m in body["messages"]] == ["system", "user"]
        assert _count(db_session, ActionItem) == 2


class TestSummarizeByUser:
    def test_dashboard_trigger(
        self, client: TestClient, stub, transcribed_session, test_user_id
    ):
        response = client.post(
            "/summarize",
            json={"session_id": transcribed_session["id"]},
            headers=auth_headers(test_user_id),
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert len(stub.requests) == 1

    def test_session_id_required(self, client: TestClient, stub, test_user_id):
        response = client.post("/summarize", json={}, headers=auth_headers(test_user_id))
        assert response.status_code == 400
        assert response.json()["error"] == "session_id is required"

    def test_other_users_session(self, client: TestClient, stub, transcribed_session):
        response = client.post(
            "/summarize",
            json={"session_id": transcribed_session["id"]},
            headers=auth_headers(uuid4()),
        )
        assert response.status_code == 404

    def test_api_token_not_accepted(self, client: TestClient, stub, api_token, transcribed_session):
        response = client.post(
            "/summarize",
            json={"session_id": transcribed_session["id"]},
            headers=api_headers(api_token),
        )
        assert response.status_code == 401


class TestListSummaries:
    def test_lists_newest_first(self, client: TestClient, stub, api_token, transcribed_session):
        headers = api_headers(api_token)
        first = client.post(f"/sessions/{transcribed_session['id']}/summarize", headers=headers)
        second = client.post(f"/sessions/{transcribed_session['id']}/summarize", headers=headers)

        response = client.get(f"/sessions/{transcribed_session['id']}/summaries", headers=headers)

        assert response.status_code == 200
        ids = [s["id"] for s in response.json()["summaries"]]
        assert ids == [second.json()["summary_id"], first.json()["summary_id"]]
        assert response.json()["summaries"][0]["raw_json"] == SUMMARY_ARGUMENTS

    def test_other_users_session(self, client: TestClient, transcribed_session):
        intruder = create_api_token(client, uuid4())
        response = client.get(
            f"/sessions/{transcribed_session['id']}/summaries", headers=api_headers(intruder)
        )
        assert response.status_code == 404

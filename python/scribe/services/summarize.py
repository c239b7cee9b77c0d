"""Summarization orchestrator.

One invocation runs Resolve → Gather → Compose → Invoke → Persist → Respond
and stops at the first failure; nothing is retried here.

Storage work runs on the threadpool, each step in its own DB session, so the
event loop is free while the gateway call is in flight. The Summary row is
committed before the derived rows are fanned out; a fan-out failure is
reported to the caller but leaves the Summary (and its raw_json) in place.
Re-summarizing is the recovery path.
"""

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from scribe.config import get_settings
from scribe.db import transaction
from scribe.db.models import (
    ActionItem,
    AgendaItem,
    ImportantFact,
    Reminder,
    Summary,
    SummaryScope,
    TaskPriority,
    TranscriptChunk,
)
from scribe.errors import ApiError, ApiErrorCode, InvalidRequestError
from scribe.logging import get_logger
from scribe.schemas.summaries import (
    SummarizeResultOut,
    SummaryOut,
    SummaryPayloadV1,
    parse_summary_payload,
)
from scribe.services.llm import (
    PROMPT_VERSION,
    SUMMARY_TOOL,
    LLMError,
    LLMErrorClass,
    LLMRouter,
    StructuredRequest,
    build_summary_messages,
    detect_language,
    render_transcript,
)
from scribe.services.rate_limit import SUMMARIZE_PER_MINUTE, get_rate_limiter
from scribe.services.recording_sessions import get_owned_session

logger = get_logger(__name__)


@dataclass(frozen=True)
class _SessionSnapshot:
    id: UUID
    title: str
    start_time: datetime
    end_time: datetime | None
    language: str | None


@dataclass(frozen=True)
class _ChunkSnapshot:
    start_time: str
    text: str
    language: str | None


def _load_transcript(
    session_factory: sessionmaker[Session], user_id: UUID, session_id: object
) -> tuple[_SessionSnapshot, list[_ChunkSnapshot]]:
    with session_factory() as db:
        session = get_owned_session(db, user_id, session_id)
        chunks = db.scalars(
            select(TranscriptChunk)
            .where(TranscriptChunk.session_id == session.id)
            .order_by(TranscriptChunk.created_at.asc())
        ).all()

        if not chunks:
            raise InvalidRequestError(ApiErrorCode.E_NO_TRANSCRIPT, "No transcript chunks found")

        return (
            _SessionSnapshot(
                id=session.id,
                title=session.title,
                start_time=session.start_time,
                end_time=session.end_time,
                language=session.language,
            ),
            [_ChunkSnapshot(c.start_time, c.text, c.language) for c in chunks],
        )


def _llm_error_to_api_error(e: LLMError) -> ApiError:
    if e.error_class == LLMErrorClass.RATE_LIMIT:
        return ApiError(
            ApiErrorCode.E_LLM_RATE_LIMITED, "AI rate limit exceeded. Try again shortly."
        )
    if e.error_class == LLMErrorClass.PAYMENT_REQUIRED:
        return ApiError(ApiErrorCode.E_LLM_PAYMENT_REQUIRED, "AI credits exhausted.")
    if e.error_class == LLMErrorClass.INVALID_RESPONSE:
        return ApiError(ApiErrorCode.E_LLM_UPSTREAM, "AI returned unexpected format")
    return ApiError(ApiErrorCode.E_LLM_UPSTREAM, "AI processing failed")


def _insert_summary(
    session_factory: sessionmaker[Session],
    user_id: UUID,
    session: _SessionSnapshot,
    model: str,
    raw_json: dict[str, Any],
) -> UUID:
    with session_factory() as db:
        summary = Summary(
            session_id=session.id,
            user_id=user_id,
            scope=SummaryScope.session.value,
            start_time=session.start_time,
            end_time=session.end_time or datetime.now(UTC),
            model=model,
            prompt_version=PROMPT_VERSION,
            raw_json=raw_json,
        )
        db.add(summary)
        db.commit()
        return summary.id


def _insert_rows(session_factory: sessionmaker[Session], rows: list[Any]) -> None:
    with session_factory() as db, transaction(db):
        db.add_all(rows)


def build_derived_rows(summary_id: UUID, payload: SummaryPayloadV1) -> dict[str, list[Any]]:
    """Project a validated payload onto derived rows, one list per table.

    Empty arrays produce no entry.
    """
    groups: dict[str, list[Any]] = {
        "action_items": [
            ActionItem(
                summary_id=summary_id,
                task=item.task,
                priority=item.priority or TaskPriority.med.value,
                due_date=item.due_date or None,
                context=item.context or None,
            )
            for item in payload.action_items
        ],
        "agenda_items": [
            AgendaItem(
                summary_id=summary_id,
                title=item.title,
                scheduled_for=item.scheduled_for or None,
                duration_minutes=(
                    int(item.duration_minutes) if item.duration_minutes is not None else None
                ),
                notes=item.context or None,
            )
            for item in payload.agenda_suggestions
        ],
        "reminders": [
            Reminder(
                summary_id=summary_id,
                text=item.text,
                trigger_datetime=item.trigger_datetime or None,
            )
            for item in payload.reminders
        ],
        "important_facts": [
            ImportantFact(summary_id=summary_id, fact=fact) for fact in payload.important_facts
        ],
    }
    return {table: rows for table, rows in groups.items() if rows}


async def summarize_session(
    session_factory: sessionmaker[Session],
    llm_router: LLMRouter,
    user_id: UUID,
    session_id: object,
) -> SummarizeResultOut:
    """Summarize an owned session and persist the result.

    Raises:
        RateLimitedError: More than SUMMARIZE_PER_MINUTE calls this minute.
        NotFoundError(E_SESSION_NOT_FOUND): Session absent or not owned.
        InvalidRequestError(E_NO_TRANSCRIPT): Session has no chunks.
        ApiError(E_LLM_RATE_LIMITED | E_LLM_PAYMENT_REQUIRED | E_LLM_UPSTREAM):
            Gateway failure or output that does not match the schema.
        ApiError(E_STORAGE_ERROR): Summary or derived rows could not be saved.
    """
    settings = get_settings()

    # Resolve + Gather
    await run_in_threadpool(
        get_rate_limiter().enforce, f"summarize:{user_id}", SUMMARIZE_PER_MINUTE
    )
    session, chunks = await run_in_threadpool(
        _load_transcript, session_factory, user_id, session_id
    )

    # Compose
    language = detect_language(session.language, chunks[0].language, settings.default_language)
    transcript = render_transcript(chunks)
    request = StructuredRequest(
        model_name=settings.summary_model,
        messages=build_summary_messages(session.title, transcript, language),
        tool=SUMMARY_TOOL,
    )

    # Invoke
    try:
        response = await llm_router.generate_structured(request, operation="summarize")
    except LLMError as e:
        raise _llm_error_to_api_error(e) from e

    raw_json = response.arguments
    try:
        payload = parse_summary_payload(PROMPT_VERSION, raw_json)
    except ValueError as e:
        logger.error("summary_payload_invalid", session_id=str(session.id), error=str(e))
        raise ApiError(ApiErrorCode.E_LLM_UPSTREAM, "AI returned unexpected format") from e

    # Persist
    try:
        summary_id = await run_in_threadpool(
            _insert_summary, session_factory, user_id, session, settings.summary_model, raw_json
        )
    except Exception as e:
        logger.error("summary_insert_failed", session_id=str(session.id), error=str(e))
        raise ApiError(ApiErrorCode.E_STORAGE_ERROR, "Failed to save summary") from e

    groups = build_derived_rows(summary_id, payload)
    results = await asyncio.gather(
        *(run_in_threadpool(_insert_rows, session_factory, rows) for rows in groups.values()),
        return_exceptions=True,
    )
    failed = [
        table
        for table, result in zip(groups, results, strict=True)
        if isinstance(result, BaseException)
    ]
    if failed:
        logger.error(
            "summary_fanout_failed",
            summary_id=str(summary_id),
            failed_tables=failed,
            errors=[str(r) for r in results if isinstance(r, BaseException)],
        )
        raise ApiError(ApiErrorCode.E_STORAGE_ERROR, "Failed to save summary items")

    logger.info(
        "summary_created",
        summary_id=str(summary_id),
        session_id=str(session.id),
        chunk_count=len(chunks),
        transcript_chars=len(transcript),
        derived_counts={table: len(rows) for table, rows in groups.items()},
    )
    return SummarizeResultOut(summary_id=summary_id, raw_json=raw_json)


def list_session_summaries(db: Session, user_id: UUID, session_id: str) -> list[SummaryOut]:
    """Caller's summaries for an owned session, newest first."""
    session = get_owned_session(db, user_id, session_id)
    summaries = db.scalars(
        select(Summary)
        .where(Summary.session_id == session.id, Summary.user_id == user_id)
        .order_by(Summary.created_at.desc())
    )
    return [SummaryOut.model_validate(s) for s in summaries]

"""Mobile ingestion routes (API-token auth).

- GET /sessions: recent sessions with chunk_count and has_summary
- POST /sessions: create a session
- PATCH /sessions/{id}: update title and/or end_time
- POST /sessions/{id}/chunks: append a transcript chunk (idempotent on chunkId)

Create and ingest write an IngestEvent from a detached background task once
the response payload is ready.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from scribe.api.deps import get_api_principal, get_db, get_session_factory
from scribe.auth.middleware import Principal
from scribe.background import spawn_background
from scribe.db.models import IngestEventType
from scribe.schemas.sessions import ChunkCreateRequest, SessionCreateRequest, SessionUpdateRequest
from scribe.services import chunks as chunks_service
from scribe.services import recording_sessions as sessions_service
from scribe.services.ingest_events import record_ingest_event

router = APIRouter(tags=["sessions"])


@router.get("/sessions")
def list_sessions(
    principal: Annotated[Principal, Depends(get_api_principal)],
    db: Annotated[Session, Depends(get_db)],
    limit: Annotated[int, Query()] = sessions_service.DEFAULT_LIST_LIMIT,
    offset: Annotated[int, Query()] = 0,
) -> dict:
    sessions = sessions_service.list_sessions(db, principal.user_id, limit=limit, offset=offset)
    return {"sessions": [s.model_dump(mode="json") for s in sessions]}


@router.post("/sessions")
async def create_session(
    body: SessionCreateRequest,
    principal: Annotated[Principal, Depends(get_api_principal)],
    db: Annotated[Session, Depends(get_db)],
    session_factory: Annotated[sessionmaker, Depends(get_session_factory)],
) -> dict:
    """Create a recording session.

    Errors:
        E_TITLE_INVALID (400), E_RATE_LIMITED (429)
    """
    session = await run_in_threadpool(
        sessions_service.create_session,
        db,
        principal.user_id,
        body.title,
        body.start_time,
        body.language,
    )
    spawn_background(
        record_ingest_event,
        session_factory,
        principal.user_id,
        IngestEventType.session_created,
        {"session_id": str(session.id), "title": session.title},
        name="ingest_event",
    )
    return {"session": session.model_dump(mode="json")}


@router.patch("/sessions/{id}")
def update_session(
    id: str,
    body: SessionUpdateRequest,
    principal: Annotated[Principal, Depends(get_api_principal)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Update title and/or end_time.

    Errors:
        E_INVALID_REQUEST (400): empty patch
        E_TITLE_INVALID (400)
        E_SESSION_NOT_FOUND (404)
    """
    session = sessions_service.update_session(
        db, principal.user_id, id, title=body.title, end_time=body.end_time
    )
    return {"session": session.model_dump(mode="json")}


@router.post("/sessions/{id}/chunks")
async def add_chunk(
    id: str,
    body: ChunkCreateRequest,
    principal: Annotated[Principal, Depends(get_api_principal)],
    db: Annotated[Session, Depends(get_db)],
    session_factory: Annotated[sessionmaker, Depends(get_session_factory)],
) -> dict:
    """Append a transcript chunk.

    Returns:
        {"chunk": ChunkOut, "deduplicated": bool}

    Errors:
        E_INVALID_REQUEST (400), E_SESSION_NOT_FOUND (404), E_RATE_LIMITED (429),
        E_STORAGE_ERROR (500)
    """
    chunk, deduplicated = await run_in_threadpool(
        chunks_service.add_chunk, db, principal.user_id, principal.token_id, id, body
    )
    if not deduplicated:
        spawn_background(
            record_ingest_event,
            session_factory,
            principal.user_id,
            IngestEventType.chunk_ingested,
            {"session_id": str(chunk.session_id), "chunk_id": chunk.id},
            name="ingest_event",
        )
    return {"chunk": chunk.model_dump(mode="json"), "deduplicated": deduplicated}

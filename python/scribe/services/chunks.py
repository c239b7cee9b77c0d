"""Transcript chunk ingestion.

Idempotency: a client-supplied chunkId is unique per session. A retry is
detected twice: by a pre-check query, and by the (session_id, id) primary
key when two requests race past the pre-check. Both paths return the stored
row flagged as deduplicated.
"""

from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from scribe.db.models import TranscriptChunk
from scribe.errors import ApiError, ApiErrorCode, InvalidRequestError
from scribe.logging import get_logger
from scribe.schemas.sessions import ChunkCreateRequest, ChunkOut
from scribe.services.rate_limit import (
    CHUNKS_PER_TOKEN_PER_MINUTE,
    CHUNKS_PER_USER_PER_MINUTE,
    get_rate_limiter,
)
from scribe.services.recording_sessions import get_owned_session

logger = get_logger(__name__)

MAX_TEXT_LENGTH = 10_000


def _validate_chunk(req: ChunkCreateRequest) -> None:
    if not isinstance(req.text, str) or not req.text:
        raise InvalidRequestError(message="text is required")
    if not req.start_time or not req.end_time:
        raise InvalidRequestError(message="start_time and end_time are required")
    if len(req.text) > MAX_TEXT_LENGTH:
        raise InvalidRequestError(message="text too long (max 10000 chars)")


def _find_chunk(db: Session, session_id: UUID, chunk_id: str) -> TranscriptChunk | None:
    return db.scalar(
        select(TranscriptChunk).where(
            TranscriptChunk.session_id == session_id, TranscriptChunk.id == chunk_id
        )
    )


def add_chunk(
    db: Session,
    user_id: UUID,
    token_id: UUID,
    session_id: str,
    req: ChunkCreateRequest,
) -> tuple[ChunkOut, bool]:
    """Append a chunk to an owned session.

    Both the per-token and the per-user budget must admit the call.

    Returns:
        (chunk, deduplicated). deduplicated is True when chunkId was already
        stored; the stored row is returned unchanged.

    Raises:
        RateLimitedError: Token or user budget spent.
        NotFoundError(E_SESSION_NOT_FOUND): Session absent or not owned.
        InvalidRequestError: Missing/oversized text or missing timestamps.
        ApiError(E_STORAGE_ERROR): Insert failed for a reason other than a
            duplicate chunk id.
    """
    limiter = get_rate_limiter()
    limiter.enforce(f"chunks:{token_id}", CHUNKS_PER_TOKEN_PER_MINUTE)
    limiter.enforce(
        f"chunks_user:{user_id}", CHUNKS_PER_USER_PER_MINUTE, "User rate limit exceeded"
    )

    sid = get_owned_session(db, user_id, session_id).id
    _validate_chunk(req)

    client_chunk_id = req.chunk_id or None
    if client_chunk_id is not None:
        existing = _find_chunk(db, sid, client_chunk_id)
        if existing is not None:
            logger.info("chunk_deduplicated", session_id=str(sid), via="precheck")
            return ChunkOut.model_validate(existing), True

    new_id = client_chunk_id or str(uuid4())
    chunk = TranscriptChunk(
        session_id=sid,
        id=new_id,
        start_time=req.start_time,
        end_time=req.end_time,
        text=req.text,
        confidence=req.confidence,
        language=req.language,
    )
    db.add(chunk)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        existing = _find_chunk(db, sid, new_id) if client_chunk_id else None
        if existing is None:
            logger.error("chunk_insert_failed", session_id=str(sid), error=str(e.orig))
            raise ApiError(ApiErrorCode.E_STORAGE_ERROR, "Failed to insert chunk") from e
        logger.info("chunk_deduplicated", session_id=str(sid), via="unique_violation")
        return ChunkOut.model_validate(existing), True

    logger.info(
        "chunk_ingested",
        session_id=str(sid),
        text_chars=len(req.text),
    )
    return ChunkOut.model_validate(chunk), False

"""Recording session service.

Every query and mutation carries a `user_id = caller` predicate; a session
owned by someone else is indistinguishable from one that does not exist.
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from scribe.config import get_settings
from scribe.db.models import RecordingSession, Summary, TranscriptChunk
from scribe.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from scribe.logging import get_logger
from scribe.schemas.sessions import SessionListItemOut, SessionOut
from scribe.services.ids import parse_uuid
from scribe.services.rate_limit import SESSIONS_PER_MINUTE, get_rate_limiter

logger = get_logger(__name__)

MAX_TITLE_LENGTH = 500
DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 100


def session_not_found() -> NotFoundError:
    return NotFoundError(ApiErrorCode.E_SESSION_NOT_FOUND, "Session not found")


def _validated_title(title: object) -> str:
    if not isinstance(title, str) or not title.strip() or len(title) > MAX_TITLE_LENGTH:
        raise InvalidRequestError(
            ApiErrorCode.E_TITLE_INVALID, "title is required (max 500 chars)"
        )
    return title.strip()


def get_owned_session(db: Session, user_id: UUID, session_id: object) -> RecordingSession:
    """Load a session owned by user_id.

    Raises:
        NotFoundError(E_SESSION_NOT_FOUND): Unknown, malformed or foreign id.
    """
    parsed = parse_uuid(session_id)
    if parsed is None:
        raise session_not_found()

    session = db.scalar(
        select(RecordingSession).where(
            RecordingSession.id == parsed, RecordingSession.user_id == user_id
        )
    )
    if session is None:
        raise session_not_found()
    return session


def create_session(
    db: Session,
    user_id: UUID,
    title: object,
    start_time: datetime | None = None,
    language: str | None = None,
) -> SessionOut:
    """Create a recording session.

    Raises:
        RateLimitedError: More than SESSIONS_PER_MINUTE creations this minute.
        InvalidRequestError(E_TITLE_INVALID): Title empty or too long.
    """
    get_rate_limiter().enforce(f"sessions:{user_id}", SESSIONS_PER_MINUTE)
    clean_title = _validated_title(title)

    session = RecordingSession(
        user_id=user_id,
        title=clean_title,
        start_time=start_time or datetime.now(UTC),
        language=language or get_settings().default_language,
    )
    db.add(session)
    db.commit()

    logger.info("session_created", session_id=str(session.id), title_chars=len(clean_title))
    return SessionOut.model_validate(session)


def update_session(
    db: Session,
    user_id: UUID,
    session_id: str,
    title: object = None,
    end_time: datetime | None = None,
) -> SessionOut:
    """Apply a title and/or end_time patch to an owned session.

    Raises:
        InvalidRequestError: Empty patch, or an invalid title.
        NotFoundError(E_SESSION_NOT_FOUND): Session absent or not owned.
    """
    values: dict[str, object] = {}
    if end_time is not None:
        values["end_time"] = end_time
    if title is not None:
        values["title"] = _validated_title(title)

    if not values:
        raise InvalidRequestError(message="No valid fields to update")

    parsed = parse_uuid(session_id)
    if parsed is None:
        raise session_not_found()

    session = db.scalar(
        update(RecordingSession)
        .where(RecordingSession.id == parsed, RecordingSession.user_id == user_id)
        .values(**values)
        .returning(RecordingSession)
        .execution_options(synchronize_session=False)
    )
    if session is None:
        db.rollback()
        raise session_not_found()

    db.commit()
    logger.info("session_updated", session_id=str(parsed), fields=sorted(values))
    return SessionOut.model_validate(session)


def list_sessions(
    db: Session, user_id: UUID, limit: int = DEFAULT_LIST_LIMIT, offset: int = 0
) -> list[SessionListItemOut]:
    """Caller's sessions, newest start_time first, with chunk counts."""
    if limit <= 0:
        limit = DEFAULT_LIST_LIMIT
    limit = min(limit, MAX_LIST_LIMIT)
    offset = max(0, offset)

    sessions = db.scalars(
        select(RecordingSession)
        .where(RecordingSession.user_id == user_id)
        .order_by(RecordingSession.start_time.desc())
        .limit(limit)
        .offset(offset)
    ).all()
    if not sessions:
        return []

    ids = [s.id for s in sessions]
    chunk_counts = dict(
        db.execute(
            select(TranscriptChunk.session_id, func.count())
            .where(TranscriptChunk.session_id.in_(ids))
            .group_by(TranscriptChunk.session_id)
        ).all()
    )
    summarized = set(
        db.scalars(select(Summary.session_id).where(Summary.session_id.in_(ids)).distinct())
    )

    return [
        SessionListItemOut(
            id=s.id,
            title=s.title,
            start_time=s.start_time,
            end_time=s.end_time,
            language=s.language,
            created_at=s.created_at,
            chunk_count=chunk_counts.get(s.id, 0),
            has_summary=s.id in summarized,
        )
        for s in sessions
    ]

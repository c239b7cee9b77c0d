"""Append-only ingestion audit log.

Rows are written from detached background tasks after the response-relevant
work has committed; a failed write is logged and dropped.
"""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from scribe.db import transaction
from scribe.db.models import IngestEvent, IngestEventType
from scribe.logging import get_logger

logger = get_logger(__name__)


def record_ingest_event(
    session_factory: sessionmaker[Session],
    user_id: UUID,
    event_type: IngestEventType,
    payload: dict[str, Any],
) -> None:
    try:
        with session_factory() as db, transaction(db):
            db.add(IngestEvent(user_id=user_id, type=event_type.value, payload_json=payload))
    except Exception as e:
        logger.warning("ingest_event_write_failed", event_type=event_type.value, error=str(e))

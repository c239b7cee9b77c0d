"""Database module for Scribe.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from scribe.db.engine import create_db_engine, get_engine
from scribe.db.models import (
    ActionItem,
    AgendaItem,
    ApiToken,
    Base,
    ImportantFact,
    IngestEvent,
    IngestEventType,
    RecordingSession,
    Reminder,
    Summary,
    SummaryScope,
    TaskPriority,
    TaskStatus,
    TranscriptChunk,
)
from scribe.db.session import create_session_factory, get_db, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "create_session_factory",
    "get_db",
    "transaction",
    # Base
    "Base",
    # Enums
    "SummaryScope",
    "TaskStatus",
    "TaskPriority",
    "IngestEventType",
    # Models
    "ApiToken",
    "RecordingSession",
    "TranscriptChunk",
    "Summary",
    "ActionItem",
    "AgendaItem",
    "Reminder",
    "ImportantFact",
    "IngestEvent",
]

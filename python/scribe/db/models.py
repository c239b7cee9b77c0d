"""SQLAlchemy ORM models for Scribe.

Defines all database tables using SQLAlchemy 2.x declarative patterns.
Column types are portable (Uuid, timezone-aware DateTime, JSON with a JSONB
variant on PostgreSQL) so the same metadata can back a SQLite test database.

Identity is owned by the external auth provider: user_id columns hold the
JWT `sub` claim and are not foreign keys.
"""

from datetime import UTC, datetime
from enum import Enum as PyEnum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

JsonType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# =============================================================================
# Enums
# =============================================================================


class SummaryScope(str, PyEnum):
    """Span a summary covers."""

    session = "session"
    day = "day"


class TaskStatus(str, PyEnum):
    """Mutable completion state for action items and reminders."""

    open = "open"
    done = "done"


class TaskPriority(str, PyEnum):
    low = "low"
    med = "med"
    high = "high"


class IngestEventType(str, PyEnum):
    """Audit event kinds written during mobile ingestion."""

    session_created = "session_created"
    chunk_ingested = "chunk_ingested"


# =============================================================================
# Models
# =============================================================================


class ApiToken(Base):
    """Long-lived device credential.

    Only the SHA-256 hex digest of the secret is stored. A token is active
    while revoked_at is null; revocation is a soft delete.
    """

    __tablename__ = "api_tokens"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    token_hash: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class RecordingSession(Base):
    """A recorded conversation or meeting.

    end_time null means the recording is still in progress.
    """

    __tablename__ = "sessions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    language: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    chunks: Mapped[list["TranscriptChunk"]] = relationship(
        "TranscriptChunk", back_populates="session", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("ix_sessions_user_start", "user_id", "start_time"),)


class TranscriptChunk(Base):
    """A timestamped slice of transcribed speech.

    The primary key is (session_id, id) so a client-supplied chunk id is
    unique per session; the storage-level constraint is what makes
    concurrent retries idempotent. Timestamps are opaque client strings.
    """

    __tablename__ = "transcript_chunks"

    session_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("sessions.id", ondelete="CASCADE"), primary_key=True
    )
    id: Mapped[str] = mapped_column(Text, primary_key=True)
    start_time: Mapped[str] = mapped_column(Text, nullable=False)
    end_time: Mapped[str] = mapped_column(Text, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    confidence: Mapped[float | None] = mapped_column(Float)
    language: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    session: Mapped["RecordingSession"] = relationship(
        "RecordingSession", back_populates="chunks"
    )

    __table_args__ = (Index("ix_transcript_chunks_session_created", "session_id", "created_at"),)


class Summary(Base):
    """Structured model output for a session or a day.

    raw_json is the authoritative payload; the derived item tables are a
    normalized projection of it.
    """

    __tablename__ = "summaries"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    session_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("sessions.id", ondelete="CASCADE")
    )
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    scope: Mapped[str] = mapped_column(Text, nullable=False, default=SummaryScope.session.value)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    model: Mapped[str] = mapped_column(Text, nullable=False)
    prompt_version: Mapped[str] = mapped_column(Text, nullable=False)
    raw_json: Mapped[dict[str, Any]] = mapped_column(JsonType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        CheckConstraint("scope IN ('session', 'day')", name="ck_summaries_scope"),
        Index("ix_summaries_session", "session_id"),
        Index("ix_summaries_user_created", "user_id", "created_at"),
    )


class ActionItem(Base):
    __tablename__ = "action_items"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    summary_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("summaries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    task: Mapped[str] = mapped_column(Text, nullable=False)
    due_date: Mapped[str | None] = mapped_column(Text)
    priority: Mapped[str] = mapped_column(Text, nullable=False, default=TaskPriority.med.value)
    status: Mapped[str] = mapped_column(Text, nullable=False, default=TaskStatus.open.value)
    context: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        CheckConstraint("priority IN ('low', 'med', 'high')", name="ck_action_items_priority"),
        CheckConstraint("status IN ('open', 'done')", name="ck_action_items_status"),
    )


class AgendaItem(Base):
    __tablename__ = "agenda_items"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    summary_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("summaries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    scheduled_for: Mapped[str | None] = mapped_column("datetime", Text)
    duration_minutes: Mapped[int | None] = mapped_column(Integer)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class Reminder(Base):
    __tablename__ = "reminders"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    summary_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("summaries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    trigger_datetime: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Text, nullable=False, default=TaskStatus.open.value)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (CheckConstraint("status IN ('open', 'done')", name="ck_reminders_status"),)


class ImportantFact(Base):
    __tablename__ = "important_facts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    summary_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("summaries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    fact: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class IngestEvent(Base):
    """Append-only audit row for mobile ingestion. Never read by the API."""

    __tablename__ = "ingest_events"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    payload_json: Mapped[dict[str, Any]] = mapped_column(JsonType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

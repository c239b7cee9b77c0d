"""Initial schema - api_tokens, sessions, transcript_chunks, summaries, derived items, ingest_events

Revision ID: 0001
Revises:
Create Date: 2026-10-19

user_id columns carry the identity provider's subject and are not foreign
keys: identities live outside this database.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def upgrade() -> None:
    # ==========================================================================
    # api_tokens table
    # ==========================================================================
    op.create_table(
        "api_tokens",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("token_hash", sa.Text(), nullable=False),
        _created_at(),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token_hash", name="uq_api_tokens_token_hash"),
    )
    op.create_index("ix_api_tokens_user_id", "api_tokens", ["user_id"])

    # ==========================================================================
    # sessions table
    # ==========================================================================
    op.create_table(
        "sessions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column(
            "start_time",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("language", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sessions_user_start", "sessions", ["user_id", "start_time"])

    # ==========================================================================
    # transcript_chunks table
    # (session_id, id) primary key enforces chunkId idempotency
    # ==========================================================================
    op.create_table(
        "transcript_chunks",
        sa.Column("session_id", sa.Uuid(), nullable=False),
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("start_time", sa.Text(), nullable=False),
        sa.Column("end_time", sa.Text(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("language", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["session_id"], ["sessions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("session_id", "id"),
    )
    op.create_index(
        "ix_transcript_chunks_session_created",
        "transcript_chunks",
        ["session_id", "created_at"],
    )

    # ==========================================================================
    # summaries table
    # ==========================================================================
    op.create_table(
        "summaries",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("session_id", sa.Uuid(), nullable=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("scope", sa.Text(), server_default="session", nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("model", sa.Text(), nullable=False),
        sa.Column("prompt_version", sa.Text(), nullable=False),
        sa.Column("raw_json", JSON_TYPE, nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["session_id"], ["sessions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("scope IN ('session', 'day')", name="ck_summaries_scope"),
    )
    op.create_index("ix_summaries_session", "summaries", ["session_id"])
    op.create_index("ix_summaries_user_created", "summaries", ["user_id", "created_at"])

    # ==========================================================================
    # Derived rows (one summary → many)
    # ==========================================================================
    op.create_table(
        "action_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("summary_id", sa.Uuid(), nullable=False),
        sa.Column("task", sa.Text(), nullable=False),
        sa.Column("due_date", sa.Text(), nullable=True),
        sa.Column("priority", sa.Text(), server_default="med", nullable=False),
        sa.Column("status", sa.Text(), server_default="open", nullable=False),
        sa.Column("context", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["summary_id"], ["summaries.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "priority IN ('low', 'med', 'high')", name="ck_action_items_priority"
        ),
        sa.CheckConstraint("status IN ('open', 'done')", name="ck_action_items_status"),
    )
    op.create_index("ix_action_items_summary_id", "action_items", ["summary_id"])

    op.create_table(
        "agenda_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("summary_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("datetime", sa.Text(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["summary_id"], ["summaries.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_agenda_items_summary_id", "agenda_items", ["summary_id"])

    op.create_table(
        "reminders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("summary_id", sa.Uuid(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("trigger_datetime", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), server_default="open", nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["summary_id"], ["summaries.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("status IN ('open', 'done')", name="ck_reminders_status"),
    )
    op.create_index("ix_reminders_summary_id", "reminders", ["summary_id"])

    op.create_table(
        "important_facts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("summary_id", sa.Uuid(), nullable=False),
        sa.Column("fact", sa.Text(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["summary_id"], ["summaries.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_important_facts_summary_id", "important_facts", ["summary_id"])

    # ==========================================================================
    # ingest_events table (append-only audit)
    # ==========================================================================
    op.create_table(
        "ingest_events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("payload_json", JSON_TYPE, nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("ingest_events")
    op.drop_index("ix_important_facts_summary_id", table_name="important_facts")
    op.drop_table("important_facts")
    op.drop_index("ix_reminders_summary_id", table_name="reminders")
    op.drop_table("reminders")
    op.drop_index("ix_agenda_items_summary_id", table_name="agenda_items")
    op.drop_table("agenda_items")
    op.drop_index("ix_action_items_summary_id", table_name="action_items")
    op.drop_table("action_items")
    op.drop_index("ix_summaries_user_created", table_name="summaries")
    op.drop_index("ix_summaries_session", table_name="summaries")
    op.drop_table("summaries")
    op.drop_index("ix_transcript_chunks_session_created", table_name="transcript_chunks")
    op.drop_table("transcript_chunks")
    op.drop_index("ix_sessions_user_start", table_name="sessions")
    op.drop_table("sessions")
    op.drop_index("ix_api_tokens_user_id", table_name="api_tokens")
    op.drop_table("api_tokens")

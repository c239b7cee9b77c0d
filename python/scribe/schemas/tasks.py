"""Action item and reminder schemas for the dashboard task views."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from scribe.schemas.common import UtcDateTime


class StatusUpdateRequest(BaseModel):
    """Request body for PATCH /action-items/{id} and /reminders/{id}."""

    status: Any = None


class ActionItemOut(BaseModel):
    id: UUID
    summary_id: UUID
    session_id: UUID | None = None
    session_title: str | None = None
    task: str
    due_date: str | None = None
    priority: str
    status: str
    context: str | None = None
    created_at: UtcDateTime


class ReminderOut(BaseModel):
    id: UUID
    summary_id: UUID
    text: str
    trigger_datetime: str | None = None
    status: str
    created_at: UtcDateTime

    model_config = ConfigDict(from_attributes=True)

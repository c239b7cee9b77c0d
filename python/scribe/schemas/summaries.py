"""Summary schemas.

Model output is validated against a schema chosen by prompt version before it
is persisted. Stored raw_json keeps the model's camelCase keys; historical
rows stay readable because every version keeps its own schema here.
"""

from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from scribe.schemas.common import UtcDateTime


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ActionItemPayload(_Payload):
    task: str
    due_date: str | None = Field(default=None, alias="dueDate")
    priority: Literal["low", "med", "high"] | None = None
    context: str | None = None


class AgendaSuggestionPayload(_Payload):
    title: str
    scheduled_for: str | None = Field(default=None, alias="datetime")
    duration_minutes: float | None = Field(default=None, alias="durationMinutes")
    context: str | None = None


class ReminderPayload(_Payload):
    text: str
    trigger_datetime: str | None = Field(default=None, alias="triggerDateTime")


class SummaryPayloadV1(_Payload):
    """Structured output of the v1 `create_summary` tool. All arrays are required."""

    summary_bullets: list[str] = Field(alias="summaryBullets")
    action_items: list[ActionItemPayload] = Field(alias="actionItems")
    agenda_suggestions: list[AgendaSuggestionPayload] = Field(alias="agendaSuggestions")
    reminders: list[ReminderPayload]
    important_facts: list[str] = Field(alias="importantFactsToRemember")
    open_questions: list[str] = Field(alias="openQuestions")


SUMMARY_PAYLOAD_SCHEMAS: dict[str, type[SummaryPayloadV1]] = {
    "v1": SummaryPayloadV1,
}


def parse_summary_payload(prompt_version: str, raw: Any) -> SummaryPayloadV1:
    """Validate raw model output against the schema for prompt_version.

    Raises:
        ValueError: Unknown version, or output missing/mistyping a required
            field (pydantic.ValidationError is a ValueError).
    """
    schema = SUMMARY_PAYLOAD_SCHEMAS.get(prompt_version)
    if schema is None:
        raise ValueError(f"Unknown summary prompt version: {prompt_version}")
    return schema.model_validate(raw)


class SummarizeRequest(BaseModel):
    """Request body for POST /summarize (dashboard)."""

    session_id: Any = None


class SummarizeResultOut(BaseModel):
    success: bool = True
    summary_id: UUID
    raw_json: dict[str, Any]


class SummaryOut(BaseModel):
    id: UUID
    session_id: UUID | None = None
    scope: str
    model: str
    prompt_version: str
    start_time: UtcDateTime
    end_time: UtcDateTime
    raw_json: dict[str, Any]
    created_at: UtcDateTime

    model_config = ConfigDict(from_attributes=True)

"""Recording session and transcript chunk schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from scribe.schemas.common import UtcDateTime


class SessionCreateRequest(BaseModel):
    title: Any = None
    start_time: datetime | None = None
    language: str | None = None


class SessionUpdateRequest(BaseModel):
    """Only end_time and title are updatable; anything else is ignored."""

    title: Any = None
    end_time: datetime | None = None


class SessionOut(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    start_time: UtcDateTime
    end_time: UtcDateTime | None = None
    language: str | None = None
    created_at: UtcDateTime

    model_config = ConfigDict(from_attributes=True)


class SessionListItemOut(BaseModel):
    """Session row enriched with ingestion progress."""

    id: UUID
    title: str
    start_time: UtcDateTime
    end_time: UtcDateTime | None = None
    language: str | None = None
    created_at: UtcDateTime
    chunk_count: int
    has_summary: bool


class ChunkCreateRequest(BaseModel):
    """Request body for POST /sessions/{id}/chunks.

    chunkId is the client's idempotency key; retries with the same id return
    the stored chunk.
    """

    chunk_id: str | None = Field(default=None, alias="chunkId")
    start_time: str | None = None
    end_time: str | None = None
    text: Any = None
    confidence: float | None = None
    language: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class ChunkOut(BaseModel):
    id: str
    session_id: UUID
    start_time: str
    end_time: str
    text: str
    confidence: float | None = None
    language: str | None = None
    created_at: UtcDateTime

    model_config = ConfigDict(from_attributes=True)

"""API token schemas.

- The plaintext secret appears only in TokenCreatedOut, once
- token_hash never leaves the backend
"""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from scribe.schemas.common import UtcDateTime


class TokenCreateRequest(BaseModel):
    """Request body for POST /tokens.

    `name` is validated by the service so the error message is stable.
    """

    name: Any = None


class TokenCreatedOut(BaseModel):
    token: str
    token_id: UUID = Field(serialization_alias="tokenId")
    name: str
    created_at: UtcDateTime


class ApiTokenOut(BaseModel):
    """Listed token metadata.

    SECURITY: excludes token_hash.
    """

    id: UUID
    name: str
    created_at: UtcDateTime
    last_used_at: UtcDateTime | None = None
    revoked_at: UtcDateTime | None = None

    model_config = ConfigDict(from_attributes=True)

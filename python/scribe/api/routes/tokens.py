"""API token management routes (dashboard, session auth).

Routes are transport-only: each calls exactly one service function.

- POST /tokens: mint a token; the plaintext is in this response only
- GET /tokens: list the caller's tokens (never the secret or its hash)
- DELETE /tokens/{id}: revoke; idempotent
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from scribe.api.deps import get_db, get_session_principal
from scribe.auth.middleware import Principal
from scribe.schemas.tokens import TokenCreateRequest
from scribe.services import api_tokens as api_tokens_service

router = APIRouter(tags=["tokens"])


@router.post("/tokens")
def create_token(
    body: TokenCreateRequest,
    principal: Annotated[Principal, Depends(get_session_principal)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Create an API token.

    Returns:
        {"token", "tokenId", "name", "created_at"}

    Errors:
        E_NAME_INVALID (400), E_RATE_LIMITED (429)
    """
    created = api_tokens_service.create_api_token(db, principal.user_id, body.name)
    return created.model_dump(mode="json", by_alias=True)


@router.get("/tokens")
def list_tokens(
    principal: Annotated[Principal, Depends(get_session_principal)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    tokens = api_tokens_service.list_api_tokens(db, principal.user_id)
    return {"tokens": [t.model_dump(mode="json") for t in tokens]}


@router.delete("/tokens/{id}")
def revoke_token(
    id: str,
    principal: Annotated[Principal, Depends(get_session_principal)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Revoke a token. Unknown or foreign ids succeed without effect."""
    api_tokens_service.revoke_api_token(db, principal.user_id, id)
    return {"success": True}

"""Summarization routes.

- POST /sessions/{id}/summarize: device trigger (API-token auth)
- POST /summarize: dashboard trigger (session auth), body {"session_id"}
- GET /sessions/{id}/summaries: stored summaries for a session (API-token auth)

Both triggers share the same orchestrator and the same per-user budget.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, sessionmaker

from scribe.api.deps import (
    get_api_principal,
    get_db,
    get_llm_router,
    get_session_factory,
    get_session_principal,
)
from scribe.auth.middleware import Principal
from scribe.errors import InvalidRequestError
from scribe.schemas.summaries import SummarizeRequest
from scribe.services.llm import LLMRouter
from scribe.services.summarize import list_session_summaries, summarize_session

router = APIRouter(tags=["summaries"])


@router.post("/sessions/{id}/summarize")
async def summarize_session_by_token(
    id: str,
    principal: Annotated[Principal, Depends(get_api_principal)],
    session_factory: Annotated[sessionmaker, Depends(get_session_factory)],
    llm_router: Annotated[LLMRouter, Depends(get_llm_router)],
) -> dict:
    """Summarize a session from its transcript chunks.

    Returns:
        {"success": true, "summary_id", "raw_json"}

    Errors:
        E_NO_TRANSCRIPT (400), E_SESSION_NOT_FOUND (404), E_RATE_LIMITED (429),
        E_LLM_RATE_LIMITED (429), E_LLM_PAYMENT_REQUIRED (402),
        E_LLM_UPSTREAM (500), E_STORAGE_ERROR (500)
    """
    result = await summarize_session(session_factory, llm_router, principal.user_id, id)
    return result.model_dump(mode="json")


@router.post("/summarize")
async def summarize_session_by_user(
    body: SummarizeRequest,
    principal: Annotated[Principal, Depends(get_session_principal)],
    session_factory: Annotated[sessionmaker, Depends(get_session_factory)],
    llm_router: Annotated[LLMRouter, Depends(get_llm_router)],
) -> dict:
    if not body.session_id:
        raise InvalidRequestError(message="session_id is required")
    result = await summarize_session(
        session_factory, llm_router, principal.user_id, body.session_id
    )
    return result.model_dump(mode="json")


@router.get("/sessions/{id}/summaries")
def list_summaries(
    id: str,
    principal: Annotated[Principal, Depends(get_api_principal)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    summaries = list_session_summaries(db, principal.user_id, id)
    return {"summaries": [s.model_dump(mode="json") for s in summaries]}

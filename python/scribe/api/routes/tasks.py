"""Task tracking routes (dashboard, session auth)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from scribe.api.deps import get_db, get_session_principal
from scribe.auth.middleware import Principal
from scribe.schemas.tasks import StatusUpdateRequest
from scribe.services import tasks as tasks_service

router = APIRouter(tags=["tasks"])


@router.get("/action-items")
def list_action_items(
    principal: Annotated[Principal, Depends(get_session_principal)],
    db: Annotated[Session, Depends(get_db)],
    status: Annotated[str | None, Query()] = None,
) -> dict:
    items = tasks_service.list_action_items(db, principal.user_id, status=status)
    return {"action_items": [i.model_dump(mode="json") for i in items]}


@router.patch("/action-items/{id}")
def update_action_item(
    id: str,
    body: StatusUpdateRequest,
    principal: Annotated[Principal, Depends(get_session_principal)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    item = tasks_service.update_action_item_status(db, principal.user_id, id, body.status)
    return {"action_item": item.model_dump(mode="json")}


@router.patch("/reminders/{id}")
def update_reminder(
    id: str,
    body: StatusUpdateRequest,
    principal: Annotated[Principal, Depends(get_session_principal)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    reminder = tasks_service.update_reminder_status(db, principal.user_id, id, body.status)
    return {"reminder": reminder.model_dump(mode="json")}

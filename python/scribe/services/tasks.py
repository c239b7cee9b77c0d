"""Task tracking over summary-derived action items and reminders.

Status is the only mutable field. Ownership goes through the parent
Summary's user_id and is re-asserted inside each UPDATE predicate.
"""

from uuid import UUID

from sqlalchemy import Select, select, update
from sqlalchemy.orm import Session

from scribe.db.models import ActionItem, RecordingSession, Reminder, Summary, TaskStatus
from scribe.errors import InvalidRequestError, NotFoundError
from scribe.logging import get_logger
from scribe.schemas.tasks import ActionItemOut, ReminderOut
from scribe.services.ids import parse_uuid

logger = get_logger(__name__)

VALID_STATUSES = frozenset(s.value for s in TaskStatus)


def _validated_status(status: object) -> str:
    if not isinstance(status, str) or status not in VALID_STATUSES:
        raise InvalidRequestError(message="status must be 'open' or 'done'")
    return status


def _owned_summary_ids(user_id: UUID):
    return select(Summary.id).where(Summary.user_id == user_id)


def _action_item_query(user_id: UUID) -> Select:
    return (
        select(ActionItem, Summary.session_id, RecordingSession.title)
        .join(Summary, ActionItem.summary_id == Summary.id)
        .outerjoin(RecordingSession, Summary.session_id == RecordingSession.id)
        .where(Summary.user_id == user_id)
    )


def _action_item_out(item: ActionItem, session_id: UUID | None, title: str | None) -> ActionItemOut:
    return ActionItemOut(
        id=item.id,
        summary_id=item.summary_id,
        session_id=session_id,
        session_title=title,
        task=item.task,
        due_date=item.due_date,
        priority=item.priority,
        status=item.status,
        context=item.context,
        created_at=item.created_at,
    )


def list_action_items(
    db: Session, user_id: UUID, status: str | None = None
) -> list[ActionItemOut]:
    """Caller's action items across all summaries, newest first."""
    stmt = _action_item_query(user_id)
    if status is not None:
        stmt = stmt.where(ActionItem.status == _validated_status(status))
    stmt = stmt.order_by(ActionItem.created_at.desc())

    return [_action_item_out(item, sid, title) for item, sid, title in db.execute(stmt).all()]


def update_action_item_status(
    db: Session, user_id: UUID, item_id: str, status: object
) -> ActionItemOut:
    """Set an owned action item's status.

    Raises:
        InvalidRequestError: status is not open/done.
        NotFoundError: Item absent or owned by someone else.
    """
    new_status = _validated_status(status)
    parsed = parse_uuid(item_id)
    if parsed is None:
        raise NotFoundError()

    result = db.execute(
        update(ActionItem)
        .where(
            ActionItem.id == parsed,
            ActionItem.summary_id.in_(_owned_summary_ids(user_id)),
        )
        .values(status=new_status)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError()
    db.commit()

    logger.info("action_item_status_updated", action_item_id=str(parsed), status=new_status)

    row = db.execute(_action_item_query(user_id).where(ActionItem.id == parsed)).one()
    return _action_item_out(*row)


def update_reminder_status(
    db: Session, user_id: UUID, reminder_id: str, status: object
) -> ReminderOut:
    """Set an owned reminder's status.

    Raises:
        InvalidRequestError: status is not open/done.
        NotFoundError: Reminder absent or owned by someone else.
    """
    new_status = _validated_status(status)
    parsed = parse_uuid(reminder_id)
    if parsed is None:
        raise NotFoundError()

    reminder = db.scalar(
        update(Reminder)
        .where(
            Reminder.id == parsed,
            Reminder.summary_id.in_(_owned_summary_ids(user_id)),
        )
        .values(status=new_status)
        .returning(Reminder)
        .execution_options(synchronize_session=False)
    )
    if reminder is None:
        db.rollback()
        raise NotFoundError()
    db.commit()

    logger.info("reminder_status_updated", reminder_id=str(parsed), status=new_status)
    return ReminderOut.model_validate(reminder)

import logging
from typing import Iterator, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from sportsmeet.core import policy
from sportsmeet.models.events import utcnow
from sportsmeet.models.messages import ChatMessage
from sportsmeet.models.users import User
from sportsmeet.realtime.router import NotificationRouter
from sportsmeet.services.events import get_event
from sportsmeet.services.locks import event_lock
from sportsmeet.services.notifications import notify

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 80


class MessageHistory:
    """
    The chat log of one event, oldest first.

    Nothing is read until the history is iterated, and every iteration reads
    the log again, so iterating after an append includes the new message.
    """

    def __init__(self, db: Session, event_id: int):
        self._db = db
        self.event_id = event_id

    def __iter__(self) -> Iterator[ChatMessage]:
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.event_id == self.event_id)
            .order_by(ChatMessage.created_at, ChatMessage.id)
        )
        return iter(self._db.scalars(stmt).all())

    def __len__(self) -> int:
        stmt = select(func.count(ChatMessage.id)).where(ChatMessage.event_id == self.event_id)
        return int(self._db.scalar(stmt) or 0)


def history(db: Session, event_id: int) -> MessageHistory:
    return MessageHistory(db, event_id)


def append_message(
    db: Session,
    *,
    event_id: int,
    sender: User,
    body: str,
    notifier: Optional[NotificationRouter] = None,
) -> ChatMessage:
    """Append a message to an event's chat; only the host and participants may post."""
    with event_lock(event_id, "chat"):
        event = get_event(db, event_id)
        policy.ensure_can_post_message(event, sender.id)

        message = ChatMessage(event_id=event.id, sender_id=sender.id, body=body, created_at=utcnow())
        db.add(message)
        db.commit()
        db.refresh(message)

    logger.info("User %s posted message %s in event %s", sender.id, message.id, event.id)
    preview = body if len(body) <= PREVIEW_LENGTH else body[: PREVIEW_LENGTH - 1] + "…"
    notify(
        notifier,
        event,
        kind="chat",
        title=f"New message in {event.title}",
        message=f"{sender.name}: {preview}",
    )
    return message

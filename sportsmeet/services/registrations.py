import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sportsmeet.core import policy
from sportsmeet.core.errors import Conflict
from sportsmeet.models.events import Event, Registration
from sportsmeet.models.users import User
from sportsmeet.realtime.router import NotificationRouter
from sportsmeet.services.events import get_event
from sportsmeet.services.locks import event_lock
from sportsmeet.services.notifications import notify

logger = logging.getLogger(__name__)


def register_for_event(
    db: Session,
    *,
    event_id: int,
    user: User,
    notifier: Optional[NotificationRouter] = None,
) -> Registration:
    """
    Register a user for an event under the per-event Redis lock.

    The existence check and the insert happen while holding the lock, so two
    concurrent calls for the same (event, user) cannot both succeed. The
    unique constraint on (event_id, user_id) catches anything that slips past
    the lock, such as an expired lock.
    """
    with event_lock(event_id, "registration"):
        event, registration = _register_in_transaction(db, event_id, user)

    logger.info("User %s registered for event %s", user.id, event.id)
    notify(
        notifier,
        event,
        kind="registration",
        title=event.title,
        message=f"{user.name} registered for {event.title}",
    )
    return registration


def _register_in_transaction(db: Session, event_id: int, user: User) -> tuple[Event, Registration]:
    event = get_event(db, event_id)
    policy.ensure_not_owner(event, user.id)

    already = db.scalar(
        select(Registration.id).where(
            Registration.event_id == event.id,
            Registration.user_id == user.id,
        )
    )
    if already is not None:
        raise Conflict("User already registered for this event")

    registration = Registration(event_id=event.id, user_id=user.id)
    db.add(registration)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("User already registered for this event")

    # The participant list changed behind the relationship's back
    db.expire(event, ["registrations"])
    return event, registration


def list_participants(db: Session, *, event_id: int, requester: User) -> list[User]:
    """Participants of an event in the order they registered; host only."""
    event = get_event(db, event_id)
    policy.ensure_owner(event, requester.id, "view participants")

    stmt = (
        select(User)
        .join(Registration, Registration.user_id == User.id)
        .where(Registration.event_id == event.id)
        .order_by(Registration.id)
    )
    return list(db.scalars(stmt).all())


def registered_event_ids(db: Session, user_id: int) -> list[int]:
    """Ids of the events a user is registered for, oldest registration first."""
    stmt = select(Registration.event_id).where(Registration.user_id == user_id).order_by(Registration.id)
    return list(db.scalars(stmt).all())

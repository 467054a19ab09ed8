import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from sportsmeet.core import policy
from sportsmeet.core.errors import NotFound
from sportsmeet.models.events import Event
from sportsmeet.models.users import User
from sportsmeet.realtime.router import NotificationRouter
from sportsmeet.schemas.events import EventCreate, EventFilter, EventUpdate
from sportsmeet.services.notifications import notify

logger = logging.getLogger(__name__)


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def list_events(db: Session, filters: Optional[EventFilter] = None) -> list[Event]:
    """Return events matching every supplied filter option."""
    filters = filters or EventFilter()
    stmt = select(Event).options(selectinload(Event.registrations)).order_by(Event.id)

    if filters.category is not None:
        stmt = stmt.where(Event.category == filters.category.value)
    if filters.skill_level is not None:
        stmt = stmt.where(Event.skill_level == filters.skill_level)
    if filters.max_fee is not None:
        stmt = stmt.where(Event.entry_fee <= filters.max_fee)
    if filters.search is not None:
        stmt = stmt.where(Event.title.ilike(f"%{_escape_like(filters.search)}%", escape="\\"))
    if filters.start_date is not None:
        stmt = stmt.where(Event.date >= filters.start_date)
    if filters.end_date is not None:
        stmt = stmt.where(Event.date <= filters.end_date)

    return list(db.scalars(stmt).unique().all())


def get_event(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise NotFound("Event not found")
    return event


def create_event(db: Session, *, payload: EventCreate, host: User) -> Event:
    policy.ensure_can_create_event(host)

    event = Event(
        title=payload.title,
        description=payload.description,
        date=payload.date,
        longitude=payload.location.longitude,
        latitude=payload.location.latitude,
        category=payload.category.value,
        skill_level=payload.skill_level,
        entry_fee=payload.entry_fee,
        host_id=host.id,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Event %s created by host %s", event.id, host.id)
    return event


def update_event(
    db: Session,
    *,
    event_id: int,
    user: User,
    changes: EventUpdate,
    notifier: Optional[NotificationRouter] = None,
) -> Event:
    """
    Overwrite the fields sent in ``changes``.

    An empty value (missing, null or "") keeps the stored one. The entry fee is
    the exception: any fee that is sent is applied, so ``entryFee: 0`` makes
    the event free.
    """
    event = get_event(db, event_id)
    policy.ensure_owner(event, user.id, "update this event")

    applied = []
    for field, value in changes.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        if field == "location":
            event.longitude, event.latitude = changes.location.coordinates
        elif field == "category":
            event.category = changes.category.value
        else:
            setattr(event, field, value)
        applied.append(field)

    if not applied:
        return event

    db.commit()
    db.refresh(event)
    logger.info("Event %s updated by host %s (%s)", event.id, user.id, ", ".join(applied))

    notify(
        notifier,
        event,
        kind="event_updated",
        title=event.title,
        message=f"{event.title} has been updated by the host",
    )
    return event

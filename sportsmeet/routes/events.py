from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from sportsmeet.core.errors import ValidationError
from sportsmeet.database.db import get_db
from sportsmeet.models.users import User
from sportsmeet.realtime.router import NotificationRouter
from sportsmeet.routes.deps import get_current_user, get_notifier
from sportsmeet.schemas.events import (
    EventCreate,
    EventDetailOut,
    EventFilter,
    EventOut,
    EventUpdate,
    RegistrationOut,
)
from sportsmeet.schemas.messages import MessageCreate, MessageOut
from sportsmeet.schemas.users import UserContact
from sportsmeet.services import chat, events, registrations

router = APIRouter(prefix="/events", tags=["events"])


def event_filter(
    category: Optional[str] = None,
    skill_level: Optional[str] = Query(None, alias="skillLevel"),
    max_fee: Optional[str] = Query(None, alias="maxFee"),
    search: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
) -> EventFilter:
    try:
        return EventFilter(
            category=category,
            skill_level=skill_level,
            max_fee=max_fee,
            search=search,
            start_date=start_date,
            end_date=end_date,
        )
    except PydanticValidationError as e:
        problems = "; ".join(f"{err['loc'][0]}: {err['msg']}" for err in e.errors())
        raise ValidationError(f"Invalid filter: {problems}")


@router.get("", response_model=list[EventOut])
def list_events(
    filters: EventFilter = Depends(event_filter),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return events.list_events(db, filters)


@router.get("/{event_id}", response_model=EventDetailOut)
def get_event(event_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return events.get_event(db, event_id)


@router.post("", response_model=EventDetailOut, status_code=201)
def create_event(payload: EventCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return events.create_event(db, payload=payload, host=user)


@router.put("/{event_id}", response_model=EventDetailOut)
def update_event(
    event_id: int,
    payload: EventUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    notifier: NotificationRouter = Depends(get_notifier),
):
    return events.update_event(db, event_id=event_id, user=user, changes=payload, notifier=notifier)


@router.post("/{event_id}/register", response_model=RegistrationOut)
def register_for_event(
    event_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    notifier: NotificationRouter = Depends(get_notifier),
):
    registrations.register_for_event(db, event_id=event_id, user=user, notifier=notifier)
    return {"message": "Registered for event successfully"}


@router.get("/{event_id}/participants", response_model=list[UserContact])
def list_participants(event_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return registrations.list_participants(db, event_id=event_id, requester=user)


@router.get("/{event_id}/chat", response_model=list[MessageOut])
def chat_history(event_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return list(chat.history(db, event_id))


@router.post("/{event_id}/chat", response_model=MessageOut, status_code=201)
def post_message(
    event_id: int,
    payload: MessageCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    notifier: NotificationRouter = Depends(get_notifier),
):
    return chat.append_message(db, event_id=event_id, sender=user, body=payload.body, notifier=notifier)

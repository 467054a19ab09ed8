from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sportsmeet.database.db import get_db
from sportsmeet.models.users import User
from sportsmeet.routes.deps import get_current_user
from sportsmeet.schemas.users import UserOut
from sportsmeet.services.registrations import registered_event_ids

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/myevents", response_model=list[int])
def my_events(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Event ids the caller is registered for; clients subscribe to these."""
    return registered_event_ids(db, user.id)


@router.get("/profile", response_model=UserOut)
def my_profile(user: User = Depends(get_current_user)):
    return user

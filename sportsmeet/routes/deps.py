from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from sportsmeet.core.errors import Unauthorized
from sportsmeet.core.security import decode_access_token
from sportsmeet.database.db import get_db
from sportsmeet.models.users import User
from sportsmeet.realtime.router import NotificationRouter

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise Unauthorized("Not authorized, no token")
    user = db.get(User, decode_access_token(credentials.credentials))
    if user is None:
        raise Unauthorized("Not authorized, user not found")
    return user


def get_notifier(request: Request) -> NotificationRouter:
    return request.app.state.notifications

"""
Authorization rules for events, registrations and chat.

These are pure predicates over already-loaded records. Services call the
``ensure_*`` helpers so every Forbidden/InvalidOperation decision is made here.
"""

from typing import Any

from sportsmeet.core.errors import Forbidden, InvalidOperation
from sportsmeet.models.events import Event
from sportsmeet.models.users import Role, User


def canonical_id(value: Any) -> str:
    """Canonical string form of an identifier, so 7, "7" and " 7 " compare equal."""
    return str(value).strip()


def can_create_event(user: User) -> bool:
    return user.capability is Role.HOST


def is_owner(event: Event, user_id: Any) -> bool:
    return canonical_id(event.host_id) == canonical_id(user_id)


def is_participant(event: Event, user_id: Any) -> bool:
    wanted = canonical_id(user_id)
    return any(canonical_id(pid) == wanted for pid in event.registered_participants)


def can_post_message(event: Event, user_id: Any) -> bool:
    return is_owner(event, user_id) or is_participant(event, user_id)


def ensure_can_create_event(user: User) -> None:
    if not can_create_event(user):
        raise Forbidden("User is not a host")


def ensure_owner(event: Event, user_id: Any, action: str) -> None:
    if not is_owner(event, user_id):
        raise Forbidden(f"User is not authorized to {action}")


def ensure_not_owner(event: Event, user_id: Any) -> None:
    if is_owner(event, user_id):
        raise InvalidOperation("Hosts cannot register for their own event")


def ensure_can_post_message(event: Event, user_id: Any) -> None:
    if not can_post_message(event, user_id):
        raise Forbidden("Only the host and registered participants can post in this chat")

import logging
from typing import Optional

from sportsmeet.models.events import Event
from sportsmeet.realtime.router import NotificationRouter

logger = logging.getLogger(__name__)


def notify(
    notifier: Optional[NotificationRouter], event: Event, *, kind: str, title: str, message: str
) -> int:
    """Publish a `notification` payload to everyone following ``event``."""
    if notifier is None:
        return 0
    payload = {"type": kind, "eventId": event.id, "title": title, "message": message}
    delivered = notifier.publish(event.id, payload)
    logger.debug("Notification %s for event %s delivered to %d connection(s)", kind, event.id, delivered)
    return delivered

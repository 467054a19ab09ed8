import logging
from contextlib import contextmanager
from typing import Iterator

import redis

from sportsmeet.core.config import get_redis_url, settings
from sportsmeet.core.errors import Unavailable

logger = logging.getLogger(__name__)


def get_redis_client():
    """Get Redis client for locking."""
    return redis.from_url(get_redis_url(), decode_responses=True)


@contextmanager
def event_lock(event_id: int, scope: str) -> Iterator[None]:
    """
    Hold the Redis lock for one event and one kind of mutation.

    Only one request per (scope, event) can be inside the block at a time,
    across threads and processes.
    """
    redis_client = get_redis_client()
    lock = redis_client.lock(
        f"event_lock:{scope}:{event_id}",
        timeout=settings.lock_timeout,
        blocking_timeout=settings.lock_blocking_timeout,
    )

    try:
        if not lock.acquire(blocking=True):
            raise Unavailable("Event is busy, please try again.")
    except redis.exceptions.LockError:
        raise Unavailable("Event is busy, please try again.")
    except redis.exceptions.ConnectionError:
        raise Unavailable("Lock service is unavailable, please try again.")

    try:
        yield
    finally:
        try:
            lock.release()
        except redis.exceptions.LockError:
            logger.warning("Lock for event %s (%s) expired before release", event_id, scope)

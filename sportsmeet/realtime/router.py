"""
In-process registry of live connections and the events they follow.

The router maps connection id -> set of canonical event ids and fans out
notification payloads. Delivery is at-most-once: a payload offered to a
connection that cannot take it is lost and the connection is dropped.
"""

import logging
import queue
import threading
from typing import Any, Iterable

from sportsmeet.core.policy import canonical_id

logger = logging.getLogger(__name__)


class Connection:
    """A live client endpoint that accepts payloads without blocking."""

    def __init__(self, connection_id: str):
        self.id = connection_id

    def offer(self, payload: dict) -> bool:
        """Queue a payload; return False if the connection cannot take it."""
        raise NotImplementedError

    def close(self) -> None:
        pass


class BufferedConnection(Connection):
    """
    In-process connection for consumers that are not Socket.IO clients.

    Payloads wait in a bounded thread-safe queue until the owner calls
    ``drain``; a full queue refuses the offer, so the router drops it like an
    overflowing socket.
    """

    def __init__(self, connection_id: str, max_pending: int = 100):
        super().__init__(connection_id)
        self._outbox: queue.Queue = queue.Queue(maxsize=max_pending)
        self.closed = False

    def offer(self, payload: dict) -> bool:
        if self.closed:
            return False
        try:
            self._outbox.put_nowait(payload)
        except queue.Full:
            return False
        return True

    def drain(self) -> list[dict]:
        items = []
        while True:
            try:
                items.append(self._outbox.get_nowait())
            except queue.Empty:
                return items

    def close(self) -> None:
        self.closed = True


class NotificationRouter:
    def __init__(self):
        self._lock = threading.RLock()
        self._connections: dict[str, Connection] = {}
        self._memberships: dict[str, frozenset[str]] = {}
        self._subscribers: dict[str, set[str]] = {}

    def connect(self, connection: Connection) -> None:
        """Register a connection with no subscriptions, replacing any stale one with the same id."""
        with self._lock:
            stale = self._connections.get(connection.id)
            if stale is not None and stale is not connection:
                self._remove(connection.id)
                stale.close()
            if connection.id not in self._connections:
                self._connections[connection.id] = connection
                self._memberships[connection.id] = frozenset()

    def subscribe(self, connection: Connection, event_ids: Iterable[Any]) -> frozenset[str]:
        """Replace the connection's event set with ``event_ids``."""
        wanted = frozenset(canonical_id(e) for e in event_ids)
        with self._lock:
            if self._connections.get(connection.id) is not connection:
                self.connect(connection)
            previous = self._memberships[connection.id]
            for event_id in previous - wanted:
                members = self._subscribers.get(event_id)
                if members is not None:
                    members.discard(connection.id)
                    if not members:
                        del self._subscribers[event_id]
            for event_id in wanted - previous:
                self._subscribers.setdefault(event_id, set()).add(connection.id)
            self._memberships[connection.id] = wanted
        return wanted

    def publish(self, event_id: Any, payload: dict) -> int:
        """Offer ``payload`` to every connection subscribed to ``event_id``.

        Never blocks; returns the number of connections that accepted it.
        """
        key = canonical_id(event_id)
        with self._lock:
            targets = [self._connections[cid] for cid in self._subscribers.get(key, ())]

        delivered = 0
        for connection in targets:
            if connection.offer(payload):
                delivered += 1
            else:
                logger.warning("Dropping connection %s: notification buffer full or closed", connection.id)
                self.disconnect(connection.id)
        return delivered

    def disconnect(self, connection_id: str) -> None:
        with self._lock:
            connection = self._connections.get(connection_id)
            self._remove(connection_id)
        if connection is not None:
            connection.close()

    def subscriptions(self, connection_id: str) -> frozenset[str]:
        with self._lock:
            return self._memberships.get(connection_id, frozenset())

    def subscribers(self, event_id: Any) -> frozenset[str]:
        with self._lock:
            return frozenset(self._subscribers.get(canonical_id(event_id), ()))

    def is_connected(self, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._connections

    def close(self) -> None:
        with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
            self._memberships.clear()
            self._subscribers.clear()
        for connection in connections:
            connection.close()

    def _remove(self, connection_id: str) -> None:
        self._connections.pop(connection_id, None)
        for event_id in self._memberships.pop(connection_id, frozenset()):
            members = self._subscribers.get(event_id)
            if members is not None:
                members.discard(connection_id)
                if not members:
                    del self._subscribers[event_id]

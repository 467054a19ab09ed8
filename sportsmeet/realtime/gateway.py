"""Socket.IO live channel for the mobile client.

The client connects with `socket.io-client`, passing its bearer token as
`auth: { token }` (or `?token=`), then emits `subscribeToNotifications` with
the ids returned by `GET /users/myevents`. The server emits `notification`
events `{title, message}` for those events.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from typing import Any, Callable, Optional
from urllib.parse import parse_qs

import socketio
from pydantic import ValidationError as PydanticValidationError
from socketio.exceptions import ConnectionRefusedError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from sportsmeet.core.config import settings
from sportsmeet.core.errors import ServiceError, Unauthorized
from sportsmeet.core.security import decode_access_token
from sportsmeet.database.db import SessionLocal
from sportsmeet.models.users import User
from sportsmeet.realtime.router import Connection, NotificationRouter
from sportsmeet.schemas.messages import MessageCreate, MessageOut
from sportsmeet.services.chat import append_message
from sportsmeet.services.registrations import registered_event_ids

logger = logging.getLogger(__name__)


class SocketConnection(Connection):
    """
    A Socket.IO client as seen by the router.

    ``offer`` may be called from any thread; payloads are handed to the event
    loop and emitted by ``pump``. At most ``max_pending`` payloads may wait for
    emission; past that the connection refuses more and the router drops it.
    A connection closed while the client is still attached also disconnects
    the client, which then has to reconnect and subscribe again.
    """

    def __init__(self, sid: str, sio: socketio.AsyncServer, loop: asyncio.AbstractEventLoop, max_pending: int):
        super().__init__(sid)
        self._sio = sio
        self._loop = loop
        self._max_pending = max_pending
        self._queue: asyncio.Queue = asyncio.Queue()
        self._lock = threading.Lock()
        self._pending = 0
        self._closed = False
        self._client_gone = False

    def offer(self, payload: dict) -> bool:
        with self._lock:
            if self._closed or self._pending >= self._max_pending:
                return False
            self._pending += 1
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, payload)
        except RuntimeError:
            # event loop already closed
            with self._lock:
                self._pending -= 1
            return False
        return True

    async def pump(self) -> None:
        while True:
            payload = await self._queue.get()
            if payload is None:
                return
            try:
                await self._sio.emit("notification", payload, to=self.id)
            except Exception:
                logger.exception("Failed to emit notification to %s", self.id)
            finally:
                with self._lock:
                    self._pending -= 1

    @property
    def closed(self) -> bool:
        return self._closed

    def detach(self) -> None:
        """Mark the client as already disconnected."""
        with self._lock:
            self._client_gone = True

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            kick = not self._client_gone
        with contextlib.suppress(RuntimeError):
            self._loop.call_soon_threadsafe(self._queue.put_nowait, None)
            if kick:
                logger.info("Disconnecting socket %s", self.id)
                self._loop.call_soon_threadsafe(self._sio.start_background_task, self._sio.disconnect, self.id)


def _extract_token(environ: dict, auth: object | None) -> str | None:
    if isinstance(auth, dict):
        token = auth.get("token")
        if isinstance(token, str) and token:
            return token

    # ASGI scope carries `query_string: bytes`; WSGI environ carries `QUERY_STRING: str`
    scope = environ
    if isinstance(environ, dict) and isinstance(environ.get("asgi.scope"), dict):
        scope = environ["asgi.scope"]

    query_string: str | bytes = ""
    if isinstance(scope, dict):
        query_string = scope.get("query_string") or scope.get("QUERY_STRING") or ""
    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    return parse_qs(str(query_string)).get("token", [None])[0]


def _event_ids(data: Any) -> list[int]:
    """Accept `[1, "2"]` or `{"eventIds": [...]}`; anything else is rejected."""
    if isinstance(data, dict):
        data = data.get("eventIds")
    if not isinstance(data, (list, tuple)):
        raise ValueError("eventIds must be a list")
    return [int(str(x).strip()) for x in data]


class NotificationGateway:
    """Socket.IO event handlers bound to one NotificationRouter."""

    def __init__(
        self,
        sio: socketio.AsyncServer,
        router: NotificationRouter,
        session_factory: Callable[[], Session] = SessionLocal,
        max_pending: Optional[int] = None,
    ):
        self.sio = sio
        self.router = router
        self.session_factory = session_factory
        self.max_pending = max_pending or settings.notification_buffer_size
        self._connections: dict[str, SocketConnection] = {}

        sio.on("connect", self.connect)
        sio.on("disconnect", self.disconnect)
        sio.on("subscribeToNotifications", self.subscribe)
        sio.on("sendMessage", self.send_message)

    async def connect(self, sid, environ, auth=None):
        token = _extract_token(environ, auth)
        if not token:
            raise ConnectionRefusedError("unauthorized")
        try:
            user_id = decode_access_token(token)
        except Unauthorized as exc:
            raise ConnectionRefusedError("unauthorized") from exc

        # Start from the user's registrations; the client re-subscribes explicitly afterwards
        try:
            event_ids = await run_in_threadpool(self._registered_event_ids, user_id)
        except SQLAlchemyError:
            logger.warning("Could not load registrations for user %s; no subscriptions this session", user_id, exc_info=True)
            event_ids = []
        if event_ids is None:
            raise ConnectionRefusedError("unauthorized")

        await self.sio.save_session(sid, {"user_id": user_id})

        connection = SocketConnection(sid, self.sio, asyncio.get_running_loop(), self.max_pending)
        self._connections[sid] = connection
        self.router.connect(connection)
        self.sio.start_background_task(connection.pump)
        self.router.subscribe(connection, event_ids)
        logger.info("Socket %s connected for user %s (%d events)", sid, user_id, len(event_ids))

    async def disconnect(self, sid, *args):
        connection = self._connections.pop(sid, None)
        if connection is not None:
            connection.detach()
        self.router.disconnect(sid)
        logger.info("Socket %s disconnected", sid)

    async def subscribe(self, sid, data):
        connection = self._connections.get(sid)
        if connection is None:
            return {"ok": False, "error": "Not connected"}
        if connection.closed:
            return {"ok": False, "error": "Connection was dropped, please reconnect"}
        try:
            event_ids = _event_ids(data)
        except (TypeError, ValueError):
            return {"ok": False, "error": "eventIds must be a list of event ids"}
        subscribed = self.router.subscribe(connection, event_ids)
        return {"ok": True, "subscribed": sorted(subscribed, key=int)}

    async def send_message(self, sid, data):
        session = await self.sio.get_session(sid)
        user_id = session.get("user_id") if isinstance(session, dict) else None
        if user_id is None:
            return {"ok": False, "error": "Not connected"}
        if not isinstance(data, dict):
            return {"ok": False, "error": "Expected {eventId, body}"}
        try:
            body = MessageCreate(body=str(data.get("body") or "")).body
        except PydanticValidationError:
            return {"ok": False, "error": "Message body must be 1-2000 characters"}
        try:
            event_id = int(data.get("eventId"))
        except (TypeError, ValueError):
            return {"ok": False, "error": "eventId is required"}

        try:
            message = await run_in_threadpool(self._append, user_id, event_id, body)
        except ServiceError as exc:
            return {"ok": False, "error": exc.message}
        return {"ok": True, "message": message}

    def _registered_event_ids(self, user_id: int) -> Optional[list[int]]:
        """None when the token's user no longer exists."""
        with self.session_factory() as db:
            if db.get(User, user_id) is None:
                return None
            return registered_event_ids(db, user_id)

    def _append(self, user_id: int, event_id: int, body: str) -> dict:
        with self.session_factory() as db:
            sender = db.get(User, user_id)
            if sender is None:
                raise Unauthorized("Not authorized, user not found")
            message = append_message(db, event_id=event_id, sender=sender, body=body, notifier=self.router)
            return MessageOut.model_validate(message).model_dump(mode="json", by_alias=True)


def create_gateway(router: NotificationRouter) -> NotificationGateway:
    sio = socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins="*" if "*" in settings.cors_allow_origins else settings.cors_allow_origins,
        logger=False,
        engineio_logger=False,
    )
    return NotificationGateway(sio, router)

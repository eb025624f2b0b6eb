"""In-memory presence: which live connections belong to which user.

The registry is process local and volatile. Nothing here awaits, so every
operation is atomic with respect to the event loop; a restart starts empty and
clients re-identify after reconnecting.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any

from starlette.websockets import WebSocket, WebSocketDisconnect

from spectr.core.errors import DeliveryFailure, ForbiddenError

logger = logging.getLogger(__name__)


class ConnectionSession(ABC):
    """Opaque handle for one live client connection.

    ``principal_id`` is the user proven by the connection's access token;
    ``user_id`` is set only once the session has been bound in the registry.
    """

    def __init__(self, principal_id: str | None = None, session_id: str | None = None) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self.principal_id = principal_id
        self.user_id: str | None = None
        self.rooms: set[int] = set()

    @property
    def identified(self) -> bool:
        return self.user_id is not None

    def is_subscribed(self, chat_id: int) -> bool:
        return chat_id in self.rooms

    @abstractmethod
    async def send(self, event: dict[str, Any]) -> None:
        """Push one event to the client."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.session_id} user={self.user_id}>"


class WebSocketSession(ConnectionSession):
    """Session backed by a Starlette WebSocket.

    ``send`` only enqueues; a dedicated writer task drains the queue in FIFO
    order with a per-write timeout. A stalled client therefore cannot hold up
    the caller, and a write that times out closes the connection.
    """

    def __init__(
        self,
        websocket: WebSocket,
        *,
        principal_id: str,
        write_timeout: float,
        queue_size: int,
    ) -> None:
        super().__init__(principal_id=principal_id)
        self._websocket = websocket
        self._write_timeout = write_timeout
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=queue_size)
        self._writer: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Start the writer task."""
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain())

    async def send(self, event: dict[str, Any]) -> None:
        if self._closed:
            raise DeliveryFailure(f"Session {self.session_id} is closed")
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull as exc:
            raise DeliveryFailure(f"Outbound queue of session {self.session_id} is full") from exc

    async def _drain(self) -> None:
        while not self._closed:
            event = await self._queue.get()
            try:
                await asyncio.wait_for(
                    self._websocket.send_json(event),
                    timeout=self._write_timeout,
                )
            except TimeoutError:
                logger.warning(
                    "Write to session %s timed out after %.1fs; closing",
                    self.session_id,
                    self._write_timeout,
                )
                self._closed = True
                try:
                    await self._websocket.close(code=1011)
                except RuntimeError as exc:
                    logger.debug("Session %s already closed: %s", self.session_id, exc)
            except (WebSocketDisconnect, RuntimeError, ConnectionError) as exc:
                logger.info("Session %s stopped accepting writes: %s", self.session_id, exc)
                self._closed = True

    async def close(self) -> None:
        """Stop the writer task; pending events are dropped."""
        self._closed = True
        if self._writer is not None:
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass
            self._writer = None


class PresenceRegistry:
    """Maps user ids to their currently bound sessions.

    Binding is additive (multi-device). A session is bound to at most one user
    and only its own connection lifecycle binds or unbinds it.
    """

    def __init__(self) -> None:
        self._by_user: dict[str, dict[str, ConnectionSession]] = {}
        self._by_session: dict[str, str] = {}

    def bind(self, user_id: str, session: ConnectionSession) -> bool:
        """Bind ``session`` to ``user_id``.

        Returns:
            True if this is the user's first session (the user came online).

        Raises:
            ForbiddenError: If the session is already bound to another user.
        """
        current = self._by_session.get(session.session_id)
        if current is not None and current != user_id:
            raise ForbiddenError("Session is already bound to another user")

        sessions = self._by_user.setdefault(user_id, {})
        first = not sessions
        sessions[session.session_id] = session
        self._by_session[session.session_id] = user_id
        session.user_id = user_id
        return first

    def unbind(self, session: ConnectionSession) -> bool:
        """Remove one session; unknown or already-removed sessions are a no-op.

        Returns:
            True if this removed the user's last session (the user went offline).
        """
        user_id = self._by_session.pop(session.session_id, None)
        if user_id is None:
            return False
        sessions = self._by_user.get(user_id)
        if sessions is None:
            return False
        sessions.pop(session.session_id, None)
        if sessions:
            return False
        del self._by_user[user_id]
        return True

    def sessions_for(self, user_id: str) -> set[ConnectionSession]:
        """Return a snapshot of the sessions bound to ``user_id``."""
        return set(self._by_user.get(user_id, {}).values())

    def user_for(self, session: ConnectionSession) -> str | None:
        return self._by_session.get(session.session_id)

    def is_online(self, user_id: str) -> bool:
        return user_id in self._by_user

    def online_users(self) -> list[str]:
        return sorted(self._by_user)

    def all_sessions(self) -> list[ConnectionSession]:
        return [session for sessions in self._by_user.values() for session in sessions.values()]

    def __len__(self) -> int:
        return len(self._by_session)

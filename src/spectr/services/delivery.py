"""Push events to the live sessions of users.

``LocalDelivery`` looks sessions up in this process's presence registry.
``RedisDelivery`` publishes every push on a per-user Redis channel and each
process delivers what it receives to its own local sessions, so several worker
processes can share one store.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterable
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from spectr.core.errors import DeliveryFailure
from spectr.schemas.realtime import WsOutbound
from spectr.services.presence import ConnectionSession, PresenceRegistry

logger = logging.getLogger(__name__)

USER_CHANNEL_PREFIX = "spectr:user:"
BROADCAST_CHANNEL = "spectr:broadcast"


def build_event(event_type: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return the JSON-ready envelope for an outbound event."""
    return WsOutbound(type=event_type, data=data or {}).model_dump(mode="json")


class LocalDelivery:
    """Delivers directly to sessions registered in this process."""

    def __init__(self, registry: PresenceRegistry, *, write_timeout: float) -> None:
        self.registry = registry
        self.write_timeout = write_timeout

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None

    async def push_to_user(
        self,
        user_id: str,
        event: dict[str, Any],
        *,
        room: int | None = None,
        exclude_session_id: str | None = None,
    ) -> int:
        """Push ``event`` to every session of ``user_id``.

        Args:
            user_id: Recipient.
            event: Envelope built with :func:`build_event`.
            room: If set, only sessions subscribed to this chat receive the event.
            exclude_session_id: Session that must not receive the event.

        Returns:
            Number of sessions that accepted the event. A user with no
            sessions yields 0.
        """
        sessions = [
            session
            for session in self.registry.sessions_for(user_id)
            if session.session_id != exclude_session_id
            and (room is None or session.is_subscribed(room))
        ]
        if not sessions:
            return 0
        results = await asyncio.gather(*(self.push_to_session(session, event) for session in sessions))
        return sum(results)

    async def push_to_users(
        self,
        user_ids: Iterable[str],
        event: dict[str, Any],
        *,
        room: int | None = None,
        exclude_session_id: str | None = None,
    ) -> int:
        """Push ``event`` to each distinct user in ``user_ids``."""
        delivered = 0
        for user_id in dict.fromkeys(user_ids):
            delivered += await self.push_to_user(
                user_id,
                event,
                room=room,
                exclude_session_id=exclude_session_id,
            )
        return delivered

    async def broadcast(self, event: dict[str, Any]) -> int:
        """Push ``event`` to every bound session."""
        sessions = self.registry.all_sessions()
        if not sessions:
            return 0
        results = await asyncio.gather(*(self.push_to_session(session, event) for session in sessions))
        return sum(results)

    async def push_to_session(self, session: ConnectionSession, event: dict[str, Any]) -> bool:
        """Push one event to one session; failures are logged and reported as False."""
        try:
            await asyncio.wait_for(session.send(event), timeout=self.write_timeout)
        except TimeoutError:
            logger.warning(
                "Delivery of %s to session %s timed out",
                event.get("type"),
                session.session_id,
            )
            return False
        except (DeliveryFailure, ConnectionError, RuntimeError) as exc:
            logger.warning(
                "Delivery of %s to session %s failed: %s",
                event.get("type"),
                session.session_id,
                exc,
            )
            return False
        return True


class RedisDelivery(LocalDelivery):
    """Routes pushes through Redis pub/sub so every process reaches its own sessions.

    Return values of the push methods count receiving processes rather than
    sessions, since session counts are only known on the receiving side.
    """

    def __init__(
        self,
        registry: PresenceRegistry,
        *,
        write_timeout: float,
        redis_url: str,
        client: aioredis.Redis | None = None,
    ) -> None:
        super().__init__(registry, write_timeout=write_timeout)
        self._redis_url = redis_url
        self._client = client
        self._pubsub: Any = None
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Subscribe to the user and broadcast channels and start listening."""
        if self._task is not None and not self._task.done():
            return
        if self._client is None:
            self._client = aioredis.from_url(self._redis_url)
        self._pubsub = self._client.pubsub()
        await self._pubsub.psubscribe(f"{USER_CHANNEL_PREFIX}*")
        await self._pubsub.subscribe(BROADCAST_CHANNEL)
        self._stopping.clear()
        self._task = asyncio.create_task(self._listen())
        logger.info("Redis delivery listening on %s*", USER_CHANNEL_PREFIX)

    async def stop(self) -> None:
        """Stop listening and release the Redis connection."""
        self._stopping.set()
        if self._task is not None:
            await self._task
            self._task = None
        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def push_to_user(
        self,
        user_id: str,
        event: dict[str, Any],
        *,
        room: int | None = None,
        exclude_session_id: str | None = None,
    ) -> int:
        envelope = json.dumps({"event": event, "room": room, "exclude": exclude_session_id})
        return await self._publish(f"{USER_CHANNEL_PREFIX}{user_id}", envelope)

    async def broadcast(self, event: dict[str, Any]) -> int:
        return await self._publish(BROADCAST_CHANNEL, json.dumps({"event": event}))

    async def _publish(self, channel: str, envelope: str) -> int:
        if self._client is None:
            raise DeliveryFailure("Redis delivery has not been started")
        try:
            return int(await self._client.publish(channel, envelope))
        except RedisError as exc:
            logger.warning("Publishing to %s failed: %s", channel, exc)
            return 0

    async def _listen(self) -> None:
        while not self._stopping.is_set():
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=1.0,
                )
            except RedisError as exc:
                logger.warning("Redis delivery listener error: %s", exc)
                await asyncio.sleep(1.0)
                continue
            if message is None:
                continue
            try:
                await self._dispatch(message)
            except (ValueError, KeyError, TypeError) as exc:
                logger.error("Dropping malformed delivery envelope: %s", exc, exc_info=True)

    async def _dispatch(self, message: dict[str, Any]) -> None:
        channel = message["channel"]
        if isinstance(channel, bytes):
            channel = channel.decode()
        payload = json.loads(message["data"])
        if channel == BROADCAST_CHANNEL:
            await LocalDelivery.broadcast(self, payload["event"])
            return
        user_id = channel[len(USER_CHANNEL_PREFIX):]
        await LocalDelivery.push_to_user(
            self,
            user_id,
            payload["event"],
            room=payload.get("room"),
            exclude_session_id=payload.get("exclude"),
        )

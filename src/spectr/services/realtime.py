"""Realtime gateway: binds connections to users and routes their events."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from spectr.core.errors import PersistenceFailure, SpectrError, UnauthenticatedError, ValidationFailure
from spectr.core.settings import settings
from spectr.repositories.chat_repo import ChatRepository
from spectr.schemas.realtime import (
    ChatRefPayload,
    IdentifyPayload,
    SendMessagePayload,
    WsInbound,
)
from spectr.services.delivery import LocalDelivery, RedisDelivery, build_event
from spectr.services.fanout import MessageFanout
from spectr.services.membership import MembershipResolver
from spectr.services.presence import ConnectionSession, PresenceRegistry

logger = logging.getLogger(__name__)

Handler = Callable[[ConnectionSession, ChatRepository, dict[str, Any]], Awaitable[None]]


class RealtimeGateway:
    """Relays client events into the fan-out engine and pushes events back out.

    A connection arrives already authenticated by its access token
    (``principal_id``); it still has to send ``identify`` before any
    chat-affecting event is accepted. The identity bound on ``identify`` is
    always the token's user, never a client-supplied value.
    """

    def __init__(
        self,
        registry: PresenceRegistry,
        delivery: LocalDelivery,
        fanout: MessageFanout,
    ) -> None:
        self.registry = registry
        self.delivery = delivery
        self.fanout = fanout
        self._handlers: dict[str, Handler] = {
            "identify": self._on_identify,
            "join_chat": self._on_join_chat,
            "leave_chat": self._on_leave_chat,
            "send_message": self._on_send_message,
            "typing": self._on_typing,
            "ping": self._on_ping,
        }

    async def start(self) -> None:
        await self.delivery.start()

    async def stop(self) -> None:
        await self.delivery.stop()

    async def handle_raw(self, session: ConnectionSession, repo: ChatRepository, raw: str | bytes) -> None:
        """Parse one inbound frame and dispatch it."""
        if isinstance(raw, bytes):
            await self._send_error(session, ValidationFailure("Binary frames are not supported"))
            return
        try:
            inbound = WsInbound.model_validate_json(raw)
        except ValidationError:
            await self._send_error(session, ValidationFailure("Malformed event"))
            return
        await self.handle(session, repo, inbound)

    async def handle(self, session: ConnectionSession, repo: ChatRepository, inbound: WsInbound) -> None:
        """Dispatch one inbound event; errors go back to this session only."""
        handler = self._handlers.get(inbound.type)
        if handler is None:
            await self._send_error(session, ValidationFailure(f"Unknown event type: {inbound.type}"))
            return
        try:
            await handler(session, repo, inbound.data)
        except ValidationError as exc:
            await self._send_error(session, ValidationFailure(_first_error(exc)), inbound.type)
        except SpectrError as exc:
            await self._send_error(session, exc, inbound.type)
        except SQLAlchemyError:
            logger.error("Store error while handling %s for session %s", inbound.type, session.session_id, exc_info=True)
            await self._send_error(session, PersistenceFailure("Could not read from the message store"), inbound.type)

    async def disconnect(self, session: ConnectionSession) -> None:
        """Release a closed connection; safe to call more than once."""
        user_id = self.registry.user_for(session)
        went_offline = self.registry.unbind(session)
        session.rooms.clear()
        if user_id is None:
            return
        logger.info("Session %s of user %s disconnected", session.session_id, user_id)
        if went_offline:
            await self.delivery.broadcast(build_event("user_offline", {"user_id": user_id}))

    async def notify(self, user_ids: Iterable[str], event_type: str, data: dict[str, Any]) -> int:
        """Push a server-originated event (contact request, chat invite) to users."""
        return await self.delivery.push_to_users(user_ids, build_event(event_type, data))

    # --- handlers ------------------------------------------------------------------

    async def _on_identify(
        self,
        session: ConnectionSession,
        repo: ChatRepository,
        data: dict[str, Any],
    ) -> None:
        payload = IdentifyPayload.model_validate(data)
        if session.principal_id is None:
            raise UnauthenticatedError("Connection is not authenticated")
        if payload.user_id is not None and payload.user_id != session.principal_id:
            raise UnauthenticatedError("Identity does not match the access token")

        came_online = False
        if self.registry.user_for(session) is None:
            came_online = self.registry.bind(session.principal_id, session)
            logger.info("Session %s identified as user %s", session.session_id, session.principal_id)

        await session.send(
            build_event(
                "identified",
                {
                    "user_id": session.principal_id,
                    "session_id": session.session_id,
                    "online": self.registry.online_users(),
                },
            )
        )
        if came_online:
            await self.delivery.broadcast(build_event("user_online", {"user_id": session.principal_id}))

    async def _on_join_chat(
        self,
        session: ConnectionSession,
        repo: ChatRepository,
        data: dict[str, Any],
    ) -> None:
        user_id = self._require_identified(session)
        payload = ChatRefPayload.model_validate(data)
        await asyncio.to_thread(MembershipResolver(repo).require_member, payload.chat_id, user_id)
        session.rooms.add(payload.chat_id)
        await session.send(build_event("joined_chat", {"chat_id": payload.chat_id}))

    async def _on_leave_chat(
        self,
        session: ConnectionSession,
        repo: ChatRepository,
        data: dict[str, Any],
    ) -> None:
        self._require_identified(session)
        payload = ChatRefPayload.model_validate(data)
        session.rooms.discard(payload.chat_id)

    async def _on_send_message(
        self,
        session: ConnectionSession,
        repo: ChatRepository,
        data: dict[str, Any],
    ) -> None:
        user_id = self._require_identified(session)
        payload = SendMessagePayload.model_validate(data)
        message = await self.fanout.submit(
            repo,
            sender_id=user_id,
            chat_id=payload.chat_id,
            kind=payload.kind,
            content=payload.content,
            attachment_ref=payload.attachment_ref,
        )
        await session.send(
            build_event(
                "message_ack",
                {
                    "message_id": message.id,
                    "chat_id": message.chat_id,
                    "client_ref": payload.client_ref,
                },
            )
        )

    async def _on_typing(
        self,
        session: ConnectionSession,
        repo: ChatRepository,
        data: dict[str, Any],
    ) -> None:
        user_id = self._require_identified(session)
        payload = ChatRefPayload.model_validate(data)
        display_name, member_ids = await asyncio.to_thread(_typing_audience, repo, payload.chat_id, user_id)
        event = build_event(
            "user_typing",
            {
                "chat_id": payload.chat_id,
                "user_id": user_id,
                "display_name": display_name,
            },
        )
        await self.delivery.push_to_users(
            member_ids,
            event,
            room=payload.chat_id,
            exclude_session_id=session.session_id,
        )

    async def _on_ping(
        self,
        session: ConnectionSession,
        repo: ChatRepository,
        data: dict[str, Any],
    ) -> None:
        await session.send(build_event("pong", {}))

    # --- helpers -------------------------------------------------------------------

    def _require_identified(self, session: ConnectionSession) -> str:
        user_id = self.registry.user_for(session)
        if user_id is None:
            raise UnauthenticatedError("Send identify first")
        return user_id

    async def _send_error(
        self,
        session: ConnectionSession,
        error: SpectrError,
        event_type: str | None = None,
    ) -> None:
        if error.status_code >= 500:
            logger.error("Realtime %s failed for session %s: %s", event_type, session.session_id, error)
        await self.delivery.push_to_session(
            session,
            build_event("error", {"code": error.code, "detail": error.detail, "event": event_type}),
        )


def _typing_audience(repo: ChatRepository, chat_id: int, user_id: str) -> tuple[str | None, list[str]]:
    """Typist's display name and the chat's member ids; the typist must be a member."""
    resolver = MembershipResolver(repo)
    resolver.require_member(chat_id, user_id)
    user = repo.find_user_by_id(user_id)
    return (user.display_name if user else None), [member.user_id for member in resolver.resolve(chat_id)]


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid payload"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def build_gateway() -> RealtimeGateway:
    """Compose a gateway from settings."""
    registry = PresenceRegistry()
    delivery: LocalDelivery
    if settings.presence_backend == "redis":
        delivery = RedisDelivery(
            registry,
            write_timeout=settings.session_write_timeout_seconds,
            redis_url=settings.redis_url,
        )
    else:
        delivery = LocalDelivery(registry, write_timeout=settings.session_write_timeout_seconds)
    fanout = MessageFanout(
        delivery,
        persistence_timeout=settings.persistence_timeout_seconds,
        max_message_length=settings.max_message_length,
    )
    return RealtimeGateway(registry, delivery, fanout)


_gateway: RealtimeGateway | None = None


def get_realtime_gateway() -> RealtimeGateway:
    """Return the process-wide gateway."""
    global _gateway
    if _gateway is None:
        _gateway = build_gateway()
    return _gateway

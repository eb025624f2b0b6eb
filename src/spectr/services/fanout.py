"""Message submission: persist first, then deliver to every member's sessions."""

from __future__ import annotations

import asyncio
import logging
import time
import weakref
from collections.abc import Callable
from typing import Any, TypeVar

from spectr.core.errors import ForbiddenError, PersistenceFailure, ValidationFailure
from spectr.models import Message
from spectr.models.message import MESSAGE_KINDS, MESSAGE_TEXT
from spectr.repositories.chat_repo import ChatRepository
from spectr.schemas.message import MessageResponse, SenderProjection
from spectr.services.delivery import LocalDelivery, build_event
from spectr.services.membership import Member, MembershipResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")

NEW_MESSAGE_EVENT = "new_message"


def to_message_response(message: Message) -> MessageResponse:
    """Convert a Message ORM instance to its delivery payload."""
    return MessageResponse(
        id=message.id,
        chat_id=message.chat_id,
        sender_id=message.sender_id,
        kind=message.kind,
        content=message.content,
        attachment_url=message.attachment_url,
        created_at=message.created_at,
        sender=SenderProjection(
            id=message.sender_id,
            display_name=message.sender_name,
            avatar_url=message.sender_avatar_url,
        ),
    )


class MessageFanout:
    """Accepts message submissions and fans them out to chat members.

    Submissions to the same chat are serialized by a per-chat lock held from
    the membership check until every push has been handed to the sessions,
    so each session receives a chat's messages in id order. Different chats
    proceed independently.
    """

    def __init__(
        self,
        delivery: LocalDelivery,
        *,
        persistence_timeout: float,
        max_message_length: int,
    ) -> None:
        self.delivery = delivery
        self.persistence_timeout = persistence_timeout
        self.max_message_length = max_message_length
        self._chat_locks: weakref.WeakValueDictionary[int, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, chat_id: int) -> asyncio.Lock:
        lock = self._chat_locks.get(chat_id)
        if lock is None:
            lock = asyncio.Lock()
            self._chat_locks[chat_id] = lock
        return lock

    async def _store(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a blocking store read off the event loop with a deadline.

        A worker thread cannot be interrupted, so an overrunning call is still
        awaited before the failure is raised. The repository's session is never
        left in use by an abandoned thread.
        """
        task = asyncio.ensure_future(asyncio.to_thread(fn, *args, **kwargs))
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout=self.persistence_timeout)
        except TimeoutError as exc:
            await asyncio.wait({task})
            if not task.cancelled() and task.exception() is not None:
                logger.warning("Store call finished after its deadline with: %s", task.exception())
            raise PersistenceFailure("Timed out waiting for the message store") from exc

    def _validate(self, kind: str, content: str | None, attachment_ref: str | None) -> str | None:
        if kind not in MESSAGE_KINDS:
            raise ValidationFailure(f"Unknown message kind: {kind}")
        if content is not None and not content.strip():
            content = None
        if content is not None and len(content) > self.max_message_length:
            raise ValidationFailure(
                f"Message exceeds {self.max_message_length} characters"
            )
        if kind == MESSAGE_TEXT and content is None:
            raise ValidationFailure("Text messages need content")
        if kind != MESSAGE_TEXT and not attachment_ref:
            raise ValidationFailure(f"{kind} messages need an attachment")
        return content

    async def submit(
        self,
        repo: ChatRepository,
        *,
        sender_id: str,
        chat_id: int,
        kind: str,
        content: str | None = None,
        attachment_ref: str | None = None,
    ) -> Message:
        """Persist a message and deliver it to every member's live sessions.

        Args:
            repo: Repository bound to the caller's session.
            sender_id: Authenticated sender.
            chat_id: Target chat.
            kind: One of text, image, video, file.
            content: Text body or caption.
            attachment_ref: URL returned by the upload endpoint.

        Returns:
            The stored message with its sender projection.

        Raises:
            ValidationFailure: If the payload is malformed.
            NotFoundError: If the chat does not exist.
            ForbiddenError: If the sender is not a member of the chat.
            PersistenceFailure: If the write fails or times out; nothing is delivered.
        """
        content = self._validate(kind, content, attachment_ref)
        resolver = MembershipResolver(repo)

        async with self._lock_for(chat_id):
            deadline = time.monotonic() + self.persistence_timeout
            members = await self._store(resolver.resolve, chat_id)
            if not any(member.user_id == sender_id for member in members):
                raise ForbiddenError("Not a member of this chat")

            # The write is awaited to completion; the repository rolls back
            # instead of committing once the deadline has passed.
            message_id = await asyncio.to_thread(
                repo.insert_message,
                chat_id=chat_id,
                sender_id=sender_id,
                kind=kind,
                content=content,
                attachment_ref=attachment_ref,
                deadline=deadline,
            )
            message = await asyncio.to_thread(repo.fetch_message_with_sender, message_id)

            recipients = await self._recipients(resolver, chat_id, members)
            event = build_event(
                NEW_MESSAGE_EVENT,
                to_message_response(message).model_dump(mode="json"),
            )
            delivered = await self.delivery.push_to_users(
                (member.user_id for member in recipients),
                event,
            )

        logger.debug(
            "Message %s in chat %s delivered to %d session(s) of %d member(s)",
            message.id,
            chat_id,
            delivered,
            len(recipients),
        )
        return message

    async def _recipients(
        self,
        resolver: MembershipResolver,
        chat_id: int,
        validated: list[Member],
    ) -> list[Member]:
        """Membership as of fan-out time, falling back to the validated snapshot."""
        try:
            return await self._store(resolver.resolve, chat_id)
        except PersistenceFailure:
            logger.warning(
                "Could not re-read members of chat %s; delivering to validated snapshot",
                chat_id,
            )
            return validated

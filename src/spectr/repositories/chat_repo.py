"""Durable CRUD over users, contacts, chats, memberships, messages and reports."""
from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from sqlalchemy import desc, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from spectr.core.errors import ConflictError, NotFoundError, PersistenceFailure, SpectrError
from spectr.models import Chat, ChatMember, Contact, Message, Report, User
from spectr.models.chat import CHAT_PRIVATE, MEMBER_MEMBER, MEMBER_OWNER
from spectr.models.contact import CONTACT_ACCEPTED, CONTACT_PENDING
from spectr.models.report import REPORT_PENDING

__all__ = ["ChatRepository"]

logger = logging.getLogger(__name__)


class ChatRepository:
    """Thin wrapper around database access for the messaging entities.

    Every mutating method is one transaction: it commits before returning and
    rolls back everything it wrote if any statement fails.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    @contextmanager
    def _transaction(self, action: str) -> Iterator[None]:
        try:
            yield
            self.session.commit()
        except SpectrError:
            self.session.rollback()
            raise
        except IntegrityError as exc:
            self.session.rollback()
            logger.info("Integrity error during %s: %s", action, exc.orig)
            raise ConflictError(f"Conflicting data while trying to {action}") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("Database error during %s", action, exc_info=True)
            raise PersistenceFailure(f"Could not {action}") from exc

    # --- users ---------------------------------------------------------------------

    def create_user(
        self,
        *,
        external_id: str,
        email: str | None,
        display_name: str,
        avatar_url: str | None,
    ) -> User:
        """Insert a user created by a first successful external sign-in."""
        user = User(
            external_id=external_id,
            email=email.strip().lower() if email else None,
            display_name=display_name,
            avatar_url=avatar_url,
        )
        with self._transaction("create user"):
            self.session.add(user)
        self.session.refresh(user)
        return user

    def find_user_by_external_id(self, external_id: str) -> User | None:
        """Return the user linked to an OAuth subject."""
        return self.session.query(User).filter(User.external_id == external_id).first()

    def find_user_by_email(self, email: str) -> User | None:
        """Return the user registered with ``email`` (case-insensitive)."""
        return (
            self.session.query(User)
            .filter(User.email == email.strip().lower())
            .first()
        )

    def find_user_by_id(self, user_id: str) -> User | None:
        """Return a user by primary key."""
        return self.session.get(User, user_id)

    def find_users(self, user_ids: Iterable[str]) -> list[User]:
        """Return the users among ``user_ids`` that exist."""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return []
        return self.session.query(User).filter(User.id.in_(ids)).all()

    def update_profile(
        self,
        user: User,
        *,
        display_name: str | None = None,
        avatar_url: str | None = None,
    ) -> User:
        """Apply profile changes; identity fields never change."""
        with self._transaction("update profile"):
            if display_name is not None:
                user.display_name = display_name
            if avatar_url is not None:
                user.avatar_url = avatar_url
        self.session.refresh(user)
        return user

    # --- contacts ------------------------------------------------------------------

    def add_contact(self, user_id: str, contact_id: str, nickname: str | None) -> Contact:
        """Create a pending contact request from ``user_id`` to ``contact_id``."""
        existing = (
            self.session.query(Contact)
            .filter(
                or_(
                    (Contact.user_id == user_id) & (Contact.contact_id == contact_id),
                    (Contact.user_id == contact_id) & (Contact.contact_id == user_id),
                )
            )
            .first()
        )
        if existing is not None:
            raise ConflictError("Contact already exists or is pending")

        contact = Contact(
            user_id=user_id,
            contact_id=contact_id,
            nickname=nickname,
            status=CONTACT_PENDING,
        )
        with self._transaction("add contact"):
            self.session.add(contact)
        self.session.refresh(contact)
        return contact

    def find_contact(self, contact_row_id: int) -> Contact | None:
        """Return a contact row by id."""
        return self.session.get(Contact, contact_row_id)

    def accept_contact(self, contact: Contact) -> Contact:
        """Mark a pending request as accepted."""
        with self._transaction("accept contact"):
            contact.status = CONTACT_ACCEPTED
        self.session.refresh(contact)
        return contact

    def list_accepted_contacts(self, user_id: str) -> list[tuple[Contact, User]]:
        """Return accepted contacts of ``user_id`` paired with the other user."""
        rows = (
            self.session.query(Contact)
            .filter(
                Contact.status == CONTACT_ACCEPTED,
                or_(Contact.user_id == user_id, Contact.contact_id == user_id),
            )
            .order_by(Contact.id)
            .all()
        )
        others = {
            user.id: user
            for user in self.find_users(
                row.contact_id if row.user_id == user_id else row.user_id for row in rows
            )
        }
        result: list[tuple[Contact, User]] = []
        for row in rows:
            other_id = row.contact_id if row.user_id == user_id else row.user_id
            other = others.get(other_id)
            if other is not None:
                result.append((row, other))
        return result

    def list_pending_requests(self, user_id: str) -> list[tuple[Contact, User]]:
        """Return incoming requests awaiting ``user_id`` paired with the requester."""
        rows = (
            self.session.query(Contact, User)
            .join(User, User.id == Contact.user_id)
            .filter(Contact.contact_id == user_id, Contact.status == CONTACT_PENDING)
            .order_by(Contact.id)
            .all()
        )
        return [(contact, requester) for contact, requester in rows]

    # --- chats and membership ------------------------------------------------------

    def find_chat(self, chat_id: int) -> Chat | None:
        """Return a chat by id."""
        return self.session.get(Chat, chat_id)

    def create_chat(
        self,
        *,
        kind: str,
        name: str | None,
        created_by: str,
        member_ids: Iterable[str] = (),
        avatar_url: str | None = None,
    ) -> Chat:
        """Create a chat with its creator as owner and the given members.

        The chat row and every membership row are written in one transaction,
        so a failure leaves no chat behind.
        """
        chat = Chat(kind=kind, name=name, created_by=created_by, avatar_url=avatar_url)
        invited = [uid for uid in dict.fromkeys(member_ids) if uid != created_by]
        with self._transaction("create chat"):
            self.session.add(chat)
            self.session.flush()
            self.session.add(ChatMember(chat_id=chat.id, user_id=created_by, role=MEMBER_OWNER))
            for user_id in invited:
                self.session.add(ChatMember(chat_id=chat.id, user_id=user_id, role=MEMBER_MEMBER))
        self.session.refresh(chat)
        return chat

    def find_private_chat(self, user_a: str, user_b: str) -> Chat | None:
        """Return the existing private chat between two users, if any."""
        mine = select(ChatMember.chat_id).where(ChatMember.user_id == user_a)
        theirs = select(ChatMember.chat_id).where(ChatMember.user_id == user_b)
        return (
            self.session.query(Chat)
            .filter(Chat.kind == CHAT_PRIVATE, Chat.id.in_(mine), Chat.id.in_(theirs))
            .order_by(Chat.id)
            .first()
        )

    def add_member(self, chat_id: int, user_id: str, role: str = MEMBER_MEMBER) -> ChatMember:
        """Add ``user_id`` to a chat; a user belongs to a chat at most once."""
        if self.get_member(chat_id, user_id) is not None:
            raise ConflictError("User is already a member of this chat")
        member = ChatMember(chat_id=chat_id, user_id=user_id, role=role)
        with self._transaction("add member"):
            self.session.add(member)
        self.session.refresh(member)
        return member

    def get_member(self, chat_id: int, user_id: str) -> ChatMember | None:
        """Return the membership row of one user in one chat."""
        return self.session.get(ChatMember, (chat_id, user_id))

    def list_members(self, chat_id: int) -> list[ChatMember]:
        """Return memberships of a chat ordered by join time."""
        try:
            return (
                self.session.query(ChatMember)
                .filter(ChatMember.chat_id == chat_id)
                .order_by(ChatMember.joined_at, ChatMember.user_id)
                .all()
            )
        except SQLAlchemyError as exc:
            logger.error("Could not read members of chat %s", chat_id, exc_info=True)
            raise PersistenceFailure("Could not read chat membership") from exc

    def list_members_with_users(self, chat_id: int) -> list[tuple[ChatMember, User]]:
        """Return memberships of a chat together with the member profiles."""
        rows = (
            self.session.query(ChatMember, User)
            .join(User, User.id == ChatMember.user_id)
            .filter(ChatMember.chat_id == chat_id)
            .order_by(ChatMember.joined_at, ChatMember.user_id)
            .all()
        )
        return [(member, user) for member, user in rows]

    def list_chats_for_user(self, user_id: str) -> list[tuple[Chat, str]]:
        """Return the chats ``user_id`` belongs to with their role, newest first."""
        rows = (
            self.session.query(Chat, ChatMember.role)
            .join(ChatMember, ChatMember.chat_id == Chat.id)
            .filter(ChatMember.user_id == user_id)
            .order_by(desc(Chat.created_at), desc(Chat.id))
            .all()
        )
        return [(chat, role) for chat, role in rows]

    # --- messages ------------------------------------------------------------------

    def insert_message(
        self,
        *,
        chat_id: int,
        sender_id: str,
        kind: str,
        content: str | None,
        attachment_ref: str | None,
        deadline: float | None = None,
    ) -> int:
        """Persist a message and return its store-assigned id.

        The sender's current name and avatar are copied into the row in the
        same transaction. When ``deadline`` (a ``time.monotonic()`` value) has
        passed by the time the row is flushed, the transaction is rolled back
        and ``PersistenceFailure`` is raised instead of committing.
        """
        with self._transaction("store message"):
            sender = self.session.get(User, sender_id)
            if sender is None:
                raise NotFoundError("Sender not found")
            message = Message(
                chat_id=chat_id,
                sender_id=sender_id,
                kind=kind,
                content=content,
                attachment_url=attachment_ref,
                sender_name=sender.display_name,
                sender_avatar_url=sender.avatar_url,
            )
            self.session.add(message)
            self.session.flush()
            message_id = message.id
            if deadline is not None and time.monotonic() > deadline:
                raise PersistenceFailure("Timed out before the message was committed")
        return message_id

    def fetch_message_with_sender(self, message_id: int) -> Message:
        """Return a stored message including its sender projection."""
        try:
            message = self.session.get(Message, message_id, populate_existing=True)
        except SQLAlchemyError as exc:
            logger.error("Could not read message %s", message_id, exc_info=True)
            raise PersistenceFailure("Could not read message") from exc
        if message is None:
            raise NotFoundError("Message not found")
        return message

    def list_messages(
        self,
        chat_id: int,
        *,
        limit: int = 50,
        before: int | None = None,
    ) -> list[Message]:
        """Return a page of a chat's history, newest first."""
        query = self.session.query(Message).filter(Message.chat_id == chat_id)
        if before is not None:
            query = query.filter(Message.id < before)
        return query.order_by(desc(Message.id)).limit(limit).all()

    # --- reports -------------------------------------------------------------------

    def insert_report(
        self,
        *,
        reporter_id: str,
        reported_user_id: str,
        chat_id: int | None,
        reason: str,
    ) -> Report:
        """Store a new pending report."""
        report = Report(
            reporter_id=reporter_id,
            reported_user_id=reported_user_id,
            chat_id=chat_id,
            reason=reason,
            status=REPORT_PENDING,
        )
        with self._transaction("store report"):
            self.session.add(report)
        self.session.refresh(report)
        return report

    def find_report(self, report_id: int) -> Report | None:
        """Return a report by id."""
        return self.session.get(Report, report_id)

    def list_reports(self, status: str | None = None, limit: int = 100) -> list[Report]:
        """Return reports, newest first, optionally filtered by status."""
        query = self.session.query(Report)
        if status is not None:
            query = query.filter(Report.status == status)
        return query.order_by(desc(Report.id)).limit(limit).all()

    def update_report_status(self, report: Report, status: str) -> Report:
        """Record an admin decision on a report."""
        with self._transaction("update report"):
            report.status = status
        self.session.refresh(report)
        return report

"""SQLAlchemy models for chats and their membership."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from spectr.db.session import Base
from spectr.db.time import utcnow

CHAT_PRIVATE = "private"
CHAT_GROUP = "group"
CHAT_CHANNEL = "channel"
CHAT_KINDS = (CHAT_PRIVATE, CHAT_GROUP, CHAT_CHANNEL)

MEMBER_OWNER = "owner"
MEMBER_ADMIN = "admin"
MEMBER_MEMBER = "member"
MEMBER_ROLES = (MEMBER_OWNER, MEMBER_ADMIN, MEMBER_MEMBER)


class Chat(Base):
    """Conversation container; never deleted."""

    __tablename__ = "chat"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False, default=CHAT_PRIVATE)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(32), ForeignKey("user_account.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class ChatMember(Base):
    """Authoritative recipient set of a chat; one row per (chat, user)."""

    __tablename__ = "chat_member"

    chat_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("chat.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("user_account.id"),
        primary_key=True,
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=MEMBER_MEMBER)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

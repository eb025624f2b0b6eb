"""Models describing chat messages."""
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from spectr.db.session import Base
from spectr.db.time import utcnow

MESSAGE_TEXT = "text"
MESSAGE_IMAGE = "image"
MESSAGE_VIDEO = "video"
MESSAGE_FILE = "file"
MESSAGE_KINDS = (MESSAGE_TEXT, MESSAGE_IMAGE, MESSAGE_VIDEO, MESSAGE_FILE)


class Message(Base):
    """Immutable chat message.

    The autoincrement id is assigned by the store inside the insert and is the
    ordering key of a chat timeline. The sender name and avatar are copied at
    send time so delivery payloads and history show the sender as they were.
    """

    __tablename__ = "message"
    __table_args__ = (
        Index("ix_message_chat_id_id", "chat_id", "id"),
        # Never reuse ids of deleted rows on SQLite.
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chat_id: Mapped[int] = mapped_column(Integer, ForeignKey("chat.id"), nullable=False)
    sender_id: Mapped[str] = mapped_column(String(32), ForeignKey("user_account.id"), nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False, default=MESSAGE_TEXT)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachment_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    sender_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    sender_avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

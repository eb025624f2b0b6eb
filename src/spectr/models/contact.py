"""Contact requests and accepted contacts between users."""
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from spectr.db.session import Base
from spectr.db.time import utcnow

CONTACT_PENDING = "pending"
CONTACT_ACCEPTED = "accepted"


class Contact(Base):
    """Directed contact request from ``user_id`` to ``contact_id``."""

    __tablename__ = "contact"
    __table_args__ = (UniqueConstraint("user_id", "contact_id", name="uq_contact_pair"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(32), ForeignKey("user_account.id"), nullable=False)
    contact_id: Mapped[str] = mapped_column(String(32), ForeignKey("user_account.id"), nullable=False)
    # Label chosen by the requester; defaults to the contact's display name.
    nickname: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=CONTACT_PENDING)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

# src/spectr/models/report.py
"""Abuse reports filed by users."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from spectr.db.session import Base
from spectr.db.time import utcnow

REPORT_PENDING = "pending"
REPORT_REVIEWED = "reviewed"
REPORT_DISMISSED = "dismissed"
REPORT_STATUSES = (REPORT_PENDING, REPORT_REVIEWED, REPORT_DISMISSED)


class Report(Base):
    """Complaint about a user, optionally scoped to a chat."""

    __tablename__ = "report"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    reporter_id: Mapped[str] = mapped_column(String(32), ForeignKey("user_account.id"), nullable=False)
    reported_user_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("user_account.id"),
        nullable=False,
    )
    chat_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("chat.id"), nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    # pending -> reviewed | dismissed, set by an admin.
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=REPORT_PENDING)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

# src/spectr/models/__init__.py
"""SQLAlchemy models for the Spectr application."""

from .chat import Chat, ChatMember
from .contact import Contact
from .message import Message
from .report import Report
from .user import User

__all__ = [
    "Chat", "ChatMember",
    "Contact",
    "Message",
    "Report",
    "User",
]

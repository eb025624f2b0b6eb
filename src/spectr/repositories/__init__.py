"""Data access layer."""

from .chat_repo import ChatRepository

__all__ = ["ChatRepository"]

"""Resolve the authoritative member set of a chat."""
from __future__ import annotations

from dataclasses import dataclass

from spectr.core.errors import ForbiddenError, NotFoundError
from spectr.models.chat import MEMBER_ADMIN, MEMBER_OWNER
from spectr.repositories.chat_repo import ChatRepository


@dataclass(frozen=True)
class Member:
    """One member of a chat and the role they hold."""

    user_id: str
    role: str

    @property
    def can_manage(self) -> bool:
        return self.role in (MEMBER_OWNER, MEMBER_ADMIN)


class MembershipResolver:
    """Reads membership through the caller's session.

    Using the caller's session means rows written earlier in the same request
    (chat creation, invites) are visible to the resolution that follows.
    """

    def __init__(self, repo: ChatRepository) -> None:
        self.repo = repo

    def resolve(self, chat_id: int) -> list[Member]:
        """Return the members of ``chat_id`` ordered by join time.

        Raises:
            NotFoundError: If the chat does not exist. A chat without members
                resolves to an empty list.
        """
        if self.repo.find_chat(chat_id) is None:
            raise NotFoundError("Chat not found")
        return [Member(user_id=row.user_id, role=row.role) for row in self.repo.list_members(chat_id)]

    def member(self, chat_id: int, user_id: str) -> Member | None:
        """Return the membership of ``user_id`` or None; the chat must exist."""
        if self.repo.find_chat(chat_id) is None:
            raise NotFoundError("Chat not found")
        row = self.repo.get_member(chat_id, user_id)
        if row is None:
            return None
        return Member(user_id=row.user_id, role=row.role)

    def require_member(self, chat_id: int, user_id: str) -> Member:
        """Return the membership of ``user_id`` or raise ``ForbiddenError``."""
        member = self.member(chat_id, user_id)
        if member is None:
            raise ForbiddenError("Not a member of this chat")
        return member

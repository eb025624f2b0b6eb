"""Shared test doubles."""
from __future__ import annotations

from typing import Any

from spectr.core.security import create_access_token
from spectr.models import User
from spectr.services.presence import ConnectionSession


class RecordingSession(ConnectionSession):
    """Session that keeps every pushed event in memory."""

    def __init__(self, principal_id: str | None = None, *, fail: bool = False) -> None:
        super().__init__(principal_id=principal_id)
        self.events: list[dict[str, Any]] = []
        self.fail = fail

    async def send(self, event: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("client went away")
        self.events.append(event)

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [event for event in self.events if event["type"] == event_type]


def auth_headers(user: User) -> dict[str, str]:
    """Bearer headers for ``user``."""
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}

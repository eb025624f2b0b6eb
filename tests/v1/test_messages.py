# tests/v1/test_messages.py
"""Tests for message submission and history over HTTP."""

from fastapi import status
from fastapi.testclient import TestClient

from tests.support import auth_headers
from tests.support import RecordingSession


def _send(client, chat_id, headers, **payload):
    return client.post(f"/api/v1/chats/{chat_id}/messages", json=payload, headers=headers)


class TestSendMessage:
    def test_send_stores_and_fans_out(
        self, client: TestClient, registry, test_user, other_user, make_chat, auth_token
    ) -> None:
        chat = make_chat(test_user, other_user)
        bob_session = RecordingSession(other_user.id)
        registry.bind(other_user.id, bob_session)

        response = _send(client, chat.id, auth_token, content="hello")

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["content"] == "hello"
        assert data["sender"] == {"id": test_user.id, "display_name": "Alice", "avatar_url": None}
        pushed = bob_session.of_type("new_message")
        assert [event["data"]["id"] for event in pushed] == [data["id"]]

    def test_non_member_forbidden(self, client: TestClient, test_user, make_user, make_chat, repo) -> None:
        chat = make_chat(test_user)
        outsider = make_user()

        response = _send(client, chat.id, auth_headers(outsider), content="let me in")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert repo.list_messages(chat.id) == []

    def test_unknown_chat(self, client: TestClient, auth_token) -> None:
        response = _send(client, 12345, auth_token, content="hi")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_empty_text_rejected(self, client: TestClient, test_user, make_chat, auth_token) -> None:
        chat = make_chat(test_user)

        response = _send(client, chat.id, auth_token, content="")
        assert response.status_code == 422

    def test_attachment_message(self, client: TestClient, test_user, make_chat, auth_token) -> None:
        chat = make_chat(test_user)

        response = _send(client, chat.id, auth_token, kind="file", attachment_url="/uploads/1-a.pdf")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["attachment_url"] == "/uploads/1-a.pdf"


class TestHistory:
    def test_history_pages_newest_first(self, client: TestClient, test_user, other_user, make_chat, auth_token) -> None:
        chat = make_chat(test_user, other_user)
        ids = [_send(client, chat.id, auth_token, content=f"m{n}").json()["id"] for n in range(5)]

        first_page = client.get(f"/api/v1/chats/{chat.id}/messages", params={"limit": 2}, headers=auth_token).json()
        older = client.get(
            f"/api/v1/chats/{chat.id}/messages",
            params={"limit": 10, "before": first_page[-1]["id"]},
            headers=auth_token,
        ).json()

        assert [m["id"] for m in first_page] == ids[:-3:-1]
        assert [m["id"] for m in older] == list(reversed(ids[:3]))

    def test_hello_round_trip(self, client: TestClient, test_user, other_user, make_chat, other_auth_token, auth_token) -> None:
        chat = make_chat(test_user, other_user)
        sent = _send(client, chat.id, auth_token, content="hello").json()

        history = client.get(f"/api/v1/chats/{chat.id}/messages", headers=other_auth_token).json()

        assert history == [sent]

    def test_history_members_only(self, client: TestClient, test_user, make_user, make_chat) -> None:
        chat = make_chat(test_user)
        outsider = make_user()

        response = client.get(f"/api/v1/chats/{chat.id}/messages", headers=auth_headers(outsider))
        assert response.status_code == status.HTTP_403_FORBIDDEN

# tests/v1/test_chats.py
"""Tests for chat creation, membership and invitations."""

from fastapi import status
from fastapi.testclient import TestClient

from spectr.models import User
from tests.support import auth_headers
from tests.support import RecordingSession


class TestCreateChat:
    def test_create_group_with_members(
        self, client: TestClient, registry, test_user: User, other_user: User, make_user, auth_token
    ) -> None:
        carol = make_user("Carol")
        bob_session = RecordingSession(other_user.id)
        registry.bind(other_user.id, bob_session)

        response = client.post(
            "/api/v1/chats/",
            json={"name": "Friends", "member_ids": [other_user.id, carol.id, other_user.id]},
            headers=auth_token,
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["kind"] == "group"
        assert data["role"] == "owner"
        roles = {m["user_id"]: m["role"] for m in data["members"]}
        assert roles == {test_user.id: "owner", other_user.id: "member", carol.id: "member"}
        invite = bob_session.of_type("chat_invite")[0]["data"]
        assert invite["chat"]["id"] == data["id"]
        assert invite["invited_by"] == test_user.id

    def test_unknown_member_rejected_and_nothing_created(self, client: TestClient, auth_token) -> None:
        response = client.post(
            "/api/v1/chats/",
            json={"name": "Ghosts", "member_ids": ["ghost"]},
            headers=auth_token,
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert client.get("/api/v1/chats/", headers=auth_token).json() == []

    def test_list_chats_shows_role(self, client: TestClient, test_user, other_user, make_chat, auth_token) -> None:
        mine = make_chat(test_user, other_user, name="Mine")
        theirs = make_chat(other_user, test_user, name="Theirs")

        chats = client.get("/api/v1/chats/", headers=auth_token).json()

        roles = {chat["id"]: chat["role"] for chat in chats}
        assert roles == {mine.id: "owner", theirs.id: "member"}


class TestPrivateChat:
    def test_open_private_chat_creates_then_reuses(
        self, client: TestClient, test_user: User, other_user: User, auth_token, other_auth_token
    ) -> None:
        created = client.post("/api/v1/chats/private", json={"user_id": other_user.id}, headers=auth_token)
        reused = client.post("/api/v1/chats/private", json={"user_id": test_user.id}, headers=other_auth_token)

        assert created.status_code == status.HTTP_201_CREATED
        assert created.json()["kind"] == "private"
        assert reused.status_code == status.HTTP_200_OK
        assert reused.json()["id"] == created.json()["id"]
        assert reused.json()["role"] == "member"

    def test_private_chat_with_self_rejected(self, client: TestClient, test_user: User, auth_token) -> None:
        response = client.post("/api/v1/chats/private", json={"user_id": test_user.id}, headers=auth_token)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_private_chat_with_unknown_user(self, client: TestClient, auth_token) -> None:
        response = client.post("/api/v1/chats/private", json={"user_id": "ghost"}, headers=auth_token)
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestChatDetail:
    def test_member_sees_detail(self, client: TestClient, test_user, other_user, make_chat, auth_token) -> None:
        chat = make_chat(test_user, other_user)

        response = client.get(f"/api/v1/chats/{chat.id}", headers=auth_token)

        assert response.status_code == status.HTTP_200_OK
        assert {m["display_name"] for m in response.json()["members"]} == {"Alice", "Bob"}

    def test_outsider_forbidden(self, client: TestClient, test_user, make_user, make_chat) -> None:
        chat = make_chat(test_user)
        outsider = make_user()

        response = client.get(f"/api/v1/chats/{chat.id}", headers=auth_headers(outsider))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_chat(self, client: TestClient, auth_token) -> None:
        response = client.get("/api/v1/chats/999", headers=auth_token)
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestInviteMember:
    def test_owner_invites(self, client: TestClient, registry, test_user, other_user, make_chat, auth_token) -> None:
        chat = make_chat(test_user)
        bob_session = RecordingSession(other_user.id)
        registry.bind(other_user.id, bob_session)

        response = client.post(
            f"/api/v1/chats/{chat.id}/members",
            json={"user_id": other_user.id, "role": "admin"},
            headers=auth_token,
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["role"] == "admin"
        assert bob_session.of_type("chat_invite")[0]["data"]["chat"]["id"] == chat.id

    def test_plain_member_cannot_invite(
        self, client: TestClient, test_user, other_user, make_user, make_chat, other_auth_token
    ) -> None:
        chat = make_chat(test_user, other_user)
        carol = make_user()

        response = client.post(
            f"/api/v1/chats/{chat.id}/members",
            json={"user_id": carol.id},
            headers=other_auth_token,
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_existing_member_conflicts(self, client: TestClient, test_user, other_user, make_chat, auth_token) -> None:
        chat = make_chat(test_user, other_user)

        response = client.post(
            f"/api/v1/chats/{chat.id}/members",
            json={"user_id": other_user.id},
            headers=auth_token,
        )
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_private_chat_cannot_grow(
        self, client: TestClient, test_user, other_user, make_user, make_chat, auth_token
    ) -> None:
        chat = make_chat(test_user, other_user, kind="private", name=None)
        carol = make_user()

        response = client.post(
            f"/api/v1/chats/{chat.id}/members",
            json={"user_id": carol.id},
            headers=auth_token,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

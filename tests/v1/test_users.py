# tests/v1/test_users.py
"""Tests for profile endpoints."""

from fastapi import status
from fastapi.testclient import TestClient

from spectr.models import User


class TestProfile:
    def test_get_me(self, client: TestClient, test_user: User, auth_token: dict[str, str]) -> None:
        response = client.get("/api/v1/users/me", headers=auth_token)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["id"] == test_user.id
        assert data["display_name"] == "Alice"
        assert data["role"] == "user"

    def test_get_me_unauthenticated(self, client: TestClient) -> None:
        response = client.get("/api/v1/users/me")
        assert response.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}

    def test_update_display_name_only(
        self, client: TestClient, test_user: User, auth_token: dict[str, str], db_session
    ) -> None:
        response = client.patch("/api/v1/users/me", json={"display_name": "  Alicia "}, headers=auth_token)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["display_name"] == "Alicia"
        db_session.refresh(test_user)
        assert test_user.display_name == "Alicia"
        assert test_user.avatar_url is None

    def test_update_avatar(self, client: TestClient, auth_token: dict[str, str]) -> None:
        response = client.patch(
            "/api/v1/users/me",
            json={"avatar_url": "/uploads/1-me.png"},
            headers=auth_token,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["avatar_url"] == "/uploads/1-me.png"
        assert response.json()["display_name"] == "Alice"

    def test_blank_display_name_rejected(self, client: TestClient, auth_token: dict[str, str]) -> None:
        response = client.patch("/api/v1/users/me", json={"display_name": "   "}, headers=auth_token)
        assert response.status_code == 422


class TestPublicProfile:
    def test_read_other_user(self, client: TestClient, other_user: User, auth_token: dict[str, str]) -> None:
        response = client.get(f"/api/v1/users/{other_user.id}", headers=auth_token)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"id": other_user.id, "display_name": "Bob", "avatar_url": None}

    def test_unknown_user(self, client: TestClient, auth_token: dict[str, str]) -> None:
        response = client.get("/api/v1/users/does-not-exist", headers=auth_token)
        assert response.status_code == status.HTTP_404_NOT_FOUND

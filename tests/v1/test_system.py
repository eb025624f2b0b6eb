"""Tests for system endpoints."""

from fastapi import status
from fastapi.testclient import TestClient

from tests.support import RecordingSession


def test_system_config(client: TestClient) -> None:
    r = client.get("/api/v1/system/config")
    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert data["messages"]["kinds"] == ["text", "image", "video", "file"]
    assert data["realtime"]["path"] == "/api/v1/ws"
    assert "secret_key" not in str(data)


def test_presence_lists_online_users(client: TestClient, registry, test_user, other_user, auth_token) -> None:
    registry.bind(other_user.id, RecordingSession(other_user.id))

    r = client.get("/api/v1/system/presence", headers=auth_token)

    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"online": [other_user.id]}


def test_presence_requires_auth(client: TestClient) -> None:
    r = client.get("/api/v1/system/presence")
    assert r.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}

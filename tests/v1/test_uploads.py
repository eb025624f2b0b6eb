# tests/v1/test_uploads.py
"""Tests for attachment uploads."""

from fastapi import status
from fastapi.testclient import TestClient


def test_upload_returns_reference(client: TestClient, file_storage, auth_token) -> None:
    response = client.post(
        "/api/v1/uploads/",
        files={"file": ("cat photo.png", b"\x89PNG\r\n", "image/png")},
        headers=auth_token,
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["kind"] == "image"
    assert data["url"].startswith("/uploads/")
    assert data["url"].endswith("-cat_photo.png")
    assert data["size"] == 6
    assert (file_storage.root / data["url"].rsplit("/", 1)[1]).exists()


def test_upload_too_large(client: TestClient, file_storage, auth_token) -> None:
    response = client.post(
        "/api/v1/uploads/",
        files={"file": ("big.bin", b"x" * 2048, "application/octet-stream")},
        headers=auth_token,
    )
    assert response.status_code == 422


def test_upload_requires_auth(client: TestClient, file_storage) -> None:
    response = client.post("/api/v1/uploads/", files={"file": ("a.txt", b"a", "text/plain")})
    assert response.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}

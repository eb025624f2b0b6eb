# tests/v1/test_realtime_ws.py
"""End-to-end tests for the realtime WebSocket route."""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from spectr.api.v1.endpoints.realtime import WS_CLOSE_UNAUTHENTICATED
from spectr.core.security import create_access_token


def _url(user) -> str:
    return f"/api/v1/ws?token={create_access_token(user.id)}"


def _identify(ws) -> dict:
    ws.send_json({"type": "identify", "data": {}})
    identified = ws.receive_json()
    assert identified["type"] == "identified"
    return identified


@pytest.mark.parametrize("query", ["", "?token=garbage"])
def test_invalid_token_is_rejected_before_accept(client: TestClient, query: str) -> None:
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/api/v1/ws{query}"):
            pass
    assert exc_info.value.code == WS_CLOSE_UNAUTHENTICATED


def test_token_for_deleted_user_is_rejected(client: TestClient) -> None:
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/api/v1/ws?token={create_access_token('ghost')}"):
            pass
    assert exc_info.value.code == WS_CLOSE_UNAUTHENTICATED


def test_chat_events_before_identify_get_error(client: TestClient, test_user, make_chat, repo) -> None:
    chat = make_chat(test_user)

    with client.websocket_connect(_url(test_user)) as ws:
        ws.send_json({"type": "send_message", "data": {"chat_id": chat.id, "content": "too early"}})
        error = ws.receive_json()

    assert error["type"] == "error"
    assert error["data"]["code"] == "unauthenticated"
    assert repo.list_messages(chat.id) == []


def test_ping_pong(client: TestClient, test_user) -> None:
    with client.websocket_connect(_url(test_user)) as ws:
        ws.send_json({"type": "ping", "data": {}})
        assert ws.receive_json() == {"type": "pong", "data": {}}


def test_message_flow_between_two_users(client: TestClient, registry, test_user, other_user, make_chat) -> None:
    chat = make_chat(test_user, other_user)

    with client.websocket_connect(_url(test_user)) as ws_a:
        assert _identify(ws_a)["data"]["user_id"] == test_user.id
        assert ws_a.receive_json() == {"type": "user_online", "data": {"user_id": test_user.id}}

        with client.websocket_connect(_url(other_user)) as ws_b:
            identified = _identify(ws_b)
            assert sorted(identified["data"]["online"]) == sorted([test_user.id, other_user.id])
            assert ws_b.receive_json()["type"] == "user_online"
            assert ws_a.receive_json() == {"type": "user_online", "data": {"user_id": other_user.id}}

            ws_a.send_json(
                {
                    "type": "send_message",
                    "data": {"chat_id": chat.id, "content": "hello", "client_ref": "r1"},
                }
            )
            echoed = ws_a.receive_json()
            ack = ws_a.receive_json()
            delivered = ws_b.receive_json()

            assert echoed["type"] == "new_message"
            assert ack == {
                "type": "message_ack",
                "data": {"message_id": echoed["data"]["id"], "chat_id": chat.id, "client_ref": "r1"},
            }
            assert delivered == echoed
            assert delivered["data"]["content"] == "hello"

        assert ws_a.receive_json() == {"type": "user_offline", "data": {"user_id": other_user.id}}

    assert registry.online_users() == []


def test_identify_claiming_other_user_is_refused(client: TestClient, registry, test_user, other_user) -> None:
    with client.websocket_connect(_url(test_user)) as ws:
        ws.send_json({"type": "identify", "data": {"user_id": other_user.id}})
        error = ws.receive_json()

        assert error["type"] == "error"
        assert error["data"]["code"] == "unauthenticated"
        assert registry.online_users() == []


def test_malformed_frame_keeps_connection_open(client: TestClient, test_user) -> None:
    with client.websocket_connect(_url(test_user)) as ws:
        ws.send_text("{not json")
        assert ws.receive_json()["data"]["code"] == "invalid"
        ws.send_json({"type": "ping", "data": {}})
        assert ws.receive_json()["type"] == "pong"


def test_binary_frame_keeps_connection_open(client: TestClient, test_user) -> None:
    with client.websocket_connect(_url(test_user)) as ws:
        ws.send_bytes(b"\x00\x01")
        error = ws.receive_json()
        assert error["type"] == "error"
        assert error["data"]["code"] == "invalid"
        ws.send_json({"type": "ping", "data": {}})
        assert ws.receive_json()["type"] == "pong"

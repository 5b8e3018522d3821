"""
End-to-end chat flows over the WebSocket endpoints.

Each test runs the full app (lifespan, container, notifier writer tasks)
through Starlette's TestClient.
"""

import json

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from uschika.app.factory import create_app


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def _login(ws, token: str) -> dict:
    ws.send_json({"type": "login", "token": token})
    event = ws.receive_json()
    assert event["event_type"] == "loginSuccess"
    return event


def _match(first, second) -> str:
    first.send_json({"type": "search"})
    assert first.receive_json()["event_type"] == "searching"
    second.send_json({"type": "search"})
    second_event = second.receive_json()
    first_event = first.receive_json()
    assert second_event["event_type"] == first_event["event_type"] == "matched"
    assert second_event["data"]["room_id"] == first_event["data"]["room_id"]
    return first_event["data"]["room_id"]


class TestChatFlow:
    def test_match_relay_and_end(self, app, client, token_for):
        with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
            alice_login = _login(alice, token_for("alice@usc.edu.ph", "Alice"))
            bob_login = _login(bob, token_for("bob@usc.edu.ph"))
            assert alice_login["data"]["display_name"] == "Alice"
            assert bob_login["data"]["display_name"] == "bob"

            room_id = _match(alice, bob)
            assert room_id.startswith("room-")

            health = client.get("/health").json()
            assert health["active_sessions"] == 1
            assert health["waiting"] == 0

            bob.send_json({"type": "sendMessage", "content": "  hi there  "})
            received = alice.receive_json()
            assert received["event_type"] == "receiveMessage"
            assert received["data"]["content"] == "hi there"
            assert received["data"]["sender"] == bob_login["data"]["user_ref"]
            assert isinstance(received["data"]["timestamp"], int)

            bob.send_json({"type": "endChat"})
            ended = alice.receive_json()
            assert ended["event_type"] == "partnerDisconnected"
            assert client.get("/health").json()["active_sessions"] == 0

            # both are idle again and can match anew
            _match(alice, bob)

    def test_partner_disconnect(self, client, token_for):
        with client.websocket_connect("/api/ws") as alice:
            _login(alice, token_for("alice@usc.edu.ph"))
            with client.websocket_connect("/api/ws") as bob:
                _login(bob, token_for("bob@usc.edu.ph"))
                _match(alice, bob)

            assert alice.receive_json()["event_type"] == "partnerDisconnected"

    def test_stop_search(self, client, token_for):
        with client.websocket_connect("/ws") as alice:
            _login(alice, token_for("alice@usc.edu.ph"))
            alice.send_json({"type": "search"})
            assert alice.receive_json()["event_type"] == "searching"

            alice.send_json({"type": "stopSearch"})
            assert alice.receive_json()["event_type"] == "searchStopped"
            assert client.get("/health").json()["waiting"] == 0


class TestRejections:
    def test_search_before_login_is_unauthorized(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "search"})
            assert ws.receive_json()["event_type"] == "unauthorized"

            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()
            assert exc_info.value.code == 1008

    def test_bad_token_is_unauthorized(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "login", "token": "not-a-jwt"})
            assert ws.receive_json()["event_type"] == "unauthorized"

            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()

    def test_invalid_frames_keep_connection_open(self, client, token_for):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("{not json")
            error = ws.receive_json()
            assert error["event_type"] == "error"
            assert error["data"]["error_type"] == "invalid_format"

            ws.send_text(json.dumps({"type": "teleport"}))
            assert ws.receive_json()["data"]["error_type"] == "invalid_event_type"

            _login(ws, token_for("alice@usc.edu.ph"))

    def test_oversized_message_rejected(self, client, token_for):
        with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
            _login(alice, token_for("alice@usc.edu.ph"))
            _login(bob, token_for("bob@usc.edu.ph"))
            _match(alice, bob)

            alice.send_json({"type": "sendMessage", "content": "x" * 1001})
            error = alice.receive_json()
            assert error["event_type"] == "error"
            assert error["data"]["error_type"] == "invalid_content"

            alice.send_json({"type": "sendMessage", "content": "ok"})
            assert bob.receive_json()["data"]["content"] == "ok"

"""WebSocket tests for the realtime notification socket."""

import pytest

from infrastructure.notifications.channels.realtime import RealtimeChannel
from infrastructure.notifications.models import Channel

pytestmark = pytest.mark.unit


def _submit_high(client, title="Order placed"):
    response = client.post(
        "/api/v1/notifications",
        json={
            "type": "order_placed",
            "user_id": "user-123",
            "title": title,
            "body": "Your order #1042 has been placed",
            "priority": "high",
        },
    )
    return response.json()["notification_id"]


class TestConnection:
    def test_connected_event(self, client, api_service):
        with client.websocket_connect("/api/v1/ws/user-123") as ws:
            event = ws.receive_json()

            assert event["type"] == "connected"
            assert event["user_id"] == "user-123"
            assert event["unread_count"] == 0
            assert api_service.sessions.is_online("user-123")

        assert not api_service.sessions.is_online("user-123")

    def test_ping(self, client):
        with client.websocket_connect("/api/v1/ws/user-123") as ws:
            ws.receive_json()
            ws.send_json({"type": "ping"})
            assert ws.receive_json()["type"] == "pong"

    def test_invalid_json(self, client):
        with client.websocket_connect("/api/v1/ws/user-123") as ws:
            ws.receive_json()
            ws.send_text("{not json")
            assert ws.receive_json()["message"] == "Invalid JSON"

    def test_non_object_message(self, client):
        with client.websocket_connect("/api/v1/ws/user-123") as ws:
            ws.receive_json()
            ws.send_json(["ping"])
            assert ws.receive_json()["message"] == "Expected a JSON object"

    def test_unknown_message_type(self, client):
        with client.websocket_connect("/api/v1/ws/user-123") as ws:
            ws.receive_json()
            ws.send_json({"type": "subscribe"})

            event = ws.receive_json()

            assert event["type"] == "error"
            assert event["message"] == "Unknown message type: subscribe"


class TestMarkRead:
    def test_mark_read(self, client):
        notification_id = _submit_high(client)

        with client.websocket_connect("/api/v1/ws/user-123") as ws:
            assert ws.receive_json()["unread_count"] == 1
            ws.send_json({"type": "mark_read", "notification_id": notification_id})

            event = ws.receive_json()

        assert event["type"] == "notification_read"
        assert event["notification_id"] == notification_id
        assert event["read_at"] is not None

    def test_mark_read_requires_id(self, client):
        with client.websocket_connect("/api/v1/ws/user-123") as ws:
            ws.receive_json()
            ws.send_json({"type": "mark_read"})
            assert ws.receive_json()["message"] == "notification_id is required"

    def test_mark_read_of_other_user(self, client):
        notification_id = _submit_high(client)

        with client.websocket_connect("/api/v1/ws/user-999") as ws:
            ws.receive_json()
            ws.send_json({"type": "mark_read", "notification_id": notification_id})

            event = ws.receive_json()

        assert event["type"] == "error"
        assert "not found" in event["message"]


class TestLiveDelivery:
    def test_notification_pushed_to_open_socket(self, client, api_service, mock_channels):
        mock_channels[Channel.REALTIME] = RealtimeChannel(api_service.sessions)

        with client.websocket_connect("/api/v1/ws/user-123") as ws:
            ws.receive_json()
            notification_id = _submit_high(client, title="Rider assigned")

            message = ws.receive_json()
            before_ack = client.get(f"/api/v1/notifications/{notification_id}").json()
            ws.send_json({"type": "ack", "message_id": message["message_id"]})
            ack = ws.receive_json()

        assert message["type"] == "notification"
        assert message["data"]["id"] == notification_id
        assert message["data"]["title"] == "Rider assigned"
        assert before_ack["status"] == "sent"
        assert ack["type"] == "acknowledged"
        assert ack["notification_id"] == notification_id
        assert ack["status"] == "delivered"
        status = client.get(f"/api/v1/notifications/{notification_id}").json()
        assert status["status"] == "delivered"


class TestAck:
    def test_ack_requires_message_id(self, client):
        with client.websocket_connect("/api/v1/ws/user-123") as ws:
            ws.receive_json()
            ws.send_json({"type": "ack"})
            assert ws.receive_json()["message"] == "message_id is required"

    def test_ack_of_message_from_other_session(self, client):
        notification_id = _submit_high(client)

        with client.websocket_connect("/api/v1/ws/user-123") as ws:
            ws.receive_json()
            ws.send_json({"type": "ack", "message_id": f"ws:other:{notification_id}"})

            event = ws.receive_json()

        assert event["type"] == "error"
        assert event["message"].startswith("Unknown message_id")
        status = client.get(f"/api/v1/notifications/{notification_id}").json()
        assert status["status"] == "sent"

"""Route tests for notification submission, status and inbox endpoints."""

import pytest

from infrastructure.notifications.models import Channel, DeliveryResult

pytestmark = pytest.mark.unit


def _payload(**overrides):
    payload = {
        "type": "order_placed",
        "user_id": "user-123",
        "title": "Order placed",
        "body": "Your order #1042 has been placed",
        "data": {"orderNumber": "1042", "orderId": "o-1042"},
    }
    payload.update(overrides)
    return payload


def _submit(client, **overrides):
    response = client.post("/api/v1/notifications", json=_payload(**overrides))
    assert response.status_code == 202
    return response.json()["notification_id"]


class TestSubmit:
    def test_medium_priority_is_queued(self, client, api_service):
        notification_id = _submit(client)

        body = client.get(f"/api/v1/notifications/{notification_id}").json()
        assert body["status"] == "pending"
        assert api_service.queue_depth() == 1

    def test_high_priority_dispatched_before_response(self, client, mock_channels):
        notification_id = _submit(client, priority="high")

        status = client.get(f"/api/v1/notifications/{notification_id}/status").json()
        assert status["status"] == "sent"
        assert {a["channel"] for a in status["attempts"]} == {"realtime", "push", "sms"}
        mock_channels[Channel.SMS].send.assert_called_once()

    def test_idempotency_key_returns_first_id(self, client):
        first = _submit(client, idempotency_key="order-1042-placed")
        second = _submit(client, idempotency_key="order-1042-placed")
        assert first == second

    @pytest.mark.parametrize(
        "overrides",
        [
            {"type": "unknown_type"},
            {"priority": "urgent"},
            {"user_id": ""},
            {"channels": ["fax"]},
        ],
    )
    def test_invalid_payload_rejected(self, client, overrides):
        response = client.post("/api/v1/notifications", json=_payload(**overrides))
        assert response.status_code == 422


class TestBulk:
    def test_bulk_submit(self, client, api_service):
        response = client.post(
            "/api/v1/notifications/bulk",
            json={"notifications": [_payload(user_id=f"user-{i}") for i in range(3)]},
        )

        assert response.status_code == 202
        assert response.json()["count"] == 3
        assert api_service.queue_depth() == 3

    def test_bulk_over_limit_rejected(self, client, api_service):
        response = client.post(
            "/api/v1/notifications/bulk",
            json={"notifications": [_payload() for _ in range(4)]},
        )

        assert response.status_code == 413
        assert "exceeds limit of 3" in response.json()["detail"]
        assert api_service.queue_depth() == 0

    def test_empty_bulk_rejected(self, client):
        response = client.post("/api/v1/notifications/bulk", json={"notifications": []})
        assert response.status_code == 422


class TestLifecycle:
    def test_unknown_notification(self, client):
        response = client.get("/api/v1/notifications/missing")

        assert response.status_code == 404
        assert response.json() == {"detail": "Notification 'missing' not found"}

    def test_cancel_queued(self, client, api_service):
        notification_id = _submit(client)

        response = client.post(f"/api/v1/notifications/{notification_id}/cancel")

        assert response.json() == {"notification_id": notification_id, "cancelled": True}
        assert api_service.queue_depth() == 0

    def test_cancel_after_send(self, client):
        notification_id = _submit(client, priority="high")
        response = client.post(f"/api/v1/notifications/{notification_id}/cancel")
        assert response.json()["cancelled"] is False

    def test_retry_requires_failed(self, client):
        notification_id = _submit(client, priority="high")

        response = client.post(f"/api/v1/notifications/{notification_id}/retry")

        assert response.status_code == 409

    def test_retry_failed_notification(self, client, mock_channels):
        for adapter in mock_channels.values():
            adapter.send.return_value = DeliveryResult.failed(
                adapter.channel, "rejected", retryable=False
            )
        notification_id = _submit(client, priority="high")
        assert client.get(f"/api/v1/notifications/{notification_id}").json()["status"] == (
            "failed"
        )

        response = client.post(f"/api/v1/notifications/{notification_id}/retry")

        assert response.status_code == 202
        retry_id = response.json()["notification_id"]
        assert retry_id != notification_id
        assert client.get(f"/api/v1/notifications/{retry_id}").json()["status"] == "pending"


class TestInbox:
    def test_read_tracking(self, client):
        notification_id = _submit(client, priority="high")
        _submit(client, priority="high")

        unread = client.get("/api/v1/users/user-123/notifications/unread-count").json()
        assert unread == {"user_id": "user-123", "unread_count": 2}

        read = client.post(f"/api/v1/notifications/{notification_id}/read").json()
        assert read["status"] == "read"
        assert read["read_at"] is not None

        updated = client.post("/api/v1/users/user-123/notifications/read-all").json()
        assert updated == {"user_id": "user-123", "updated": 1}

    def test_read_by_other_user_is_not_found(self, client):
        notification_id = _submit(client, priority="high")

        response = client.post(
            f"/api/v1/notifications/{notification_id}/read", params={"user_id": "user-999"}
        )

        assert response.status_code == 404

    def test_read_before_send_conflicts(self, client):
        notification_id = _submit(client)
        response = client.post(f"/api/v1/notifications/{notification_id}/read")
        assert response.status_code == 409

    def test_list_with_filters_and_paging(self, client):
        for _ in range(3):
            _submit(client, priority="high")
        _submit(client, type="promotional_offer")

        listing = client.get(
            "/api/v1/users/user-123/notifications", params={"limit": 2}
        ).json()
        assert len(listing["notifications"]) == 2
        assert listing["unread_count"] == 3
        assert (listing["limit"], listing["offset"]) == (2, 0)

        pending = client.get(
            "/api/v1/users/user-123/notifications", params={"status": "pending"}
        ).json()
        assert [n["type"] for n in pending["notifications"]] == ["promotional_offer"]

    def test_list_limit_validated(self, client):
        response = client.get("/api/v1/users/user-123/notifications", params={"limit": 0})
        assert response.status_code == 422


class TestTemplates:
    def test_register_and_list(self, client):
        template = {
            "id": "ignored",
            "name": "Order placed SMS",
            "channel": "sms",
            "type": "order_placed",
            "body_template": "QuickBite: order #{{ orderNumber }} confirmed",
        }

        first = client.put("/api/v1/templates/order_placed_sms", json=template).json()
        second = client.put("/api/v1/templates/order_placed_sms", json=template).json()

        assert first["id"] == "order_placed_sms"
        assert second["version"] == first["version"] + 1
        listed = client.get("/api/v1/templates").json()
        assert [t["id"] for t in listed] == ["order_placed_sms"]

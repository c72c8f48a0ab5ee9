"""Integration tests for the payment verification and webhook endpoints."""

import hashlib
import hmac
import json
from typing import Any, Callable
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from tests.fakes import ITEM_A_ID, FakeSupabaseClient

VERIFY_URL = "/api/v1/payments/verify"
WEBHOOK_URL = "/api/v1/payments/webhook"


def hmac_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


@pytest.fixture
def intent(
    client: TestClient,
    login: Callable[..., Any],
    seeded_catalog: FakeSupabaseClient,
    gateway_orders: MagicMock,
) -> dict[str, Any]:
    """Checkout intent created through the API with the SAVE10 coupon."""
    seeded_catalog.seed(
        "coupons",
        {"code": "SAVE10", "discount_type": "fixed", "discount_value": 30, "usage_count": 0, "is_active": True},
    )
    login("alice@example.com")
    response = client.post(
        "/api/v1/orders",
        json={
            "name": "Alice",
            "address": "12 MG Road, Bengaluru",
            "cart": [{"item_id": ITEM_A_ID, "size": "Large"}],
            "coupon_code": "save10",
        },
    )
    assert response.status_code == 201
    return response.json()


def callback(intent: dict[str, Any], payment_id: str = "pay_001", **overrides: Any) -> dict[str, Any]:
    body = {
        "razorpay_order_id": intent["gateway_order_id"],
        "razorpay_payment_id": payment_id,
        "razorpay_signature": hmac_hex(
            "test_key_secret", f"{intent['gateway_order_id']}|{payment_id}".encode("utf-8")
        ),
        "security_hash": intent["security_hash"],
        "order_id": intent["order"]["id"],
    }
    body.update(overrides)
    return body


class TestVerifyPayment:
    """Tests for POST /api/v1/payments/verify."""

    def test_checkout_end_to_end(
        self, client: TestClient, intent: dict[str, Any], seeded_catalog: FakeSupabaseClient
    ) -> None:
        assert intent["amount"] == 28300
        assert intent["order"]["discount_amount"] == 30

        response = client.post(VERIFY_URL, json=callback(intent))

        assert response.status_code == 200
        assert response.json() == {"success": True}

        status = client.get(f"/api/v1/orders/{intent['order']['id']}/status").json()
        assert status == {"status": "placed", "payment_status": "verified"}
        assert seeded_catalog.find("coupons", code="SAVE10")["usage_count"] == 1

        history = client.get("/api/v1/orders").json()["items"]
        assert [order["id"] for order in history] == [intent["order"]["id"]]

    def test_replayed_callback_counts_coupon_once(
        self, client: TestClient, intent: dict[str, Any], seeded_catalog: FakeSupabaseClient
    ) -> None:
        first = client.post(VERIFY_URL, json=callback(intent))
        second = client.post(VERIFY_URL, json=callback(intent))

        assert first.status_code == 200
        assert second.status_code == 200
        assert seeded_catalog.find("coupons", code="SAVE10")["usage_count"] == 1

    def test_bad_signature_returns_400(
        self, client: TestClient, intent: dict[str, Any], seeded_catalog: FakeSupabaseClient
    ) -> None:
        response = client.post(VERIFY_URL, json=callback(intent, razorpay_signature="0" * 64))

        assert response.status_code == 400
        assert response.json()["error"] == "integrity_error"
        stored = seeded_catalog.find("orders", id=intent["order"]["id"])
        assert stored["payment_status"] == "pending"

    def test_tampered_fingerprint_returns_400(
        self, client: TestClient, intent: dict[str, Any], seeded_catalog: FakeSupabaseClient
    ) -> None:
        response = client.post(VERIFY_URL, json=callback(intent, security_hash="a" * 64))

        assert response.status_code == 400
        assert response.json()["message"] == "Order tampering detected"
        assert seeded_catalog.find("coupons", code="SAVE10")["usage_count"] == 0

    def test_unknown_order_returns_404(self, client: TestClient, intent: dict[str, Any]) -> None:
        other = {**intent, "gateway_order_id": "order_unknown"}

        response = client.post(VERIFY_URL, json=callback(other))

        assert response.status_code == 404

    def test_malformed_order_id_returns_400(
        self, client: TestClient, intent: dict[str, Any], seeded_catalog: FakeSupabaseClient
    ) -> None:
        response = client.post(VERIFY_URL, json=callback(intent, order_id="abc"))

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert seeded_catalog.find("orders", id=intent["order"]["id"])["payment_status"] == "pending"

    def test_missing_fields_return_400(self, client: TestClient) -> None:
        response = client.post(VERIFY_URL, json={"razorpay_order_id": "order_1"})

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestWebhook:
    """Tests for POST /api/v1/payments/webhook."""

    def _post(self, client: TestClient, event: dict[str, Any], secret: str = "test_webhook_secret") -> Any:
        body = json.dumps(event).encode("utf-8")
        return client.post(
            WEBHOOK_URL,
            content=body,
            headers={"content-type": "application/json", "x-razorpay-signature": hmac_hex(secret, body)},
        )

    def test_captured_completes_unverified_order(
        self, client: TestClient, intent: dict[str, Any], seeded_catalog: FakeSupabaseClient
    ) -> None:
        event = {
            "event": "payment.captured",
            "payload": {"payment": {"entity": {"id": "pay_hook", "order_id": intent["gateway_order_id"]}}},
        }

        response = self._post(client, event)

        assert response.status_code == 200
        assert response.json() == {"status": "received"}
        stored = seeded_catalog.find("orders", id=intent["order"]["id"])
        assert stored["payment_status"] == "completed"
        assert stored["status"] == "placed"
        assert stored["webhook_received"] is True
        assert seeded_catalog.find("coupons", code="SAVE10")["usage_count"] == 1

    def test_failed_marks_pending_order(
        self, client: TestClient, intent: dict[str, Any], seeded_catalog: FakeSupabaseClient
    ) -> None:
        event = {
            "event": "payment.failed",
            "payload": {"payment": {"entity": {"id": "pay_hook", "order_id": intent["gateway_order_id"]}}},
        }

        response = self._post(client, event)

        assert response.status_code == 200
        assert seeded_catalog.find("orders", id=intent["order"]["id"])["payment_status"] == "failed"

    def test_unknown_event_is_acknowledged(self, client: TestClient) -> None:
        response = self._post(client, {"event": "refund.processed", "payload": {}})

        assert response.status_code == 200

    def test_null_payload_is_acknowledged(
        self, client: TestClient, intent: dict[str, Any], seeded_catalog: FakeSupabaseClient
    ) -> None:
        response = self._post(client, {"event": "payment.captured", "payload": None})

        assert response.status_code == 200
        assert response.json() == {"status": "received"}
        assert seeded_catalog.find("orders", id=intent["order"]["id"])["payment_status"] == "pending"

    def test_signed_array_body_is_acknowledged(self, client: TestClient) -> None:
        body = b'["payment.captured"]'

        response = client.post(
            WEBHOOK_URL,
            content=body,
            headers={"content-type": "application/json", "x-razorpay-signature": hmac_hex("test_webhook_secret", body)},
        )

        assert response.status_code == 200

    def test_wrong_secret_returns_400(self, client: TestClient, intent: dict[str, Any]) -> None:
        response = self._post(client, {"event": "payment.captured"}, secret="test_key_secret")

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid webhook signature"

    def test_missing_signature_header_returns_400(self, client: TestClient) -> None:
        response = client.post(WEBHOOK_URL, content=b'{"event": "payment.captured"}')

        assert response.status_code == 400
        assert "X-Razorpay-Signature" in response.json()["message"]

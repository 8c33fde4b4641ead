"""
Integration tests for payment confirmation endpoints and webhooks.
"""
import hashlib
import hmac
import json
import time
import uuid

import pytest
from fastapi import status

from beatstore.config import settings
from beatstore.core import deps
from beatstore.models.order import Order, OrderStatus
from beatstore.services.rate_limiter import MemoryRateLimitBackend, RateLimiter

WEBHOOK_SECRET = "whsec_test_secret"


def cart_payload(catalog) -> dict:
    return {
        "items": [
            {
                "itemType": "beat",
                "beatId": str(catalog["beat"].id),
                "licenseTierId": str(catalog["stems"].id),
                "price": "99.99",
            },
        ],
        "customerEmail": "buyer@example.com",
        "customerName": "Buyer",
    }


def stripe_signature(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode()
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def session_event(session_id: str, order_id: str, event_type="checkout.session.completed") -> str:
    return json.dumps({
        "id": "evt_test_1",
        "type": event_type,
        "data": {"object": {
            "id": session_id,
            "object": "checkout.session",
            "status": "complete",
            "payment_status": "paid",
            "payment_intent": "pi_webhook",
            "metadata": {"order_id": order_id},
        }},
    })


async def order_status(db_session, order_id: str) -> OrderStatus:
    order = await db_session.get(Order, uuid.UUID(order_id), populate_existing=True)
    return order.status


@pytest.fixture
async def stripe_checkout(async_client, catalog) -> dict:
    response = await async_client.post("/api/v1/checkout/stripe", json=cart_payload(catalog))
    assert response.status_code == status.HTTP_200_OK
    return response.json()


@pytest.fixture
async def paypal_checkout(async_client, catalog) -> dict:
    response = await async_client.post("/api/v1/checkout/paypal", json=cart_payload(catalog))
    assert response.status_code == status.HTTP_200_OK
    return response.json()


class TestVerifyStripe:

    @pytest.mark.asyncio
    async def test_paid_session_completes(self, async_client, db_session, stripe_checkout, stripe_gateway, email_service):
        stripe_gateway.mark_paid(stripe_checkout["sessionId"])

        response = await async_client.post(
            "/api/v1/payments/stripe/verify",
            json={"sessionId": stripe_checkout["sessionId"], "orderId": stripe_checkout["orderId"]},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "success": True,
            "status": "paid",
            "orderId": stripe_checkout["orderId"],
        }
        assert await order_status(db_session, stripe_checkout["orderId"]) == OrderStatus.COMPLETED
        assert len(email_service.sent) == 1

    @pytest.mark.asyncio
    async def test_mismatched_order_rejected(self, async_client, db_session, stripe_checkout, stripe_gateway):
        stripe_gateway.mark_paid(stripe_checkout["sessionId"])

        response = await async_client.post(
            "/api/v1/payments/stripe/verify",
            json={"sessionId": stripe_checkout["sessionId"], "orderId": str(uuid.uuid4())},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "Order ID does not match payment session"
        assert await order_status(db_session, stripe_checkout["orderId"]) == OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_unpaid_session(self, async_client, stripe_checkout):
        response = await async_client.post(
            "/api/v1/payments/stripe/verify",
            json={"sessionId": stripe_checkout["sessionId"], "orderId": stripe_checkout["orderId"]},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_rate_limited_per_ip(self, app, async_client, stripe_checkout, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_VERIFY_PER_WINDOW", 2)
        limiter = RateLimiter(MemoryRateLimitBackend(), enabled=True)
        app.dependency_overrides[deps.get_rate_limiter_dep] = lambda: limiter
        body = {"sessionId": stripe_checkout["sessionId"], "orderId": stripe_checkout["orderId"]}

        codes = []
        for _ in range(3):
            response = await async_client.post("/api/v1/payments/stripe/verify", json=body)
            codes.append(response.status_code)

        assert codes == [200, 200, 429]
        assert "Retry-After" in response.headers


class TestCapturePayPal:

    @pytest.mark.asyncio
    async def test_capture(self, async_client, paypal_checkout, license_generator):
        response = await async_client.post(
            "/api/v1/payments/paypal/capture",
            json={"paypalOrderId": paypal_checkout["paypalOrderId"], "orderId": paypal_checkout["orderId"]},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is True
        assert data["transactionId"] == "CAPTURE-1"
        assert data["generatedLicenses"] == 1
        assert data["order"]["status"] == "completed"
        assert license_generator.contexts[0].license_type == "stems"

    @pytest.mark.asyncio
    async def test_missing_ids(self, async_client):
        response = await async_client.post("/api/v1/payments/paypal/capture", json={})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "Missing paypalOrderId or orderId"

    @pytest.mark.asyncio
    async def test_declined_capture(self, async_client, paypal_checkout, paypal_client):
        paypal_client.capture_status = "DECLINED"

        response = await async_client.post(
            "/api/v1/payments/paypal/capture",
            json={"paypalOrderId": paypal_checkout["paypalOrderId"], "orderId": paypal_checkout["orderId"]},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "Payment not completed"


class TestStripeWebhook:

    @pytest.mark.asyncio
    async def test_signed_event_completes_order(self, async_client, db_session, stripe_checkout, stripe_gateway):
        stripe_gateway.webhook_secret = WEBHOOK_SECRET
        payload = session_event(stripe_checkout["sessionId"], stripe_checkout["orderId"])

        response = await async_client.post(
            "/api/v1/webhooks/stripe",
            content=payload,
            headers={"stripe-signature": stripe_signature(payload), "Content-Type": "application/json"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"received": True}
        assert await order_status(db_session, stripe_checkout["orderId"]) == OrderStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_bad_signature_rejected(self, async_client, db_session, stripe_checkout, stripe_gateway):
        stripe_gateway.webhook_secret = WEBHOOK_SECRET
        payload = session_event(stripe_checkout["sessionId"], stripe_checkout["orderId"])

        response = await async_client.post(
            "/api/v1/webhooks/stripe",
            content=payload,
            headers={"stripe-signature": stripe_signature(payload, secret="whsec_wrong")},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert await order_status(db_session, stripe_checkout["orderId"]) == OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_missing_signature_rejected(self, async_client, stripe_checkout, stripe_gateway):
        stripe_gateway.webhook_secret = WEBHOOK_SECRET
        payload = session_event(stripe_checkout["sessionId"], stripe_checkout["orderId"])

        response = await async_client.post("/api/v1/webhooks/stripe", content=payload)

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_non_utf8_body_rejected(self, async_client, stripe_gateway):
        stripe_gateway.webhook_secret = WEBHOOK_SECRET

        response = await async_client.post(
            "/api/v1/webhooks/stripe",
            content=b"\xff\xfe{}",
            headers={"stripe-signature": "t=1,v1=abc"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "error" in response.json()

    @pytest.mark.asyncio
    async def test_unsigned_event_refused_when_not_allowed(self, async_client, stripe_checkout, monkeypatch):
        monkeypatch.setattr(settings, "WEBHOOK_ALLOW_UNVERIFIED", False)
        payload = session_event(stripe_checkout["sessionId"], stripe_checkout["orderId"])

        response = await async_client.post("/api/v1/webhooks/stripe", content=payload)

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_duplicate_delivery_fulfills_once(self, async_client, stripe_checkout, email_service):
        payload = session_event(stripe_checkout["sessionId"], stripe_checkout["orderId"])

        for _ in range(2):
            response = await async_client.post("/api/v1/webhooks/stripe", content=payload)
            assert response.status_code == status.HTTP_200_OK

        assert len(email_service.sent) == 1

    @pytest.mark.asyncio
    async def test_webhook_then_verify(self, async_client, stripe_checkout, stripe_gateway, email_service):
        payload = session_event(stripe_checkout["sessionId"], stripe_checkout["orderId"])
        await async_client.post("/api/v1/webhooks/stripe", content=payload)
        stripe_gateway.mark_paid(stripe_checkout["sessionId"])

        response = await async_client.post(
            "/api/v1/payments/stripe/verify",
            json={"sessionId": stripe_checkout["sessionId"], "orderId": stripe_checkout["orderId"]},
        )

        assert response.json()["success"] is True
        assert len(email_service.sent) == 1


class TestPayPalWebhook:

    def event(self, event_type: str, order_id: str) -> dict:
        return {
            "id": "WH-58D329510W468432D",
            "event_type": event_type,
            "resource": {"id": "CAPTURE-WH", "custom_id": order_id},
        }

    @pytest.mark.asyncio
    async def test_capture_completed(self, async_client, db_session, paypal_checkout):
        response = await async_client.post(
            "/api/v1/webhooks/paypal",
            json=self.event("PAYMENT.CAPTURE.COMPLETED", paypal_checkout["orderId"]),
        )

        assert response.status_code == status.HTTP_200_OK
        assert await order_status(db_session, paypal_checkout["orderId"]) == OrderStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_invalid_signature_rejected(self, async_client, db_session, paypal_checkout, paypal_client):
        paypal_client.webhook_id = "WH-CONFIGURED"
        paypal_client.signature_valid = False

        response = await async_client.post(
            "/api/v1/webhooks/paypal",
            json=self.event("PAYMENT.CAPTURE.COMPLETED", paypal_checkout["orderId"]),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert await order_status(db_session, paypal_checkout["orderId"]) == OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_malformed_body_rejected(self, async_client):
        response = await async_client.post("/api/v1/webhooks/paypal", content=b"not json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/api/v1/webhooks/paypal", "/api/v1/webhooks/stripe"])
    async def test_non_object_body_rejected(self, async_client, path):
        response = await async_client.post(path, content=b"[1, 2]")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

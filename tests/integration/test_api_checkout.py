"""
Integration tests for checkout endpoints.
"""
import uuid
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi import status
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from beatstore.integrations.paypal import PayPalClient
from beatstore.models.order import Order, OrderStatus
from beatstore.services.rate_limiter import MemoryRateLimitBackend, RateLimiter


def cart_payload(catalog, **overrides) -> dict:
    payload = {
        "items": [
            {
                "itemType": "beat",
                "beatId": str(catalog["beat"].id),
                "licenseTierId": str(catalog["wav"].id),
                "price": "49.99",
            },
            {
                "itemType": "sound_kit",
                "soundKitId": str(catalog["kit"].id),
                "price": "19.99",
            },
        ],
        "customerEmail": "buyer@example.com",
        "customerName": "Buyer",
    }
    payload.update(overrides)
    return payload


class TestStripeCheckout:

    @pytest.mark.asyncio
    async def test_creates_session(self, async_client, db_session, catalog, stripe_gateway):
        response = await async_client.post(
            "/api/v1/checkout/stripe",
            json=cart_payload(catalog),
            headers={"Origin": "https://shop.example.com"},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["url"].startswith("https://checkout.stripe.test/")
        assert data["sessionId"] == "cs_test_1"

        order = await db_session.get(Order, uuid.UUID(data["orderId"]))
        assert order.status == OrderStatus.PENDING
        assert str(order.total) == "69.98"
        assert stripe_gateway.created[0]["cancel_url"] == "https://shop.example.com/cart"

    @pytest.mark.asyncio
    async def test_validation_error_shape(self, async_client, catalog):
        response = await async_client.post(
            "/api/v1/checkout/stripe",
            json=cart_payload(catalog, customerName=""),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "Customer email and name are required"

    @pytest.mark.asyncio
    async def test_empty_cart(self, async_client, catalog):
        response = await async_client.post(
            "/api/v1/checkout/stripe",
            json=cart_payload(catalog, items=[]),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "No items provided"

    @pytest.mark.asyncio
    async def test_tampered_price_creates_no_order(self, async_client, db_session, catalog):
        payload = cart_payload(catalog)
        payload["items"][0]["price"] = "0.99"

        response = await async_client.post("/api/v1/checkout/stripe", json=payload)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "has changed" in response.json()["error"]
        count = await db_session.execute(select(func.count(Order.id)))
        assert count.scalar() == 0

    @pytest.mark.asyncio
    async def test_storefront_host_cannot_buy_default_catalog(self, async_client, catalog, tenant):
        response = await async_client.post(
            "/api/v1/checkout/stripe",
            json=cart_payload(catalog),
            headers={"Host": "nova.sonexbeats.shop"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "Beat or license not found"

    @pytest.mark.asyncio
    async def test_signed_in_buyer_linked_to_order(self, async_client, db_session, catalog, users, customer_headers):
        response = await async_client.post(
            "/api/v1/checkout/stripe",
            json=cart_payload(catalog),
            headers=customer_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        result = await db_session.execute(select(Order.user_id))
        assert result.scalar_one() == users["customer"].id


class TestPayPalCheckout:

    @pytest.mark.asyncio
    async def test_creates_paypal_order(self, async_client, catalog, paypal_client):
        response = await async_client.post(
            "/api/v1/checkout/paypal",
            json=cart_payload(catalog, customerName=None),
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["paypalOrderId"] == "PAYPAL-1"
        assert data["approvalUrl"].endswith("PAYPAL-1")
        assert paypal_client.orders[0]["reference_id"] == data["orderId"]

    @pytest.mark.asyncio
    async def test_html_from_paypal_is_json_error(self, app, async_client, catalog):
        from beatstore.core import deps

        def gateway_page(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        app.dependency_overrides[deps.get_paypal_client] = lambda: PayPalClient(
            client_id="client",
            client_secret="secret",
            base_url="https://api-m.sandbox.paypal.com",
            transport=httpx.MockTransport(gateway_page),
        )

        response = await async_client.post("/api/v1/checkout/paypal", json=cart_payload(catalog))

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error"] == "Payment provider request failed"

    @pytest.mark.asyncio
    async def test_unexpected_crash_is_json_error(self, app, catalog, paypal_client, monkeypatch):
        monkeypatch.setattr(paypal_client, "create_order", AsyncMock(side_effect=RuntimeError("boom")))
        transport = ASGITransport(app=app, raise_app_exceptions=False)

        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/api/v1/checkout/paypal", json=cart_payload(catalog))

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "Internal server error", "detail": "Internal server error"}


class TestCheckoutRateLimit:

    @pytest.mark.asyncio
    async def test_limit_per_email_and_ip(self, app, async_client, catalog, monkeypatch):
        from beatstore.config import settings
        from beatstore.core import deps

        monkeypatch.setattr(settings, "RATE_LIMIT_CHECKOUT_PER_WINDOW", 2)
        limiter = RateLimiter(MemoryRateLimitBackend(), enabled=True)
        app.dependency_overrides[deps.get_rate_limiter_dep] = lambda: limiter

        codes = []
        for _ in range(3):
            response = await async_client.post(
                "/api/v1/checkout/stripe",
                json=cart_payload(catalog, items=[]),
            )
            codes.append(response.status_code)

        assert codes == [400, 400, 429]
        assert "Retry-After" in response.headers
        assert response.headers["X-RateLimit-Remaining"] == "0"

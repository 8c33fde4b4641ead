"""
Unit tests for transactional e-mail.
"""
import base64
import json
from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest

from beatstore.core.exceptions import ProviderConfigurationError, ProviderError
from beatstore.services.email_service import EmailAttachment, EmailLineItem, EmailService


class ResendStub:
    def __init__(self, status_code=200):
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"message": "invalid from address"})
        return httpx.Response(200, json={"id": "49a3999c-0ce1-4ea6-ab68-afcd6dc2e794"})

    @property
    def payload(self) -> dict:
        return json.loads(self.requests[-1].content)


def service(stub: ResendStub, api_key="re_test") -> EmailService:
    return EmailService(
        api_key=api_key,
        api_url="https://api.resend.com/emails",
        sender="Nova Beats <orders@example.com>",
        transport=httpx.MockTransport(stub),
    )


class TestSend:

    @pytest.mark.asyncio
    async def test_payload_and_auth(self):
        stub = ResendStub()

        result = await service(stub).send(
            ["buyer@example.com"],
            "Hello",
            "<p>Hi</p>",
            attachments=[EmailAttachment(filename="License.pdf", content=b"%PDF")],
        )

        assert result["id"]
        assert stub.requests[0].headers["Authorization"] == "Bearer re_test"
        payload = stub.payload
        assert payload["from"] == "Nova Beats <orders@example.com>"
        assert payload["attachments"][0]["filename"] == "License.pdf"
        assert base64.b64decode(payload["attachments"][0]["content"]) == b"%PDF"

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        with pytest.raises(ProviderConfigurationError):
            await service(ResendStub(), api_key="").send(["a@example.com"], "s", "<p></p>")

    @pytest.mark.asyncio
    async def test_api_error(self):
        with pytest.raises(ProviderError):
            await service(ResendStub(status_code=422)).send(["a@example.com"], "s", "<p></p>")


class TestTemplates:

    @pytest.mark.asyncio
    async def test_order_confirmation(self):
        stub = ResendStub()

        await service(stub).send_order_confirmation(
            to="buyer@example.com",
            customer_name="Buyer",
            order_id="order-123",
            items=[EmailLineItem(title="Midnight Drive", license_name="Premium", price=Decimal("49.99"))],
            total=Decimal("44.99"),
            download_url="https://nova.sonexbeats.shop/download?orderId=order-123&email=buyer%40example.com",
            expires_at=datetime(2026, 3, 8, tzinfo=timezone.utc),
            attachments=[EmailAttachment(filename="License.pdf", content=b"%PDF")],
            discount_code="FIVER",
            discount_amount=Decimal("5.00"),
            store_name="Nova Beats",
        )

        payload = stub.payload
        html = payload["html"]
        assert payload["to"] == ["buyer@example.com"]
        assert payload["subject"].startswith("Order Confirmed")
        assert "Midnight Drive" in html
        assert "$44.99" in html
        assert "-$5.00" in html
        assert "Sunday, March 08, 2026" in html
        assert "1 license agreement is attached" in html
        assert "Nova Beats" in html

    @pytest.mark.asyncio
    async def test_offer_notification_escapes_message(self):
        stub = ResendStub()

        await service(stub).send_offer_notification(
            offer_id="offer-1",
            beat_title="Midnight Drive",
            customer_name="Rapper",
            customer_email="rapper@example.com",
            offer_amount=Decimal("1500"),
            message="<script>alert(1)</script>",
            to="owner@example.com",
        )

        payload = stub.payload
        assert payload["to"] == ["owner@example.com"]
        assert payload["reply_to"] == "rapper@example.com"
        assert "$1500.00" in payload["html"]
        assert "<script>" not in payload["html"]

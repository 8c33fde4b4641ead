"""
PayPal REST API client for order creation, capture and webhook verification.
"""
import base64
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import httpx

from beatstore.config import settings
from beatstore.core.exceptions import ProviderConfigurationError, ProviderError

logger = logging.getLogger(__name__)

WEBHOOK_HEADERS = {
    "auth_algo": "paypal-auth-algo",
    "cert_url": "paypal-cert-url",
    "transmission_id": "paypal-transmission-id",
    "transmission_sig": "paypal-transmission-sig",
    "transmission_time": "paypal-transmission-time",
}


@dataclass
class PayPalLineItem:
    name: str
    price: Decimal


@dataclass
class PayPalOrder:
    id: str
    status: str
    approval_url: str | None = None


@dataclass
class PayPalCapture:
    order_id: str
    status: str
    transaction_id: str | None = None
    custom_id: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def completed(self) -> bool:
        return self.status == "COMPLETED"


def _money(value: Decimal) -> str:
    return f"{Decimal(value).quantize(Decimal('0.01'))}"


def _json_body(response: httpx.Response, endpoint: str) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as e:
        raise ProviderError(f"PayPal {endpoint} returned a non-JSON body") from e
    if not isinstance(data, dict):
        raise ProviderError(f"PayPal {endpoint} returned an unexpected body")
    return data


class PayPalClient:
    """HTTP client for the PayPal Orders v2 API."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        base_url: str | None = None,
        webhook_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id if client_id is not None else settings.PAYPAL_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else settings.PAYPAL_CLIENT_SECRET
        self.base_url = base_url or settings.paypal_base_url
        self.webhook_id = webhook_id if webhook_id is not None else settings.PAYPAL_WEBHOOK_ID
        self.transport = transport
        self.currency = settings.STRIPE_CURRENCY.upper()

    @property
    def webhook_verification_enabled(self) -> bool:
        return bool(self.webhook_id)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=settings.PAYPAL_TIMEOUT,
            transport=self.transport,
        )

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        if not self.client_id or not self.client_secret:
            raise ProviderConfigurationError("PayPal credentials not configured")

        credentials = f"{self.client_id}:{self.client_secret}"
        encoded = base64.b64encode(credentials.encode()).decode()
        response = await client.post(
            "/v1/oauth2/token",
            headers={
                "Authorization": f"Basic {encoded}",
                "Content-Type": "application/x-www-form-urlencoded",
            },
            content="grant_type=client_credentials",
        )
        if response.status_code >= 400:
            raise ProviderError(f"PayPal token request failed: {response.status_code} {response.text}")
        token = _json_body(response, "/v1/oauth2/token").get("access_token")
        if not token:
            raise ProviderError("PayPal token response has no access_token")
        return token

    async def _request(self, method: str, endpoint: str, data: dict | None = None) -> dict[str, Any]:
        """Make an authenticated request to PayPal."""
        try:
            async with self._client() as client:
                token = await self._access_token(client)
                response = await client.request(
                    method,
                    endpoint,
                    json=data,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.HTTPError as e:
            raise ProviderError(f"PayPal request to {endpoint} failed: {e}") from e

        if response.status_code >= 400:
            raise ProviderError(f"PayPal {endpoint} returned {response.status_code}: {response.text}")
        return _json_body(response, endpoint)

    async def create_order(
        self,
        reference_id: str,
        items: list[PayPalLineItem],
        discount: Decimal = Decimal("0"),
        return_url: str | None = None,
        cancel_url: str | None = None,
    ) -> PayPalOrder:
        """Create a CAPTURE-intent order for digital goods."""
        item_total = sum((item.price for item in items), Decimal("0"))
        total = item_total - discount

        breakdown = {
            "item_total": {"currency_code": self.currency, "value": _money(item_total)},
        }
        if discount > 0:
            breakdown["discount"] = {"currency_code": self.currency, "value": _money(discount)}

        application_context = {
            "brand_name": settings.PAYPAL_BRAND_NAME,
            "shipping_preference": "NO_SHIPPING",
            "user_action": "PAY_NOW",
        }
        if return_url:
            application_context["return_url"] = return_url
        if cancel_url:
            application_context["cancel_url"] = cancel_url

        payload = {
            "intent": "CAPTURE",
            "purchase_units": [{
                "reference_id": reference_id,
                "custom_id": reference_id,
                "amount": {
                    "currency_code": self.currency,
                    "value": _money(total),
                    "breakdown": breakdown,
                },
                "items": [
                    {
                        "name": item.name[:127],
                        "unit_amount": {"currency_code": self.currency, "value": _money(item.price)},
                        "quantity": "1",
                        "category": "DIGITAL_GOODS",
                    }
                    for item in items
                ],
            }],
            "application_context": application_context,
        }

        data = await self._request("POST", "/v2/checkout/orders", payload)
        approval_url = next(
            (link["href"] for link in data.get("links", []) if link.get("rel") in ("approve", "payer-action")),
            None,
        )
        if not data.get("id"):
            raise ProviderError("PayPal order response has no id")
        return PayPalOrder(id=data["id"], status=data.get("status", ""), approval_url=approval_url)

    async def capture_order(self, paypal_order_id: str) -> PayPalCapture:
        data = await self._request("POST", f"/v2/checkout/orders/{paypal_order_id}/capture", {})

        transaction_id = None
        custom_id = None
        units = data.get("purchase_units") or []
        if units:
            captures = (units[0].get("payments") or {}).get("captures") or []
            if captures:
                transaction_id = captures[0].get("id")
                custom_id = captures[0].get("custom_id")
            custom_id = units[0].get("custom_id") or custom_id

        return PayPalCapture(
            order_id=data.get("id", paypal_order_id),
            status=data.get("status", ""),
            transaction_id=transaction_id,
            custom_id=custom_id,
            raw=data,
        )

    async def verify_webhook_signature(self, headers: dict[str, str], event: dict[str, Any]) -> bool:
        """Ask PayPal whether a webhook delivery is authentic."""
        lowered = {k.lower(): v for k, v in headers.items()}
        fields = {name: lowered.get(header) for name, header in WEBHOOK_HEADERS.items()}
        if not all(fields.values()):
            logger.error("Missing PayPal webhook signature headers")
            return False

        try:
            data = await self._request(
                "POST",
                "/v1/notifications/verify-webhook-signature",
                {**fields, "webhook_id": self.webhook_id, "webhook_event": event},
            )
        except ProviderError as e:
            logger.error(f"PayPal webhook verification error: {e}")
            return False
        return data.get("verification_status") == "SUCCESS"

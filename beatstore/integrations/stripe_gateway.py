"""
Stripe Checkout integration.

The Stripe SDK is synchronous; calls run in the default executor so they
do not block the event loop.
"""
import asyncio
import json
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any

import stripe
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from beatstore.config import settings
from beatstore.core.exceptions import (
    ProviderConfigurationError,
    ProviderError,
    WebhookSignatureError,
)
from beatstore.models.payment_setting import PaymentSetting

logger = logging.getLogger(__name__)

STRIPE_SECRET_KEY_SETTING = "stripe_secret_key"


@dataclass
class CheckoutSession:
    """The parts of a Stripe Checkout Session this service reads."""

    id: str
    url: str | None = None
    status: str | None = None
    payment_status: str | None = None
    payment_intent: str | None = None
    customer_email: str | None = None
    amount_total: int | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CheckoutSession":
        payment_intent = data.get("payment_intent")
        if isinstance(payment_intent, dict):
            payment_intent = payment_intent.get("id")
        customer_details = data.get("customer_details") or {}
        return cls(
            id=data["id"],
            url=data.get("url"),
            status=data.get("status"),
            payment_status=data.get("payment_status"),
            payment_intent=payment_intent,
            customer_email=data.get("customer_email") or customer_details.get("email"),
            amount_total=data.get("amount_total"),
            metadata=dict(data.get("metadata") or {}),
        )


def _to_dict(obj: Any) -> dict[str, Any]:
    if isinstance(obj, dict):
        return obj
    return obj.to_dict()


async def load_stripe_secret_key(db: AsyncSession) -> str:
    """Secret key from payment_settings, falling back to the environment.

    Database values that are not secret keys (``sk_...``) are ignored.
    """
    result = await db.execute(
        select(PaymentSetting.setting_value).where(
            PaymentSetting.setting_key == STRIPE_SECRET_KEY_SETTING
        )
    )
    stored = result.scalar_one_or_none()
    if stored and stored.startswith("sk_"):
        return stored
    if stored:
        logger.warning("Ignoring stored Stripe key that is not a secret key")
    return settings.STRIPE_SECRET_KEY


class StripeGateway:
    """Thin async wrapper over the Stripe SDK."""

    def __init__(self, api_key: str | None = None, webhook_secret: str | None = None):
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.STRIPE_WEBHOOK_SECRET

    @property
    def webhook_verification_enabled(self) -> bool:
        return bool(self.webhook_secret)

    async def _call(self, func, *args, **kwargs):
        if not self.api_key:
            raise ProviderConfigurationError("Stripe secret key not configured")
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None, partial(func, *args, api_key=self.api_key, **kwargs)
            )
        except stripe.StripeError as e:
            raise ProviderError(f"Stripe error: {e}") from e

    async def create_checkout_session(
        self,
        line_items: list[dict[str, Any]],
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        customer_email: str | None = None,
        discounts: list[dict[str, str]] | None = None,
        idempotency_key: str | None = None,
    ) -> CheckoutSession:
        params: dict[str, Any] = {
            "mode": "payment",
            "line_items": line_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        if customer_email:
            params["customer_email"] = customer_email
        if discounts:
            params["discounts"] = discounts
        if idempotency_key:
            params["idempotency_key"] = idempotency_key

        session = await self._call(stripe.checkout.Session.create, **params)
        return CheckoutSession.from_dict(_to_dict(session))

    async def retrieve_session(self, session_id: str) -> CheckoutSession:
        session = await self._call(stripe.checkout.Session.retrieve, session_id)
        return CheckoutSession.from_dict(_to_dict(session))

    async def create_amount_off_coupon(self, amount_cents: int, currency: str, name: str) -> str:
        coupon = await self._call(
            stripe.Coupon.create,
            amount_off=amount_cents,
            currency=currency,
            duration="once",
            name=name[:40],
        )
        return _to_dict(coupon)["id"]

    def parse_webhook(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """
        Parse a webhook body, verifying its signature when a secret is set.

        Raises:
            WebhookSignatureError: signature missing or invalid, or the body
                is not JSON
        """
        if self.webhook_secret:
            if not signature:
                raise WebhookSignatureError("Missing stripe-signature header")
            try:
                stripe.WebhookSignature.verify_header(
                    payload.decode("utf-8"), signature, self.webhook_secret
                )
            except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
                logger.warning(f"Stripe webhook signature invalid: {e}")
                raise WebhookSignatureError("Invalid webhook signature") from e
        try:
            event = json.loads(payload)
        except ValueError as e:
            raise WebhookSignatureError("Malformed webhook payload") from e
        if not isinstance(event, dict):
            raise WebhookSignatureError("Malformed webhook payload")
        return event

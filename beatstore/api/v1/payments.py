"""
Payment confirmation endpoints and provider webhooks.
"""
import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request

from beatstore.config import settings
from beatstore.core.deps import ConfirmationDep, PayPalDep, StripeDep, rate_limit_by_ip
from beatstore.core.exceptions import WebhookSignatureError
from beatstore.schemas.order import OrderResponse
from beatstore.schemas.payment import (
    CapturePayPalRequest,
    CapturePayPalResponse,
    VerifyStripeSessionRequest,
    VerifyStripeSessionResponse,
    WebhookAck,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])
webhook_router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

verify_limit = Depends(rate_limit_by_ip("verify", "RATE_LIMIT_VERIFY_PER_WINDOW"))


def _require_trust(provider: str, verification_enabled: bool) -> None:
    """Reject or warn about deliveries that cannot be verified."""
    if verification_enabled:
        return
    if not settings.WEBHOOK_ALLOW_UNVERIFIED:
        raise WebhookSignatureError(f"{provider} webhook verification is not configured")
    logger.warning(f"{provider} webhook secret not configured; processing unverified payload")


@router.post(
    "/stripe/verify",
    response_model=VerifyStripeSessionResponse,
    dependencies=[verify_limit],
)
async def verify_stripe_session(
    data: VerifyStripeSessionRequest,
    confirmation: ConfirmationDep,
    gateway: StripeDep,
):
    """Confirm a Stripe Checkout session after the customer returns."""
    result = await confirmation.verify_stripe_session(data.session_id, data.order_id, gateway)
    return VerifyStripeSessionResponse(
        success=result.success,
        status=result.status,
        order_id=result.order_id,
    )


@router.post(
    "/paypal/capture",
    response_model=CapturePayPalResponse,
    dependencies=[verify_limit],
)
async def capture_paypal_order(
    data: CapturePayPalRequest,
    confirmation: ConfirmationDep,
    client: PayPalDep,
):
    """Capture an approved PayPal order and complete the local order."""
    outcome = await confirmation.capture_paypal(data.paypal_order_id, data.order_id, client)
    return CapturePayPalResponse(
        success=True,
        order=OrderResponse.model_validate(outcome.order),
        transaction_id=outcome.order.payment_transaction_id,
        generated_licenses=outcome.generated_licenses,
    )


@webhook_router.post("/stripe", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    confirmation: ConfirmationDep,
    gateway: StripeDep,
    stripe_signature: Annotated[str | None, Header(alias="stripe-signature")] = None,
):
    """Stripe Checkout events."""
    _require_trust("Stripe", gateway.webhook_verification_enabled)
    event = gateway.parse_webhook(await request.body(), stripe_signature)
    logger.info(f"Stripe webhook {event.get('type')} ({event.get('id')})")
    await confirmation.handle_stripe_event(event)
    return WebhookAck()


@webhook_router.post("/paypal", response_model=WebhookAck)
async def paypal_webhook(
    request: Request,
    confirmation: ConfirmationDep,
    client: PayPalDep,
):
    """PayPal capture events."""
    try:
        event = json.loads(await request.body())
    except ValueError as e:
        raise WebhookSignatureError("Malformed webhook payload") from e
    if not isinstance(event, dict):
        raise WebhookSignatureError("Malformed webhook payload")

    _require_trust("PayPal", client.webhook_verification_enabled)
    if client.webhook_verification_enabled:
        if not await client.verify_webhook_signature(dict(request.headers), event):
            raise WebhookSignatureError("Invalid webhook signature")

    logger.info(f"PayPal webhook {event.get('event_type')} ({event.get('id')})")
    await confirmation.handle_paypal_event(event)
    return WebhookAck()

"""
Payment confirmation: moves an order out of ``pending`` exactly once.

Two paths race by design: the customer's browser verifying after the
redirect, and the provider's webhook. Both end in ``complete_order``, which
issues a conditional UPDATE guarded by ``status = 'pending'``. Only the
caller whose UPDATE matched a row runs fulfillment.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from beatstore.config import settings
from beatstore.core.exceptions import (
    BeatstoreError,
    OrderIntegrityError,
    OrderNotFoundError,
    PaymentNotCompletedError,
)
from beatstore.integrations.paypal import PayPalClient
from beatstore.integrations.stripe_gateway import CheckoutSession, StripeGateway
from beatstore.models.order import Order, OrderStatus, PaymentProvider
from beatstore.services.discount_service import DiscountService
from beatstore.services.fulfillment import FulfillmentPipeline, FulfillmentResult

logger = logging.getLogger(__name__)

STRIPE_COMPLETION_EVENTS = {
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
}
STRIPE_FAILURE_EVENTS = {
    "checkout.session.async_payment_failed",
    "checkout.session.expired",
}


@dataclass
class CompletionOutcome:
    order: Order
    transitioned: bool
    fulfillment: FulfillmentResult | None = None

    @property
    def generated_licenses(self) -> int:
        return len(self.fulfillment.generated) if self.fulfillment else 0


@dataclass
class StripeVerification:
    success: bool
    status: str
    order_id: UUID


def _parse_uuid(value: Any) -> UUID | None:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


class PaymentConfirmationService:
    """Confirms payments from client verification calls and webhooks."""

    def __init__(self, db: AsyncSession, fulfillment: FulfillmentPipeline):
        self.db = db
        self.fulfillment = fulfillment

    async def get_order(self, order_id: UUID) -> Order | None:
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _require_order(self, order_id: UUID) -> Order:
        order = await self.get_order(order_id)
        if order is None:
            raise OrderNotFoundError("Order not found")
        return order

    # State transitions

    async def complete_order(self, order_id: UUID, transaction_id: str | None) -> CompletionOutcome:
        """Conditionally move ``order_id`` from pending to completed.

        The UPDATE matches nothing when another caller already moved the
        order; that caller owns fulfillment and this one returns the current
        row untouched.
        """
        now = datetime.now(timezone.utc)
        result = await self.db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == OrderStatus.PENDING)
            .values(
                status=OrderStatus.COMPLETED,
                payment_transaction_id=transaction_id,
                completed_at=now,
                download_expires_at=now + timedelta(days=settings.DOWNLOAD_WINDOW_DAYS),
            )
            .execution_options(synchronize_session=False)
        )
        transitioned = result.rowcount == 1

        order = await self._require_order(order_id)
        if transitioned and order.discount_code:
            await DiscountService(self.db).record_use(order.discount_code, order.tenant_id)
        await self.db.commit()

        if not transitioned:
            logger.info(f"Order {order_id} already {order.status.value}, skipping fulfillment")
            return CompletionOutcome(order=order, transitioned=False)

        logger.info(f"Order {order_id} completed (transaction {transaction_id})")
        fulfillment = await self.fulfillment.run(order)
        return CompletionOutcome(order=order, transitioned=True, fulfillment=fulfillment)

    async def fail_order(self, order_id: UUID) -> bool:
        """Conditionally move ``order_id`` from pending to failed."""
        result = await self.db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == OrderStatus.PENDING)
            .values(status=OrderStatus.FAILED)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        failed = result.rowcount == 1
        if failed:
            logger.info(f"Order {order_id} marked failed")
        return failed

    # Client-initiated verification

    async def verify_stripe_session(
        self,
        session_id: str,
        order_id: UUID,
        gateway: StripeGateway,
    ) -> StripeVerification:
        session = await gateway.retrieve_session(session_id)
        self._check_session_identity(session, order_id)

        order = await self._require_order(order_id)
        if order.provider_order_id and order.provider_order_id != session.id:
            raise OrderIntegrityError("Order ID does not match payment session")

        if order.status == OrderStatus.COMPLETED:
            return StripeVerification(success=True, status="paid", order_id=order.id)

        if not session.is_paid:
            if session.status == "expired":
                await self.fail_order(order.id)
            return StripeVerification(
                success=False,
                status=session.payment_status or session.status or "unknown",
                order_id=order.id,
            )

        await self.complete_order(order.id, session.payment_intent or session.id)
        return StripeVerification(success=True, status="paid", order_id=order.id)

    @staticmethod
    def _check_session_identity(session: CheckoutSession, order_id: UUID) -> None:
        if session.metadata.get("order_id") != str(order_id):
            logger.warning(
                f"Stripe session {session.id} metadata order "
                f"{session.metadata.get('order_id')!r} does not match {order_id}"
            )
            raise OrderIntegrityError("Order ID does not match payment session")

    async def capture_paypal(
        self,
        paypal_order_id: str | None,
        order_id: UUID | None,
        client: PayPalClient,
    ) -> CompletionOutcome:
        if not paypal_order_id or not order_id:
            raise BeatstoreError("Missing paypalOrderId or orderId")

        order = await self._require_order(order_id)
        if order.payment_provider != PaymentProvider.PAYPAL or order.provider_order_id != paypal_order_id:
            raise OrderIntegrityError("Order ID does not match PayPal order")

        if order.status == OrderStatus.COMPLETED:
            return CompletionOutcome(order=order, transitioned=False)
        if order.status == OrderStatus.FAILED:
            raise PaymentNotCompletedError("Payment not completed")

        capture = await client.capture_order(paypal_order_id)
        if capture.custom_id and capture.custom_id != str(order.id):
            raise OrderIntegrityError("Order ID does not match PayPal order")
        if not capture.completed:
            logger.warning(f"PayPal capture for {paypal_order_id} returned {capture.status}")
            raise PaymentNotCompletedError("Payment not completed")

        return await self.complete_order(order.id, capture.transaction_id)

    # Webhooks

    async def handle_stripe_event(self, event: dict[str, Any]) -> None:
        event_type = event.get("type", "")
        obj = (event.get("data") or {}).get("object") or {}
        if event_type not in STRIPE_COMPLETION_EVENTS | STRIPE_FAILURE_EVENTS:
            logger.info(f"Ignoring Stripe event {event_type}")
            return

        session = CheckoutSession.from_dict(obj)
        order_id = _parse_uuid(session.metadata.get("order_id"))
        if order_id is None:
            # SaaS plan purchases carry no order
            logger.info(f"Stripe session {session.id} has no order reference")
            return

        order = await self.get_order(order_id)
        if order is None:
            logger.warning(f"Stripe event {event_type} references unknown order {order_id}")
            return
        if order.provider_order_id and order.provider_order_id != session.id:
            raise OrderIntegrityError("Order ID does not match payment session")

        if event_type in STRIPE_FAILURE_EVENTS:
            await self.fail_order(order.id)
            return

        if not session.is_paid:
            logger.info(f"Stripe session {session.id} not paid yet ({session.payment_status})")
            return
        await self.complete_order(order.id, session.payment_intent or session.id)

    async def handle_paypal_event(self, event: dict[str, Any]) -> None:
        event_type = event.get("event_type", "")
        resource = event.get("resource") or {}

        if event_type in ("PAYMENT.CAPTURE.REFUNDED", "PAYMENT.CAPTURE.REVERSED"):
            logger.warning(f"PayPal {event_type} for capture {resource.get('id')}; order left unchanged")
            return
        if event_type not in ("PAYMENT.CAPTURE.COMPLETED", "PAYMENT.CAPTURE.DENIED"):
            logger.info(f"Ignoring PayPal event {event_type}")
            return

        paypal_order_id = ((resource.get("supplementary_data") or {}).get("related_ids") or {}).get("order_id")
        order = await self._find_paypal_order(resource.get("custom_id"), paypal_order_id)
        if order is None:
            logger.warning(f"PayPal {event_type} for unknown order (custom_id={resource.get('custom_id')})")
            return

        if event_type == "PAYMENT.CAPTURE.DENIED":
            await self.fail_order(order.id)
            return
        await self.complete_order(order.id, resource.get("id"))

    async def _find_paypal_order(self, custom_id: str | None, paypal_order_id: str | None) -> Order | None:
        order = None
        order_id = _parse_uuid(custom_id)
        if order_id is not None:
            order = await self.get_order(order_id)
        if order is None and paypal_order_id:
            result = await self.db.execute(
                select(Order).where(
                    Order.payment_provider == PaymentProvider.PAYPAL,
                    Order.provider_order_id == paypal_order_id,
                )
            )
            order = result.scalar_one_or_none()
        if order is None:
            return None
        if paypal_order_id and order.provider_order_id and order.provider_order_id != paypal_order_id:
            raise OrderIntegrityError("Order ID does not match PayPal order")
        return order

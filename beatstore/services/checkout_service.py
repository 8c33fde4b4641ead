"""
Checkout orchestration for Stripe and PayPal.

Both paths validate the cart, verify each item against the tenant's catalog,
persist a pending order with its items, and only then open the provider
session so a webhook arriving right after creation can find the order.
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from beatstore.config import settings
from beatstore.core.exceptions import CheckoutValidationError, ProviderError
from beatstore.integrations.paypal import PayPalClient, PayPalLineItem
from beatstore.integrations.stripe_gateway import StripeGateway
from beatstore.models.catalog import Beat, LicenseTier, SoundKit
from beatstore.models.order import ItemType, Order, OrderItem, OrderStatus, PaymentProvider
from beatstore.models.tenant import Tenant
from beatstore.schemas.checkout import (
    CheckoutItem,
    CheckoutRequest,
    PayPalOrderResponse,
    StripeCheckoutResponse,
)
from beatstore.services.discount_service import AppliedDiscount, DiscountService, tenant_scope

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class PricedItem:
    """A cart entry checked against the catalog."""

    item_type: ItemType
    title: str
    price: Decimal
    beat_id: UUID | None = None
    license_tier_id: UUID | None = None
    license_name: str | None = None
    sound_kit_id: UUID | None = None

    @property
    def description(self) -> str:
        if self.item_type == ItemType.SOUND_KIT:
            return "Sound Kit"
        return f"{self.license_name} License"


def to_cents(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class CheckoutService:
    """Turns a submitted cart into a pending order plus a payment session."""

    def __init__(
        self,
        db: AsyncSession,
        tenant: Tenant | None = None,
        user_id: UUID | None = None,
    ):
        self.db = db
        self.tenant = tenant
        self.tenant_id = tenant.id if tenant else None
        self.user_id = user_id
        self.discounts = DiscountService(db)

    # Validation

    def validate(self, request: CheckoutRequest, require_name: bool = True) -> tuple[str, str | None]:
        """Presence and format checks, before any database or provider call."""
        if not request.items:
            raise CheckoutValidationError("No items provided")

        email = (request.customer_email or "").strip()
        name = (request.customer_name or "").strip() or None
        if not email or (require_name and not name):
            raise CheckoutValidationError("Customer email and name are required")
        if not EMAIL_RE.match(email):
            raise CheckoutValidationError("Invalid email format")

        for item in request.items:
            if item.price is None or item.price <= 0:
                raise CheckoutValidationError("Every item must have a positive price")
        return email, name

    async def price_items(self, items: list[CheckoutItem]) -> list[PricedItem]:
        """Match each submitted item to an active catalog row of this tenant."""
        return [await self._price_item(item) for item in items]

    async def _price_item(self, item: CheckoutItem) -> PricedItem:
        if item.item_type == ItemType.SOUND_KIT:
            kit = await self._active(SoundKit, item.sound_kit_id)
            if kit is None:
                raise CheckoutValidationError("Sound kit not found")
            self._check_price(item.price, kit.price, kit.title)
            return PricedItem(
                item_type=ItemType.SOUND_KIT,
                title=kit.title,
                price=Decimal(kit.price),
                sound_kit_id=kit.id,
            )

        beat = await self._active(Beat, item.beat_id)
        tier = await self._active(LicenseTier, item.license_tier_id)
        if beat is None or tier is None or tier.beat_id != beat.id:
            raise CheckoutValidationError("Beat or license not found")
        self._check_price(item.price, tier.price, beat.title)
        return PricedItem(
            item_type=ItemType.BEAT,
            title=beat.title,
            price=Decimal(tier.price),
            beat_id=beat.id,
            license_tier_id=tier.id,
            license_name=tier.name,
        )

    async def _active(self, model, row_id: UUID | None):
        if row_id is None:
            return None
        result = await self.db.execute(
            select(model).where(
                model.id == row_id,
                model.is_active.is_(True),
                tenant_scope(model.tenant_id, self.tenant_id),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _check_price(submitted: Decimal, catalog: Decimal, title: str) -> None:
        if Decimal(submitted).quantize(Decimal("0.01")) != Decimal(catalog).quantize(Decimal("0.01")):
            raise CheckoutValidationError(f"Price for {title} has changed, please refresh your cart")

    # Persistence

    async def _create_order(
        self,
        provider: PaymentProvider,
        email: str,
        name: str | None,
        priced: list[PricedItem],
        discount: AppliedDiscount | None,
    ) -> Order:
        subtotal = sum((p.price for p in priced), Decimal("0"))
        discount_amount = discount.amount if discount else Decimal("0")

        order = Order(
            tenant_id=self.tenant_id,
            user_id=self.user_id,
            customer_email=email,
            customer_name=name,
            total=subtotal - discount_amount,
            status=OrderStatus.PENDING,
            payment_provider=provider,
            discount_code=discount.code if discount else None,
            discount_amount=discount_amount,
            download_expires_at=datetime.now(timezone.utc) + timedelta(days=settings.DOWNLOAD_WINDOW_DAYS),
        )
        order.items = [
            OrderItem(
                position=position,
                tenant_id=self.tenant_id,
                item_type=p.item_type,
                beat_id=p.beat_id,
                license_tier_id=p.license_tier_id,
                sound_kit_id=p.sound_kit_id,
                beat_title=p.title if p.item_type == ItemType.BEAT else None,
                item_title=p.title,
                license_name=p.license_name,
                price=p.price,
            )
            for position, p in enumerate(priced)
        ]
        self.db.add(order)
        # Items must be committed before the provider session exists
        await self.db.commit()
        logger.info(f"Created pending {provider.value} order {order.id} total {order.total}")
        return order

    async def _prepare(
        self, request: CheckoutRequest, require_name: bool
    ) -> tuple[str, str | None, list[PricedItem], AppliedDiscount | None]:
        email, name = self.validate(request, require_name=require_name)
        priced = await self.price_items(request.items)
        subtotal = sum((p.price for p in priced), Decimal("0"))
        discount = await self.discounts.apply(request.discount_code, subtotal, self.tenant_id)
        if request.discount_amount and discount is None:
            raise CheckoutValidationError("Discount amount requires a valid discount code")
        return email, name, priced, discount

    # Stripe

    async def create_stripe_checkout(
        self,
        request: CheckoutRequest,
        gateway: StripeGateway,
        origin: str | None = None,
    ) -> StripeCheckoutResponse:
        email, name, priced, discount = await self._prepare(request, require_name=True)
        order = await self._create_order(PaymentProvider.STRIPE, email, name, priced, discount)
        base = (origin or settings.SITE_URL).rstrip("/")

        line_items = [
            {
                "price_data": {
                    "currency": settings.STRIPE_CURRENCY,
                    "product_data": {"name": p.title, "description": p.description},
                    "unit_amount": to_cents(p.price),
                },
                "quantity": 1,
            }
            for p in priced
        ]

        discounts = None
        if discount and discount.amount > 0:
            coupon_id = await gateway.create_amount_off_coupon(
                to_cents(discount.amount), settings.STRIPE_CURRENCY, f"Discount {discount.code}"
            )
            discounts = [{"coupon": coupon_id}]

        session = await gateway.create_checkout_session(
            line_items=line_items,
            success_url=f"{base}/checkout?stripe_session_id={{CHECKOUT_SESSION_ID}}&orderId={order.id}",
            cancel_url=f"{base}/cart",
            metadata={
                "order_id": str(order.id),
                "customer_name": name or "",
                "discount_code": discount.code if discount else "",
                "discount_amount": str(discount.amount) if discount else "0",
            },
            customer_email=email,
            discounts=discounts,
            idempotency_key=f"checkout-{order.id}",
        )
        if not session.url:
            raise ProviderError(f"Stripe session {session.id} has no redirect URL")

        order.provider_order_id = session.id
        await self.db.commit()
        logger.info(f"Stripe session {session.id} opened for order {order.id}")

        return StripeCheckoutResponse(url=session.url, session_id=session.id, order_id=order.id)

    # PayPal

    async def create_paypal_order(
        self,
        request: CheckoutRequest,
        client: PayPalClient,
        origin: str | None = None,
    ) -> PayPalOrderResponse:
        email, name, priced, discount = await self._prepare(request, require_name=False)
        order = await self._create_order(PaymentProvider.PAYPAL, email, name, priced, discount)
        base = (origin or settings.SITE_URL).rstrip("/")

        paypal_order = await client.create_order(
            reference_id=str(order.id),
            items=[
                PayPalLineItem(name=f"{p.title} - {p.description}", price=p.price)
                for p in priced
            ],
            discount=discount.amount if discount else Decimal("0"),
            return_url=f"{base}/checkout?paypal=success&orderId={order.id}",
            cancel_url=f"{base}/cart",
        )
        if not paypal_order.approval_url:
            raise ProviderError(f"PayPal order {paypal_order.id} has no approval link")

        order.provider_order_id = paypal_order.id
        await self.db.commit()
        logger.info(f"PayPal order {paypal_order.id} created for order {order.id}")

        return PayPalOrderResponse(
            order_id=order.id,
            paypal_order_id=paypal_order.id,
            approval_url=paypal_order.approval_url,
        )

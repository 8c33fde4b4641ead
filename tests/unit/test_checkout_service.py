"""
Unit tests for the checkout service.

Tests:
- Input validation before any persistence
- Catalog price and ownership checks
- Order totals with and without discount codes
- Stripe session and PayPal order parameters
"""
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from beatstore.core.exceptions import CheckoutValidationError
from beatstore.models.discount import DiscountCode, DiscountType
from beatstore.models.order import ItemType, Order, OrderStatus, PaymentProvider
from beatstore.schemas.checkout import CheckoutItem, CheckoutRequest
from beatstore.services.checkout_service import CheckoutService, to_cents


def beat_item(catalog, tier="mp3", price=None) -> CheckoutItem:
    chosen = catalog[tier]
    return CheckoutItem(
        item_type=ItemType.BEAT,
        beat_id=catalog["beat"].id,
        license_tier_id=chosen.id,
        price=price if price is not None else chosen.price,
    )


def kit_item(catalog, price=None) -> CheckoutItem:
    return CheckoutItem(
        item_type=ItemType.SOUND_KIT,
        sound_kit_id=catalog["kit"].id,
        price=price if price is not None else catalog["kit"].price,
    )


def checkout_request(items, **overrides) -> CheckoutRequest:
    data = {
        "items": items,
        "customer_email": "buyer@example.com",
        "customer_name": "Buyer",
    }
    data.update(overrides)
    return CheckoutRequest(**data)


async def order_count(db) -> int:
    result = await db.execute(select(func.count(Order.id)))
    return result.scalar()


class TestToCents:

    @pytest.mark.parametrize("amount,cents", [
        (Decimal("29.99"), 2999),
        (Decimal("0.005"), 1),
        (Decimal("10"), 1000),
    ])
    def test_rounding(self, amount, cents):
        assert to_cents(amount) == cents


class TestValidation:

    def test_empty_cart_rejected(self, db_session):
        with pytest.raises(CheckoutValidationError, match="No items provided"):
            CheckoutService(db_session).validate(checkout_request([]))

    def test_name_required_for_stripe(self, db_session, catalog):
        request = checkout_request([beat_item(catalog)], customer_name="  ")

        with pytest.raises(CheckoutValidationError, match="Customer email and name are required"):
            CheckoutService(db_session).validate(request)

    def test_name_optional_for_paypal(self, db_session, catalog):
        request = checkout_request([beat_item(catalog)], customer_name=None)

        email, name = CheckoutService(db_session).validate(request, require_name=False)

        assert email == "buyer@example.com"
        assert name is None

    def test_invalid_email_rejected(self, db_session, catalog):
        request = checkout_request([beat_item(catalog)], customer_email="not-an-email")

        with pytest.raises(CheckoutValidationError, match="Invalid email format"):
            CheckoutService(db_session).validate(request)

    def test_zero_price_rejected(self, db_session, catalog):
        request = checkout_request([beat_item(catalog, price=Decimal("0"))])

        with pytest.raises(CheckoutValidationError, match="positive price"):
            CheckoutService(db_session).validate(request)


class TestCatalogChecks:

    @pytest.mark.asyncio
    async def test_price_mismatch_rejected_without_order(self, db_session, catalog, stripe_gateway):
        request = checkout_request([beat_item(catalog, price=Decimal("1.00"))])

        with pytest.raises(CheckoutValidationError, match="Price for Midnight Drive has changed"):
            await CheckoutService(db_session).create_stripe_checkout(request, stripe_gateway)

        assert await order_count(db_session) == 0
        assert stripe_gateway.created == []

    @pytest.mark.asyncio
    async def test_unknown_tier_rejected(self, db_session, catalog, stripe_gateway):
        item = beat_item(catalog)
        item.license_tier_id = catalog["kit"].id
        request = checkout_request([item])

        with pytest.raises(CheckoutValidationError, match="Beat or license not found"):
            await CheckoutService(db_session).create_stripe_checkout(request, stripe_gateway)

    @pytest.mark.asyncio
    async def test_inactive_kit_rejected(self, db_session, catalog, stripe_gateway):
        catalog["kit"].is_active = False
        await db_session.commit()

        with pytest.raises(CheckoutValidationError, match="Sound kit not found"):
            await CheckoutService(db_session).create_stripe_checkout(
                checkout_request([kit_item(catalog)]), stripe_gateway
            )

    @pytest.mark.asyncio
    async def test_other_storefront_catalog_not_sold(self, db_session, catalog, tenant, stripe_gateway):
        service = CheckoutService(db_session, tenant=tenant)

        with pytest.raises(CheckoutValidationError, match="Beat or license not found"):
            await service.create_stripe_checkout(checkout_request([beat_item(catalog)]), stripe_gateway)


class TestStripeCheckout:

    @pytest.mark.asyncio
    async def test_pending_order_persisted_with_items(self, db_session, catalog, stripe_gateway):
        request = checkout_request([beat_item(catalog, "wav"), kit_item(catalog)])

        response = await CheckoutService(db_session).create_stripe_checkout(
            request, stripe_gateway, origin="https://shop.example.com"
        )

        order = await db_session.get(Order, response.order_id)
        assert order.status == OrderStatus.PENDING
        assert order.payment_provider == PaymentProvider.STRIPE
        assert order.total == Decimal("69.98")
        assert order.provider_order_id == response.session_id
        assert sorted(i.item_title for i in order.items) == ["Dusty Drums Vol. 1", "Midnight Drive"]
        assert order.download_expires_at is not None

    @pytest.mark.asyncio
    async def test_session_parameters(self, db_session, catalog, stripe_gateway):
        request = checkout_request([beat_item(catalog, "wav")])

        response = await CheckoutService(db_session).create_stripe_checkout(
            request, stripe_gateway, origin="https://shop.example.com/"
        )

        params = stripe_gateway.created[0]
        assert params["metadata"]["order_id"] == str(response.order_id)
        assert params["customer_email"] == "buyer@example.com"
        assert params["idempotency_key"] == f"checkout-{response.order_id}"
        assert params["cancel_url"] == "https://shop.example.com/cart"
        assert params["success_url"].startswith(
            "https://shop.example.com/checkout?stripe_session_id={CHECKOUT_SESSION_ID}"
        )
        line = params["line_items"][0]["price_data"]
        assert line["unit_amount"] == 4999
        assert line["product_data"]["description"] == "Premium License"
        assert params["discounts"] is None

    @pytest.mark.asyncio
    async def test_discount_applied_server_side(self, db_session, catalog, stripe_gateway):
        db_session.add(DiscountCode(
            code="SAVE10",
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("10"),
        ))
        await db_session.commit()
        request = checkout_request(
            [beat_item(catalog, "wav"), beat_item(catalog, "mp3")],
            discount_code="save10",
            discount_amount=Decimal("999"),
        )

        response = await CheckoutService(db_session).create_stripe_checkout(request, stripe_gateway)

        order = await db_session.get(Order, response.order_id)
        subtotal = sum(item.price for item in order.items)
        assert order.discount_code == "SAVE10"
        assert order.discount_amount == Decimal("7.998").quantize(Decimal("0.01"))
        assert order.total == subtotal - order.discount_amount
        assert stripe_gateway.coupons[0]["amount_off"] == 800
        assert stripe_gateway.created[0]["discounts"] == [{"coupon": "coupon_1"}]

    @pytest.mark.asyncio
    async def test_discount_amount_without_code_rejected(self, db_session, catalog, stripe_gateway):
        request = checkout_request([beat_item(catalog)], discount_amount=Decimal("5"))

        with pytest.raises(CheckoutValidationError, match="requires a valid discount code"):
            await CheckoutService(db_session).create_stripe_checkout(request, stripe_gateway)

        assert await order_count(db_session) == 0


class TestPayPalCheckout:

    @pytest.mark.asyncio
    async def test_order_references_local_order(self, db_session, catalog, paypal_client):
        request = checkout_request([kit_item(catalog)], customer_name=None)

        response = await CheckoutService(db_session).create_paypal_order(request, paypal_client)

        order = await db_session.get(Order, response.order_id)
        assert order.payment_provider == PaymentProvider.PAYPAL
        assert order.provider_order_id == response.paypal_order_id
        assert paypal_client.orders[0]["reference_id"] == str(order.id)
        assert response.approval_url.endswith(response.paypal_order_id)
        assert order.total == Decimal("19.99")

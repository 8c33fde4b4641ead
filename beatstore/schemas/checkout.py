"""
Checkout request and response schemas.

Presence checks (non-empty cart, customer email and name) are done by the
checkout service so they surface as ``{error}`` responses.
"""
from decimal import Decimal
from uuid import UUID

from pydantic import Field

from beatstore.models.order import ItemType
from beatstore.schemas.common import BaseSchema


class CheckoutItem(BaseSchema):
    """One cart entry submitted for checkout."""

    item_type: ItemType = ItemType.BEAT
    beat_id: UUID | None = None
    beat_title: str | None = None
    license_tier_id: UUID | None = None
    license_name: str | None = None
    sound_kit_id: UUID | None = None
    sound_kit_title: str | None = None
    price: Decimal


class CheckoutRequest(BaseSchema):
    items: list[CheckoutItem] = Field(default_factory=list)
    customer_email: str | None = None
    customer_name: str | None = None
    discount_code: str | None = None
    discount_amount: Decimal | None = None


class StripeCheckoutResponse(BaseSchema):
    url: str
    session_id: str
    order_id: UUID


class PayPalOrderResponse(BaseSchema):
    order_id: UUID
    paypal_order_id: str
    approval_url: str

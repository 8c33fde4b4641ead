"""
Order schemas.
"""
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from beatstore.models.order import ItemType, OrderStatus, PaymentProvider
from beatstore.schemas.common import BaseSchema, IDSchema


class OrderItemResponse(IDSchema):
    item_type: ItemType
    beat_id: UUID | None = None
    license_tier_id: UUID | None = None
    sound_kit_id: UUID | None = None
    beat_title: str | None = None
    item_title: str | None = None
    license_name: str | None = None
    price: Decimal
    download_count: int = 0


class OrderResponse(IDSchema):
    customer_email: str
    customer_name: str | None = None
    total: Decimal
    status: OrderStatus
    payment_provider: PaymentProvider
    payment_transaction_id: str | None = None
    discount_code: str | None = None
    discount_amount: Decimal = Decimal("0")
    download_expires_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    items: list[OrderItemResponse] = []

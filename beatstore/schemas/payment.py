"""
Payment confirmation schemas.
"""
from uuid import UUID

from pydantic import Field

from beatstore.schemas.common import BaseSchema
from beatstore.schemas.order import OrderResponse


class VerifyStripeSessionRequest(BaseSchema):
    session_id: str = Field(min_length=1)
    order_id: UUID


class VerifyStripeSessionResponse(BaseSchema):
    success: bool
    status: str
    order_id: UUID | None = None


class CapturePayPalRequest(BaseSchema):
    paypal_order_id: str | None = None
    order_id: UUID | None = None


class CapturePayPalResponse(BaseSchema):
    success: bool
    order: OrderResponse
    transaction_id: str | None = None
    generated_licenses: int = 0


class WebhookAck(BaseSchema):
    received: bool = True

"""
Exclusive offer schemas.
"""
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import EmailStr, Field

from beatstore.models.offer import OfferStatus
from beatstore.schemas.common import BaseSchema, IDSchema


class OfferCreate(BaseSchema):
    beat_id: UUID
    beat_title: str | None = Field(default=None, max_length=255)
    customer_name: str = Field(min_length=1, max_length=255)
    customer_email: EmailStr
    offer_amount: Decimal = Field(gt=0)
    message: str | None = Field(default=None, max_length=2000)


class OfferResponse(IDSchema):
    beat_id: UUID
    customer_name: str
    customer_email: str
    offer_amount: Decimal
    message: str | None = None
    status: OfferStatus
    created_at: datetime

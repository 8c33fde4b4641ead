"""
Exclusive offer model.
"""
from enum import Enum as PyEnum

from sqlalchemy import Column, ForeignKey, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID

from beatstore.models.base import Base, TenantBaseModel, enum_column_type


class OfferStatus(str, PyEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COUNTERED = "countered"


class ExclusiveOffer(Base, TenantBaseModel):
    """A customer's bid for exclusive rights to a beat."""

    __tablename__ = "exclusive_offers"

    beat_id = Column(
        UUID(as_uuid=True),
        ForeignKey("beats.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    offer_amount = Column(Numeric(10, 2), nullable=False)
    message = Column(Text, nullable=True)
    status = Column(
        enum_column_type(OfferStatus, "offer_status"),
        default=OfferStatus.PENDING,
        nullable=False,
    )

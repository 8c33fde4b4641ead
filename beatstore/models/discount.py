"""
Discount code model.
"""
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, UniqueConstraint

from beatstore.models.base import Base, TenantBaseModel, enum_column_type


class DiscountType(str, PyEnum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class DiscountCode(Base, TenantBaseModel):
    __tablename__ = "discount_codes"
    __table_args__ = (UniqueConstraint("tenant_id", "code", name="uq_discount_codes_tenant_code"),)

    code = Column(String(100), nullable=False, index=True)
    discount_type = Column(
        enum_column_type(DiscountType, "discount_type"),
        default=DiscountType.PERCENTAGE,
        nullable=False,
    )
    discount_value = Column(Numeric(10, 2), nullable=False)
    min_order_amount = Column(Numeric(10, 2), nullable=True)
    max_uses = Column(Integer, nullable=True)
    current_uses = Column(Integer, default=0, nullable=False)
    starts_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    def is_redeemable(self, now: datetime | None = None) -> bool:
        """Active, inside its validity window and under its usage cap."""
        now = now or datetime.now(timezone.utc)
        if not self.is_active:
            return False
        if self.starts_at and _aware(self.starts_at) > now:
            return False
        if self.expires_at and _aware(self.expires_at) <= now:
            return False
        if self.max_uses is not None and self.current_uses >= self.max_uses:
            return False
        return True

    def amount_for(self, subtotal: Decimal) -> Decimal:
        """Discount applied to ``subtotal``, clamped to it."""
        if self.discount_type == DiscountType.PERCENTAGE:
            amount = subtotal * Decimal(self.discount_value) / Decimal(100)
        else:
            amount = Decimal(self.discount_value)
        amount = amount.quantize(Decimal("0.01"))
        return max(Decimal("0.00"), min(amount, subtotal))

    def __repr__(self) -> str:
        return f"<DiscountCode {self.code}>"


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

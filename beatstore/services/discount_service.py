"""
Discount code lookup and redemption accounting.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from beatstore.core.exceptions import CheckoutValidationError
from beatstore.models.discount import DiscountCode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppliedDiscount:
    code: str
    amount: Decimal


def tenant_scope(column, tenant_id: UUID | None):
    """Filter clause for rows of one storefront (NULL for the default one)."""
    if tenant_id is None:
        return column.is_(None)
    return column == tenant_id


class DiscountService:
    """Service for discount code operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_code(self, code: str, tenant_id: UUID | None) -> DiscountCode | None:
        result = await self.db.execute(
            select(DiscountCode).where(
                func.upper(DiscountCode.code) == code.strip().upper(),
                tenant_scope(DiscountCode.tenant_id, tenant_id),
            )
        )
        return result.scalar_one_or_none()

    async def apply(
        self,
        code: str | None,
        subtotal: Decimal,
        tenant_id: UUID | None,
    ) -> AppliedDiscount | None:
        """Validate ``code`` against ``subtotal``.

        Returns None when no code was supplied. The amount is always computed
        here; a client-supplied amount is never trusted.
        """
        if not code or not code.strip():
            return None

        discount = await self.get_by_code(code, tenant_id)
        if discount is None or not discount.is_redeemable():
            raise CheckoutValidationError("Invalid or expired discount code")

        if discount.min_order_amount is not None and subtotal < discount.min_order_amount:
            raise CheckoutValidationError(
                f"Minimum order of ${Decimal(discount.min_order_amount):.2f} required for this code"
            )

        amount = discount.amount_for(subtotal)
        logger.info(f"Discount {discount.code} applied: {amount} off {subtotal}")
        return AppliedDiscount(code=discount.code, amount=amount)

    async def record_use(self, code: str, tenant_id: UUID | None) -> None:
        """Increment the usage counter. Does not commit."""
        await self.db.execute(
            update(DiscountCode)
            .where(
                DiscountCode.code == code,
                tenant_scope(DiscountCode.tenant_id, tenant_id),
            )
            .values(current_uses=DiscountCode.current_uses + 1)
            .execution_options(synchronize_session=False)
        )

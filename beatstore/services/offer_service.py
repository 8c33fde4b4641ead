"""
Exclusive-rights offers on beats.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from beatstore.config import settings
from beatstore.core.exceptions import CatalogItemNotFoundError
from beatstore.models.catalog import Beat
from beatstore.models.offer import ExclusiveOffer, OfferStatus
from beatstore.models.tenant import Tenant
from beatstore.models.user import User
from beatstore.schemas.offer import OfferCreate
from beatstore.services.discount_service import tenant_scope
from beatstore.services.email_service import EmailService

logger = logging.getLogger(__name__)


class OfferService:
    """Records offers and notifies the store owner."""

    def __init__(self, db: AsyncSession, email_service: EmailService):
        self.db = db
        self.email_service = email_service

    async def submit(self, data: OfferCreate, tenant: Tenant | None) -> ExclusiveOffer:
        tenant_id = tenant.id if tenant else None
        result = await self.db.execute(
            select(Beat).where(
                Beat.id == data.beat_id,
                Beat.is_active.is_(True),
                tenant_scope(Beat.tenant_id, tenant_id),
            )
        )
        beat = result.scalar_one_or_none()
        if beat is None:
            raise CatalogItemNotFoundError("Beat not found")

        offer = ExclusiveOffer(
            tenant_id=tenant_id,
            beat_id=beat.id,
            customer_name=data.customer_name.strip(),
            customer_email=str(data.customer_email).lower(),
            offer_amount=data.offer_amount,
            message=data.message,
            status=OfferStatus.PENDING,
        )
        self.db.add(offer)
        await self.db.commit()
        await self.db.refresh(offer)
        logger.info(f"Offer {offer.id} of {offer.offer_amount} received for beat {beat.id}")

        try:
            await self.email_service.send_offer_notification(
                offer_id=str(offer.id),
                beat_title=beat.title,
                customer_name=offer.customer_name,
                customer_email=offer.customer_email,
                offer_amount=offer.offer_amount,
                message=offer.message,
                to=await self._notify_address(tenant),
            )
        except Exception as e:
            logger.error(f"Offer notification failed for {offer.id}: {e}")

        return offer

    async def _notify_address(self, tenant: Tenant | None) -> str:
        if tenant is None:
            return settings.ADMIN_EMAIL
        result = await self.db.execute(select(User.email).where(User.id == tenant.owner_user_id))
        return result.scalar_one_or_none() or settings.ADMIN_EMAIL

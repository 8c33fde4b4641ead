"""
Post-payment fulfillment: license documents and the confirmation e-mail.

Runs after an order has been committed as completed. Nothing here can undo
that commit: a failing item is logged and skipped, and a failing e-mail is
logged. The customer can always reach the purchase through the download
endpoint.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol
from urllib.parse import urlencode

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from beatstore.config import settings
from beatstore.models.catalog import Beat, LicenseTier, LicenseType
from beatstore.models.order import ItemType, Order, OrderItem
from beatstore.models.tenant import DomainStatus, Tenant
from beatstore.services.email_service import EmailAttachment, EmailLineItem, EmailService
from beatstore.services.license_generator import (
    SOUND_KIT_LICENSE_TYPE,
    GeneratedLicense,
    LicenseContext,
)

logger = logging.getLogger(__name__)


class LicenseDocumentGenerator(Protocol):
    async def generate(self, ctx: LicenseContext) -> GeneratedLicense: ...


@dataclass
class FulfillmentResult:
    generated: list[GeneratedLicense] = field(default_factory=list)
    failed_item_ids: list[str] = field(default_factory=list)
    email_sent: bool = False
    email_error: str | None = None


def storefront_url(tenant: Tenant | None) -> str:
    """Public base URL of a tenant's storefront."""
    if tenant is None:
        return settings.SITE_URL.rstrip("/")
    if tenant.custom_domain and tenant.domain_status == DomainStatus.ACTIVE:
        return f"https://{tenant.custom_domain}"
    return f"https://{tenant.slug}.{settings.PLATFORM_ROOT_DOMAIN}"


def download_access_url(order: Order, tenant: Tenant | None = None) -> str:
    """Re-entrant download page link keyed by order id and e-mail."""
    query = urlencode({"orderId": str(order.id), "email": order.customer_email})
    return f"{storefront_url(tenant)}/download?{query}"


class FulfillmentPipeline:
    """Generates per-item licenses, then sends one confirmation e-mail."""

    def __init__(
        self,
        db: AsyncSession,
        license_generator: LicenseDocumentGenerator,
        email_service: EmailService,
    ):
        self.db = db
        self.license_generator = license_generator
        self.email_service = email_service

    async def run(self, order: Order) -> FulfillmentResult:
        result = FulfillmentResult()
        items: list[OrderItem] = list(order.items)
        try:
            tenant = await self._tenant(order)
        except Exception as e:
            logger.error(f"Tenant lookup failed while fulfilling order {order.id}: {e}")
            tenant = None
        try:
            tiers, beats = await self._catalog_for(items)
        except Exception as e:
            logger.error(f"Catalog lookup failed while fulfilling order {order.id}: {e}")
            tiers, beats = {}, {}
        purchase_date = order.completed_at or datetime.now(timezone.utc)

        for item in items:
            ctx = self._license_context(order, item, tiers, beats, purchase_date, tenant)
            try:
                generated = await self.license_generator.generate(ctx)
            except Exception as e:
                logger.error(f"License generation failed for order item {item.id}: {e}")
                result.failed_item_ids.append(str(item.id))
                continue
            result.generated.append(generated)

        logger.info(
            f"Generated {len(result.generated)}/{len(items)} licenses for order {order.id}"
        )

        try:
            await self.email_service.send_order_confirmation(
                to=order.customer_email,
                customer_name=order.customer_name,
                order_id=str(order.id),
                items=[
                    EmailLineItem(
                        title=item.title,
                        license_name=item.license_name or "",
                        price=item.price,
                    )
                    for item in items
                ],
                total=order.total,
                download_url=download_access_url(order, tenant),
                expires_at=order.download_expires_at,
                attachments=[
                    EmailAttachment(filename=g.filename, content=g.content)
                    for g in result.generated
                ],
                discount_code=order.discount_code,
                discount_amount=order.discount_amount,
                store_name=tenant.name if tenant else None,
            )
            result.email_sent = True
        except Exception as e:
            logger.error(f"Confirmation e-mail failed for order {order.id}: {e}")
            result.email_error = str(e)

        return result

    async def _tenant(self, order: Order) -> Tenant | None:
        if order.tenant_id is None:
            return None
        return await self.db.get(Tenant, order.tenant_id)

    async def _catalog_for(
        self, items: list[OrderItem]
    ) -> tuple[dict, dict]:
        tier_ids = {i.license_tier_id for i in items if i.license_tier_id}
        beat_ids = {i.beat_id for i in items if i.beat_id}

        tiers = {}
        if tier_ids:
            rows = await self.db.execute(select(LicenseTier).where(LicenseTier.id.in_(tier_ids)))
            tiers = {t.id: t for t in rows.scalars()}

        beats = {}
        if beat_ids:
            rows = await self.db.execute(select(Beat).where(Beat.id.in_(beat_ids)))
            beats = {b.id: b for b in rows.scalars()}

        return tiers, beats

    def _license_context(
        self,
        order: Order,
        item: OrderItem,
        tiers: dict,
        beats: dict,
        purchase_date: datetime,
        tenant: Tenant | None,
    ) -> LicenseContext:
        if item.item_type == ItemType.SOUND_KIT:
            license_type = SOUND_KIT_LICENSE_TYPE
            license_name = item.license_name or "Sound Kit"
            bpm = genre = None
        else:
            tier = tiers.get(item.license_tier_id)
            beat = beats.get(item.beat_id)
            license_type = tier.type.value if tier else LicenseType.MP3.value
            license_name = item.license_name or (tier.name if tier else "Standard")
            bpm = beat.bpm if beat else None
            genre = beat.genre if beat else None

        return LicenseContext(
            order_id=str(order.id),
            order_item_id=str(item.id),
            item_type=item.item_type.value,
            item_title=item.title,
            license_name=license_name,
            license_type=license_type,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            purchase_date=purchase_date,
            price=item.price,
            bpm=bpm,
            genre=genre,
            producer_name=tenant.name if tenant else None,
        )

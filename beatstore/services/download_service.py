"""
Download access for completed orders.

Access is keyed by order id plus customer e-mail. Every call signs fresh,
short-lived URLs; nothing long-lived is handed out.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from pathlib import PurePosixPath
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from beatstore.config import settings
from beatstore.core.exceptions import DownloadExpiredError, OrderNotFoundError
from beatstore.integrations.storage import BaseStorageClient, BeatstorePaths
from beatstore.models.catalog import Beat, LicenseTier, LicenseType, SoundKit
from beatstore.models.order import ItemType, Order, OrderItem, OrderStatus
from beatstore.schemas.download import DownloadFile, DownloadItem, DownloadOrder, DownloadResponse

logger = logging.getLogger(__name__)

# Higher tiers include the files of the lower ones
TIER_FILES = {
    LicenseType.MP3: ("mp3_file_path",),
    LicenseType.WAV: ("mp3_file_path", "wav_file_path"),
    LicenseType.STEMS: ("mp3_file_path", "wav_file_path", "stems_file_path"),
    LicenseType.EXCLUSIVE: ("mp3_file_path", "wav_file_path", "stems_file_path"),
}

FILE_LABELS = {"mp3": "MP3", "wav": "WAV", "stems": "Stems"}


def file_type_for(key: str) -> str:
    suffix = PurePosixPath(key).suffix.lower()
    if suffix == ".zip":
        return "stems"
    if suffix == ".wav":
        return "wav"
    return "mp3"


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DownloadService:
    """Builds signed download lists for completed orders."""

    def __init__(self, db: AsyncSession, storage: BaseStorageClient):
        self.db = db
        self.storage = storage

    async def get_completed_order(self, order_id: UUID, customer_email: str) -> Order:
        result = await self.db.execute(
            select(Order).where(
                Order.id == order_id,
                Order.status == OrderStatus.COMPLETED,
                func.lower(Order.customer_email) == customer_email.strip().lower(),
            )
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError("Order not found or not completed")
        return order

    async def get_downloads(
        self,
        order_id: UUID,
        customer_email: str,
        now: datetime | None = None,
    ) -> DownloadResponse:
        order = await self.get_completed_order(order_id, customer_email)

        now = now or datetime.now(timezone.utc)
        if order.download_expires_at and _aware(order.download_expires_at) < now:
            logger.info(f"Download window closed for order {order.id}")
            raise DownloadExpiredError("Download link has expired")

        items = list(order.items)
        tiers = await self._by_id(LicenseTier, {i.license_tier_id for i in items if i.license_tier_id})
        beats = await self._by_id(Beat, {i.beat_id for i in items if i.beat_id})
        kits = await self._by_id(SoundKit, {i.sound_kit_id for i in items if i.sound_kit_id})

        loop = asyncio.get_running_loop()
        generated = await loop.run_in_executor(None, self._generated_licenses, str(order.id))

        planned: list[tuple[OrderItem, list[tuple[str, str, str]]]] = []
        for item in items:
            if item.item_type == ItemType.SOUND_KIT:
                files = self._sound_kit_files(item, kits.get(item.sound_kit_id), generated)
            else:
                files = self._beat_files(
                    item, beats.get(item.beat_id), tiers.get(item.license_tier_id), generated
                )
            planned.append((item, files))

        signed = await loop.run_in_executor(None, self._sign_all, planned)

        downloads = [
            DownloadItem(
                item_type=item.item_type,
                beat_title=item.title,
                license_name=item.license_name,
                files=files,
            )
            for (item, _), files in zip(planned, signed)
        ]

        # Only items that handed out at least one link count as downloaded
        served = [item.id for (item, _), files in zip(planned, signed) if files]
        if served:
            await self.db.execute(
                update(OrderItem)
                .where(OrderItem.id.in_(served))
                .values(download_count=OrderItem.download_count + 1)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()

        return DownloadResponse(order=DownloadOrder.model_validate(order), downloads=downloads)

    async def _by_id(self, model, ids: set) -> dict:
        if not ids:
            return {}
        result = await self.db.execute(select(model).where(model.id.in_(ids)))
        return {row.id: row for row in result.scalars()}

    def _generated_licenses(self, order_id: str) -> dict[str, str]:
        """Map order item id to its generated license key."""
        keys = self.storage.list_keys(BeatstorePaths.generated_license_prefix(order_id))
        return {PurePosixPath(key).stem: key for key in keys}

    def _beat_files(
        self,
        item: OrderItem,
        beat: Beat | None,
        tier: LicenseTier | None,
        generated: dict[str, str],
    ) -> list[tuple[str, str, str]]:
        files = []
        if beat is not None:
            attrs = TIER_FILES.get(tier.type if tier else LicenseType.MP3, TIER_FILES[LicenseType.MP3])
            for attr in attrs:
                key = getattr(beat, attr)
                if key:
                    file_type = file_type_for(key)
                    files.append((f"{item.title} - {FILE_LABELS[file_type]}", key, file_type))

        license_key = generated.get(str(item.id)) or (tier.license_pdf_path if tier else None)
        if license_key:
            files.append((f"{item.title} - License", license_key, "license"))
        return files

    def _sound_kit_files(
        self,
        item: OrderItem,
        kit: SoundKit | None,
        generated: dict[str, str],
    ) -> list[tuple[str, str, str]]:
        files = []
        if kit is not None and kit.file_path:
            files.append((item.title, kit.file_path, "soundkit"))
        license_key = generated.get(str(item.id))
        if license_key:
            files.append((f"{item.title} - License", license_key, "license"))
        return files

    def _sign_all(
        self, planned: list[tuple[OrderItem, list[tuple[str, str, str]]]]
    ) -> list[list[DownloadFile]]:
        ttl = timedelta(seconds=settings.SIGNED_URL_TTL_SECONDS)
        signed = []
        for _, files in planned:
            entries = []
            for name, key, file_type in files:
                try:
                    url = self.storage.signed_url(key, ttl)
                except Exception as e:
                    logger.error(f"Could not sign {key}: {e}")
                    continue
                entries.append(DownloadFile(name=name, url=url, type=file_type))
            signed.append(entries)
        return signed

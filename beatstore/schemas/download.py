"""
Download access schemas.
"""
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import EmailStr

from beatstore.models.order import ItemType
from beatstore.schemas.common import BaseSchema


class DownloadRequest(BaseSchema):
    order_id: UUID
    customer_email: EmailStr


class DownloadFile(BaseSchema):
    name: str
    url: str
    type: str


class DownloadItem(BaseSchema):
    item_type: ItemType
    beat_title: str
    license_name: str | None = None
    files: list[DownloadFile] = []


class DownloadOrder(BaseSchema):
    id: UUID
    customer_email: str
    customer_name: str | None = None
    total: Decimal
    created_at: datetime
    download_expires_at: datetime | None = None


class DownloadResponse(BaseSchema):
    order: DownloadOrder
    downloads: list[DownloadItem]

"""
Storage Integration Client

Holds beat audio, sound-kit archives and license PDFs. Backends:
- local: Local filesystem (for development without S3)
- minio: MinIO S3-compatible storage
- b2: Backblaze B2 cloud storage

Catalog rows store full object keys (``beats/...``, ``soundkits/...``,
``licenses/...``). Customers only ever receive time-limited URLs.
"""

import hashlib
import hmac
import io
import logging
import mimetypes
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote, urlencode

from beatstore.config import settings

logger = logging.getLogger(__name__)


def guess_content_type(key: str) -> str:
    content_type, _ = mimetypes.guess_type(key)
    return content_type or "application/octet-stream"


class BaseStorageClient(ABC):
    """Abstract base class for storage clients."""

    @abstractmethod
    def put_object(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store ``data`` under ``key`` and return the key."""

    @abstractmethod
    def get_object(self, key: str) -> bytes:
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    def list_keys(self, prefix: str) -> List[str]:
        pass

    @abstractmethod
    def signed_url(self, key: str, ttl: timedelta) -> str:
        """Time-limited GET URL for ``key``."""


class LocalStorageClient(BaseStorageClient):
    """Local filesystem storage for development.

    URLs carry an expiry and an HMAC over ``key`` and expiry keyed with the
    JWT secret, so a static file server in front of ``base_path`` can check
    them.
    """

    def __init__(self, base_path: str = None, base_url: str = None):
        self.base_path = Path(base_path or settings.LOCAL_STORAGE_PATH)
        self.base_url = (base_url or settings.LOCAL_STORAGE_BASE_URL).rstrip("/")
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"LocalStorageClient initialized at {self.base_path}")

    def _path(self, key: str) -> Path:
        return self.base_path / key

    def put_object(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info(f"Stored {len(data)} bytes at {key}")
        return key

    def get_object(self, key: str) -> bytes:
        path = self._path(key)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {key}")
        return path.read_bytes()

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def list_keys(self, prefix: str) -> List[str]:
        root = self._path(prefix)
        if not root.exists():
            return []
        return [
            p.relative_to(self.base_path).as_posix()
            for p in sorted(root.rglob("*"))
            if p.is_file()
        ]

    def signed_url(self, key: str, ttl: timedelta) -> str:
        expires_at = int((datetime.now(timezone.utc) + ttl).timestamp())
        signature = hmac.new(
            settings.JWT_SECRET.encode(),
            f"{key}:{expires_at}".encode(),
            hashlib.sha256,
        ).hexdigest()
        query = urlencode({"expires": expires_at, "signature": signature})
        return f"{self.base_url}/{quote(key)}?{query}"


class S3StorageClient(BaseStorageClient):
    """S3-compatible storage (MinIO or Backblaze B2) using the MinIO SDK."""

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        secure: bool = False,
        region: Optional[str] = None,
    ):
        from minio import Minio

        self.bucket = bucket
        self._client = Minio(
            endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,
            region=region,
        )
        logger.info(f"S3StorageClient initialized at {endpoint}/{bucket}")

    def put_object(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        self._client.put_object(
            self.bucket,
            key,
            io.BytesIO(data),
            length=len(data),
            content_type=content_type or guess_content_type(key),
        )
        logger.info(f"Stored {len(data)} bytes at s3://{self.bucket}/{key}")
        return key

    def get_object(self, key: str) -> bytes:
        response = self._client.get_object(self.bucket, key)
        try:
            return response.read()
        finally:
            response.close()
            response.release_conn()

    def exists(self, key: str) -> bool:
        from minio.error import S3Error
        try:
            self._client.stat_object(self.bucket, key)
            return True
        except S3Error as e:
            if e.code == "NoSuchKey":
                return False
            raise

    def list_keys(self, prefix: str) -> List[str]:
        return [
            obj.object_name
            for obj in self._client.list_objects(self.bucket, prefix=prefix, recursive=True)
        ]

    def signed_url(self, key: str, ttl: timedelta) -> str:
        return self._client.presigned_get_object(self.bucket, key, expires=ttl)


class BeatstorePaths:
    """Object keys for files the service writes."""

    @staticmethod
    def generated_license_prefix(order_id: str) -> str:
        return f"licenses/generated/{order_id}/"

    @staticmethod
    def generated_license(order_id: str, order_item_id: str) -> str:
        return f"licenses/generated/{order_id}/{order_item_id}.pdf"


_default_client: Optional[BaseStorageClient] = None


def get_storage_client() -> BaseStorageClient:
    """Get or create the storage client selected by ``STORAGE_PROVIDER``."""
    global _default_client

    if _default_client is None:
        provider = settings.STORAGE_PROVIDER
        logger.info(f"Initializing storage client with provider: {provider}")

        if provider == "local":
            _default_client = LocalStorageClient()
        elif provider == "b2":
            _default_client = S3StorageClient(
                endpoint=settings.B2_ENDPOINT,
                access_key=settings.B2_KEY_ID,
                secret_key=settings.B2_APPLICATION_KEY,
                bucket=settings.B2_BUCKET,
                secure=True,
                region=settings.B2_REGION,
            )
        else:
            _default_client = S3StorageClient(
                endpoint=settings.MINIO_ENDPOINT,
                access_key=settings.MINIO_ACCESS_KEY,
                secret_key=settings.MINIO_SECRET_KEY,
                bucket=settings.MINIO_BUCKET,
                secure=settings.MINIO_USE_SSL,
            )

    return _default_client

"""
External service integrations for Beatstore.

- stripe_gateway: Stripe Checkout sessions, coupons and webhook parsing
- paypal: PayPal Orders v2 API
- storage: local filesystem or S3-compatible storage using MinIO
"""

from beatstore.integrations.paypal import PayPalClient
from beatstore.integrations.storage import (
    BaseStorageClient,
    LocalStorageClient,
    S3StorageClient,
    get_storage_client,
    BeatstorePaths,
)
from beatstore.integrations.stripe_gateway import CheckoutSession, StripeGateway

__all__ = [
    "PayPalClient",
    "BaseStorageClient",
    "LocalStorageClient",
    "S3StorageClient",
    "get_storage_client",
    "BeatstorePaths",
    "CheckoutSession",
    "StripeGateway",
]

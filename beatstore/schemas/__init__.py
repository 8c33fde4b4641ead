"""
Pydantic schemas for the Beatstore API.
"""
from beatstore.schemas.common import (
    BaseSchema,
    IDSchema,
    TimestampSchema,
    PaginatedResponse,
    ErrorResponse,
)
from beatstore.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
    AuthResponse,
)
from beatstore.schemas.tenant import (
    TenantResponse,
    CurrentTenantResponse,
    SlugUpdate,
    DomainUpdate,
    TenantStatusUpdate,
    TenantDomainResponse,
)
from beatstore.schemas.checkout import (
    CheckoutItem,
    CheckoutRequest,
    StripeCheckoutResponse,
    PayPalOrderResponse,
)
from beatstore.schemas.order import OrderItemResponse, OrderResponse
from beatstore.schemas.payment import (
    VerifyStripeSessionRequest,
    VerifyStripeSessionResponse,
    CapturePayPalRequest,
    CapturePayPalResponse,
    WebhookAck,
)
from beatstore.schemas.download import (
    DownloadRequest,
    DownloadFile,
    DownloadItem,
    DownloadOrder,
    DownloadResponse,
)
from beatstore.schemas.offer import OfferCreate, OfferResponse
from beatstore.schemas.saas import (
    SaasCheckoutRequest,
    SaasCheckoutResponse,
    OnboardingRequest,
    OnboardingResponse,
)

__all__ = [
    # Common
    "BaseSchema",
    "IDSchema",
    "TimestampSchema",
    "PaginatedResponse",
    "ErrorResponse",
    # Auth
    "LoginRequest",
    "RegisterRequest",
    "TokenResponse",
    "UserResponse",
    "AuthResponse",
    # Tenant
    "TenantResponse",
    "CurrentTenantResponse",
    "SlugUpdate",
    "DomainUpdate",
    "TenantStatusUpdate",
    "TenantDomainResponse",
    # Checkout
    "CheckoutItem",
    "CheckoutRequest",
    "StripeCheckoutResponse",
    "PayPalOrderResponse",
    # Orders
    "OrderItemResponse",
    "OrderResponse",
    # Payments
    "VerifyStripeSessionRequest",
    "VerifyStripeSessionResponse",
    "CapturePayPalRequest",
    "CapturePayPalResponse",
    "WebhookAck",
    # Downloads
    "DownloadRequest",
    "DownloadFile",
    "DownloadItem",
    "DownloadOrder",
    "DownloadResponse",
    # Offers
    "OfferCreate",
    "OfferResponse",
    # SaaS
    "SaasCheckoutRequest",
    "SaasCheckoutResponse",
    "OnboardingRequest",
    "OnboardingResponse",
]

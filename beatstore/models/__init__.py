"""
SQLAlchemy models for Beatstore.
"""
from beatstore.models.base import Base, BaseModel, TenantBaseModel
from beatstore.models.tenant import DomainStatus, Tenant, TenantDomain, TenantPlan, TenantStatus
from beatstore.models.user import User, UserRole, UserStatus
from beatstore.models.catalog import Beat, LicenseTier, LicenseType, SoundKit
from beatstore.models.order import ItemType, Order, OrderItem, OrderStatus, PaymentProvider
from beatstore.models.discount import DiscountCode, DiscountType
from beatstore.models.offer import ExclusiveOffer, OfferStatus
from beatstore.models.payment_setting import PaymentSetting

__all__ = [
    "Base",
    "BaseModel",
    "TenantBaseModel",
    "DomainStatus",
    "Tenant",
    "TenantDomain",
    "TenantPlan",
    "TenantStatus",
    "User",
    "UserRole",
    "UserStatus",
    "Beat",
    "LicenseTier",
    "LicenseType",
    "SoundKit",
    "ItemType",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentProvider",
    "DiscountCode",
    "DiscountType",
    "ExclusiveOffer",
    "OfferStatus",
    "PaymentSetting",
]

"""
Tenant models for multi-storefront hosting.
"""
from enum import Enum as PyEnum

from sqlalchemy import Column, DateTime, ForeignKey, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship

from beatstore.models.base import Base, BaseModel, UUIDMixin, enum_column_type


class TenantStatus(str, PyEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class TenantPlan(str, PyEnum):
    LAUNCH = "launch"
    PRO = "pro"
    STUDIO = "studio"

    @property
    def allows_custom_domain(self) -> bool:
        return self in (TenantPlan.PRO, TenantPlan.STUDIO)


class DomainStatus(str, PyEnum):
    NONE = "none"
    PENDING = "pending"
    ACTIVE = "active"


class Tenant(Base, BaseModel):
    """An independently branded storefront."""

    __tablename__ = "tenants"

    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    custom_domain = Column(String(255), unique=True, nullable=True)
    domain_status = Column(
        enum_column_type(DomainStatus, "domain_status"),
        default=DomainStatus.NONE,
        nullable=False,
    )
    plan = Column(
        enum_column_type(TenantPlan, "tenant_plan"),
        default=TenantPlan.LAUNCH,
        nullable=False,
    )
    status = Column(
        enum_column_type(TenantStatus, "tenant_status"),
        default=TenantStatus.ACTIVE,
        nullable=False,
    )
    owner_user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    branding = Column(JSONB, default=dict)
    stripe_payment_id = Column(String(255), unique=True, nullable=True)

    # Relationships
    owner = relationship("User", foreign_keys=[owner_user_id])
    domains = relationship("TenantDomain", back_populates="tenant", cascade="all, delete-orphan")

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Tenant {self.name} ({self.slug})>"


class TenantDomain(Base, UUIDMixin):
    """Verification state of a tenant's custom domain."""

    __tablename__ = "tenant_domains"

    tenant_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    domain = Column(String(255), unique=True, nullable=False, index=True)
    status = Column(
        enum_column_type(DomainStatus, "domain_status"),
        default=DomainStatus.PENDING,
        nullable=False,
    )
    verification_token = Column(String(64), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    tenant = relationship("Tenant", back_populates="domains")

    def __repr__(self) -> str:
        return f"<TenantDomain {self.domain} ({self.status.value})>"

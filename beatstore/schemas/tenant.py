"""
Tenant schemas.
"""
from datetime import datetime
from uuid import UUID

from pydantic import Field

from beatstore.models.tenant import DomainStatus, TenantPlan, TenantStatus
from beatstore.schemas.common import BaseSchema, IDSchema, TimestampSchema


class TenantResponse(IDSchema, TimestampSchema):
    """Tenant response."""

    name: str
    slug: str
    custom_domain: str | None = None
    domain_status: DomainStatus
    plan: TenantPlan
    status: TenantStatus
    owner_user_id: UUID
    branding: dict | None = None


class CurrentTenantResponse(BaseSchema):
    """Outcome of resolving the request host to a storefront."""

    tenant: TenantResponse | None = None
    is_saas_landing: bool
    error: str | None = None


class SlugUpdate(BaseSchema):
    slug: str = Field(min_length=1, max_length=100)


class DomainUpdate(BaseSchema):
    """Set or clear (``None`` / empty) the tenant's custom domain."""

    custom_domain: str | None = Field(default=None, max_length=255)


class TenantStatusUpdate(BaseSchema):
    status: TenantStatus


class TenantDomainResponse(IDSchema):
    tenant_id: UUID
    domain: str
    status: DomainStatus
    verification_token: str | None = None
    verified_at: datetime | None = None

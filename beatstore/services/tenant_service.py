"""
Tenant service for business logic.
"""
import logging
import re
import secrets
from datetime import datetime, timezone
from uuid import UUID

from fastapi import status as http_status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from beatstore.core.exceptions import TenantSettingsError
from beatstore.models.tenant import DomainStatus, Tenant, TenantDomain, TenantPlan, TenantStatus

logger = logging.getLogger(__name__)

SLUG_MIN_LENGTH = 3
HOSTNAME_RE = re.compile(r"^(?=.{4,253}$)([a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$")


def normalize_slug(raw: str) -> str:
    """Trim, lowercase and drop anything outside ``[a-z0-9-]``."""
    return re.sub(r"[^a-z0-9-]", "", raw.strip().lower())


def normalize_domain(raw: str) -> str:
    domain = raw.strip().lower()
    domain = re.sub(r"^https?://", "", domain)
    domain = domain.split("/", 1)[0].rstrip(".")
    return domain


class TenantService:
    """Service for tenant operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, tenant_id: UUID) -> Tenant | None:
        """Get tenant by ID."""
        result = await self.db.execute(
            select(Tenant).where(Tenant.id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> Tenant | None:
        """Get tenant by slug."""
        result = await self.db.execute(
            select(Tenant).where(Tenant.slug == slug)
        )
        return result.scalar_one_or_none()

    async def get_by_stripe_payment(self, payment_id: str) -> Tenant | None:
        result = await self.db.execute(
            select(Tenant).where(Tenant.stripe_payment_id == payment_id)
        )
        return result.scalar_one_or_none()

    async def get_owned(self, user_id: UUID) -> Tenant | None:
        """The caller's storefront (oldest first if several)."""
        result = await self.db.execute(
            select(Tenant)
            .where(Tenant.owner_user_id == user_id)
            .order_by(Tenant.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_tenants(
        self,
        page: int = 1,
        per_page: int = 20,
        status: TenantStatus | None = None,
    ) -> tuple[list[Tenant], int]:
        """List tenants with pagination."""
        query = select(Tenant).order_by(Tenant.created_at.desc())
        count_query = select(func.count(Tenant.id))

        if status:
            query = query.where(Tenant.status == status)
            count_query = count_query.where(Tenant.status == status)

        total_result = await self.db.execute(count_query)
        total = total_result.scalar()

        query = query.offset((page - 1) * per_page).limit(per_page)
        result = await self.db.execute(query)
        tenants = result.scalars().all()

        return list(tenants), total

    async def create(
        self,
        name: str,
        slug: str,
        owner_user_id: UUID,
        plan: TenantPlan = TenantPlan.LAUNCH,
        stripe_payment_id: str | None = None,
    ) -> Tenant:
        """Create an active tenant."""
        slug = await self._available_slug(slug)
        tenant = Tenant(
            name=name,
            slug=slug,
            owner_user_id=owner_user_id,
            plan=plan,
            status=TenantStatus.ACTIVE,
            domain_status=DomainStatus.NONE,
            branding={},
            stripe_payment_id=stripe_payment_id,
        )
        self.db.add(tenant)
        await self.db.flush()
        await self.db.refresh(tenant)
        logger.info(f"Created tenant {tenant.slug} on plan {plan.value}")
        return tenant

    async def _available_slug(self, raw: str, exclude_id: UUID | None = None) -> str:
        slug = normalize_slug(raw)
        if len(slug) < SLUG_MIN_LENGTH:
            raise TenantSettingsError(f"Subdomain must be at least {SLUG_MIN_LENGTH} characters")

        existing = await self.get_by_slug(slug)
        if existing is not None and existing.id != exclude_id:
            raise TenantSettingsError("Subdomain already taken", http_status.HTTP_409_CONFLICT)
        return slug

    async def update_slug(self, tenant: Tenant, raw_slug: str) -> Tenant:
        tenant.slug = await self._available_slug(raw_slug, exclude_id=tenant.id)
        await self.db.flush()
        await self.db.refresh(tenant)
        return tenant

    async def set_custom_domain(self, tenant: Tenant, raw_domain: str | None) -> Tenant:
        """Request a custom domain, or clear it with an empty value.

        A new domain starts ``pending`` until a platform admin activates it
        after DNS verification.
        """
        if not raw_domain or not raw_domain.strip():
            await self.db.execute(delete(TenantDomain).where(TenantDomain.tenant_id == tenant.id))
            tenant.custom_domain = None
            tenant.domain_status = DomainStatus.NONE
            await self.db.flush()
            await self.db.refresh(tenant)
            return tenant

        if not tenant.plan.allows_custom_domain:
            raise TenantSettingsError(
                "Custom domains require the Pro or Studio plan",
                http_status.HTTP_403_FORBIDDEN,
            )

        domain = normalize_domain(raw_domain)
        if not HOSTNAME_RE.match(domain):
            raise TenantSettingsError("Invalid domain")

        taken = await self.db.execute(
            select(Tenant.id).where(Tenant.custom_domain == domain, Tenant.id != tenant.id)
        )
        mapped = await self.db.execute(
            select(TenantDomain.id).where(TenantDomain.domain == domain, TenantDomain.tenant_id != tenant.id)
        )
        if taken.first() is not None or mapped.first() is not None:
            raise TenantSettingsError("Domain already in use", http_status.HTTP_409_CONFLICT)

        await self.db.execute(
            delete(TenantDomain).where(TenantDomain.tenant_id == tenant.id, TenantDomain.domain != domain)
        )
        result = await self.db.execute(
            select(TenantDomain).where(TenantDomain.tenant_id == tenant.id, TenantDomain.domain == domain)
        )
        mapping = result.scalar_one_or_none()
        if mapping is None:
            mapping = TenantDomain(tenant_id=tenant.id, domain=domain)
            self.db.add(mapping)
        mapping.status = DomainStatus.PENDING
        mapping.verification_token = secrets.token_hex(16)
        mapping.verified_at = None

        tenant.custom_domain = domain
        tenant.domain_status = DomainStatus.PENDING
        await self.db.flush()
        await self.db.refresh(tenant)
        logger.info(f"Tenant {tenant.slug} requested domain {domain}")
        return tenant

    async def get_domain_mapping(self, tenant: Tenant) -> TenantDomain | None:
        if not tenant.custom_domain:
            return None
        result = await self.db.execute(
            select(TenantDomain).where(
                TenantDomain.tenant_id == tenant.id,
                TenantDomain.domain == tenant.custom_domain,
            )
        )
        return result.scalar_one_or_none()

    async def activate_domain(self, tenant: Tenant) -> TenantDomain:
        """Mark the tenant's pending domain as verified and live."""
        mapping = await self.get_domain_mapping(tenant)
        if mapping is None:
            raise TenantSettingsError("Tenant has no custom domain to activate")

        mapping.status = DomainStatus.ACTIVE
        mapping.verified_at = datetime.now(timezone.utc)
        tenant.domain_status = DomainStatus.ACTIVE
        await self.db.flush()
        logger.info(f"Domain {mapping.domain} activated for tenant {tenant.slug}")
        return mapping

    async def update_status(self, tenant: Tenant, status: TenantStatus) -> Tenant:
        tenant.status = status
        await self.db.flush()
        await self.db.refresh(tenant)
        return tenant

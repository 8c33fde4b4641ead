"""
Hostname to storefront resolution.

Order of precedence, first match wins:

1. Preview and SaaS root hosts resolve to the authenticated user's own
   active tenant, else to the SaaS landing page.
2. ``{slug}.{PLATFORM_ROOT_DOMAIN}`` resolves to the active tenant with
   that slug.
3. An active ``tenant_domains`` row for the exact hostname resolves to its
   tenant when that tenant is active.
4. Anything else is the SaaS landing page.

Lookup failures never resolve to an arbitrary tenant: they are reported in
``error`` and fall back to the landing page.
"""
import asyncio
import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from beatstore.config import settings
from beatstore.models.tenant import DomainStatus, Tenant, TenantDomain, TenantStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthState:
    """Authentication as seen by the resolver.

    ``settled`` is False while the caller's session is still loading.
    """

    settled: bool = True
    user_id: UUID | None = None


ANONYMOUS = AuthState(settled=True)


@dataclass(frozen=True)
class TenantResolution:
    tenant: Tenant | None = None
    is_saas_landing: bool = False
    pending: bool = False
    error: str | None = None
    source: str | None = None


PENDING = TenantResolution(pending=True)


def normalize_hostname(host: str | None) -> str:
    """Lowercase a Host header value and strip its port and trailing dot."""
    if not host:
        return ""
    host = host.strip().lower()
    if host.startswith("["):
        # IPv6 literal
        end = host.find("]")
        host = host[1:end] if end != -1 else host[1:]
    elif host.count(":") == 1:
        host = host.split(":", 1)[0]
    return host.rstrip(".")


def is_root_or_preview_host(hostname: str) -> bool:
    if hostname in settings.saas_root_hosts_list:
        return True
    return any(marker in hostname for marker in settings.preview_host_markers_list)


def extract_subdomain(hostname: str, root_domain: str | None = None) -> str | None:
    """Candidate slug for ``{slug}.{root}``, or None."""
    root = (root_domain or settings.PLATFORM_ROOT_DOMAIN).lower()
    suffix = f".{root}"
    if not hostname.endswith(suffix):
        return None
    sub = hostname[: -len(suffix)]
    if not sub or sub == "www":
        return None
    return sub


class TenantResolver:
    """
    Resolves hostnames to tenants.

    Results are memoised per (hostname, user) so each combination is looked
    up once for the lifetime of the resolver.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self._cache: dict[tuple[str, UUID | None], TenantResolution] = {}
        self._lock = asyncio.Lock()

    async def resolve(self, host: str | None, auth: AuthState = ANONYMOUS) -> TenantResolution:
        if not auth.settled:
            return PENDING

        hostname = normalize_hostname(host)
        key = (hostname, auth.user_id)

        async with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                return cached
            resolution = await self._resolve(hostname, auth)
            self._cache[key] = resolution
            return resolution

    async def _resolve(self, hostname: str, auth: AuthState) -> TenantResolution:
        try:
            if is_root_or_preview_host(hostname):
                if auth.user_id is not None:
                    tenant = await self._owned_tenant(auth.user_id)
                    if tenant:
                        return TenantResolution(tenant=tenant, source="owner")
                return TenantResolution(is_saas_landing=True, source="landing")

            slug = extract_subdomain(hostname)
            if slug:
                tenant = await self._tenant_by_slug(slug)
                if tenant:
                    return TenantResolution(tenant=tenant, source="subdomain")

            tenant = await self._tenant_by_domain(hostname)
            if tenant:
                return TenantResolution(tenant=tenant, source="custom_domain")

            return TenantResolution(is_saas_landing=True, source="landing")
        except Exception as e:
            logger.error(f"Tenant resolution error for {hostname}: {e}")
            return TenantResolution(
                is_saas_landing=True,
                error=str(e) or "Failed to resolve tenant",
                source="landing",
            )

    async def _owned_tenant(self, user_id: UUID) -> Tenant | None:
        result = await self.db.execute(
            select(Tenant)
            .where(
                Tenant.owner_user_id == user_id,
                Tenant.status == TenantStatus.ACTIVE,
            )
            .order_by(Tenant.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _tenant_by_slug(self, slug: str) -> Tenant | None:
        result = await self.db.execute(
            select(Tenant).where(
                Tenant.slug == slug,
                Tenant.status == TenantStatus.ACTIVE,
            )
        )
        return result.scalar_one_or_none()

    async def _tenant_by_domain(self, hostname: str) -> Tenant | None:
        result = await self.db.execute(
            select(Tenant)
            .join(TenantDomain, TenantDomain.tenant_id == Tenant.id)
            .where(
                TenantDomain.domain == hostname,
                TenantDomain.status == DomainStatus.ACTIVE,
                Tenant.status == TenantStatus.ACTIVE,
            )
        )
        return result.scalar_one_or_none()

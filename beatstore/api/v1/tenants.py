"""
Tenant endpoints: host resolution, owner settings and platform admin.
"""
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from beatstore.core.deps import DbSession, SuperAdmin, get_tenant_resolution, require_permission
from beatstore.models.tenant import Tenant, TenantStatus
from beatstore.models.user import User
from beatstore.schemas.common import PaginatedResponse
from beatstore.schemas.tenant import (
    CurrentTenantResponse,
    DomainUpdate,
    SlugUpdate,
    TenantDomainResponse,
    TenantResponse,
    TenantStatusUpdate,
)
from beatstore.services.tenant_resolver import TenantResolution
from beatstore.services.tenant_service import TenantService

router = APIRouter(prefix="/tenants", tags=["Tenants"])
current_router = APIRouter(prefix="/tenant", tags=["Tenants"])

TenantOwner = Annotated[User, Depends(require_permission("tenant:settings"))]


async def _owned_tenant(service: TenantService, user: User) -> Tenant:
    tenant = await service.get_owned(user.id)
    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found",
        )
    return tenant


async def _tenant_or_404(service: TenantService, tenant_id: UUID) -> Tenant:
    tenant = await service.get_by_id(tenant_id)
    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found",
        )
    return tenant


@current_router.get("/current", response_model=CurrentTenantResponse)
async def get_current_tenant(
    resolution: Annotated[TenantResolution, Depends(get_tenant_resolution)],
):
    """Storefront for the request host, or the SaaS landing outcome."""
    return CurrentTenantResponse(
        tenant=TenantResponse.model_validate(resolution.tenant) if resolution.tenant else None,
        is_saas_landing=resolution.is_saas_landing,
        error=resolution.error,
    )


@current_router.patch("/settings/slug", response_model=TenantResponse)
async def update_slug(
    data: SlugUpdate,
    user: TenantOwner,
    db: DbSession,
):
    """Change the storefront subdomain."""
    service = TenantService(db)
    tenant = await _owned_tenant(service, user)
    tenant = await service.update_slug(tenant, data.slug)
    return TenantResponse.model_validate(tenant)


@current_router.put("/settings/domain", response_model=TenantResponse)
async def update_domain(
    data: DomainUpdate,
    user: TenantOwner,
    db: DbSession,
):
    """Request a custom domain, or clear it."""
    service = TenantService(db)
    tenant = await _owned_tenant(service, user)
    tenant = await service.set_custom_domain(tenant, data.custom_domain)
    return TenantResponse.model_validate(tenant)


@router.get("", response_model=PaginatedResponse[TenantResponse])
async def list_tenants(
    _: SuperAdmin,
    db: DbSession,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    status: TenantStatus | None = None,
):
    """List all tenants (super admin only)."""
    service = TenantService(db)
    tenants, total = await service.list_tenants(page, per_page, status)

    return PaginatedResponse.create(
        items=[TenantResponse.model_validate(t) for t in tenants],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.patch("/{tenant_id}/status", response_model=TenantResponse)
async def update_tenant_status(
    tenant_id: UUID,
    data: TenantStatusUpdate,
    _: SuperAdmin,
    db: DbSession,
):
    """Activate or deactivate a storefront (super admin only)."""
    service = TenantService(db)
    tenant = await _tenant_or_404(service, tenant_id)
    tenant = await service.update_status(tenant, data.status)
    return TenantResponse.model_validate(tenant)


@router.post("/{tenant_id}/domain/activate", response_model=TenantDomainResponse)
async def activate_domain(
    tenant_id: UUID,
    _: SuperAdmin,
    db: DbSession,
):
    """Mark a tenant's custom domain as verified (super admin only)."""
    service = TenantService(db)
    tenant = await _tenant_or_404(service, tenant_id)
    mapping = await service.activate_domain(tenant)
    return TenantDomainResponse.model_validate(mapping)

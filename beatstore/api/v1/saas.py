"""
SaaS plan purchase and storefront onboarding.
"""
from fastapi import APIRouter, Request

from beatstore.core.deps import CurrentUser, DbSession, StripeDep
from beatstore.schemas.saas import (
    OnboardingRequest,
    OnboardingResponse,
    SaasCheckoutRequest,
    SaasCheckoutResponse,
)
from beatstore.schemas.tenant import TenantResponse
from beatstore.services.saas_service import SaasService

router = APIRouter(prefix="/saas", tags=["SaaS"])


@router.post("/checkout", response_model=SaasCheckoutResponse)
async def create_plan_checkout(
    data: SaasCheckoutRequest,
    request: Request,
    user: CurrentUser,
    db: DbSession,
    gateway: StripeDep,
):
    """Start a Stripe Checkout for a storefront plan."""
    session = await SaasService(db, gateway).create_checkout(
        data.plan_key,
        user,
        email=str(data.email) if data.email else None,
        origin=request.headers.get("origin"),
    )
    return SaasCheckoutResponse(url=session.url, session_id=session.id)


@router.post("/onboarding", response_model=OnboardingResponse)
async def complete_onboarding(
    data: OnboardingRequest,
    user: CurrentUser,
    db: DbSession,
    gateway: StripeDep,
):
    """Create the storefront paid for by a plan checkout session."""
    tenant, created = await SaasService(db, gateway).onboard(
        data.session_id, data.store_name, data.slug, user
    )
    return OnboardingResponse(tenant=TenantResponse.model_validate(tenant), created=created)

"""
Checkout endpoints for Stripe and PayPal.
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from beatstore.config import settings
from beatstore.core.deps import (
    CurrentTenant,
    DbSession,
    OptionalUser,
    PayPalDep,
    StripeDep,
    enforce_rate_limit,
    get_client_ip,
    get_rate_limiter_dep,
)
from beatstore.schemas.checkout import CheckoutRequest, PayPalOrderResponse, StripeCheckoutResponse
from beatstore.services.checkout_service import CheckoutService
from beatstore.services.rate_limiter import RateLimiter

router = APIRouter(prefix="/checkout", tags=["Checkout"])


async def _limit_checkout(request: Request, limiter: RateLimiter, data: CheckoutRequest) -> None:
    email = (data.customer_email or "").strip().lower()
    await enforce_rate_limit(
        limiter,
        "checkout",
        f"{email}:{get_client_ip(request)}",
        settings.RATE_LIMIT_CHECKOUT_PER_WINDOW,
    )


@router.post("/stripe", response_model=StripeCheckoutResponse)
async def create_stripe_checkout(
    data: CheckoutRequest,
    request: Request,
    db: DbSession,
    tenant: CurrentTenant,
    user: OptionalUser,
    gateway: StripeDep,
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter_dep)],
):
    """Create a pending order and a Stripe Checkout session."""
    await _limit_checkout(request, limiter, data)
    service = CheckoutService(db, tenant=tenant, user_id=user.id if user else None)
    return await service.create_stripe_checkout(data, gateway, origin=request.headers.get("origin"))


@router.post("/paypal", response_model=PayPalOrderResponse)
async def create_paypal_order(
    data: CheckoutRequest,
    request: Request,
    db: DbSession,
    tenant: CurrentTenant,
    user: OptionalUser,
    client: PayPalDep,
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter_dep)],
):
    """Create a pending order and a PayPal order awaiting approval."""
    await _limit_checkout(request, limiter, data)
    service = CheckoutService(db, tenant=tenant, user_id=user.id if user else None)
    return await service.create_paypal_order(data, client, origin=request.headers.get("origin"))

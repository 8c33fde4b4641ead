"""
Exclusive offer submission.
"""
from typing import Annotated

from fastapi import APIRouter, Depends, status

from beatstore.config import settings
from beatstore.core.deps import CurrentTenant, DbSession, EmailDep, enforce_rate_limit, get_rate_limiter_dep
from beatstore.schemas.offer import OfferCreate, OfferResponse
from beatstore.services.offer_service import OfferService
from beatstore.services.rate_limiter import RateLimiter

router = APIRouter(prefix="/offers", tags=["Offers"])


@router.post("", response_model=OfferResponse, status_code=status.HTTP_201_CREATED)
async def submit_offer(
    data: OfferCreate,
    db: DbSession,
    tenant: CurrentTenant,
    email_service: EmailDep,
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter_dep)],
):
    """Make an offer for exclusive rights to a beat."""
    await enforce_rate_limit(
        limiter,
        "offer",
        str(data.customer_email).lower(),
        settings.RATE_LIMIT_OFFER_PER_WINDOW,
    )
    offer = await OfferService(db, email_service).submit(data, tenant)
    return OfferResponse.model_validate(offer)

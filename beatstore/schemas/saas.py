"""
SaaS plan purchase and onboarding schemas.
"""
from pydantic import EmailStr, Field

from beatstore.models.tenant import TenantPlan
from beatstore.schemas.common import BaseSchema
from beatstore.schemas.tenant import TenantResponse


class SaasCheckoutRequest(BaseSchema):
    plan_key: TenantPlan
    email: EmailStr | None = None


class SaasCheckoutResponse(BaseSchema):
    url: str
    session_id: str


class OnboardingRequest(BaseSchema):
    session_id: str = Field(min_length=1)
    store_name: str = Field(min_length=2, max_length=255)
    slug: str = Field(min_length=1, max_length=100)


class OnboardingResponse(BaseSchema):
    tenant: TenantResponse
    created: bool

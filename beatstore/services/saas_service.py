"""
SaaS plan purchase and storefront onboarding.

A paid plan checkout session is redeemed once for a new tenant. Replaying
the same session returns the tenant it already created.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from beatstore.config import settings
from beatstore.core.exceptions import (
    OrderIntegrityError,
    PaymentNotCompletedError,
    ProviderConfigurationError,
)
from beatstore.integrations.stripe_gateway import CheckoutSession, StripeGateway
from beatstore.models.tenant import Tenant, TenantPlan
from beatstore.models.user import User
from beatstore.services.tenant_service import TenantService
from beatstore.services.user_service import UserService

logger = logging.getLogger(__name__)


class SaasService:
    """Plan checkout and tenant creation."""

    def __init__(self, db: AsyncSession, gateway: StripeGateway):
        self.db = db
        self.gateway = gateway
        self.tenants = TenantService(db)

    async def create_checkout(
        self,
        plan: TenantPlan,
        user: User,
        email: str | None = None,
        origin: str | None = None,
    ) -> CheckoutSession:
        price_id = settings.saas_plan_prices.get(plan.value)
        if not price_id:
            raise ProviderConfigurationError(f"No Stripe price configured for the {plan.value} plan")

        base = (origin or settings.SITE_URL).rstrip("/")
        session = await self.gateway.create_checkout_session(
            line_items=[{"price": price_id, "quantity": 1}],
            success_url=f"{base}/onboarding?session_id={{CHECKOUT_SESSION_ID}}&plan={plan.value}",
            cancel_url=f"{base}/pricing",
            metadata={"plan": plan.value, "user_id": str(user.id)},
            customer_email=email or user.email,
        )
        logger.info(f"SaaS checkout {session.id} opened for {plan.value} by user {user.id}")
        return session

    async def onboard(
        self,
        session_id: str,
        store_name: str,
        slug: str,
        user: User,
    ) -> tuple[Tenant, bool]:
        """Create the tenant paid for by ``session_id``.

        Returns ``(tenant, created)``; ``created`` is False on replay.
        """
        existing = await self.tenants.get_by_stripe_payment(session_id)
        if existing is not None:
            return self._replayed(existing, user), False

        session = await self.gateway.retrieve_session(session_id)
        if not session.is_paid:
            raise PaymentNotCompletedError("Payment not completed")
        if session.metadata.get("user_id") != str(user.id):
            raise OrderIntegrityError("Payment session belongs to another account")
        try:
            plan = TenantPlan(session.metadata.get("plan", ""))
        except ValueError:
            raise OrderIntegrityError("Payment session has no valid plan")

        tenant = await self.tenants.create(
            name=store_name.strip(),
            slug=slug,
            owner_user_id=user.id,
            plan=plan,
            stripe_payment_id=session.id,
        )
        await UserService(self.db).promote_to_owner(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Concurrent onboarding of the same session won the insert
            await self.db.rollback()
            existing = await self.tenants.get_by_stripe_payment(session_id)
            if existing is None:
                raise
            return self._replayed(existing, user), False

        return tenant, True

    @staticmethod
    def _replayed(tenant: Tenant, user: User) -> Tenant:
        if tenant.owner_user_id != user.id:
            raise OrderIntegrityError("Payment session belongs to another account")
        return tenant

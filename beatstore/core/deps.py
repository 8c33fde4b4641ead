"""
FastAPI dependencies for authentication, tenancy, rate limiting and
provider clients.
"""
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from beatstore.config import settings
from beatstore.core.exceptions import TooManyRequestsError
from beatstore.core.security import check_permission, decode_token
from beatstore.database import get_db
from beatstore.integrations.paypal import PayPalClient
from beatstore.integrations.storage import BaseStorageClient, get_storage_client
from beatstore.integrations.stripe_gateway import StripeGateway, load_stripe_secret_key
from beatstore.models.tenant import Tenant
from beatstore.models.user import User, UserRole, UserStatus
from beatstore.services.email_service import EmailService
from beatstore.services.fulfillment import FulfillmentPipeline
from beatstore.services.license_generator import LicenseGenerator
from beatstore.services.payment_confirmation import PaymentConfirmationService
from beatstore.services.rate_limiter import RateLimiter, RateLimitResult, get_rate_limiter
from beatstore.services.tenant_resolver import AuthState, TenantResolution, TenantResolver

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


async def _user_from_token(db: AsyncSession, token: str) -> User | None:
    payload = decode_token(token)
    if payload is None:
        return None

    try:
        user_id = UUID(payload.get("sub"))
    except (TypeError, ValueError):
        return None

    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    user = await _user_from_token(db, credentials.credentials)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Ensure the current user is active."""
    if current_user.status != UserStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user",
        )
    return current_user


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(optional_security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User | None:
    """The caller if a valid bearer token was sent, else None."""
    if credentials is None:
        return None
    user = await _user_from_token(db, credentials.credentials)
    if user is None or user.status != UserStatus.ACTIVE:
        return None
    return user


def require_permission(permission: str):
    """Dependency factory for permission checking."""

    async def permission_checker(
        current_user: Annotated[User, Depends(get_current_active_user)],
    ) -> User:
        if not check_permission(current_user.role.value, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {permission}",
            )
        return current_user

    return permission_checker


def require_roles(*roles: UserRole):
    """Dependency factory for role checking."""

    async def role_checker(
        current_user: Annotated[User, Depends(get_current_active_user)],
    ) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role required: {', '.join(r.value for r in roles)}",
            )
        return current_user

    return role_checker


# Common dependencies
CurrentUser = Annotated[User, Depends(get_current_active_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]
SuperAdmin = Annotated[User, Depends(require_roles(UserRole.SUPER_ADMIN))]
DbSession = Annotated[AsyncSession, Depends(get_db)]


# Tenancy

def get_request_host(request: Request) -> str | None:
    return request.headers.get("x-forwarded-host") or request.headers.get("host")


async def get_tenant_resolution(
    request: Request,
    db: DbSession,
    user: OptionalUser,
) -> TenantResolution:
    resolver = TenantResolver(db)
    auth = AuthState(settled=True, user_id=user.id if user else None)
    return await resolver.resolve(get_request_host(request), auth)


async def get_current_tenant(
    resolution: Annotated[TenantResolution, Depends(get_tenant_resolution)],
) -> Tenant | None:
    """Storefront serving this request; None means the platform default."""
    return resolution.tenant


CurrentTenant = Annotated[Tenant | None, Depends(get_current_tenant)]


# Rate limiting

def get_client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, then CF-Connecting-IP, then the peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    cf_ip = request.headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip.strip()
    if request.client:
        return request.client.host
    return "unknown"


async def get_rate_limiter_dep() -> RateLimiter:
    """Get rate limiter instance."""
    return get_rate_limiter()


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_at),
    }
    if result.retry_after is not None:
        headers["Retry-After"] = str(result.retry_after)
    return headers


async def enforce_rate_limit(
    limiter: RateLimiter,
    scope: str,
    identifier: str,
    limit: int,
) -> None:
    """Raise 429 once ``identifier`` exceeds ``limit`` in the window."""
    result = await limiter.check(scope, identifier, limit)
    if not result.allowed:
        raise TooManyRequestsError(headers=rate_limit_headers(result))


def rate_limit_by_ip(scope: str, limit_setting: str):
    """Dependency factory limiting an endpoint family per client IP."""

    async def limiter_dependency(
        request: Request,
        limiter: Annotated[RateLimiter, Depends(get_rate_limiter_dep)],
    ) -> None:
        await enforce_rate_limit(
            limiter, scope, get_client_ip(request), getattr(settings, limit_setting)
        )

    return limiter_dependency


# Providers

async def get_stripe_gateway(db: DbSession) -> StripeGateway:
    return StripeGateway(api_key=await load_stripe_secret_key(db))


def get_paypal_client() -> PayPalClient:
    return PayPalClient()


def get_email_service() -> EmailService:
    return EmailService()


def get_storage() -> BaseStorageClient:
    return get_storage_client()


def get_license_generator(
    storage: Annotated[BaseStorageClient, Depends(get_storage)],
) -> LicenseGenerator:
    return LicenseGenerator(storage)


def get_payment_confirmation(
    db: DbSession,
    license_generator: Annotated[LicenseGenerator, Depends(get_license_generator)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> PaymentConfirmationService:
    return PaymentConfirmationService(
        db, FulfillmentPipeline(db, license_generator, email_service)
    )


StripeDep = Annotated[StripeGateway, Depends(get_stripe_gateway)]
PayPalDep = Annotated[PayPalClient, Depends(get_paypal_client)]
EmailDep = Annotated[EmailService, Depends(get_email_service)]
StorageDep = Annotated[BaseStorageClient, Depends(get_storage)]
ConfirmationDep = Annotated[PaymentConfirmationService, Depends(get_payment_confirmation)]

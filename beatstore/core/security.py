"""
Password hashing, bearer tokens and role permissions.
"""
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from beatstore.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Sign ``data`` as a JWT that expires after ``expires_delta``.

    The default lifetime is ``ACCESS_TOKEN_EXPIRE_MINUTES``.
    """
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def issue_token(user) -> str:
    """Bearer token for a signed-in user. The role claim is informational;
    authorization always re-reads the user row."""
    return create_access_token(data={"sub": str(user.id), "role": user.role.value})


def decode_token(token: str) -> dict[str, Any] | None:
    """Claims of a valid, unexpired token, else None."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


# tenant:settings covers the caller's own storefront only
PERMISSIONS = {
    "super_admin": {"tenant:settings"},
    "tenant_owner": {"tenant:settings"},
    "customer": set(),
}


def check_permission(role: str, permission: str) -> bool:
    return permission in PERMISSIONS.get(role, set())

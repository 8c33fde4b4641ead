"""
Accounts: customers, store owners and platform admins.
"""
import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from beatstore.core.exceptions import AccountExistsError, AccountInactiveError, AuthenticationError
from beatstore.core.security import hash_password, verify_password
from beatstore.models.user import User, UserRole, UserStatus

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService:
    """Service for user operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: UUID) -> User | None:
        return await self.db.get(User, user_id)

    async def get_by_email(self, email: str) -> User | None:
        """Get user by e-mail, case-insensitively."""
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def register(self, email: str, password: str, name: str) -> User:
        """Create a customer account; store ownership comes with a plan purchase."""
        if await self.get_by_email(email) is not None:
            raise AccountExistsError("Email already registered")

        user = User(
            email=normalize_email(email),
            password_hash=hash_password(password),
            name=name.strip(),
            role=UserRole.CUSTOMER,
            status=UserStatus.ACTIVE,
        )
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)
        logger.info(f"Registered customer {user.id}")
        return user

    async def login(self, email: str, password: str) -> User:
        user = await self.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        if user.status != UserStatus.ACTIVE:
            raise AccountInactiveError("User account is not active")

        user.last_login_at = datetime.now(timezone.utc)
        await self.db.flush()
        await self.db.refresh(user)
        return user

    async def promote_to_owner(self, user: User) -> None:
        """Customers who buy a plan become tenant owners."""
        if user.role == UserRole.CUSTOMER:
            user.role = UserRole.TENANT_OWNER
            await self.db.flush()

"""
User model with role-based access control.
"""
from enum import Enum as PyEnum

from sqlalchemy import Column, DateTime, String

from beatstore.models.base import Base, BaseModel, enum_column_type


class UserRole(str, PyEnum):
    SUPER_ADMIN = "super_admin"
    TENANT_OWNER = "tenant_owner"
    CUSTOMER = "customer"


class UserStatus(str, PyEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


class User(Base, BaseModel):
    """User model with authentication and role information."""

    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(
        enum_column_type(UserRole, "user_role"),
        default=UserRole.CUSTOMER,
        nullable=False,
    )
    status = Column(
        enum_column_type(UserStatus, "user_status"),
        default=UserStatus.ACTIVE,
        nullable=False,
    )
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value})>"

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN

    def can_manage_tenant(self, tenant) -> bool:
        """Check if user can manage the given tenant."""
        if self.is_super_admin:
            return True
        return str(tenant.owner_user_id) == str(self.id)

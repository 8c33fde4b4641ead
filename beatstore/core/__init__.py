"""
Core utilities for Beatstore.
"""
from beatstore.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    decode_token,
    check_permission,
    PERMISSIONS,
)
from beatstore.core.deps import (
    get_current_user,
    get_current_active_user,
    require_permission,
    require_roles,
    CurrentUser,
    OptionalUser,
    SuperAdmin,
)

__all__ = [
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_token",
    "check_permission",
    "PERMISSIONS",
    "get_current_user",
    "get_current_active_user",
    "require_permission",
    "require_roles",
    "CurrentUser",
    "OptionalUser",
    "SuperAdmin",
]

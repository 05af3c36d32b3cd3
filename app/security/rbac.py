"""
Role-Based Access Control (RBAC) Module

Provides authorization controls for stock-changing and admin endpoints.
"""

from enum import Enum
from typing import Set
from fastapi import HTTPException, status
import logging

from app.api.deps import CurrentUser
from app.models.user import User

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """User roles, lowest privilege first."""
    OPERATOR = "OPERATOR"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"


class Permission(str, Enum):
    """Fine-grained permissions."""
    VIEW_INVENTORY = "view_inventory"
    RECEIVE_STOCK = "receive_stock"
    SHIP_STOCK = "ship_stock"
    TRANSFER_STOCK = "transfer_stock"
    BULK_IMPORT = "bulk_import"
    MANAGE_PRODUCTS = "manage_products"
    ARCHIVE_PRODUCTS = "archive_products"
    MANAGE_PARTIES = "manage_parties"
    MANAGE_WAREHOUSES = "manage_warehouses"
    VIEW_AUDIT = "view_audit"
    MANAGE_USERS = "manage_users"


# Role-to-permissions mapping
ROLE_PERMISSIONS: dict[Role, Set[Permission]] = {
    Role.OPERATOR: {
        Permission.VIEW_INVENTORY,
        Permission.RECEIVE_STOCK,
        Permission.SHIP_STOCK,
        Permission.TRANSFER_STOCK,
        Permission.MANAGE_PARTIES,
    },
    Role.MANAGER: {
        Permission.VIEW_INVENTORY,
        Permission.RECEIVE_STOCK,
        Permission.SHIP_STOCK,
        Permission.TRANSFER_STOCK,
        Permission.MANAGE_PARTIES,
        Permission.BULK_IMPORT,
        Permission.MANAGE_PRODUCTS,
        Permission.VIEW_AUDIT,
    },
    Role.ADMIN: set(Permission),  # All permissions
}


def get_user_role(user: User) -> Role:
    """Role stored on the user; unknown values fall back to the lowest role."""
    try:
        return Role((user.role or "").upper())
    except ValueError:
        return Role.OPERATOR


def get_user_permissions(user: User) -> Set[Permission]:
    return ROLE_PERMISSIONS[get_user_role(user)]


def has_permission(user: User, permission: Permission) -> bool:
    return permission in get_user_permissions(user)


def _deny(user: User, reason: str) -> HTTPException:
    logger.warning(f"Access denied for user {user.id} ({get_user_role(user).value}): {reason}")
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=reason)


def require_permission(permission: Permission):
    """
    Build a dependency that lets the request through only when the caller's
    role grants `permission`.

    Usage:
        @router.post("/bulk")
        async def bulk_inbound(
            rows: list[dict],
            _: None = Depends(require_permission(Permission.BULK_IMPORT)),
        ):
            ...
    """

    def checker(current_user: CurrentUser) -> None:
        if not has_permission(current_user, permission):
            raise _deny(current_user, f"Permission denied: requires {permission.value}")

    return checker


def require_admin(current_user: CurrentUser) -> None:
    """Dependency for user administration: ADMIN only."""
    if get_user_role(current_user) is not Role.ADMIN:
        raise _deny(current_user, "Admin access required")

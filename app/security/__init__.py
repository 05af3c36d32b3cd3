# Security module
from app.security.rbac import Permission, Role, require_admin, require_permission

__all__ = [
    "Permission",
    "Role",
    "require_admin",
    "require_permission",
]

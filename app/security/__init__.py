# Security module
from app.security.rbac import Permission, Role, has_permission, ensure_permission, can_override_schedule

__all__ = [
    "Permission",
    "Role",
    "has_permission",
    "ensure_permission",
    "can_override_schedule",
]

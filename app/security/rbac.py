"""
Role-Based Access Control (RBAC) Module

Maps the three application roles to permissions and provides FastAPI
dependencies for guarding endpoints.
"""

from enum import Enum
from typing import Set
from fastapi import HTTPException, status
import logging

from app.models.user import User
from app.services.eligibility import OVERRIDE_ROLES

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """User roles."""
    TEKNISI = "teknisi"
    SUPERVISOR = "supervisor"
    ADMIN = "admin"


class Permission(str, Enum):
    """Fine-grained permissions."""
    RECORD_INSPECTION = "record_inspection"
    VIEW_ALL_INSPECTIONS = "view_all_inspections"
    EDIT_INSPECTIONS = "edit_inspections"
    DELETE_INSPECTIONS = "delete_inspections"
    MANAGE_APARS = "manage_apars"
    DELETE_APARS = "delete_apars"
    MANAGE_SCHEDULES = "manage_schedules"
    APPROVE_REPAIRS = "approve_repairs"
    REPORT_REPAIRS = "report_repairs"
    VIEW_REPORTS = "view_reports"
    VIEW_AUDIT_LOGS = "view_audit_logs"
    SEND_REMINDERS = "send_reminders"
    SEND_BULK_NOTIFICATIONS = "send_bulk_notifications"
    MANAGE_USERS = "manage_users"


ROLE_PERMISSIONS: dict[Role, Set[Permission]] = {
    Role.TEKNISI: {
        Permission.RECORD_INSPECTION,
        Permission.REPORT_REPAIRS,
    },
    Role.SUPERVISOR: {
        Permission.RECORD_INSPECTION,
        Permission.VIEW_ALL_INSPECTIONS,
        Permission.EDIT_INSPECTIONS,
        Permission.MANAGE_APARS,
        Permission.MANAGE_SCHEDULES,
        Permission.APPROVE_REPAIRS,
        Permission.REPORT_REPAIRS,
        Permission.VIEW_REPORTS,
    },
    Role.ADMIN: set(Permission),  # All permissions
}


def get_user_role(user: User) -> Role:
    """Resolve the stored role string; unknown values get the least privilege."""
    try:
        return Role(user.role)
    except ValueError:
        logger.warning(f"Unknown role {user.role!r} for user {user.id}, treating as teknisi")
        return Role.TEKNISI


def get_user_permissions(user: User) -> Set[Permission]:
    """Get all permissions for a user based on their role."""
    return ROLE_PERMISSIONS.get(get_user_role(user), set())


def has_permission(user: User, permission: Permission) -> bool:
    """Check if user has a specific permission."""
    return permission in get_user_permissions(user)


def can_override_schedule(role: str) -> bool:
    """Supervisors and admins may inspect outside schedule windows and geofences."""
    return role in OVERRIDE_ROLES


def ensure_permission(user: User, permission: Permission) -> None:
    """Raise 403 unless ``user`` holds ``permission``."""
    if not has_permission(user, permission):
        logger.warning(
            f"Permission denied: user {user.id} lacks {permission.value}",
            extra={"user_id": user.id, "permission": permission.value},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Permission denied: requires {permission.value}",
        )

"""Role-based capabilities.

Each role maps to a fixed set of permissions; checks are plain set membership.
"""
from enum import Enum


class Permission(str, Enum):
    VIEW_DASHBOARD = "VIEW_DASHBOARD"
    MANAGE_PATIENTS = "MANAGE_PATIENTS"
    MANAGE_APPOINTMENTS = "MANAGE_APPOINTMENTS"
    APPOINTMENT_OVERRIDE = "APPOINTMENT_OVERRIDE"
    MANAGE_CLAIMS = "MANAGE_CLAIMS"
    MANAGE_BILLING = "MANAGE_BILLING"
    MANAGE_STAFF = "MANAGE_STAFF"
    VIEW_REPORTS = "VIEW_REPORTS"
    VIEW_AUDIT = "VIEW_AUDIT"
    MANAGE_SETTINGS = "MANAGE_SETTINGS"
    MANAGE_SCHEDULES = "MANAGE_SCHEDULES"
    MANAGE_MESSAGES = "MANAGE_MESSAGES"
    MANAGE_DOCUMENTS = "MANAGE_DOCUMENTS"
    VIEW_PORTAL = "VIEW_PORTAL"


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    PHYSICIAN = "PHYSICIAN"
    NURSE = "NURSE"
    FRONT_DESK = "FRONT_DESK"
    BILLING = "BILLING"


ROLE_PERMISSIONS: dict[UserRole, frozenset[Permission]] = {
    UserRole.ADMIN: frozenset(Permission),
    UserRole.PHYSICIAN: frozenset(
        {
            Permission.VIEW_DASHBOARD,
            Permission.MANAGE_APPOINTMENTS,
            Permission.MANAGE_PATIENTS,
            Permission.MANAGE_DOCUMENTS,
            Permission.MANAGE_MESSAGES,
            Permission.VIEW_REPORTS,
        }
    ),
    UserRole.NURSE: frozenset(
        {
            Permission.VIEW_DASHBOARD,
            Permission.MANAGE_APPOINTMENTS,
            Permission.MANAGE_PATIENTS,
            Permission.MANAGE_DOCUMENTS,
            Permission.MANAGE_MESSAGES,
        }
    ),
    UserRole.FRONT_DESK: frozenset(
        {
            Permission.VIEW_DASHBOARD,
            Permission.MANAGE_APPOINTMENTS,
            Permission.MANAGE_PATIENTS,
            Permission.MANAGE_MESSAGES,
            Permission.MANAGE_SCHEDULES,
        }
    ),
    UserRole.BILLING: frozenset(
        {
            Permission.VIEW_DASHBOARD,
            Permission.MANAGE_BILLING,
            Permission.MANAGE_CLAIMS,
            Permission.VIEW_REPORTS,
        }
    ),
}


def permissions_for_role(role: UserRole | str) -> frozenset[Permission]:
    try:
        return ROLE_PERMISSIONS[UserRole(role)]
    except ValueError:
        return frozenset()


def has_permission(role: UserRole | str, permission: Permission) -> bool:
    return permission in permissions_for_role(role)

"""Closed role and permission sets. Every capability check in the services goes through
has_permission; routers use require_permission."""

from enum import Enum
from typing import Dict, FrozenSet

from fastapi import Depends, HTTPException, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.enums import UserRole
from app.core.exceptions import PermissionDeniedError


class Permission(str, Enum):
    VIEW_INTEGRATIONS = "view_integrations"
    MANAGE_SETTINGS = "manage_settings"
    MANAGE_ASSIGNMENTS = "manage_assignments"
    VIEW_REPORTS = "view_reports"
    VIEW_AUDIT = "view_audit"
    MANAGE_ALL_SESSIONS = "manage_all_sessions"
    MANAGE_ALL_GOALS = "manage_all_goals"
    VIEW_ALL_STUDENTS = "view_all_students"
    VIEW_ALL_MENTORS = "view_all_mentors"
    MANAGE_SYSTEM_SETTINGS = "manage_system_settings"
    MANAGE_USER_ROLES = "manage_user_roles"
    FULL_SYSTEM_ACCESS = "full_system_access"
    VIEW_MY_MENTEES = "view_my_mentees"
    MANAGE_MY_SESSIONS = "manage_my_sessions"
    CREATE_COUNSELING = "create_counseling"
    EDIT_COUNSELING = "edit_counseling"
    MANAGE_MY_GOALS = "manage_my_goals"
    VIEW_STUDENT_360 = "view_student_360"
    VIEW_MY_SESSIONS = "view_my_sessions"
    VIEW_MY_GOALS = "view_my_goals"
    VIEW_MY_ASSIGNMENTS = "view_my_assignments"
    VIEW_COHORT_OVERVIEW = "view_cohort_overview"
    VIEW_STUDENTS_DIRECTORY = "view_students_directory"
    VIEW_MENTORS_DIRECTORY = "view_mentors_directory"


_ADMIN_PERMISSIONS = frozenset(
    {
        Permission.VIEW_INTEGRATIONS,
        Permission.MANAGE_SETTINGS,
        Permission.MANAGE_ASSIGNMENTS,
        Permission.VIEW_REPORTS,
        Permission.VIEW_AUDIT,
        Permission.MANAGE_ALL_SESSIONS,
        Permission.MANAGE_ALL_GOALS,
        Permission.VIEW_ALL_STUDENTS,
        Permission.VIEW_ALL_MENTORS,
    }
)

ROLE_PERMISSIONS: Dict[UserRole, FrozenSet[Permission]] = {
    UserRole.SUPER_ADMIN: _ADMIN_PERMISSIONS
    | {
        Permission.MANAGE_SYSTEM_SETTINGS,
        Permission.MANAGE_USER_ROLES,
        Permission.FULL_SYSTEM_ACCESS,
    },
    UserRole.ADMIN: _ADMIN_PERMISSIONS,
    UserRole.MENTOR: frozenset(
        {
            Permission.VIEW_MY_MENTEES,
            Permission.MANAGE_MY_SESSIONS,
            Permission.CREATE_COUNSELING,
            Permission.EDIT_COUNSELING,
            Permission.MANAGE_MY_GOALS,
            Permission.VIEW_STUDENT_360,
        }
    ),
    UserRole.MENTEE: frozenset(
        {
            Permission.VIEW_MY_SESSIONS,
            Permission.VIEW_MY_GOALS,
            Permission.VIEW_MY_ASSIGNMENTS,
        }
    ),
    UserRole.DEPT_LEAD: frozenset(
        {
            Permission.VIEW_REPORTS,
            Permission.VIEW_COHORT_OVERVIEW,
            Permission.VIEW_STUDENTS_DIRECTORY,
            Permission.VIEW_MENTORS_DIRECTORY,
        }
    ),
}


def has_permission(role: UserRole, permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def has_any_permission(role: UserRole, *permissions: Permission) -> bool:
    return any(has_permission(role, p) for p in permissions)


def ensure_permission(user: CurrentUser, *permissions: Permission) -> None:
    """Service-side guard: raise PermissionDeniedError unless the user holds one of the permissions."""
    if not has_any_permission(user.role, *permissions):
        raise PermissionDeniedError()


def require_permission(*permissions: Permission):
    """
    Dependency factory to enforce that the caller holds at least one of the permissions.

    Example:
        Depends(require_permission(Permission.MANAGE_ASSIGNMENTS))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not has_any_permission(current_user.role, *permissions):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _checker

"""
Role-based authorization.

Roles form a closed set. Every role maps to an explicit permission set, and
authorization checkpoints ask for a permission rather than comparing role
strings, so adding a role means deciding its permissions here.
"""

from enum import Enum
from typing import Dict, FrozenSet


class Role(str, Enum):
    CITIZEN = "citizen"
    WORKER = "worker"
    ADMIN = "admin"


class Permission(str, Enum):
    REPORT_ISSUES = "report_issues"          # create issues, edit/delete own
    ENGAGE = "engage"                        # upvote, leave feedback
    MODERATE_ISSUES = "moderate_issues"      # edit/delete any issue
    MANAGE_ASSIGNMENTS = "manage_assignments"  # assign, change status, list workers
    VIEW_ANALYTICS = "view_analytics"


ROLE_PERMISSIONS: Dict[Role, FrozenSet[Permission]] = {
    Role.CITIZEN: frozenset({Permission.REPORT_ISSUES, Permission.ENGAGE}),
    Role.WORKER: frozenset({Permission.REPORT_ISSUES, Permission.ENGAGE}),
    Role.ADMIN: frozenset(Permission),
}

_missing = set(Role) - set(ROLE_PERMISSIONS)
if _missing:
    raise RuntimeError(f"Roles without a permission set: {sorted(r.value for r in _missing)}")


def parse_role(value) -> Role:
    """Coerce a stored role value into a Role, rejecting unknown values."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        raise ValueError(f"Unknown role: {value!r}")


def has_permission(role, permission: Permission) -> bool:
    """Unknown or missing roles hold no permissions."""
    try:
        role = parse_role(role)
    except ValueError:
        return False
    return permission in ROLE_PERMISSIONS[role]

"""User roles for the imiiza platform.

Roles are flat (no hierarchy): each endpoint names the roles it admits.

┌─────────────────────────────┬───────┬───────┬───────┬──────────┬──────┐
│ Action                      │ admin │ agent │ sales │ employee │ user │
├─────────────────────────────┼───────┼───────┼───────┼──────────┼──────┤
│ Submit / view own apps      │   ✓   │   ✓   │   ✓   │    ✓     │  ✓   │
│ View all applications       │   ✓   │   ✓   │   ✓   │    ✓     │      │
│ Update application status   │   ✓   │   ✓   │   ✓   │    ✓     │      │
│ Accept application          │       │   ✓   │       │          │      │
│ Edit / delete application   │   ✓   │       │       │          │      │
└─────────────────────────────┴───────┴───────┴───────┴──────────┴──────┘
"""

from enum import Enum
from typing import FrozenSet, Optional


class UserRole(str, Enum):
    """Values are stored as TEXT in users.role and must match exactly."""
    ADMIN = "admin"
    AGENT = "agent"
    SALES = "sales"
    EMPLOYEE = "employee"
    USER = "user"


STAFF_ROLES: FrozenSet[UserRole] = frozenset({
    UserRole.ADMIN,
    UserRole.AGENT,
    UserRole.SALES,
    UserRole.EMPLOYEE,
})

STATUS_UPDATE_ROLES = STAFF_ROLES


def parse_role(value: str) -> Optional[UserRole]:
    try:
        return UserRole(value)
    except ValueError:
        return None


def is_staff(role: str) -> bool:
    """Staff see every application; applicants only their own.

    Example:
        >>> is_staff("sales")
        True
        >>> is_staff("user")
        False
    """
    return parse_role(role) in STAFF_ROLES

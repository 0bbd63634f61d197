# gmao/core/roles.py

"""
Closed role enumeration and the static role hierarchy.
"""

import enum
from typing import Dict, FrozenSet, Iterable


class UserRole(str, enum.Enum):
    ADMIN = "ROLE_ADMIN"
    RECEPTIONIST = "ROLE_RECEPTIONIST"
    TECHNICIEN = "ROLE_TECHNICIEN"
    USER = "ROLE_USER"


# Roles implicitly granted by each role.
IMPLIED_ROLES: Dict[UserRole, FrozenSet[UserRole]] = {
    UserRole.ADMIN: frozenset({UserRole.RECEPTIONIST, UserRole.TECHNICIEN, UserRole.USER}),
    UserRole.RECEPTIONIST: frozenset({UserRole.USER}),
    UserRole.TECHNICIEN: frozenset({UserRole.USER}),
    UserRole.USER: frozenset(),
}


def expand_roles(user_roles: Iterable[UserRole]) -> FrozenSet[UserRole]:
    """Returns the given roles plus every role they imply."""
    expanded = set()
    for role in user_roles:
        role = UserRole(role)
        expanded.add(role)
        expanded.update(IMPLIED_ROLES[role])
    return frozenset(expanded)


def has_role(user_roles: Iterable[UserRole], required: UserRole) -> bool:
    """True when `required` is held directly or implied by one of `user_roles`."""
    return UserRole(required) in expand_roles(user_roles)

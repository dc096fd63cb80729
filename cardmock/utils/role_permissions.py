"""
Role-based permission utilities for organization members.

Three roles exist inside an organization:

- admin: manages members, clients, templates, workflows and final approvals
- member: creates brands, projects and mockups and reviews assigned stages
- client: read-mostly external user whose data is filtered to one assigned client
"""

from typing import Dict, FrozenSet
from enum import Enum


ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
ROLE_CLIENT = "client"
ROLE_PERMISSIONS = {
    ROLE_ADMIN: {
        "can_read": True,
        "can_write": True,
    },
    ROLE_MEMBER: {
        "can_read": True,
        "can_write": True,
    },
    ROLE_CLIENT: {
        "can_read": True,
        "can_write": False,
    },
}

# Derived role groups
WRITE_ROLES: FrozenSet[str] = frozenset({ROLE_ADMIN, ROLE_MEMBER})
MANAGE_ROLES: FrozenSet[str] = frozenset({ROLE_ADMIN})

# Identity provider role keys mapped onto local roles
CLERK_ROLE_MAP = {
    "org:admin": ROLE_ADMIN,
    "admin": ROLE_ADMIN,
    "org:client": ROLE_CLIENT,
    "client": ROLE_CLIENT,
}


class RoleEnum(str, Enum):
    """Enum for organization roles used in schemas and validation."""
    admin = ROLE_ADMIN
    member = ROLE_MEMBER
    client = ROLE_CLIENT


def get_role_permissions(role: str) -> Dict[str, bool]:
    """
    Get the default permissions for a given role.

    Raises:
        ValueError: If role is not recognized
    """
    if role not in ROLE_PERMISSIONS:
        raise ValueError(f"Unknown role: {role}. Allowed roles: {list(ROLE_PERMISSIONS.keys())}")

    return ROLE_PERMISSIONS[role].copy()


def map_external_role(external_role: str | None) -> str:
    """Translate an identity provider role key (``org:admin``) into a local role."""
    if not external_role:
        return ROLE_MEMBER
    return CLERK_ROLE_MAP.get(external_role.strip().lower(), ROLE_MEMBER)


def role_allows_write(role: str) -> bool:
    """Return True if the role implies write permissions by default."""
    return role in WRITE_ROLES


def role_allows_manage(role: str) -> bool:
    """Return True if the role implies organization management permissions."""
    return role in MANAGE_ROLES

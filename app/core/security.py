"""
Role capabilities

Role names come from the identity provider; route-level guards use role
levels, service-level decisions use the capability helpers below.
"""
from enum import Enum
from typing import Optional


class Role(str, Enum):
    STUDENT = "student"
    FACULTY = "faculty"
    HOD = "hod"
    DEAN = "dean"
    ADMIN = "admin"


# Minimum Atlas role level per role
ROLE_LEVELS = {
    Role.STUDENT: 1,
    Role.FACULTY: 20,
    Role.HOD: 30,
    Role.DEAN: 40,
    Role.ADMIN: 50,
}

STAFF_MIN_LEVEL = ROLE_LEVELS[Role.FACULTY]
ADMIN_MIN_LEVEL = ROLE_LEVELS[Role.ADMIN]

STAFF_ROLES = frozenset({Role.FACULTY, Role.HOD, Role.DEAN, Role.ADMIN})
PROXY_ROLES = STAFF_ROLES


def _coerce(role) -> Optional[Role]:
    if isinstance(role, Role):
        return role
    try:
        return Role(str(role).lower())
    except ValueError:
        return None


def can_proxy_attend(role) -> bool:
    """Whether the role may mark attendance on behalf of another user"""
    return _coerce(role) in PROXY_ROLES


def is_staff(role) -> bool:
    return _coerce(role) in STAFF_ROLES


def resolve_role(current_user: dict) -> Role:
    """
    Resolve the acting principal's role from the auth payload

    Prefers an explicit ``role``, then the first known Atlas role code,
    then falls back to the highest role level.
    """
    explicit = _coerce(current_user.get("role")) if current_user.get("role") else None
    if explicit:
        return explicit

    for atlas_role in current_user.get("roles") or []:
        role = _coerce(atlas_role.get("role_code", ""))
        if role:
            return role

    level = current_user.get("role_level", 0) or 0
    resolved = Role.STUDENT
    for role, min_level in ROLE_LEVELS.items():
        if level >= min_level:
            resolved = role
    return resolved

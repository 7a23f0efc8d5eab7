"""Custom-claims gateway over Firebase Auth.

Claims are the authorization source of truth consulted on every request:
``systemRole``, ``churchRoles`` (church id -> role) and the derived
``permissions`` list. Calls are synchronous so membership transitions can
observe and report a failed claims write immediately.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Union
from firebase_admin import auth

from . import db
from .db import get_auth_client
from .exceptions import NotFoundError, ValidationError
from .models import ChurchRole, SystemRole, UserClaims


logger = logging.getLogger(__name__)

SYSTEM_ROLE_PERMISSIONS = {
    SystemRole.SYSTEM_ADMIN: ['read:all', 'write:all', 'delete:all', 'admin:all'],
    SystemRole.USER: ['read:public'],
}

CHURCH_ROLE_PERMISSIONS = {
    ChurchRole.ADMIN: ['read:church', 'write:church', 'delete:church', 'admin:church'],
    ChurchRole.PASTOR: ['read:church', 'write:church', 'delete:church', 'admin:church'],
    ChurchRole.LEADER: ['read:church', 'write:church'],
    ChurchRole.STAFF: ['read:church', 'write:church'],
    ChurchRole.MEMBER: ['read:church'],
    ChurchRole.VISITOR: ['read:public'],
}

CHURCH_ADMIN_ROLES = (ChurchRole.ADMIN, ChurchRole.PASTOR)


def parse_church_role(role: Union[str, ChurchRole]) -> ChurchRole:
    try:
        return ChurchRole(role)
    except ValueError:
        raise ValidationError(f"Invalid church role: {role}")


def parse_system_role(role: Union[str, SystemRole]) -> SystemRole:
    try:
        return SystemRole(role)
    except ValueError:
        raise ValidationError(f"Invalid system role: {role}")


def calculate_permissions(
    system_role: SystemRole,
    church_roles: dict[str, ChurchRole],
) -> list[str]:
    """
    Union of system-role and church-role permissions, in first-seen order.

    Example:
        >>> calculate_permissions(SystemRole.USER, {'c1': ChurchRole.MEMBER})
        ['read:public', 'read:church']
    """
    permissions: dict[str, None] = {}
    for permission in SYSTEM_ROLE_PERMISSIONS.get(system_role, SYSTEM_ROLE_PERMISSIONS[SystemRole.USER]):
        permissions[permission] = None
    for role in church_roles.values():
        for permission in CHURCH_ROLE_PERMISSIONS.get(role, []):
            permissions[permission] = None
    return list(permissions)


def _read_raw_claims(user_id: str) -> dict[str, Any]:
    try:
        user = get_auth_client().get_user(user_id)
    except auth.UserNotFoundError:
        raise NotFoundError(f"Auth user not found: {user_id}")
    return dict(user.custom_claims or {})


def _write_claims(user_id: str, raw: dict[str, Any], claims: UserClaims, **stamps: str) -> UserClaims:
    claims.permissions = calculate_permissions(claims.system_role, claims.church_roles)
    # Keep unrelated claims set by other tooling
    new_claims = {**raw, **claims.to_dict(), **stamps}
    try:
        get_auth_client().set_custom_user_claims(user_id, new_claims)
    except auth.UserNotFoundError:
        raise NotFoundError(f"Auth user not found: {user_id}")
    logger.info(
        f"Wrote claims for {user_id}: systemRole={claims.system_role.value} "
        f"churchRoles={new_claims['churchRoles']}"
    )
    return claims


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_claims(user_id: str) -> UserClaims:
    """
    Get the user's claims, or the defaults when none have been set.

    Raises:
        NotFoundError: If the Auth user does not exist
    """
    return UserClaims.from_dict(_read_raw_claims(user_id))


def set_default_claims(user_id: str) -> UserClaims:
    """Write default claims for a newly created account."""
    claims = UserClaims()
    return _write_claims(user_id, {}, claims, createdAt=_now())


def set_church_role(user_id: str, church_id: str, role: Union[str, ChurchRole]) -> UserClaims:
    """
    Set churchRoles[church_id] = role and recalculate permissions.

    Raises:
        ValidationError: If role is not a church role
        NotFoundError: If the Auth user does not exist
    """
    church_role = parse_church_role(role)
    raw = _read_raw_claims(user_id)
    claims = UserClaims.from_dict(raw)
    claims.church_roles[church_id] = church_role
    return _write_claims(user_id, raw, claims, updatedAt=_now())


def remove_church_role(user_id: str, church_id: str) -> UserClaims:
    """Delete churchRoles[church_id] (if present) and recalculate permissions."""
    raw = _read_raw_claims(user_id)
    claims = UserClaims.from_dict(raw)
    claims.church_roles.pop(church_id, None)
    return _write_claims(user_id, raw, claims, updatedAt=_now())


def set_system_role(user_id: str, system_role: Union[str, SystemRole]) -> UserClaims:
    """
    Set the system role on claims and mirror it to the user document.

    Raises:
        ValidationError: If system_role is not a system role
        NotFoundError: If the Auth user or user document does not exist
    """
    role = parse_system_role(system_role)
    raw = _read_raw_claims(user_id)
    claims = UserClaims.from_dict(raw)
    claims.system_role = role
    claims = _write_claims(user_id, raw, claims, updatedAt=_now())

    db.set_system_role(user_id, role.value)
    return claims


def refresh_claims(user_id: str) -> UserClaims:
    """Recompute permissions from stored roles and rewrite the claims."""
    raw = _read_raw_claims(user_id)
    claims = UserClaims.from_dict(raw)
    return _write_claims(user_id, raw, claims, refreshedAt=_now())


def is_system_admin(claims: UserClaims) -> bool:
    return claims.system_role == SystemRole.SYSTEM_ADMIN


def is_church_admin(claims: UserClaims, church_id: str) -> bool:
    if is_system_admin(claims):
        return True
    return claims.church_roles.get(church_id) in CHURCH_ADMIN_ROLES


def has_permission(claims: UserClaims, permission: str) -> bool:
    return permission in claims.permissions or 'admin:all' in claims.permissions


def has_church_role(claims: UserClaims, church_id: str, roles: Iterable[ChurchRole]) -> bool:
    if is_system_admin(claims):
        return True
    role = claims.church_roles.get(church_id)
    return role is not None and role in tuple(roles)

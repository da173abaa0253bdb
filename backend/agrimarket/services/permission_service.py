# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Role Resolution, Permission Checking and Security Event Logging

WHY: Every workflow transition is gated on the actor's effective roles.
This module is the only place that turns grant rows into role sets.

DESIGN PRINCIPLES:
- Fail closed: unknown actors and unknown role types resolve to "no roles"
  / False, never an exception. Callers treat "no roles" as "no permission".
- Effective grant: active, not expired, and its role is active
- Grants are never deleted: revoke_role() deactivates, grant_role()
  reactivates the same row
- Log denials only: permission grants on checks are not logged
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import or_

from ..extensions import db
from ..models import User, UserRole, Role, RolePermission, Permission, SecurityEvent, RoleType
from ..permissions import (
    PERMISSION_DEFINITIONS,
    ROLE_DEFINITIONS,
    DEFAULT_ROLE_PERMISSIONS,
    split_permission_code,
)
from ..time_utils import utcnow


def _coerce_role_type(role_type) -> RoleType | None:
    if isinstance(role_type, RoleType):
        return role_type
    try:
        return RoleType(str(role_type).upper())
    except ValueError:
        return None


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - ROLE_GRANTED
    - ROLE_REVOKED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event


def _effective_grants_query(user_id: int):
    now = utcnow()
    return (
        db.session.query(UserRole)
        .join(Role, Role.id == UserRole.role_id)
        .filter(
            UserRole.user_id == user_id,
            UserRole.is_active.is_(True),
            Role.is_active.is_(True),
            or_(UserRole.expires_at.is_(None), UserRole.expires_at > now),
        )
    )


def effective_roles(user_id: int | None) -> set[RoleType]:
    """
    Role types with an active, unexpired grant.

    Unknown users resolve to an empty set.
    """
    if user_id is None:
        return set()

    roles: set[RoleType] = set()
    for grant in _effective_grants_query(user_id).all():
        role_type = _coerce_role_type(grant.role.type)
        if role_type is not None:
            roles.add(role_type)
    return roles


def has_role(user_id: int | None, role_types) -> bool:
    """True iff the user holds at least one of role_types."""
    wanted = {rt for rt in (_coerce_role_type(r) for r in role_types) if rt is not None}
    if not wanted:
        return False
    return bool(effective_roles(user_id) & wanted)


def get_user_permissions(user_id: int | None) -> set[str]:
    """
    Get all permission codes ("resource:action") granted by effective roles.
    """
    if user_id is None:
        return set()

    role_ids = [grant.role_id for grant in _effective_grants_query(user_id).all()]
    if not role_ids:
        return set()

    rows = (
        db.session.query(Permission)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .filter(
            RolePermission.role_id.in_(role_ids),
            RolePermission.is_granted.is_(True),
        )
        .all()
    )
    return {permission.code for permission in rows}


def has_permission(user_id: int | None, resource: str, action: str) -> bool:
    """True iff any effective role grants (resource, action)."""
    return f"{resource}:{action}" in get_user_permissions(user_id)


def get_role(role_type) -> Role | None:
    rt = _coerce_role_type(role_type)
    if rt is None:
        return None
    return db.session.query(Role).filter_by(type=rt.value).first()


def get_default_role() -> Role | None:
    return db.session.query(Role).filter_by(is_default=True).first()


def grant_role(
    user_id: int,
    role_type,
    granted_by: int | None = None,
    expires_at: datetime | None = None,
    *,
    commit: bool = True,
) -> bool:
    """
    Grant a role to a user.

    Idempotent: re-granting a held (or previously revoked) role updates the
    existing grant's metadata and reactivates it instead of adding a row.

    Returns False for an unknown user, an unknown role type, or an inactive
    role.
    """
    role = get_role(role_type)
    if role is None or not role.is_active:
        return False

    if db.session.get(User, user_id) is None:
        return False

    grant = db.session.query(UserRole).filter_by(user_id=user_id, role_id=role.id).first()

    if grant:
        grant.is_active = True
        grant.granted_by_user_id = granted_by
        grant.granted_at = utcnow()
        grant.expires_at = expires_at
        grant.revoked_at = None
        grant.revoked_by_user_id = None
    else:
        grant = UserRole(
            user_id=user_id,
            role_id=role.id,
            granted_by_user_id=granted_by,
            granted_at=utcnow(),
            expires_at=expires_at,
            is_active=True,
        )
        db.session.add(grant)

    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return True


def revoke_role(user_id: int, role_type, revoked_by: int | None = None) -> bool:
    """
    Deactivate a user's grant for role_type.

    Succeeds (no-op True) when the role was never held. Returns False only
    for an unknown role type.
    """
    role = get_role(role_type)
    if role is None:
        return False

    grant = db.session.query(UserRole).filter_by(
        user_id=user_id,
        role_id=role.id,
        is_active=True,
    ).first()

    if not grant:
        return True

    grant.is_active = False
    grant.revoked_at = utcnow()
    grant.revoked_by_user_id = revoked_by

    db.session.commit()
    return True


def list_role_grants(user_id: int) -> list[UserRole]:
    """All grants for a user, including revoked and expired ones."""
    return (
        db.session.query(UserRole)
        .filter_by(user_id=user_id)
        .order_by(UserRole.granted_at.asc(), UserRole.id.asc())
        .all()
    )


def list_roles() -> list[Role]:
    return db.session.query(Role).filter_by(is_active=True).order_by(Role.id.asc()).all()


def get_role_permission_codes(role: Role) -> list[str]:
    return sorted(
        rp.permission.code
        for rp in role.role_permissions
        if rp.is_granted and rp.permission is not None
    )


def initialize_roles() -> int:
    """
    Create Role rows for every RoleType.

    Idempotent: Safe to run multiple times.
    """
    created_count = 0

    for role_type, name, description, is_default in ROLE_DEFINITIONS:
        existing = db.session.query(Role).filter_by(type=role_type.value).first()
        if existing:
            continue
        db.session.add(Role(
            type=role_type.value,
            name=name,
            description=description,
            is_default=is_default,
            is_active=True,
        ))
        created_count += 1

    db.session.commit()
    return created_count


def initialize_permissions() -> int:
    """
    Initialize all permission definitions in database.

    Creates Permission records for all entries in PERMISSION_DEFINITIONS.
    Idempotent: Safe to run multiple times.
    """
    created_count = 0

    for resource, action, name, description in PERMISSION_DEFINITIONS:
        existing = db.session.query(Permission).filter_by(resource=resource, action=action).first()

        if not existing:
            db.session.add(Permission(
                resource=resource,
                action=action,
                name=name,
                description=description,
            ))
            created_count += 1

    db.session.commit()
    return created_count


def assign_default_role_permissions() -> int:
    """
    Assign default permissions to roles based on DEFAULT_ROLE_PERMISSIONS.

    Idempotent: Safe to run multiple times (skips existing).
    """
    created_count = 0

    for role_type, permission_codes in DEFAULT_ROLE_PERMISSIONS.items():
        role = db.session.query(Role).filter_by(type=role_type.value).first()

        if not role:
            continue  # Role doesn't exist, skip

        for code in permission_codes:
            resource, action = split_permission_code(code)
            permission = db.session.query(Permission).filter_by(resource=resource, action=action).first()

            if not permission:
                continue  # Permission doesn't exist, skip

            existing = db.session.query(RolePermission).filter_by(
                role_id=role.id,
                permission_id=permission.id
            ).first()

            if not existing:
                db.session.add(RolePermission(
                    role_id=role.id,
                    permission_id=permission.id,
                    is_granted=True,
                ))
                created_count += 1

    db.session.commit()
    return created_count

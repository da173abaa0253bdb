# Overview: Service-layer operations for users; encapsulates business logic and database work.

"""
User Service

Every new user receives the default role (CLIENT) in the same transaction
that creates the row. Other roles are granted explicitly afterwards.
"""

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import User
from . import permission_service


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("user", user_id)
    return user


def get_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter_by(email=normalize_email(email)).first()


def create_user(
    email: str,
    first_name: str | None = None,
    last_name: str | None = None,
    phone: str | None = None,
    roles=None,
    granted_by: int | None = None,
) -> User:
    """
    Create a user with the default role plus any extra `roles`.

    Raises ValidationError for a missing/duplicate email or an unknown role.
    """
    email = normalize_email(email)
    if not email or "@" not in email:
        raise ValidationError("A valid email is required", details={"field": "email"})

    if get_user_by_email(email):
        raise ValidationError(f"User {email} already exists", details={"field": "email"})

    user = User(email=email, first_name=first_name, last_name=last_name, phone=phone, is_active=True)
    db.session.add(user)
    db.session.flush()

    default_role = permission_service.get_default_role()
    requested = [default_role.type] if default_role else []
    requested.extend(roles or [])

    for role_type in requested:
        if not permission_service.grant_role(user.id, role_type, granted_by=granted_by, commit=False):
            db.session.rollback()
            raise ValidationError(f"Unknown role type: {role_type}", details={"role_type": str(role_type)})

    db.session.commit()
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.id.asc()).all()

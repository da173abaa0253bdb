# Overview: Bearer session tokens that resolve API requests to an actor.

"""
Session Tokens

Every API request carries `Authorization: Bearer <token>`. Issuing tokens to
end users (login, signup) happens outside this backend; the CLI and the
tests open sessions directly with create_session().

- 32 random bytes, hex encoded; only the SHA-256 digest is persisted
- Absolute lifetime SESSION_ABSOLUTE_TIMEOUT_HOURS from creation
- Idle lifetime SESSION_IDLE_TIMEOUT_HOURS since last use
- Revocation is a flag with a reason; rows are purged by cleanup
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow


@dataclass
class SessionContext:
    """Resolved actor for one request."""
    user: User
    session: SessionToken


def _hours(config_key: str, default: int) -> timedelta:
    return timedelta(hours=current_app.config.get(config_key, default))


def generate_token() -> str:
    """Plaintext token handed to the caller once."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    # High-entropy input; a fast digest is enough
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _find_live(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter(SessionToken.token_hash == hash_token(token), SessionToken.is_revoked.is_(False))
        .one_or_none()
    )


def _revoke(record: SessionToken, reason: str) -> None:
    record.is_revoked = True
    record.revoked_at = utcnow()
    record.revoked_reason = reason
    db.session.commit()


def create_session(user_id: int) -> tuple[SessionToken, str]:
    """
    Open a session for an active user.

    Returns (record, plaintext_token). Raises ValueError for an unknown or
    deactivated user.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise ValueError(f"User {user_id} not found")
    if not user.is_active:
        raise ValueError(f"User {user_id} is deactivated")

    token = generate_token()
    opened_at = utcnow()
    record = SessionToken(
        user_id=user.id,
        token_hash=hash_token(token),
        created_at=opened_at,
        last_used_at=opened_at,
        expires_at=opened_at + _hours("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24),
        is_revoked=False,
    )
    db.session.add(record)
    db.session.commit()

    current_app.logger.debug("Session %s opened for user %s", record.id, user.id)
    return record, token


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a token to its actor, or None.

    Idle sessions and sessions of deactivated users are revoked on the way
    out. A successful lookup refreshes last_used_at.
    """
    record = _find_live(token)
    if record is None:
        return None

    checked_at = utcnow()
    if record.expires_at < checked_at:
        return None

    if checked_at - record.last_used_at > _hours("SESSION_IDLE_TIMEOUT_HOURS", 2):
        _revoke(record, "Idle timeout")
        return None

    user = record.user
    if user is None or not user.is_active:
        _revoke(record, "User account deactivated")
        return None

    record.last_used_at = checked_at
    db.session.commit()
    return SessionContext(user=user, session=record)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """False when the token is unknown or already revoked."""
    record = _find_live(token)
    if record is None:
        return False
    _revoke(record, reason)
    return True


def cleanup_expired_sessions(days: int = 30) -> int:
    """Purge expired or revoked sessions created more than `days` ago."""
    checked_at = utcnow()
    purged = (
        db.session.query(SessionToken)
        .filter(
            SessionToken.created_at < checked_at - timedelta(days=days),
            db.or_(SessionToken.expires_at < checked_at, SessionToken.is_revoked.is_(True)),
        )
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return purged

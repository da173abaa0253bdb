# Overview: Service-layer operations for concurrency; encapsulates business logic and database work.

"""
Unit of Work

Every ledger-touching operation runs through unit_of_work(): the closure gets
the transactional session, the unit commits if the closure returns and rolls
back if it raises anything. Lock waits, stale optimistic versions and
create-if-absent races surface as ConflictError.

Only idempotent operations (cancellations) should pass attempts > 1.
"""

from __future__ import annotations

import time
from typing import Callable, TypeVar

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError
from ..extensions import db

T = TypeVar("T")

_CONFLICT_ERRORS = (OperationalError, StaleDataError, IntegrityError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id columns on ledger and workflow rows catch what SQLite lets through.
    """
    return query.with_for_update()


def unit_of_work(func: Callable[..., T], *, attempts: int = 1, backoff_base: float = 0.1) -> T:
    """
    Run func(session) as one transaction.

    Commit on return, rollback on any exception. Concurrency failures are
    retried up to `attempts` times, then raised as ConflictError. Domain
    errors (MarketError subclasses) are never retried.
    """
    for attempt in range(attempts):
        try:
            result = func(db.session)
            db.session.commit()
            return result
        except _CONFLICT_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.warning("Unit of work aborted on conflict: %s", exc.__class__.__name__)
                raise ConflictError() from exc
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    raise ConflictError()


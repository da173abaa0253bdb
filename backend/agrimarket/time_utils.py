"""
Timestamps are stored UTC-naive and rendered as ISO-8601 with a trailing Z.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Read an ISO-8601 string from a request body.

    Blank input gives None. Offsets (including "Z") are folded into UTC;
    values without one are taken as UTC already. Malformed input raises
    ValueError.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Second precision, e.g. 2026-11-02T08:00:00Z."""
    if dt is None:
        return None
    stamp = _as_naive_utc(dt).replace(microsecond=0)
    return stamp.isoformat() + "Z"


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """An absent expiry never lapses; otherwise lapsed at or after the instant."""
    if expires_at is None:
        return False
    return _as_naive_utc(expires_at) <= (now or utcnow())

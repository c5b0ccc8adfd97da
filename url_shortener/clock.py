"""Validity clock: expiry arithmetic over an explicitly supplied "now"."""
from datetime import datetime, timedelta, timezone
from typing import Protocol

from url_shortener.errors import InvalidValidity
from url_shortener.utils import as_utc


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def compute_expiry(created_at: datetime, validity_minutes: int) -> datetime:
    """Return ``created_at + validity_minutes`` minutes.

    Raises InvalidValidity unless ``validity_minutes`` is a positive integer
    (``bool`` is rejected even though it subclasses ``int``).
    """
    if isinstance(validity_minutes, bool) or not isinstance(validity_minutes, int) or validity_minutes <= 0:
        raise InvalidValidity()
    return created_at + timedelta(minutes=validity_minutes)


def is_expired(now: datetime, expires_at: datetime) -> bool:
    # a link is still valid at exactly expires_at
    return as_utc(now) > as_utc(expires_at)

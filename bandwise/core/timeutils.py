"""Calendar-day helpers."""
from __future__ import annotations

from datetime import date, datetime


def as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def days_between(earlier: date | datetime, later: date | datetime) -> int:
    """Whole calendar days from ``earlier`` to ``later`` (negative if reversed)."""
    return (as_date(later) - as_date(earlier)).days


def elapsed_days(since: datetime, now: datetime) -> float:
    """Fractional days elapsed, never negative."""
    return max(0.0, (now - since).total_seconds() / 86400.0)


def safe_ratio(numerator: float, denominator: float) -> float:
    """Divide, returning 0 for a zero (or negative) denominator."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator


def naive_local(value: datetime) -> datetime:
    """Aware datetimes converted to naive local time; naive ones unchanged."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)

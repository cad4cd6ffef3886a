"""
Time helpers. Every stored or compared instant is a timezone-aware UTC
datetime; naive values are rejected at the edge instead of guessed at.
"""

from datetime import datetime, timedelta, timezone


def now_utc() -> datetime:
    """Current instant in UTC. Use instead of datetime.now()/utcnow()."""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    The same instant expressed in UTC.

    Raises:
        ValueError: ``dt`` is naive, so its instant is unknown
    """
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        raise ValueError("Datetime must include a timezone offset (naive datetimes are not accepted)")
    return dt.astimezone(timezone.utc)


def minutes_between(started_at: datetime, ended_at: datetime) -> int:
    """
    Elapsed minutes, rounded to the nearest whole minute (halves round up).

    A 90 second interval counts as 2 minutes, 29 seconds as 0.
    """
    seconds = (ended_at - started_at).total_seconds()
    sign = 1 if seconds >= 0 else -1
    return sign * int(abs(seconds) / 60 + 0.5)


def days_from(dt: datetime, days: int) -> datetime:
    """``dt`` moved forward by whole days."""
    return dt + timedelta(days=days)

from __future__ import annotations

from datetime import date, datetime


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def as_datetime(value: date | datetime) -> datetime:
    """Normalize a date to midnight so dates and datetimes sort together."""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, datetime.min.time())

"""
Common date/time utility functions for consistent date/time handling across the application

Storage: All timestamps are stored in UTC in the backend
Day keys: Visit/token counters roll over at facility-local midnight
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def as_utc(dt: datetime) -> datetime:
    """
    Convert dt to tz-aware UTC.
    If dt is naive, we treat it as UTC (consistent with existing behavior).

    Args:
        dt: datetime object (naive or timezone-aware)

    Returns:
        datetime object in UTC timezone
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        Current datetime in UTC timezone
    """
    return datetime.now(timezone.utc)


def facility_date_key(tz_name: str, now: datetime | None = None) -> str:
    """
    Calendar day (YYYYMMDD) at the facility for the given instant.

    Args:
        tz_name: IANA timezone of the facility (e.g. "Asia/Kolkata")
        now: instant to convert; defaults to the current time

    Returns:
        8-character date key, e.g. "20250127"
    """
    instant = as_utc(now) if now is not None else utc_now()
    return instant.astimezone(ZoneInfo(tz_name)).strftime("%Y%m%d")

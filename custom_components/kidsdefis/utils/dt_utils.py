# File: utils/dt_utils.py
"""Date and time utilities for KidsDefis.

Pure Python date/time functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

Every timestamp written to storage is a UTC ISO 8601 string produced by
``dt_now_iso``; readers go through ``dt_to_utc`` so naive legacy values are
compared on the same footing.

Functions:
    - dt_now_utc / dt_now_iso: Current instant
    - dt_parse_date: Parse date strings (birthdates)
    - dt_to_utc: Parse datetime strings to aware UTC datetimes
    - dt_days_ago: Lookback cutoff
    - dt_day_bounds: First and last instant of a UTC day
    - dt_minutes_from_now_iso: Snooze deadlines
    - dt_age_in_years: Whole-year age from a birthdate
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
import logging

# Third-party date utilities (no HA dependency)
from dateutil.relativedelta import relativedelta

# Module-level logger (no HA dependency)
_LOGGER = logging.getLogger(__name__)
_LAST_MILLISECOND = time(23, 59, 59, 999000)


def dt_now_utc() -> datetime:
    """Return the current datetime in UTC (timezone-aware)."""
    return datetime.now(UTC)


def dt_now_iso() -> str:
    """Return the current UTC datetime as an ISO 8601 string.

    Example:
        "2025-08-16T10:00:00.123456+00:00"
    """
    return dt_now_utc().isoformat()


def dt_today_utc() -> date:
    """Return today's date in UTC."""
    return dt_now_utc().date()


def dt_parse_date(date_str: str | date | None) -> date | None:
    """Safely parse a date string into a `datetime.date`.

    Accepts formats:
    - "2016-04-07" (ISO format, optionally with a time part)
    - "07/04/2016" (day first, as entered on onboarding forms)
    - "2016/04/07"

    Returns:
        datetime.date or None if parsing fails.
    """
    if isinstance(date_str, datetime):
        return date_str.date()
    if isinstance(date_str, date):
        return date_str
    if not date_str or not isinstance(date_str, str):
        return None

    try:
        return date.fromisoformat(date_str[:10])
    except ValueError:
        pass

    for fmt in ("%d/%m/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    _LOGGER.debug("Unparseable date string: %s", date_str)
    return None


def dt_to_utc(dt_input: str | datetime | None) -> datetime | None:
    """Parse a datetime string or object and convert it to aware UTC.

    Naive values are assumed to already be UTC.

    Example:
        "2025-04-07T14:30:00" -> datetime.datetime(2025, 4, 7, 14, 30, tzinfo=UTC)
    """
    if not dt_input:
        return None

    if isinstance(dt_input, datetime):
        result = dt_input
    elif isinstance(dt_input, str):
        try:
            result = datetime.fromisoformat(dt_input.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if result.tzinfo is None:
        result = result.replace(tzinfo=UTC)
    return result.astimezone(UTC)


def dt_days_ago(days: int | float, now_utc: datetime | None = None) -> datetime:
    """Return the instant ``days`` days before now (or ``now_utc``)."""
    current = now_utc or dt_now_utc()
    return current - timedelta(days=days)


def dt_day_bounds(day: str | date | None) -> tuple[datetime, datetime] | None:
    """Return the first and last instant of a day in UTC, or None if unparseable.

    Example:
        "2025-06-01" -> (2025-06-01 00:00:00+00:00, 2025-06-01 23:59:59.999000+00:00)
    """
    parsed = dt_parse_date(day)
    if parsed is None:
        return None
    return (
        datetime.combine(parsed, time.min, tzinfo=UTC),
        datetime.combine(parsed, _LAST_MILLISECOND, tzinfo=UTC),
    )


def dt_minutes_from_now_iso(minutes: int | float) -> str:
    """Return an ISO string ``minutes`` minutes in the future."""
    return (dt_now_utc() + timedelta(minutes=minutes)).isoformat()


def dt_age_in_years(birthdate: str | date | None, today: date | None = None) -> int | None:
    """Return the whole-year age for a birthdate, never negative.

    Returns None if the birthdate cannot be parsed.

    Example:
        dt_age_in_years("2016-08-17", date(2025, 8, 16)) -> 8
    """
    born = dt_parse_date(birthdate)
    if born is None:
        return None
    reference = today or dt_today_utc()
    return max(0, relativedelta(reference, born).years)

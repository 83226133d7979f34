"""
Timezone utility functions for the Focus Arena application
"""

from datetime import datetime, time, timedelta, timezone

import pytz
from flask import current_app, has_app_context


def get_app_timezone(timezone_name=None):
    """Get the application's configured timezone"""
    if timezone_name is None:
        timezone_name = (
            current_app.config.get("TIMEZONE", "UTC") if has_app_context() else "UTC"
        )
    try:
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        # Fallback to UTC if timezone is invalid
        return pytz.UTC


def get_current_time(timezone_name=None):
    """Get current time in the application's timezone"""
    app_tz = get_app_timezone(timezone_name)
    return datetime.now(app_tz)


def get_utc_time():
    """Get current time in UTC"""
    return datetime.now(timezone.utc)


def ensure_utc(dt):
    """Make a datetime timezone-aware; naive values are stored as UTC"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def convert_to_app_timezone(dt, timezone_name=None):
    """Convert a datetime to the application's timezone"""
    if dt is None:
        return None

    return ensure_utc(dt).astimezone(get_app_timezone(timezone_name))


def get_local_date(now=None, timezone_name=None):
    """The calendar date of `now` (default: current time) in the app timezone"""
    if now is None:
        return get_current_time(timezone_name).date()
    return convert_to_app_timezone(now, timezone_name).date()


def day_bounds_utc(day, timezone_name=None):
    """
    Get the UTC [start, end) interval covering a local calendar day

    Args:
        day: datetime.date in the application timezone

    Returns:
        tuple of aware UTC datetimes
    """
    app_tz = get_app_timezone(timezone_name)
    start = app_tz.localize(datetime.combine(day, time.min))
    end = app_tz.localize(datetime.combine(day + timedelta(days=1), time.min))
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def parse_datetime(value, end_of_day=False):
    """
    Parse an ISO 8601 date or datetime string into an aware UTC datetime

    Naive values are taken as UTC. A bare date means the start of that day,
    or its last microsecond when end_of_day is set.

    Raises:
        ValueError: value is not a valid ISO date or datetime
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid date: {value!r}")

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if end_of_day and len(text) == 10:
        parsed = datetime.combine(parsed.date(), time.max)

    return ensure_utc(parsed)

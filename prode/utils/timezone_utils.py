"""
Timezone utility functions for the Prode application

Datetimes are stored as naive UTC. Domain records carry aware UTC
datetimes, and the application timezone is only used to interpret
calendar dates and to display kick-off times.
"""

from datetime import datetime, time, timedelta, timezone

import pytz
from flask import current_app, has_app_context


def get_app_timezone():
    """Get the application's configured timezone"""
    timezone_name = "UTC"
    if has_app_context():
        timezone_name = current_app.config.get("TIMEZONE", "UTC")
    try:
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        # Fallback to UTC if timezone is invalid
        return pytz.UTC


def utcnow():
    """Current time as naive UTC, the storage format"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(dt):
    """Return an aware UTC datetime; naive values are taken to be UTC"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_storage(dt):
    """Convert an aware or naive-UTC datetime to naive UTC for storage"""
    if dt is None:
        return None
    return as_utc(dt).replace(tzinfo=None)


def convert_to_app_timezone(dt, tz=None):
    """Convert a datetime to the application's timezone"""
    if dt is None:
        return None

    tz = tz or get_app_timezone()
    return as_utc(dt).astimezone(tz)


def convert_to_utc(dt, tz=None):
    """Convert a datetime to UTC; naive values are taken to be in app time"""
    if dt is None:
        return None

    if dt.tzinfo is None:
        tz = tz or get_app_timezone()
        dt = tz.localize(dt)

    return dt.astimezone(timezone.utc)


def local_day_bounds(day, tz=None):
    """Naive UTC [start, end) covering a calendar day in the given timezone"""
    tz = tz or get_app_timezone()
    start = tz.localize(datetime.combine(day, time.min))
    end = tz.localize(datetime.combine(day + timedelta(days=1), time.min))
    return to_storage(start), to_storage(end)


def format_match_time(dt, format_str="%a %d/%m %H:%M", tz=None):
    """Format a kick-off time in the application's timezone"""
    if dt is None:
        return "TBD"

    return convert_to_app_timezone(dt, tz).strftime(format_str)

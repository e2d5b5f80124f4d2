"""
Timezone utility functions for the prediction pool
"""

from datetime import datetime, timezone

import pytz
from flask import current_app, has_app_context


def get_app_timezone():
    """Get the application's configured display timezone"""
    timezone_name = "UTC"
    if has_app_context():
        timezone_name = current_app.config.get("TIMEZONE", "UTC")
    try:
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        # Fallback to UTC if timezone is invalid
        return pytz.UTC


def get_utc_time():
    """Get current time in UTC"""
    return datetime.now(timezone.utc)


def ensure_utc(dt):
    """Return an aware UTC datetime; naive values are taken to be UTC"""
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def parse_iso_datetime(value):
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware UTC datetime"""
    if isinstance(value, datetime):
        return ensure_utc(value)

    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def convert_to_app_timezone(dt):
    """Convert a datetime to the application's timezone"""
    if dt is None:
        return None

    return ensure_utc(dt).astimezone(get_app_timezone())


def format_kickoff_time(dt, format_str="%a %d %b at %H:%M"):
    """Format a kickoff time in the application's timezone"""
    if dt is None:
        return "TBD"

    return convert_to_app_timezone(dt).strftime(format_str)

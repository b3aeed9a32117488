"""Datetime utility functions."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from gophermart.config import settings

# Timezone for API responses (from config)
API_TIMEZONE = ZoneInfo(settings.timezone)


def to_api_timezone(dt: datetime) -> datetime:
    """Convert a datetime to API timezone, treating naive values as UTC.

    SQLite hands back naive datetimes even for timezone-aware columns.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(API_TIMEZONE)


def to_rfc3339(dt: datetime) -> str:
    """Format a datetime as RFC 3339 with whole seconds, e.g. 2020-12-10T15:15:45+03:00."""
    return to_api_timezone(dt).replace(microsecond=0).isoformat()

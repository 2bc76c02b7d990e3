import os
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = 'Europe/Warsaw'


def display_zone():
    return ZoneInfo(os.getenv('CHATSTORE_TIMEZONE', DEFAULT_TIMEZONE))


def utcnow():
    """Current time as a naive UTC datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def tz_time():
    return datetime.now(display_zone())


def tz_time_s():
    return int(tz_time().timestamp())


def tz_time_ms():
    return int(tz_time().timestamp() * 1000)


def parse_timestamp(value):
    """
    Normalize a datetime or ISO-8601 string to naive UTC.

    Naive input is taken to already be UTC. Aware input is converted, so
    timestamps sent with different offsets still order correctly.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if not isinstance(value, datetime):
        raise TypeError(f'Expected datetime or ISO-8601 string, got {type(value).__name__}')
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value

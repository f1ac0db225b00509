"""Timestamp normalisation.

Timestamps are stored as naive UTC. Calendar dates ("today", the start date of
a booking) are evaluated in one configured local offset.
"""
from datetime import datetime, timedelta, timezone


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc(value, offset_hours):
    """Normalise ``value`` to naive UTC.

    Aware datetimes are converted; naive ones are taken to be in the local
    offset.
    """
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value - timedelta(hours=offset_hours)


def local_date(value, offset_hours):
    """Calendar date of a naive UTC timestamp in the local offset."""
    return (value + timedelta(hours=offset_hours)).date()


def parse_timestamp(text, offset_hours):
    """Parse an ISO 8601 timestamp (``YYYY-MM-DDThh:mm:ss`` or with an offset)."""
    if not isinstance(text, str) or not text:
        raise ValueError("time must be in 'YYYY-MM-DDThh:mm:ss' or RFC 3339 format")
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return to_utc(datetime.fromisoformat(text), offset_hours)


def format_duration(delta):
    mins = int(delta.total_seconds() // 60)
    hrs = mins // 60
    mins_display = mins % 60
    return f"{hrs}h {mins_display}m" if hrs else f"{mins_display}m"

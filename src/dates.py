"""Timestamp formatting for pages and feeds."""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta


def ensure_aware(value: date | datetime) -> datetime:
    """Coerce a date or naive datetime into an aware datetime (UTC)."""
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None or value.utcoffset() is None:
        value = value.replace(tzinfo=UTC)
    return value


def to_iso(value: datetime) -> str:
    """ISO 8601 with millisecond precision; UTC is written as ``Z``."""
    value = ensure_aware(value)
    text = value.isoformat(timespec="milliseconds")
    if value.utcoffset() == timedelta(0):
        return text.removesuffix("+00:00") + "Z"
    return text


def format_offset(value: datetime) -> str:
    """Format the UTC offset as ``+HH:MM``."""
    offset = ensure_aware(value).utcoffset()
    minutes = int(offset.total_seconds() // 60) if offset else 0
    sign = "-" if minutes < 0 else "+"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def timestamp_segments(value: datetime) -> tuple[str, str, str, str]:
    """Split a timestamp into separately styled segments.

    Returns ``("Wed, ", "01 Mar 2023", " 09:30", ":05 -08:00")``-shaped
    parts: weekday, day month year, hour and minute, seconds and offset.
    """
    return (
        f"{value:%a}, ",
        f"{value:%d %b %Y}",
        f" {value:%H:%M}",
        f":{value:%S} {format_offset(value)}",
    )


def format_long(value: datetime) -> str:
    """Human-readable timestamp, e.g. ``Wed, Mar 1, 2023, 9:30 AM``."""
    hour = value.hour % 12 or 12
    return (
        f"{value:%a}, {value:%b} {value.day}, {value.year}, "
        f"{hour}:{value:%M} {value:%p}"
    )

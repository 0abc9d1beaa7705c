"""Datetime helpers shared across the application."""

from __future__ import annotations

import time
from datetime import UTC, datetime

__all__ = [
    "ensure_utc",
    "format_message_date",
    "timestamp_millis",
]

MESSAGE_DATE_FORMAT = "%Y-%m-%d %H:%M"


def ensure_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` converted to UTC when timezone-aware."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC)


def format_message_date(value: datetime | None = None) -> str:
    """Render ``value`` (default: now) as the minute-resolution UTC string stored on messages.

    Naive values are taken to be UTC already.
    """
    if value is None:
        value = datetime.now(tz=UTC)
    normalized = ensure_utc(value) or value
    return normalized.strftime(MESSAGE_DATE_FORMAT)


def timestamp_millis() -> int:
    """Return the current wall-clock time in milliseconds."""
    return time.time_ns() // 1_000_000

"""
agency_api/utils/timezone.py — UTC timestamp helpers
All stored timestamps are timezone-aware UTC.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import pytz

UTC = pytz.utc


def utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if dt.tzinfo is None:
        return UTC.localize(dt)
    return dt.astimezone(UTC)


def parse_client_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a client-supplied submittedAt value.
    Accepts ISO-8601 strings (with or without trailing Z), datetimes, and
    epoch milliseconds (what JavaScript's Date.now() produces).
    Returns None for anything unparseable so the caller falls back to server time.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def current_year() -> int:
    return utc_now().year

"""
Shared datetime helpers.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Optional


_DAYS_PER_UNIT = {
    "y": 365.0,
    "m": 365.0 / 12,
    "w": 7.0,
    "d": 1.0,
}

_RELATIVE_DURATION = re.compile(
    r"^(?:(?P<y>\d+)y)?(?:(?P<m>\d+)m)?(?:(?P<w>\d+)w)?(?:(?P<d>\d+)d)?$"
)


def ensure_utc(dt: datetime) -> datetime:
    """Return a timezone-aware UTC datetime."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp and normalize it to UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return ensure_utc(parsed)


def parse_relative_duration(value: str) -> timedelta:
    """Parse a relative duration such as ``2y``, ``6m`` or ``1y3m5d``.

    Units are years (365 days), months (365/12 days), weeks and days, in that
    order. Matching is case-insensitive.

    Raises:
        ValueError: if the string is empty or not a valid duration.
    """
    if not value or not value.strip():
        raise ValueError("duration cannot be empty")

    match = _RELATIVE_DURATION.match(value.strip().lower())
    if match is None or not any(match.groupdict().values()):
        raise ValueError(f"failed to parse duration: {value!r}")

    days = sum(
        int(amount) * _DAYS_PER_UNIT[unit]
        for unit, amount in match.groupdict().items()
        if amount
    )
    return timedelta(days=days)


def format_date(dt: Optional[datetime]) -> str:
    """Format a date the way status pages print it, e.g. ``Jan 2, 2006``."""
    if dt is None:
        return "unknown"
    return f"{dt:%b} {dt.day}, {dt.year}"

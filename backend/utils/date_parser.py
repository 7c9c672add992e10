"""Date parsing utilities for claim answers."""

from __future__ import annotations

from datetime import datetime, timezone

# Reasonable date bounds for claim dates
MIN_VALID_YEAR = 1900
MAX_VALID_YEAR = 2100


def _in_bounds(parsed: datetime) -> bool:
    return MIN_VALID_YEAR <= parsed.year <= MAX_VALID_YEAR


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are returned as-is."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_flexible_date(date_str: str | None) -> datetime | None:
    """Parse date from multiple common formats with validation.

    Supports the following formats:
    - ISO 8601 date: YYYY-MM-DD (e.g., 2024-01-15)
    - ISO 8601 timestamp: 2024-01-15T10:30:00Z, 2024-01-15T10:30:00+02:00
    - US format: MM/DD/YYYY (e.g., 01/15/2024)
    - Compact: YYYYMMDD (e.g., 20240115)

    Timestamps carrying an offset are converted to naive UTC so that every
    parsed value can be compared with every other.

    Validates that:
    - The date is a real calendar date (no Feb 30, etc.)
    - The year is between 1900 and 2100

    Args:
        date_str: Date string to parse, or None

    Returns:
        Parsed datetime object, or None if parsing fails or input is None

    Examples:
        >>> parse_flexible_date("2024-01-15")
        datetime.datetime(2024, 1, 15, 0, 0)
        >>> parse_flexible_date("2024-01-15T12:00:00Z")
        datetime.datetime(2024, 1, 15, 12, 0)
        >>> parse_flexible_date("01/15/2024")
        datetime.datetime(2024, 1, 15, 0, 0)
        >>> parse_flexible_date("2024-02-30")  # Invalid date
        None
    """
    if not date_str or not isinstance(date_str, str):
        return None

    date_str = date_str.strip()
    if not date_str:
        return None

    formats = [
        "%Y-%m-%d",  # ISO 8601
        "%m/%d/%Y",  # US format
        "%Y%m%d",  # Compact
    ]

    for fmt in formats:
        try:
            parsed = datetime.strptime(date_str, fmt)
        except ValueError:
            # strptime raises ValueError for invalid dates like Feb 30
            continue
        if _in_bounds(parsed):
            return parsed

    # Full ISO timestamps; fromisoformat does not accept a trailing Z
    # before Python 3.11.
    iso_str = date_str[:-1] + "+00:00" if date_str.endswith(("Z", "z")) else date_str
    if "T" in iso_str or " " in iso_str:
        try:
            parsed = to_naive_utc(datetime.fromisoformat(iso_str))
        except ValueError:
            return None
        if _in_bounds(parsed):
            return parsed

    return None

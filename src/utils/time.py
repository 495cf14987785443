"""
Clock abstraction and UTC timestamp helpers.

Observation timestamps are always handled as timezone-aware UTC datetimes.
Both codecs parse and format them through this module so the two formats agree
on how a naive "YYYY-MM-DD HH:MM:SS" string is interpreted (as UTC) and how it
is written back.

The Clock protocol exists for the few places that need "today" (export
filenames, default voyage dates); tests inject a FrozenClock.
"""

from datetime import date, datetime, timezone
from typing import Optional, Protocol

import pandas as pd


CANONICAL_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class Clock(Protocol):
    """Anything that can answer "what time is it now?"."""

    def now(self) -> datetime:
        ...


class RealClock:
    """Clock backed by the system time, in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock:
    """
    Clock that always returns the same instant.

    Args:
        fixed_now: The datetime returned by every call to now().
    """

    def __init__(self, fixed_now: datetime):
        self._fixed_now = fixed_now

    def now(self) -> datetime:
        return self._fixed_now


def parse_utc_timestamp(value: str) -> datetime:
    """
    Parse a timestamp string into a timezone-aware UTC datetime.

    **Functionally**:
      - Accepts ISO 8601 style strings ("2025-12-18 10:00:00",
        "2025-12-18T10:00:00Z", "2025-12-18").
      - Naive values are treated as UTC; values with an offset are converted.
      - Values must start with a digit, so relative words such as "now" or
        "today" are rejected.

    Args:
        value: Raw timestamp text.

    Returns:
        datetime with tzinfo UTC.

    Raises:
        ValueError: If the value is blank or cannot be parsed.
    """
    text = (value or "").strip()
    if not text:
        raise ValueError("empty timestamp")
    # pandas resolves "now" and "today" to the wall clock
    if text[0] not in "0123456789":
        raise ValueError(f"unparseable timestamp {text!r}: must start with a digit")

    try:
        parsed = pd.to_datetime(text, utc=True)
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"unparseable timestamp {text!r}: {e}")

    if pd.isna(parsed):
        raise ValueError(f"unparseable timestamp {text!r}")

    return parsed.to_pydatetime()


def combine_date_and_time(date_text: str, time_text: Optional[str] = None) -> datetime:
    """
    Combine separate date and time fields into one UTC datetime.

    A missing or blank time defaults to midnight.

    Raises:
        ValueError: If the date is blank or the combination cannot be parsed.
    """
    date_part = (date_text or "").strip()
    if not date_part:
        raise ValueError("empty date")
    time_part = (time_text or "").strip()
    if time_part:
        return parse_utc_timestamp(f"{date_part} {time_part}")
    return parse_utc_timestamp(date_part)


def format_utc_timestamp(value: datetime, fmt: str = CANONICAL_TIMESTAMP_FORMAT) -> str:
    """
    Format a datetime in UTC.

    Aware datetimes are converted to UTC first; naive ones are assumed to
    already be UTC.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(fmt)


def parse_optional_date(value) -> Optional[date]:
    """
    Leniently parse a calendar date; returns None for blank or invalid input.

    Used for voyage start/end dates, where a bad value must not fail the file.
    """
    if value is None:
        return None
    try:
        return parse_utc_timestamp(str(value)).date()
    except ValueError:
        return None

"""
Stateless field validators.

**Conceptual**: Every value decoded from either format passes through one of
these functions. There are two policies:

  - Required fields (timestamp, latitude, longitude) raise a
    RowValidationError subclass. The codec turns that into a line-numbered
    row error and drops the whole row.
  - Optional numeric fields never raise. A blank, unparsable or out-of-range
    value is silently dropped: the function returns None and the record field
    stays unset.

**Ranges used across both codecs**:
  - latitude [-90, 90], longitude [-180, 180]
  - wind direction [0, 360] degrees, wind speed >= 0 m/s
  - cloud cover [0, 8] oktas
  - ice concentration in tenths [0, 10]
  - tabular total ice concentration in percent [0, 100]
"""

import math
from datetime import datetime
from typing import Optional, Tuple

from src.utils.time import parse_utc_timestamp
from src.validation.errors import (
    MalformedNumber,
    MalformedTimestamp,
    MissingRequiredField,
    OutOfRangeValue,
)


Range = Tuple[Optional[float], Optional[float]]

LATITUDE_RANGE: Range = (-90.0, 90.0)
LONGITUDE_RANGE: Range = (-180.0, 180.0)
WIND_DIRECTION_RANGE: Range = (0.0, 360.0)
CLOUD_COVER_RANGE: Range = (0.0, 8.0)
TENTHS_RANGE: Range = (0.0, 10.0)
PERCENT_RANGE: Range = (0.0, 100.0)
NON_NEGATIVE: Range = (0.0, None)
UNBOUNDED: Range = (None, None)


def _clean(raw: Optional[str]) -> str:
    return "" if raw is None else str(raw).strip()


def _to_float(text: str) -> Optional[float]:
    """Parse a finite float, returning None for anything else."""
    try:
        value = float(text)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def _in_range(value: float, bounds: Range) -> bool:
    minimum, maximum = bounds
    if minimum is not None and value < minimum:
        return False
    if maximum is not None and value > maximum:
        return False
    return True


def require_timestamp(raw: Optional[str], field_name: str = "Date/Time") -> datetime:
    """
    Parse a required timestamp.

    Raises:
        MissingRequiredField: If the value is blank.
        MalformedTimestamp: If the value cannot be parsed.
    """
    text = _clean(raw)
    if not text:
        raise MissingRequiredField(f"{field_name} is required", field_name)
    try:
        return parse_utc_timestamp(text)
    except ValueError:
        raise MalformedTimestamp(f"Invalid date format: {text}", field_name)


def _require_coordinate(raw: Optional[str], field_name: str, bounds: Range) -> float:
    text = _clean(raw)
    if not text:
        raise MissingRequiredField(f"{field_name} is required", field_name)

    value = _to_float(text)
    minimum, maximum = bounds
    if value is None:
        raise MalformedNumber(
            f"Invalid {field_name.lower()}: {text} (must be a number between {minimum:g} and {maximum:g})",
            field_name,
        )
    if not _in_range(value, bounds):
        raise OutOfRangeValue(
            f"Invalid {field_name.lower()}: {text} (must be between {minimum:g} and {maximum:g})",
            field_name,
        )
    return value


def require_latitude(raw: Optional[str], field_name: str = "Latitude") -> float:
    """Parse a required latitude in [-90, 90]."""
    return _require_coordinate(raw, field_name, LATITUDE_RANGE)


def require_longitude(raw: Optional[str], field_name: str = "Longitude") -> float:
    """Parse a required longitude in [-180, 180]."""
    return _require_coordinate(raw, field_name, LONGITUDE_RANGE)


def optional_bounded_number(
    raw: Optional[str],
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
) -> Optional[float]:
    """
    Parse an optional number, dropping it silently when invalid.

    Args:
        raw: Raw cell text (None or blank means "not present").
        minimum: Inclusive lower bound, or None for no bound.
        maximum: Inclusive upper bound, or None for no bound.

    Returns:
        The parsed float, or None if the value is blank, unparsable,
        non-finite or outside [minimum, maximum].

    Example:
        >>> optional_bounded_number("400", 0, 360) is None
        True
        >>> optional_bounded_number("180", 0, 360)
        180.0
    """
    text = _clean(raw)
    if not text:
        return None
    value = _to_float(text)
    if value is None or not _in_range(value, (minimum, maximum)):
        return None
    return value


def optional_text(raw: Optional[str]) -> Optional[str]:
    """Stripped text, or None when blank."""
    text = _clean(raw)
    return text or None

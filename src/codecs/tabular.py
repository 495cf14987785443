"""
Tabular (CSV) codec for sea-ice observations.

**Conceptual**: The tabular format is the spreadsheet-friendly serialization:
one header row, then one comma-separated row per observation. Decoding looks
cells up by header *name*, so the column order in an uploaded file does not
matter. Encoding always emits the same fixed column layout so every exported
row has the same number of cells regardless of which fields are populated.

**Decode rules**:
  - Header cells are trimmed; blank and whitespace-only lines are skipped.
    Only CR, LF and CRLF end a line.
  - A row with more cells than the header is rejected on its own
    ("Row N: Too many fields ...") and the remaining rows are still decoded.
  - Required: `Date/Time`, `Latitude`, `Longitude`. A missing or invalid
    value rejects the row with one error citing its row number (the header is
    row 1, so the first data row is row 2).
  - Optional numbers that fail their range check are dropped silently (the
    field stays unset, no error).
  - `Ice Concentration (%)` is on a 0-100 percent scale. It is stored as-is
    and never converted to tenths.
  - The tabular schema has no per-category columns for decoding, so ice
    categories and voyage metadata are never populated here.

**Encode rules**:
  - Header line unquoted; every data cell quoted (embedded quotes doubled).
  - Timestamps "YYYY-MM-DD HH:MM:SS" in UTC; coordinates fixed-point.
  - Line breaks inside text cells become a single space.
  - Lines joined with "\\n", no trailing newline.
"""

import csv
import io
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from src.models.observation import (
    FileFormat,
    IceSlot,
    ImportResult,
    ObservationRecord,
    RowError,
    Voyage,
)
from src.utils.text import flatten_line_breaks, format_coordinate, format_number, split_lines
from src.utils.time import format_utc_timestamp
from src.validation.errors import RowValidationError
from src.validation.fields import (
    CLOUD_COVER_RANGE,
    NON_NEGATIVE,
    PERCENT_RANGE,
    UNBOUNDED,
    WIND_DIRECTION_RANGE,
    optional_bounded_number,
    optional_text,
    require_latitude,
    require_longitude,
    require_timestamp,
)


logger = logging.getLogger(__name__)


DATE_TIME_COLUMN = "Date/Time"
LATITUDE_COLUMN = "Latitude"
LONGITUDE_COLUMN = "Longitude"

# Placeholder first cell for lines that have more cells than the header
MALFORMED_ROW_MARKER = "\x00malformed-row"


@dataclass(frozen=True)
class TabularColumn:
    """
    Descriptor mapping an optional import column to a record attribute.

    Attributes:
        label: Exact header label in the file.
        attribute: ObservationRecord attribute it populates.
        convert: Raw cell text -> typed value, or None to leave it unset.
    """
    label: str
    attribute: str
    convert: Callable[[Optional[str]], object]


def _number(bounds) -> Callable[[Optional[str]], Optional[float]]:
    minimum, maximum = bounds
    return lambda raw: optional_bounded_number(raw, minimum, maximum)


OPTIONAL_IMPORT_COLUMNS: List[TabularColumn] = [
    TabularColumn("Ice Concentration (%)", "total_ice_concentration", _number(PERCENT_RANGE)),
    TabularColumn("Open Water Type", "open_water_type", optional_text),
    TabularColumn("Air Temp (°C)", "air_temp", _number(UNBOUNDED)),
    TabularColumn("Water Temp (°C)", "water_temp", _number(UNBOUNDED)),
    TabularColumn("Wind Speed (m/s)", "wind_speed", _number(NON_NEGATIVE)),
    TabularColumn("Wind Direction (°)", "wind_direction", _number(WIND_DIRECTION_RANGE)),
    TabularColumn("Cloud Cover (oktas)", "cloud_cover", _number(CLOUD_COVER_RANGE)),
    TabularColumn("Visibility", "visibility", optional_text),
    TabularColumn("Weather", "weather", optional_text),
    TabularColumn("Observer", "observer", optional_text),
    TabularColumn("Comments", "comments", optional_text),
]

# Header of the import template, in the order users are expected to fill it
IMPORT_COLUMNS: List[str] = [
    DATE_TIME_COLUMN,
    LATITUDE_COLUMN,
    LONGITUDE_COLUMN,
    *(column.label for column in OPTIONAL_IMPORT_COLUMNS),
]

ICE_EXPORT_ATTRIBUTES = [
    ("Ice Conc", "ice_concentration"),
    ("Ice Type", "ice_type"),
    ("Ice Thickness", "ice_thickness"),
    ("Floe Size", "floe_size"),
    ("Topography", "topography"),
]

EXPORT_COLUMNS: List[str] = [
    "Cruise Name",
    DATE_TIME_COLUMN,
    LATITUDE_COLUMN,
    LONGITUDE_COLUMN,
    "Ice Concentration (%)",
    "Open Water Type",
    *(f"{slot.label} {label}" for slot in IceSlot for label, _ in ICE_EXPORT_ATTRIBUTES),
    "Air Temp (°C)",
    "Water Temp (°C)",
    "Wind Speed (m/s)",
    "Wind Direction (°)",
    "Cloud Cover (oktas)",
    "Visibility",
    "Weather",
    "Observer",
    "Comments",
]

TEMPLATE_ROWS = [
    [
        "2025-12-18 10:00:00", "-65.5000", "-64.2500", "75", "Brash Ice", "-2.5", "-1.8",
        "12.5", "180", "4", "Good", "Overcast with light snow", "John Smith",
        "Heavy pack ice observed",
    ],
    [
        "2025-12-18 14:00:00", "-65.7500", "-64.5000", "90", "", "-3.0", "-1.9",
        "15.0", "200", "6", "Moderate", "Snow showers", "Jane Doe",
        "Ice thickness approximately 1-2m",
    ],
]


def _non_blank_lines(text: str) -> str:
    return "\n".join(line for line in split_lines(text) if line.strip())


def _normalise_header(label) -> str:
    return str(label).replace("\ufeff", "").strip()


def _read_frame(content: str) -> Tuple[List[str], pd.DataFrame, List[int]]:
    """
    Parse CSV content with every cell as a string.

    The header line is read as an ordinary row, so its width bounds every
    later line. A line with more cells than the header does not abort the
    parse: it is kept in place as a row whose first cell is
    MALFORMED_ROW_MARKER, so row positions stay aligned with the file.

    Returns:
        (header labels, data rows, cell count of each oversized line in file order)
    """
    oversized: List[int] = []

    def flag_bad_line(cells: List[str]) -> List[str]:
        oversized.append(len(cells))
        return [MALFORMED_ROW_MARKER]

    frame = pd.read_csv(
        io.StringIO(content),
        header=None,
        dtype=str,
        keep_default_na=False,
        skipinitialspace=True,
        engine="python",
        on_bad_lines=flag_bad_line,
    )
    frame = frame.fillna("")
    header = [_normalise_header(label) for label in frame.iloc[0]]
    rows = frame.iloc[1:].reset_index(drop=True)
    rows.columns = header
    return header, rows, oversized


def decode_row(row: Dict[str, str]) -> ObservationRecord:
    """
    Decode one data row (header label -> raw cell) into a record.

    Raises:
        RowValidationError: If a required field is missing or invalid.
    """
    timestamp = require_timestamp(row.get(DATE_TIME_COLUMN), DATE_TIME_COLUMN)
    latitude = require_latitude(row.get(LATITUDE_COLUMN), LATITUDE_COLUMN)
    longitude = require_longitude(row.get(LONGITUDE_COLUMN), LONGITUDE_COLUMN)

    optional_values = {}
    for column in OPTIONAL_IMPORT_COLUMNS:
        value = column.convert(row.get(column.label))
        if value is not None:
            optional_values[column.attribute] = value

    return ObservationRecord(
        timestamp=timestamp,
        latitude=latitude,
        longitude=longitude,
        **optional_values,
    )


def decode(text: str) -> ImportResult:
    """
    Decode tabular text into an ImportResult.

    Args:
        text: Full file content.

    Returns:
        ImportResult with accepted rows in file order and one error per
        rejected row ("Row N: ..."), including rows with too many cells. A
        file pandas cannot parse at all (e.g. an unreadable header) produces a
        single file-level error and no observations.

    Example:
        >>> result = decode('Date/Time,Latitude,Longitude\\n"2025-12-18 10:00:00","-65.5","-64.25"')
        >>> result.imported, result.success
        (1, True)
    """
    result = ImportResult(format=FileFormat.TABULAR)

    content = _non_blank_lines(text or "")
    if not content:
        return result

    try:
        header, rows, oversized = _read_frame(content)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        result.errors.append(
            RowError(None, f"Failed to parse CSV: {str(e).strip()}", "malformed_file")
        )
        return result

    oversized_counts = iter(oversized)
    malformed = (rows.iloc[:, 0] == MALFORMED_ROW_MARKER).tolist()

    for position, row in enumerate(rows.to_dict(orient="records")):
        # Header is row 1, so the first data row is row 2
        row_number = position + 2
        if malformed[position]:
            message = f"Too many fields: expected {len(header)}, found {next(oversized_counts)}"
            result.errors.append(RowError(row_number, message, "malformed_row", label="Row"))
            continue
        try:
            result.observations.append(decode_row(row))
        except RowValidationError as e:
            result.errors.append(RowError(row_number, str(e), e.kind, label="Row"))

    logger.debug(
        "Decoded tabular text: %d accepted, %d rejected",
        result.imported,
        len(result.errors),
    )
    return result


def _text_cell(value: Optional[object]) -> str:
    if value is None:
        return ""
    return flatten_line_breaks(str(value))


def encode_row(
    record: ObservationRecord,
    voyage_name: str = "",
    coordinate_decimals: int = 6,
) -> List[str]:
    """Cells of one export row, in EXPORT_COLUMNS order."""
    cells = [
        _text_cell(voyage_name),
        format_utc_timestamp(record.timestamp),
        format_coordinate(record.latitude, coordinate_decimals),
        format_coordinate(record.longitude, coordinate_decimals),
        format_number(record.total_ice_concentration),
        _text_cell(record.open_water_type),
    ]

    for slot in IceSlot:
        category = record.ice_category(slot)
        for _, attribute in ICE_EXPORT_ATTRIBUTES:
            if category is None:
                cells.append("")
            elif attribute == "ice_concentration":
                cells.append(format_number(category.ice_concentration))
            else:
                cells.append(_text_cell(getattr(category, attribute)))

    cells.extend([
        format_number(record.air_temp),
        format_number(record.water_temp),
        format_number(record.wind_speed),
        format_number(record.wind_direction),
        format_number(record.cloud_cover),
        _text_cell(record.visibility),
        _text_cell(record.weather),
        _text_cell(record.observer),
        _text_cell(record.comments),
    ])
    return cells


def _quoted_csv(header: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    """Unquoted header line followed by fully quoted data lines."""
    frame = pd.DataFrame(list(rows), columns=list(header))
    header_line = ",".join(header)
    if frame.empty:
        return header_line

    body = frame.to_csv(
        index=False,
        header=False,
        quoting=csv.QUOTE_ALL,
        lineterminator="\n",
    )
    return header_line + "\n" + body.rstrip("\n")


def encode(
    records: Sequence[ObservationRecord],
    voyage: Optional[Voyage] = None,
    coordinate_decimals: int = 6,
) -> str:
    """
    Encode records as tabular text.

    Args:
        records: Records to export, written in the given order.
        voyage: Voyage whose name fills the `Cruise Name` column (blank if None).
        coordinate_decimals: Fractional digits for latitude/longitude.

    Returns:
        Header line plus one line per record, each with len(EXPORT_COLUMNS)
        quoted cells.
    """
    voyage_name = voyage.name if voyage is not None else ""
    rows = [encode_row(record, voyage_name, coordinate_decimals) for record in records]
    logger.debug("Encoding %d records as tabular text", len(rows))
    return _quoted_csv(EXPORT_COLUMNS, rows)


def generate_template() -> str:
    """Import template: the import header plus two example rows."""
    return _quoted_csv(IMPORT_COLUMNS, TEMPLATE_ROWS)

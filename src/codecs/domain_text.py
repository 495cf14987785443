"""
ASPeCt text codec: line-oriented, semicolon-delimited observation files.

**Structured layout** (what the decoder reads):

    {"name": "V1 2025/26", "voyage_leader": "...", ...}   <- optional preamble
    [DATA]                                                 <- section marker
    date;time;latitude;longitude;ice_observations.1.ice_concentration;...
    2026-01-01;12:00;-66.5;110.2;5;...                     <- one row per observation

**Conceptual**: Decoding is a four-state line scanner
(PREAMBLE -> AWAIT_MARKER -> AWAIT_HEADER -> READING_ROWS). The header line
defines the name -> column mapping for every row after it, so files may carry
any subset of the recognised columns in any order; a column absent from the
header simply means "not present" for every row. Unknown column names are
ignored.

**Functionally**:
  - PREAMBLE: the first non-blank line. If it starts with "{" it is parsed as
    a JSON object and the recognised voyage keys are extracted. A line that
    looks like metadata but does not parse produces one error and the
    metadata stays unset. Either way the scanner moves on to AWAIT_MARKER (a
    first line that is not metadata is examined again in that state).
  - AWAIT_MARKER: lines are ignored until the `[DATA]` marker line.
  - AWAIT_HEADER: the next non-blank line is the positional header.
  - READING_ROWS: each non-blank line is one observation. `date` and `time`
    combine into one UTC timestamp (time defaults to midnight); the timestamp,
    latitude and longitude are required. Rejected rows are reported with their
    physical line number in the file.

Concentrations in this format are tenths (0-10), including
`total_ice_concentration`. They are stored as-is, never converted to percent.

**Encoding** comes in two flavours:
  - encode_report(): the human-readable report exported to users. It lists
    only populated fields and is not meant to be decoded again.
  - encode_structured(): the preamble + marker + header + rows form above,
    which decode() reads back losslessly.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from src.codecs.ice_categories import (
    ICE_FIELD_NAMES,
    assemble_ice_categories,
    ice_category_fields,
)
from src.models.observation import (
    FileFormat,
    IceSlot,
    ImportResult,
    ObservationRecord,
    RowError,
    Voyage,
    VoyageMetadata,
)
from src.utils.text import flatten_line_breaks, format_coordinate, format_number, split_lines
from src.utils.time import combine_date_and_time, format_utc_timestamp, parse_optional_date
from src.validation.errors import (
    MalformedMetadataPreamble,
    MalformedTimestamp,
    MissingRequiredField,
    RowValidationError,
)
from src.validation.fields import (
    CLOUD_COVER_RANGE,
    NON_NEGATIVE,
    TENTHS_RANGE,
    UNBOUNDED,
    WIND_DIRECTION_RANGE,
    optional_bounded_number,
    optional_text,
    require_latitude,
    require_longitude,
)


logger = logging.getLogger(__name__)


SECTION_MARKER = "[DATA]"
FIELD_DELIMITER = ";"
REPORT_TITLE = "ASPECT Sea Ice Observation Data"
REPORT_SECTION_LABEL = "--- Observations ---"

METADATA_TEXT_KEYS = ("name", "voyage_leader", "captain_name", "voyage_vessel")
METADATA_DATE_KEYS = ("start_date", "end_date")


class ScanState(Enum):
    """States of the line scanner used by decode()."""
    PREAMBLE = "preamble"
    AWAIT_MARKER = "await_marker"
    AWAIT_HEADER = "await_header"
    READING_ROWS = "reading_rows"


@dataclass(frozen=True)
class DomainField:
    """
    Descriptor mapping a top-level column name to a record attribute.

    Attributes:
        name: Column name as it appears in the header line.
        attribute: ObservationRecord attribute it populates.
        convert: Raw value -> typed value, or None to leave it unset.
    """
    name: str
    attribute: str
    convert: Callable[[Optional[str]], object]


def _number(bounds) -> Callable[[Optional[str]], Optional[float]]:
    minimum, maximum = bounds
    return lambda raw: optional_bounded_number(raw, minimum, maximum)


OPTIONAL_FIELDS: List[DomainField] = [
    DomainField("total_ice_concentration", "total_ice_concentration", _number(TENTHS_RANGE)),
    DomainField("open_water_type", "open_water_type", optional_text),
    DomainField("water_temp", "water_temp", _number(UNBOUNDED)),
    DomainField("air_temp", "air_temp", _number(UNBOUNDED)),
    DomainField("wind_speed", "wind_speed", _number(NON_NEGATIVE)),
    DomainField("wind_direction", "wind_direction", _number(WIND_DIRECTION_RANGE)),
    DomainField("cloud_cover", "cloud_cover", _number(CLOUD_COVER_RANGE)),
    DomainField("visibility", "visibility", optional_text),
    DomainField("weather", "weather", optional_text),
    DomainField("observer", "observer", optional_text),
    DomainField("comments", "comments", optional_text),
]

# Header line written by encode_structured()
STRUCTURED_HEADER: List[str] = [
    "date",
    "time",
    "latitude",
    "longitude",
    "total_ice_concentration",
    "open_water_type",
    *ICE_FIELD_NAMES,
    *(field.name for field in OPTIONAL_FIELDS[2:]),
]


# ============================================================================
# Decoding
# ============================================================================

def parse_voyage_metadata(payload: Mapping[str, object]) -> VoyageMetadata:
    """
    Extract VoyageMetadata from a decoded preamble object.

    Unknown keys are ignored, missing or blank keys leave members unset, and
    dates that do not parse are left unset rather than failing the file.
    """
    values: Dict[str, object] = {}
    for key in METADATA_TEXT_KEYS:
        raw = payload.get(key)
        if isinstance(raw, (str, int, float)) and not isinstance(raw, bool):
            text = str(raw).strip()
            if text:
                values[key] = text
    for key in METADATA_DATE_KEYS:
        parsed = parse_optional_date(payload.get(key))
        if parsed is not None:
            values[key] = parsed
    return VoyageMetadata(**values)


def parse_preamble(line: str) -> VoyageMetadata:
    """
    Parse a one-line JSON metadata preamble.

    Raises:
        MalformedMetadataPreamble: If the line is not valid JSON or not an object.
    """
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as e:
        raise MalformedMetadataPreamble(f"Malformed metadata preamble: {e.msg}")
    if not isinstance(payload, dict):
        raise MalformedMetadataPreamble("Malformed metadata preamble: expected a key/value object")
    return parse_voyage_metadata(payload)


def decode_fields(fields: Mapping[str, str]) -> ObservationRecord:
    """
    Build one record from a row's name -> raw value mapping.

    Raises:
        RowValidationError: If the timestamp or position is missing or invalid.
    """
    date_text = fields.get("date")
    time_text = fields.get("time")
    if not date_text:
        raise MissingRequiredField("date is required", "date")
    try:
        timestamp = combine_date_and_time(date_text, time_text)
    except ValueError:
        shown = f"{date_text} {time_text}" if time_text else date_text
        raise MalformedTimestamp(f"Invalid date/time: {shown}", "date")

    latitude = require_latitude(fields.get("latitude"), "latitude")
    longitude = require_longitude(fields.get("longitude"), "longitude")

    values: Dict[str, object] = {}
    for field in OPTIONAL_FIELDS:
        value = field.convert(fields.get(field.name))
        if value is not None:
            values[field.attribute] = value

    for slot, category in assemble_ice_categories(fields).items():
        values[slot.attribute] = category

    return ObservationRecord(
        timestamp=timestamp,
        latitude=latitude,
        longitude=longitude,
        **values,
    )


class DomainTextDecoder:
    """
    Line scanner for the structured ASPeCt format.

    Feed lines in order with feed(), then call finish() for the result.
    decode() wraps this for whole-text input.
    """

    def __init__(self):
        self.state = ScanState.PREAMBLE
        self.header: List[str] = []
        self.result = ImportResult(format=FileFormat.DOMAIN_TEXT)

    def feed(self, line_number: int, line: str) -> None:
        stripped = line.strip()
        if not stripped:
            return

        if self.state is ScanState.PREAMBLE:
            self.state = ScanState.AWAIT_MARKER
            if stripped.startswith("{"):
                self._read_preamble(line_number, stripped)
                return

        if self.state is ScanState.AWAIT_MARKER:
            if stripped == SECTION_MARKER:
                self.state = ScanState.AWAIT_HEADER
            return

        if self.state is ScanState.AWAIT_HEADER:
            self.header = [name.strip() for name in stripped.split(FIELD_DELIMITER)]
            self.state = ScanState.READING_ROWS
            return

        self._read_row(line_number, stripped)

    def finish(self) -> ImportResult:
        if self.state in (ScanState.PREAMBLE, ScanState.AWAIT_MARKER):
            self.result.errors.append(RowError(
                None,
                f"Section marker '{SECTION_MARKER}' not found",
                "missing_section_marker",
            ))
        logger.debug(
            "Decoded ASPeCt text: %d accepted, %d rejected, metadata=%s",
            self.result.imported,
            len(self.result.errors),
            self.result.voyage_metadata is not None,
        )
        return self.result

    def _read_preamble(self, line_number: int, line: str) -> None:
        try:
            self.result.voyage_metadata = parse_preamble(line)
        except MalformedMetadataPreamble as e:
            self.result.errors.append(RowError(line_number, str(e), e.kind, label="Line"))

    def _read_row(self, line_number: int, line: str) -> None:
        values = [value.strip() for value in line.split(FIELD_DELIMITER)]
        # Values beyond the header are ignored; missing trailing values are absent
        fields = {name: value for name, value in zip(self.header, values) if value}
        try:
            self.result.observations.append(decode_fields(fields))
        except RowValidationError as e:
            self.result.errors.append(RowError(line_number, str(e), e.kind, label="Line"))


def decode(text: str) -> ImportResult:
    """
    Decode ASPeCt text into an ImportResult.

    Example:
        >>> text = '{"name": "V1"}\\n[DATA]\\ndate;time;latitude;longitude\\n2026-01-01;12:00;-66.5;110.2'
        >>> result = decode(text)
        >>> result.imported, result.voyage_metadata.name
        (1, 'V1')
    """
    decoder = DomainTextDecoder()
    for line_number, line in enumerate(split_lines(text or ""), start=1):
        decoder.feed(line_number, line)
    return decoder.finish()


# ============================================================================
# Encoding
# ============================================================================

def _format_date(value) -> str:
    return value.strftime("%Y-%m-%d") if value is not None else "N/A"


def _report_ice_line(slot: IceSlot, record: ObservationRecord) -> Optional[str]:
    category = record.ice_category(slot)
    if category is None:
        return None
    concentration = format_number(category.ice_concentration) or "N/A"
    parts = [
        f"{concentration}/10",
        category.ice_type or "N/A",
        category.ice_thickness or "N/A",
        category.floe_size or "N/A",
        category.topography or "N/A",
    ]
    return f"{slot.label} Ice: " + " - ".join(parts)


def _report_record(index: int, record: ObservationRecord, coordinate_decimals: int) -> List[str]:
    lat, lon = record.latitude, record.longitude
    lines = [
        f"Observation {index}",
        f"Date/Time: {format_utc_timestamp(record.timestamp)}",
        f"Position: {format_coordinate(abs(lat), coordinate_decimals)}° {'N' if lat >= 0 else 'S'}, "
        f"{format_coordinate(abs(lon), coordinate_decimals)}° {'E' if lon >= 0 else 'W'}",
    ]

    if record.total_ice_concentration is not None:
        lines.append(f"Total Ice Concentration: {format_number(record.total_ice_concentration)}")
    if record.open_water_type:
        lines.append(f"Open Water Type: {record.open_water_type}")

    for slot in IceSlot:
        ice_line = _report_ice_line(slot, record)
        if ice_line is not None:
            lines.append(ice_line)

    if record.air_temp is not None:
        lines.append(f"Air Temperature: {format_number(record.air_temp)}°C")
    if record.water_temp is not None:
        lines.append(f"Water Temperature: {format_number(record.water_temp)}°C")
    if record.wind_speed is not None:
        wind = f"Wind: {format_number(record.wind_speed)} m/s"
        if record.wind_direction is not None:
            wind += f" from {format_number(record.wind_direction)}°"
        lines.append(wind)
    elif record.wind_direction is not None:
        lines.append(f"Wind Direction: {format_number(record.wind_direction)}°")
    if record.cloud_cover is not None:
        lines.append(f"Cloud Cover: {format_number(record.cloud_cover)}/8")
    if record.visibility:
        lines.append(f"Visibility: {record.visibility}")
    if record.weather:
        lines.append(f"Weather: {flatten_line_breaks(record.weather)}")
    if record.observer:
        lines.append(f"Observer: {record.observer}")
    if record.comments:
        lines.append(f"Comments: {flatten_line_breaks(record.comments)}")

    lines.append("")
    return lines


def encode_report(
    voyage: Voyage,
    records: Sequence[ObservationRecord],
    coordinate_decimals: int = 6,
) -> str:
    """
    Encode records as the human-readable ASPeCt report.

    Only populated fields are listed for each observation. The output has no
    section marker or header line, so it does not decode again; use
    encode_structured() for that.
    """
    lines = [
        REPORT_TITLE,
        f"Cruise: {voyage.name}",
        f"Leader: {voyage.voyage_leader}",
        f"Vessel: {voyage.voyage_vessel or 'N/A'}",
        f"Period: {_format_date(voyage.start_date)} to {_format_date(voyage.end_date)}",
        "",
        REPORT_SECTION_LABEL,
        "",
    ]
    for index, record in enumerate(records, start=1):
        lines.extend(_report_record(index, record, coordinate_decimals))

    logger.debug("Encoded %d records as ASPeCt report", len(records))
    return "\n".join(lines)


def _structured_text(value: Optional[object]) -> str:
    if value is None:
        return ""
    # The delimiter cannot be escaped in this format
    return flatten_line_breaks(str(value)).replace(FIELD_DELIMITER, ",").strip()


def _structured_value(value: Optional[object]) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value)
    return _structured_text(value)


def _voyage_preamble(voyage: Voyage) -> str:
    payload: Dict[str, str] = {}
    for key in METADATA_TEXT_KEYS:
        value = getattr(voyage, key)
        if value:
            payload[key] = value
    for key in METADATA_DATE_KEYS:
        value = getattr(voyage, key)
        if value is not None:
            payload[key] = value.strftime("%Y-%m-%d")
    return json.dumps(payload, ensure_ascii=False)


def _structured_row(record: ObservationRecord, coordinate_decimals: int) -> str:
    cells: Dict[str, str] = {
        "date": format_utc_timestamp(record.timestamp, "%Y-%m-%d"),
        "time": format_utc_timestamp(record.timestamp, "%H:%M:%S"),
        "latitude": format_coordinate(record.latitude, coordinate_decimals),
        "longitude": format_coordinate(record.longitude, coordinate_decimals),
    }
    for field in OPTIONAL_FIELDS:
        cells[field.name] = _structured_value(getattr(record, field.attribute))
    for slot in IceSlot:
        category = record.ice_category(slot)
        if category is None:
            continue
        for name, value in ice_category_fields(slot, category).items():
            cells[name] = _structured_value(value)
    return FIELD_DELIMITER.join(cells.get(name, "") for name in STRUCTURED_HEADER)


def encode_structured(
    voyage: Optional[Voyage],
    records: Sequence[ObservationRecord],
    coordinate_decimals: int = 6,
) -> str:
    """
    Encode records in the structured ASPeCt layout that decode() reads.

    Args:
        voyage: Voyage written as the JSON preamble (omitted when None).
        records: Records, written in the given order.
        coordinate_decimals: Fractional digits for latitude/longitude.

    Returns:
        Preamble (optional), marker, header and one row per record, joined
        with "\\n".
    """
    lines: List[str] = []
    if voyage is not None:
        lines.append(_voyage_preamble(voyage))
    lines.append(SECTION_MARKER)
    lines.append(FIELD_DELIMITER.join(STRUCTURED_HEADER))
    lines.extend(_structured_row(record, coordinate_decimals) for record in records)
    return "\n".join(lines)

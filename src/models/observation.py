"""
Observation, ice-category and voyage records.

**Conceptual**: Both textual formats (the generic tabular CSV and the
line-oriented ASPeCt text format) decode into the same in-memory model defined
here, and both encoders read from it. Records are transient: a decode call
builds them fresh, hands them to the caller, and never touches them again.
Identity (`id`) and voyage ownership (`voyage_id`) are assigned by the caller
and the record store, never by a codec.

**Shape**:
  - ObservationRecord: one sighting event with a UTC timestamp, a required
    position, optional ice and weather fields, and up to three IceCategory
    slots (primary / secondary / tertiary).
  - IceCategory: one ranked ice-type description. A slot is either absent
    (None on the record) or holds a category with at least a concentration or
    a type; text attributes default to "" rather than None.
  - VoyageMetadata: the optional preamble of an ASPeCt file. Every member is
    optional because the preamble is parsed leniently.
  - Voyage: the stored voyage (cruise) entity that exports are labelled with.
  - ImportResult: accepted records plus line-numbered row errors.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional


class FileFormat(Enum):
    """Textual encodings understood by the import/export subsystem."""
    TABULAR = "tabular"
    DOMAIN_TEXT = "domain_text"


class IceSlot(Enum):
    """
    The three ranked ice-category slots of an observation.

    The value is the 1-based index used by ASPeCt field names
    (`ice_observations.<n>.<attribute>`).
    """
    PRIMARY = 1
    SECONDARY = 2
    TERTIARY = 3

    @property
    def attribute(self) -> str:
        """Name of the ObservationRecord attribute holding this slot."""
        return f"{self.name.lower()}_ice"

    @property
    def label(self) -> str:
        """Capitalised label used in export column names and reports."""
        return self.name.capitalize()


@dataclass
class IceCategory:
    """
    One ice-type observation within a record.

    Attributes:
        ice_concentration: Concentration in tenths (0-10), None when unset.
        ice_type: Ice type code.
        ice_thickness: Thickness code or range.
        floe_size: Floe size code.
        topography: Topography code (letter + coverage digit, not validated).
        snow_type: Snow type code.
        snow_thickness: Snow thickness code.
        brown_ice: Brown ice indicator.
        melt_pond_coverage: Melt pond areal coverage in percent.
        melt_pond_depth: Melt pond depth.
        melt_pond_length_1: First melt pond length dimension.
        melt_pond_length_2: Second melt pond length dimension.
    """
    ice_concentration: Optional[float] = None
    ice_type: str = ""
    ice_thickness: str = ""
    floe_size: str = ""
    topography: str = ""
    snow_type: str = ""
    snow_thickness: str = ""
    brown_ice: str = ""
    melt_pond_coverage: Optional[float] = None
    melt_pond_depth: Optional[float] = None
    melt_pond_length_1: Optional[float] = None
    melt_pond_length_2: Optional[float] = None

    def is_blank(self) -> bool:
        """True when neither a concentration nor a type is set."""
        return self.ice_concentration is None and not self.ice_type


@dataclass
class ObservationRecord:
    """
    One sea-ice sighting event.

    Attributes:
        timestamp: Point in time of the observation (timezone-aware, UTC).
        latitude: Decimal degrees in [-90, 90].
        longitude: Decimal degrees in [-180, 180].
        id: Opaque identifier assigned by the record store.
        voyage_id: Opaque identifier of the owning voyage, set by the caller.
        total_ice_concentration: Percent (0-100) when decoded from the tabular
            format, tenths (0-10) when decoded from the ASPeCt format. The two
            scales are never converted into each other.
        open_water_type: Open water code or free text.
        primary_ice, secondary_ice, tertiary_ice: Optional ice categories.
        air_temp, water_temp: Degrees Celsius.
        wind_speed: m/s, non-negative.
        wind_direction: Degrees in [0, 360].
        cloud_cover: Oktas in [0, 8].
        visibility: Visibility code.
        weather: Free text.
        observer: Observer name.
        comments: Free text; may contain line breaks.
    """
    timestamp: datetime
    latitude: float
    longitude: float
    id: Optional[str] = None
    voyage_id: Optional[str] = None
    total_ice_concentration: Optional[float] = None
    open_water_type: Optional[str] = None
    primary_ice: Optional[IceCategory] = None
    secondary_ice: Optional[IceCategory] = None
    tertiary_ice: Optional[IceCategory] = None
    water_temp: Optional[float] = None
    air_temp: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    cloud_cover: Optional[float] = None
    visibility: Optional[str] = None
    weather: Optional[str] = None
    observer: Optional[str] = None
    comments: Optional[str] = None

    def ice_category(self, slot: IceSlot) -> Optional[IceCategory]:
        """Return the category stored in `slot`, or None when absent."""
        return getattr(self, slot.attribute)

    def with_voyage(self, voyage_id: str) -> "ObservationRecord":
        """Copy of this record owned by `voyage_id`."""
        return replace(self, voyage_id=voyage_id)

    def with_id(self, record_id: str) -> "ObservationRecord":
        """Copy of this record carrying the store-assigned identifier."""
        return replace(self, id=record_id)


@dataclass
class VoyageMetadata:
    """
    Voyage details decoded from an ASPeCt metadata preamble.

    Only produced by the ASPeCt decoder. Keys missing from the preamble leave
    the corresponding member unset.
    """
    name: Optional[str] = None
    voyage_leader: Optional[str] = None
    captain_name: Optional[str] = None
    voyage_vessel: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass
class Voyage:
    """A stored research voyage (cruise)."""
    name: str
    voyage_leader: str
    captain_name: str
    start_date: date
    end_date: date
    voyage_vessel: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class RowError:
    """
    A row-level (or file-level) decode failure.

    Attributes:
        line_number: 1-based location in the source text. For the tabular
            format the header is row 1; for the ASPeCt format this is the
            physical line number. None for problems not tied to one line.
        message: Human-readable description.
        kind: Stable error kind (e.g. "missing_required_field").
        label: Word used when rendering the location ("Row" or "Line").
    """
    line_number: Optional[int]
    message: str
    kind: str
    label: str = "Row"

    def __str__(self) -> str:
        if self.line_number is None:
            return self.message
        return f"{self.label} {self.line_number}: {self.message}"


@dataclass
class ImportResult:
    """
    Output of a decode call.

    Attributes:
        format: Which codec produced this result.
        observations: Accepted records, in file order.
        errors: Row-level errors, in file order.
        voyage_metadata: Decoded ASPeCt preamble, if any.
    """
    format: FileFormat
    observations: List[ObservationRecord] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)
    voyage_metadata: Optional[VoyageMetadata] = None

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def imported(self) -> int:
        return len(self.observations)

    def error_messages(self) -> List[str]:
        """Rendered error messages, e.g. ["Row 3: Latitude is required"]."""
        return [str(error) for error in self.errors]

    def summary(self) -> Dict[str, int]:
        """Counts used by actions when printing an import preview."""
        return {"observations": self.imported, "errors": len(self.errors)}

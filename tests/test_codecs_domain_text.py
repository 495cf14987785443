"""
Tests for src/codecs/domain_text.py

Covers:
  - The four-state scanner (preamble, marker, header, rows)
  - Ice category assembly from indexed field names
  - Physical line numbers on rejected rows
  - The human-readable report and the structured (re-importable) encoding
"""

from datetime import date, datetime, timezone

import pytest

from src.codecs.domain_text import (
    REPORT_TITLE,
    SECTION_MARKER,
    STRUCTURED_HEADER,
    DomainTextDecoder,
    ScanState,
    decode,
    encode_report,
    encode_structured,
    parse_preamble,
)
from src.models.observation import (
    FileFormat,
    IceCategory,
    ObservationRecord,
    Voyage,
    VoyageMetadata,
)
from src.validation.errors import MalformedMetadataPreamble


UTC = timezone.utc

PREAMBLE = '{"name": "Aurora 2026", "voyage_leader": "A. Leader", "captain_name": "B. Captain"}'


def aspect_text(*rows, header="date;time;latitude;longitude", preamble=PREAMBLE) -> str:
    """Assemble an ASPeCt file from its parts."""
    lines = [preamble] if preamble is not None else []
    lines += [SECTION_MARKER, header, *rows]
    return "\n".join(lines)


def make_voyage() -> Voyage:
    return Voyage(
        name="Aurora 2026",
        voyage_leader="A. Leader",
        captain_name="B. Captain",
        voyage_vessel="RSV Nuyina",
        start_date=date(2026, 1, 1),
        end_date=date(2026, 2, 15),
    )


# ============================================================================
# Decoding
# ============================================================================

def test_decode_preamble_and_single_row():
    result = decode(aspect_text("2026-01-01;12:30;-66.5;110.25"))

    assert result.format == FileFormat.DOMAIN_TEXT
    assert result.success
    assert result.imported == 1
    assert result.voyage_metadata == VoyageMetadata(
        name="Aurora 2026",
        voyage_leader="A. Leader",
        captain_name="B. Captain",
    )
    record = result.observations[0]
    assert record.timestamp == datetime(2026, 1, 1, 12, 30, tzinfo=UTC)
    assert record.latitude == -66.5
    assert record.longitude == 110.25


def test_preamble_dates_and_unknown_keys():
    preamble = (
        '{"name": "V1", "voyage_vessel": "Aurora", "start_date": "2026-01-01", '
        '"end_date": "not a date", "sponsor": "ignored"}'
    )

    result = decode(aspect_text(preamble=preamble))

    meta = result.voyage_metadata
    assert meta.name == "V1"
    assert meta.voyage_vessel == "Aurora"
    assert meta.start_date == date(2026, 1, 1)
    assert meta.end_date is None
    assert meta.voyage_leader is None


def test_decode_without_preamble():
    result = decode(aspect_text("2026-01-01;12:00;-66.5;110.2", preamble=None))

    assert result.success
    assert result.imported == 1
    assert result.voyage_metadata is None


def test_lines_before_marker_are_ignored():
    text = "\n".join([
        "ASPeCt export v3",
        "some notes; with; semicolons",
        SECTION_MARKER,
        "date;time;latitude;longitude",
        "2026-01-01;12:00;-66.5;110.2",
    ])

    result = decode(text)

    assert result.success
    assert result.imported == 1
    assert result.voyage_metadata is None


def test_malformed_preamble_reports_error_and_keeps_rows():
    result = decode(aspect_text("2026-01-01;12:00;-66.5;110.2", preamble='{"name": "V1",'))

    assert result.voyage_metadata is None
    assert result.imported == 1
    assert len(result.errors) == 1
    error = result.errors[0]
    assert error.line_number == 1
    assert error.kind == "malformed_metadata_preamble"
    assert str(error).startswith("Line 1: Malformed metadata preamble")


def test_parse_preamble_rejects_non_objects():
    with pytest.raises(MalformedMetadataPreamble):
        parse_preamble('["name", "V1"]')


def test_missing_marker_is_a_file_level_error():
    result = decode('{"name": "V1"}\ndate;time;latitude;longitude\n2026-01-01;12:00;-66.5;110.2')

    assert result.imported == 0
    assert len(result.errors) == 1
    assert result.errors[0].line_number is None
    assert result.errors[0].kind == "missing_section_marker"
    assert result.voyage_metadata.name == "V1"


def test_marker_with_header_but_no_rows_is_clean():
    result = decode(aspect_text())
    assert result.success
    assert result.imported == 0


def test_date_without_time_is_midnight():
    result = decode(aspect_text("2026-01-01;;-66.5;110.2"))
    assert result.observations[0].timestamp == datetime(2026, 1, 1, 0, 0, tzinfo=UTC)


def test_columns_follow_the_header_order():
    header = "longitude;observer;latitude;time;date;unknown_field"
    result = decode(aspect_text("110.2;Jane Doe;-66.5;08:15:00;2026-01-02;whatever", header=header))

    record = result.observations[0]
    assert record.longitude == 110.2
    assert record.latitude == -66.5
    assert record.observer == "Jane Doe"
    assert record.timestamp == datetime(2026, 1, 2, 8, 15, tzinfo=UTC)


def test_rejected_rows_carry_physical_line_numbers():
    # Line 1 preamble, 2 marker, 3 header, 4.. rows
    text = aspect_text(
        "2026-01-01;12:00;-66.5;110.2",
        "2026-01-01;12:10;-95;110.2",
        "",
        ";12:20;-66.5;110.2",
        "2026-01-01;12:30;-66.7;110.4",
    )

    result = decode(text)

    assert result.imported == 2
    assert [error.line_number for error in result.errors] == [5, 7]
    assert result.errors[0].kind == "out_of_range_value"
    assert result.errors[1].kind == "missing_required_field"
    assert str(result.errors[1]) == "Line 7: date is required"


def test_form_feed_in_a_comment_stays_in_its_row():
    # Line 1 preamble, 2 marker, 3 header, 4.. rows
    text = aspect_text(
        "2026-01-01;12:00;-66.5;110.2;a\x0cb",
        "2026-01-01;12:10;-66.6;110.3;page\u2028break",
        "2026-01-01;12:20;-95;110.2;",
        header="date;time;latitude;longitude;comments",
    )

    result = decode(text)

    assert [r.comments for r in result.observations] == ["a\x0cb", "page\u2028break"]
    assert [error.line_number for error in result.errors] == [6]


def test_crlf_and_cr_line_endings():
    text = aspect_text("2026-01-01;12:00;-66.5;110.2", "2026-01-01;12:10;-95;110.2").replace("\n", "\r\n")
    old_mac = aspect_text("2026-01-01;12:00;-66.5;110.2").replace("\n", "\r")

    result = decode(text)

    assert result.imported == 1
    assert [error.line_number for error in result.errors] == [5]
    assert decode(old_mac).imported == 1


def test_malformed_date_time_is_rejected():
    result = decode(aspect_text("2026-01-01;25:99;-66.5;110.2"))

    assert result.imported == 0
    assert result.errors[0].kind == "malformed_timestamp"
    assert "Invalid date/time: 2026-01-01 25:99" in str(result.errors[0])


def test_total_concentration_is_tenths():
    header = "date;time;latitude;longitude;total_ice_concentration"
    result = decode(aspect_text(
        "2026-01-01;12:00;-66.5;110.2;7",
        "2026-01-01;13:00;-66.5;110.2;75",
        header=header,
    ))

    first, second = result.observations
    assert first.total_ice_concentration == 7.0
    assert second.total_ice_concentration is None
    assert result.success


def test_concentration_only_primary_category():
    header = "date;time;latitude;longitude;ice_observations.1.ice_concentration"
    result = decode(aspect_text("2026-01-01;12:00;-66.5;110.2;5", header=header))

    record = result.observations[0]
    assert record.primary_ice == IceCategory(ice_concentration=5.0)
    assert record.primary_ice.ice_type == ""
    assert record.secondary_ice is None
    assert record.tertiary_ice is None


def test_attributes_without_concentration_or_type_leave_slot_empty():
    header = (
        "date;time;latitude;longitude;"
        "ice_observations.2.snow_type;ice_observations.2.floe_size;ice_observations.3.ice_type"
    )
    result = decode(aspect_text("2026-01-01;12:00;-66.5;110.2;3;4;", header=header))

    record = result.observations[0]
    assert record.secondary_ice is None
    assert record.tertiary_ice is None


def test_out_of_range_optional_values_are_dropped():
    header = "date;time;latitude;longitude;wind_direction;cloud_cover;wind_speed"
    result = decode(aspect_text("2026-01-01;12:00;-66.5;110.2;400;9;-2", header=header))

    assert result.success
    record = result.observations[0]
    assert record.wind_direction is None
    assert record.cloud_cover is None
    assert record.wind_speed is None


def test_decoder_state_transitions():
    decoder = DomainTextDecoder()
    assert decoder.state is ScanState.PREAMBLE

    decoder.feed(1, PREAMBLE)
    assert decoder.state is ScanState.AWAIT_MARKER

    decoder.feed(2, SECTION_MARKER)
    assert decoder.state is ScanState.AWAIT_HEADER

    decoder.feed(3, "date;time;latitude;longitude")
    assert decoder.state is ScanState.READING_ROWS
    assert decoder.header == ["date", "time", "latitude", "longitude"]

    decoder.feed(4, "2026-01-01;12:00;-66.5;110.2")
    assert decoder.finish().imported == 1


# ============================================================================
# Encoding: report
# ============================================================================

def test_report_header_and_populated_fields():
    record = ObservationRecord(
        timestamp=datetime(2026, 1, 1, 12, 0, tzinfo=UTC),
        latitude=-66.5,
        longitude=110.25,
        total_ice_concentration=8.0,
        primary_ice=IceCategory(ice_concentration=5.0, ice_type="FY"),
        wind_speed=12.5,
        wind_direction=180.0,
        cloud_cover=4.0,
        comments="first line\nsecond line",
    )

    text = encode_report(make_voyage(), [record])
    lines = text.split("\n")

    assert lines[:8] == [
        REPORT_TITLE,
        "Cruise: Aurora 2026",
        "Leader: A. Leader",
        "Vessel: RSV Nuyina",
        "Period: 2026-01-01 to 2026-02-15",
        "",
        "--- Observations ---",
        "",
    ]
    assert "Observation 1" in lines
    assert "Date/Time: 2026-01-01 12:00:00" in lines
    assert "Position: 66.500000° S, 110.250000° E" in lines
    assert "Total Ice Concentration: 8" in lines
    assert "Primary Ice: 5/10 - FY - N/A - N/A - N/A" in lines
    assert "Wind: 12.5 m/s from 180°" in lines
    assert "Cloud Cover: 4/8" in lines
    assert "Comments: first line second line" in lines


def test_report_omits_unpopulated_fields():
    record = ObservationRecord(
        timestamp=datetime(2026, 1, 1, 12, 0, tzinfo=UTC),
        latitude=10.0,
        longitude=-20.0,
    )

    text = encode_report(make_voyage(), [record])

    assert "Position: 10.000000° N, 20.000000° W" in text
    assert "Air Temperature" not in text
    assert "Primary Ice" not in text
    assert "Wind" not in text
    assert "Observer" not in text


def test_report_numbers_observations_in_order():
    records = [
        ObservationRecord(timestamp=datetime(2026, 1, d, tzinfo=UTC), latitude=-66.0, longitude=110.0)
        for d in (1, 2, 3)
    ]

    lines = encode_report(make_voyage(), records).split("\n")

    assert [line for line in lines if line.startswith("Observation ")] == [
        "Observation 1",
        "Observation 2",
        "Observation 3",
    ]


# ============================================================================
# Encoding: structured
# ============================================================================

def test_structured_export_decodes_back():
    records = [
        ObservationRecord(
            timestamp=datetime(2026, 1, 1, 12, 30, tzinfo=UTC),
            latitude=-66.5,
            longitude=110.25,
            total_ice_concentration=8.0,
            open_water_type="Nilas",
            primary_ice=IceCategory(
                ice_concentration=5.0,
                ice_type="FY",
                ice_thickness="70",
                floe_size="4",
                topography="R2",
                snow_type="3",
                snow_thickness="10",
                melt_pond_coverage=20.0,
                melt_pond_depth=0.3,
            ),
            tertiary_ice=IceCategory(ice_type="MY"),
            air_temp=-4.5,
            water_temp=-1.8,
            wind_speed=7.0,
            wind_direction=270.0,
            cloud_cover=8.0,
            visibility="Good",
            weather="Light snow",
            observer="Jane Doe",
            comments="Leads to the south",
        ),
        ObservationRecord(
            timestamp=datetime(2026, 1, 1, 13, 0, tzinfo=UTC),
            latitude=-66.6,
            longitude=110.3,
        ),
    ]

    result = decode(encode_structured(make_voyage(), records))

    assert result.success
    assert result.observations == records
    assert result.voyage_metadata == VoyageMetadata(
        name="Aurora 2026",
        voyage_leader="A. Leader",
        captain_name="B. Captain",
        voyage_vessel="RSV Nuyina",
        start_date=date(2026, 1, 1),
        end_date=date(2026, 2, 15),
    )


def test_structured_export_layout():
    record = ObservationRecord(
        timestamp=datetime(2026, 1, 1, 12, 30, tzinfo=UTC),
        latitude=-66.5,
        longitude=110.25,
        comments="a;b\nc",
    )

    lines = encode_structured(None, [record]).split("\n")

    assert lines[0] == SECTION_MARKER
    assert lines[1].split(";") == STRUCTURED_HEADER
    cells = dict(zip(STRUCTURED_HEADER, lines[2].split(";")))
    assert len(lines[2].split(";")) == len(STRUCTURED_HEADER)
    assert cells["date"] == "2026-01-01"
    assert cells["time"] == "12:30:00"
    assert cells["latitude"] == "-66.500000"
    assert cells["comments"] == "a,b c"


def test_structured_export_without_voyage_has_no_metadata():
    result = decode(encode_structured(None, []))
    assert result.success
    assert result.voyage_metadata is None

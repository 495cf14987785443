"""
Tests for the convert_observation_file and write_tabular_template actions.

**Testing philosophy**: Drive the actions through main(argv) against files in
tmp_path and assert on exit codes and written output. Settings are pointed at
tmp_path through the SEAICE_* environment variables.
"""

import sys
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

# Add project root to path so we can import actions modules
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from actions.convert_observation_file import build_voyage, convert, main
from actions import write_tabular_template
from src.codecs.tabular import EXPORT_COLUMNS, IMPORT_COLUMNS
from src.config.settings import reset_settings
from src.models.observation import VoyageMetadata
from src.services.importer import ImportRejectedError, decode_text
from src.utils.time import FrozenClock


ASPECT_TEXT = "\n".join([
    '{"name": "Aurora 2026", "voyage_leader": "A. Leader", "captain_name": "B. Captain", '
    '"start_date": "2026-01-01", "end_date": "2026-02-15"}',
    "[DATA]",
    "date;time;latitude;longitude;ice_observations.1.ice_concentration;ice_observations.1.ice_type",
    "2026-01-02;12:00;-66.5;110.2;5;FY",
    "2026-01-01;08:00;-66.4;110.1;;",
])

CSV_TEXT = "\n".join([
    "Date/Time,Latitude,Longitude",
    "2025-12-18 10:00:00,-65.5,-64.25",
    "2025-12-19 10:00:00,-65.7,-64.5",
])

BAD_CSV_TEXT = "\n".join([
    "Date/Time,Latitude,Longitude",
    "2025-12-18 10:00:00,-65.5,-64.25",
    "2025-12-19 10:00:00,,-64.5",
])


@pytest.fixture(autouse=True)
def export_dir(tmp_path, monkeypatch):
    directory = tmp_path / "exports"
    monkeypatch.setenv("SEAICE_EXPORT_DIR", str(directory))
    monkeypatch.delenv("SEAICE_COORDINATE_DECIMALS", raising=False)
    monkeypatch.delenv("SEAICE_FILE_ENCODING", raising=False)
    monkeypatch.delenv("SEAICE_LOG_LEVEL", raising=False)
    reset_settings()
    yield directory
    reset_settings()


def write_input(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def run_main(argv):
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


# ============================================================================
# Helpers
# ============================================================================

def test_build_voyage_from_file_metadata():
    result = decode_text("20260101SD056", ASPECT_TEXT)

    voyage = build_voyage(result, None, "", "", "fallback")

    assert voyage.name == "Aurora 2026"
    assert voyage.start_date == date(2026, 1, 1)
    assert voyage.end_date == date(2026, 2, 15)


def test_build_voyage_from_command_line_spans_observations():
    result = decode_text("obs.csv", CSV_TEXT)

    voyage = build_voyage(result, "V1 2025/26", "Leader", "Captain", "obs")

    assert voyage.name == "V1 2025/26"
    assert voyage.voyage_leader == "Leader"
    assert voyage.start_date == date(2025, 12, 18)
    assert voyage.end_date == date(2025, 12, 19)


def test_build_voyage_with_incomplete_metadata_uses_fallback(capsys):
    result = decode_text("obs.csv", "Date/Time,Latitude,Longitude")
    result.voyage_metadata = VoyageMetadata(name="Aurora 2026")
    clock = FrozenClock(datetime(2026, 1, 18, tzinfo=timezone.utc))

    voyage = build_voyage(result, None, "", "", "obs", clock)

    assert voyage.name == "obs"
    assert voyage.start_date == voyage.end_date == date(2026, 1, 18)
    assert "missing required voyage fields" in capsys.readouterr().out


def test_convert_aspect_to_csv_sorts_by_timestamp():
    result = decode_text("20260101SD056", ASPECT_TEXT)
    voyage = build_voyage(result, None, "", "", "fallback")

    lines = convert(result, voyage, "csv").split("\n")

    assert lines[0] == ",".join(EXPORT_COLUMNS)
    assert lines[1].startswith('"Aurora 2026","2026-01-01 08:00:00"')
    assert '"5","FY"' in lines[2]


def test_convert_refuses_results_with_errors():
    result = decode_text("obs.csv", BAD_CSV_TEXT)
    voyage = build_voyage(result, "V1", "", "", "obs")

    with pytest.raises(ImportRejectedError):
        convert(result, voyage, "csv")


# ============================================================================
# main()
# ============================================================================

def test_preview_clean_file_exits_zero(tmp_path, capsys):
    path = write_input(tmp_path, "obs.csv", CSV_TEXT)

    assert run_main([str(path)]) == 0
    out = capsys.readouterr().out
    assert "Observations:  2" in out
    assert "Errors:        0" in out


def test_preview_file_with_errors_exits_one(tmp_path, capsys):
    path = write_input(tmp_path, "obs.csv", BAD_CSV_TEXT)

    assert run_main([str(path)]) == 1
    assert "Row 3: Latitude is required" in capsys.readouterr().out


def test_missing_input_exits_one(tmp_path):
    assert run_main([str(tmp_path / "missing.csv")]) == 1


def test_convert_to_explicit_output(tmp_path):
    path = write_input(tmp_path, "20260101SD056", ASPECT_TEXT)
    output = tmp_path / "out" / "aurora.csv"

    assert run_main([str(path), "--to", "csv", "--output", str(output)]) == 0
    lines = output.read_text(encoding="utf-8").split("\n")
    assert len(lines) == 3


def test_convert_to_default_export_dir(tmp_path, export_dir):
    path = write_input(tmp_path, "obs.csv", CSV_TEXT)

    assert run_main([str(path), "--to", "aspect", "--voyage-name", "V1 2025/26"]) == 0
    written = list(export_dir.glob("v1_2025_26_*.txt"))
    assert len(written) == 1
    assert written[0].read_text(encoding="utf-8").startswith("ASPECT Sea Ice Observation Data")


def test_convert_with_errors_writes_nothing(tmp_path, export_dir):
    path = write_input(tmp_path, "obs.csv", BAD_CSV_TEXT)

    assert run_main([str(path), "--to", "csv"]) == 1
    assert not export_dir.exists()


def test_invalid_settings_exit_one(tmp_path, monkeypatch):
    path = write_input(tmp_path, "obs.csv", CSV_TEXT)
    monkeypatch.setenv("SEAICE_COORDINATE_DECIMALS", "2")
    reset_settings()

    assert run_main([str(path)]) == 1


# ============================================================================
# write_tabular_template
# ============================================================================

def test_write_template_to_output(tmp_path):
    output = tmp_path / "template.csv"

    write_tabular_template.main(["--output", str(output)])

    lines = output.read_text(encoding="utf-8").split("\n")
    assert lines[0] == ",".join(IMPORT_COLUMNS)
    assert len(lines) == 3


def test_write_template_to_export_dir(export_dir):
    write_tabular_template.main([])

    assert (export_dir / "observation_template.csv").exists()

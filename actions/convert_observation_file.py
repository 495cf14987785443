#!/usr/bin/env python3
"""
Preview an observation file and optionally convert it to another format.

**Purpose**: Runs the same import path the application uses on upload:
  1. Detect the format (CSV or ASPeCt text) and decode the file.
  2. Print the number of accepted observations and every row error.
  3. With --to: commit the observations into an in-memory voyage
     (fail-closed: any row error aborts the conversion) and export them.

**Usage**:
    # Preview only
    python actions/convert_observation_file.py 20260101SD056

    # Convert an ASPeCt file to CSV (voyage taken from the file's metadata)
    python actions/convert_observation_file.py 20260101SD056 --to csv

    # Convert a CSV file to the ASPeCt report, naming the voyage explicitly
    python actions/convert_observation_file.py obs.csv --to aspect --voyage-name "V1 2025/26"

**Exit codes**:
  - 0: Success
  - 1: The file has row errors, or the input/arguments are invalid
  - 2: Unexpected error
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

# Ensure project root is on path for imports
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from src.config.settings import get_settings
from src.models.observation import ImportResult, Voyage
from src.services.exporter import EXPORT_FORMATS, export_voyage, generate_filename, write_export
from src.services.importer import (
    ImportRejectedError,
    VoyageMetadataIncompleteError,
    commit_import,
    read_observation_file,
    voyage_from_metadata,
)
from src.store.memory import InMemoryObservationStore, InMemoryVoyageStore
from src.utils.logger import setup_logger
from src.utils.time import Clock, RealClock


def parse_args(argv=None):
    """
    Parse command line arguments.

    Returns:
        Namespace with attributes: input, to, output, voyage_name, leader, captain.
    """
    parser = argparse.ArgumentParser(
        description="Preview or convert a sea-ice observation file (CSV or ASPeCt text)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("input", type=str, help="Path to the observation file")
    parser.add_argument(
        "--to",
        choices=sorted(EXPORT_FORMATS),
        default=None,
        help="Export format; omit to only preview the import",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output path (default: <SEAICE_EXPORT_DIR>/<voyage>_<YYYYMMDD>.<ext>)",
    )
    parser.add_argument("--voyage-name", type=str, default=None, help="Voyage name for the export header")
    parser.add_argument("--leader", type=str, default="", help="Voyage leader for the export header")
    parser.add_argument("--captain", type=str, default="", help="Captain name for the export header")
    return parser.parse_args(argv)


def print_summary(result: ImportResult) -> None:
    """Print the import preview: counts, metadata and row errors."""
    print(f"Format:        {result.format.value}")
    print(f"Observations:  {result.imported}")
    print(f"Errors:        {len(result.errors)}")

    if result.voyage_metadata is not None:
        meta = result.voyage_metadata
        print(f"Voyage (file): {meta.name or 'N/A'} / leader {meta.voyage_leader or 'N/A'}")

    for error in result.errors:
        print(f"  ✗ {error}")


def build_voyage(
    result: ImportResult,
    voyage_name: Optional[str],
    leader: str,
    captain: str,
    fallback_name: str,
    clock: Optional[Clock] = None,
) -> Voyage:
    """
    Voyage used to label the export.

    Complete file metadata wins unless a voyage name is given explicitly;
    otherwise the command line values (or the input file stem) are used and
    the period spans the observations.
    """
    if voyage_name is None and result.voyage_metadata is not None:
        try:
            return voyage_from_metadata(result.voyage_metadata, clock)
        except VoyageMetadataIncompleteError as e:
            print(f"  ! {e}; using command line values instead")

    today = (clock or RealClock()).now().date()
    timestamps = [record.timestamp for record in result.observations]
    return Voyage(
        name=voyage_name or fallback_name,
        voyage_leader=leader,
        captain_name=captain,
        start_date=min(timestamps).date() if timestamps else today,
        end_date=max(timestamps).date() if timestamps else today,
    )


def convert(result: ImportResult, voyage: Voyage, fmt: str, coordinate_decimals: int = 6) -> str:
    """
    Commit a clean decode result into a fresh in-memory voyage and export it.

    Raises:
        ImportRejectedError: If the result has row errors.
    """
    observations = InMemoryObservationStore()
    voyages = InMemoryVoyageStore(observations)
    stored_voyage = voyages.create(voyage)

    commit_import(result, stored_voyage.id, observations)
    return export_voyage(
        stored_voyage,
        observations.list_by_voyage(stored_voyage.id),
        fmt,
        coordinate_decimals=coordinate_decimals,
    )


def main(argv=None):
    """Entry point: decode, print the preview, and convert if requested."""
    try:
        args = parse_args(argv)
        try:
            settings = get_settings().io
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

        setup_logger("src", settings.logging_level)

        input_path = Path(args.input)
        try:
            result = read_observation_file(input_path, encoding=settings.file_encoding)
        except (FileNotFoundError, UnicodeDecodeError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

        print("=" * 60)
        print(f"Import preview: {input_path.name}")
        print("=" * 60)
        print_summary(result)

        if args.to is None:
            sys.exit(0 if result.success else 1)

        voyage = build_voyage(result, args.voyage_name, args.leader, args.captain, input_path.stem)
        try:
            text = convert(result, voyage, args.to, settings.coordinate_decimals)
        except ImportRejectedError as e:
            print(f"Error: {e}", file=sys.stderr)
            print("Fix the rows above and try again; nothing was exported.", file=sys.stderr)
            sys.exit(1)

        if args.output:
            output_path = Path(args.output)
        else:
            output_path = settings.export_dir / generate_filename(voyage.name, EXPORT_FORMATS[args.to])
        write_export(output_path, text)
        print(f"  ✓ Wrote {result.imported} observations to {output_path}")
        sys.exit(0)

    except KeyboardInterrupt:
        print("\nInterrupted by user. Exiting...")
        sys.exit(130)

    except Exception as e:
        print(f"\nUnexpected error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(2)


if __name__ == "__main__":
    main()

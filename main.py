"""
seaice_observations – Main entry point.

Prints the supported file formats and points at the runnable actions.
"""

from src.codecs.domain_text import SECTION_MARKER
from src.services.exporter import EXPORT_FORMATS


def main() -> None:
    """Print a short usage overview."""
    print("seaice_observations: sea-ice observation import/export")
    print(f"  import: CSV (*.csv) or ASPeCt text (e.g. 20260101SD056, marker {SECTION_MARKER})")
    print(f"  export: {', '.join(sorted(EXPORT_FORMATS))}")
    print("  see actions/convert_observation_file.py and actions/write_tabular_template.py")


if __name__ == "__main__":
    main()

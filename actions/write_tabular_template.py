#!/usr/bin/env python3
"""
Write the CSV import template (header plus two example rows).

**Usage**:
    From project root:
    ```bash
    python actions/write_tabular_template.py
    python actions/write_tabular_template.py --output templates/observations.csv
    ```
"""

import argparse
import sys
from pathlib import Path

# Ensure project root is on path for imports
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from src.codecs.tabular import generate_template
from src.config.settings import get_settings
from src.services.exporter import write_export


def main(argv=None):
    parser = argparse.ArgumentParser(description="Write the observation CSV import template")
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output path (default: <SEAICE_EXPORT_DIR>/observation_template.csv)",
    )
    args = parser.parse_args(argv)

    output_path = Path(args.output) if args.output else get_settings().io.export_dir / "observation_template.csv"
    write_export(output_path, generate_template())
    print(f"  ✓ Template written to {output_path}")


if __name__ == "__main__":
    main()

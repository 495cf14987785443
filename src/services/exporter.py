"""
Export workflow: encode a voyage's observations and name/write the file.

Supported export formats:
  - "csv": tabular codec, fixed 30-column layout.
  - "aspect": human-readable ASPeCt report (only populated fields).
  - "aspect-structured": ASPeCt preamble + marker + header + rows, which the
    importer reads back.
"""

import logging
import re
from pathlib import Path
from typing import Optional, Sequence

from src.codecs import domain_text, tabular
from src.models.observation import ObservationRecord, Voyage
from src.utils.time import Clock, RealClock


logger = logging.getLogger(__name__)


EXPORT_FORMATS = {
    "csv": "csv",
    "aspect": "txt",
    "aspect-structured": "txt",
}


def export_voyage(
    voyage: Voyage,
    records: Sequence[ObservationRecord],
    fmt: str = "csv",
    coordinate_decimals: int = 6,
) -> str:
    """
    Encode a voyage's records in the requested format.

    Records are written in timestamp order, matching how the store lists them.

    Raises:
        ValueError: If `fmt` is not one of EXPORT_FORMATS.
    """
    if fmt not in EXPORT_FORMATS:
        raise ValueError(
            f"Unknown export format '{fmt}'. Expected one of: {sorted(EXPORT_FORMATS)}"
        )

    ordered = sorted(records, key=lambda r: r.timestamp)
    logger.info("Exporting %d observations of '%s' as %s", len(ordered), voyage.name, fmt)

    if fmt == "csv":
        return tabular.encode(ordered, voyage, coordinate_decimals=coordinate_decimals)
    if fmt == "aspect":
        return domain_text.encode_report(voyage, ordered, coordinate_decimals=coordinate_decimals)
    return domain_text.encode_structured(voyage, ordered, coordinate_decimals=coordinate_decimals)


def generate_filename(voyage_name: str, extension: str, clock: Optional[Clock] = None) -> str:
    """
    Build a safe export filename such as "v1_2025_26_20260118.csv".

    Every character outside [A-Za-z0-9] becomes "_", the name is lowercased,
    and today's date (UTC, from `clock`) is appended.
    """
    safe_name = re.sub(r"[^a-z0-9]", "_", voyage_name, flags=re.IGNORECASE).lower()
    date_str = (clock or RealClock()).now().strftime("%Y%m%d")
    return f"{safe_name}_{date_str}.{extension.lstrip('.')}"


def write_export(path: Path | str, text: str) -> Path:
    """
    Write exported text to `path`, creating parent directories.

    Raises:
        OSError: If the file can't be written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise OSError(f"Failed to write export to {path}. Error: {e}")
    return path

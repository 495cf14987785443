"""
Choose the codec for an uploaded file.

Rules, first match wins:
  1. The filename follows the voyage-file convention (8-digit date, 2 letters,
     1+ digits, no extension, e.g. "20260101SD056") -> ASPeCt text.
  2. The filename ends in ".csv" -> tabular.
  3. The content contains the ASPeCt section marker -> ASPeCt text.
  4. Otherwise -> tabular.

There is no "unrecognised format" error: anything without a signal is treated
as tabular, and the tabular decoder reports whatever is wrong with it.
"""

import logging
import re
from pathlib import PurePath
from typing import Callable, Optional

from src.codecs import domain_text, tabular
from src.models.observation import FileFormat, ImportResult


logger = logging.getLogger(__name__)


VOYAGE_FILENAME_PATTERN = re.compile(r"^\d{8}[A-Za-z]{2}\d+$")
TABULAR_EXTENSION = ".csv"


def is_voyage_filename(filename: Optional[str]) -> bool:
    """True if the final path component matches the voyage-file naming pattern."""
    if not filename:
        return False
    return bool(VOYAGE_FILENAME_PATTERN.match(PurePath(filename).name))


def detect_format(filename: Optional[str], content: Optional[str]) -> FileFormat:
    """
    Decide which codec applies to a file.

    Args:
        filename: Name (or path) of the uploaded file; may be empty.
        content: Full text of the file; may be empty.

    Returns:
        FileFormat.DOMAIN_TEXT or FileFormat.TABULAR.

    Example:
        >>> detect_format("20260101SD056", "")
        <FileFormat.DOMAIN_TEXT: 'domain_text'>
        >>> detect_format("data.csv", "[DATA]")
        <FileFormat.TABULAR: 'tabular'>
    """
    if is_voyage_filename(filename):
        return FileFormat.DOMAIN_TEXT

    name = PurePath(filename).name if filename else ""
    if name.lower().endswith(TABULAR_EXTENSION):
        return FileFormat.TABULAR

    if content and domain_text.SECTION_MARKER in content:
        return FileFormat.DOMAIN_TEXT

    logger.debug("No format signal for %r; defaulting to tabular", filename)
    return FileFormat.TABULAR


def decoder_for(fmt: FileFormat) -> Callable[[str], ImportResult]:
    """Decode function for a detected format."""
    if fmt is FileFormat.DOMAIN_TEXT:
        return domain_text.decode
    return tabular.decode

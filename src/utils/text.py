"""
Small text helpers shared by the codecs.
"""

import math
import re
from typing import List, Optional


_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def flatten_line_breaks(text: str) -> str:
    """Replace every line break (CRLF, CR or LF) with a single space."""
    return _LINE_BREAK.sub(" ", text)


def split_lines(text: str) -> List[str]:
    """
    Split text into physical lines on CRLF, CR or LF only.

    Unlike str.splitlines, form feeds, vertical tabs, U+2028 and the other
    Unicode separators stay inside their line.
    """
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")


def format_number(value: Optional[float]) -> str:
    """
    Render a number in its shortest stable form.

    Integral values drop the fractional part (75.0 -> "75"), everything else
    uses repr (-2.5 -> "-2.5"). None renders as "".
    """
    if value is None:
        return ""
    number = float(value)
    if math.isfinite(number) and number.is_integer():
        return str(int(number))
    return repr(number)


def format_coordinate(value: float, decimals: int = 6) -> str:
    """Fixed-point rendering used for latitude and longitude."""
    return f"{value:.{decimals}f}"

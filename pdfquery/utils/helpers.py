"""
Helper Utilities Module.

This module provides common utility functions used throughout pdfquery.
Functions here are generic and reused across compiler, query and
adapter modules.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - generate_timestamp: Generate formatted timestamps
    - now_ms: Current time as epoch milliseconds
    - parse_float: Leading-float parsing with None on failure
    - to_number: Loose numeric coercion used by selector comparisons
    - stringify: Canonical string form used by selector equality
    - parse_timestamp_ms: ISO date string to epoch milliseconds
    - to_camel_case / to_snake_case: wire key conversion
"""

import math
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from dateutil import parser as date_parser

# Leading float literal, as accepted by a lenient float parser
_FLOAT_PREFIX = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.

    Example:
        >>> ensure_directory("outputs/reports")
        PosixPath('outputs/reports')
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def generate_timestamp(format_str: str = "%Y%m%d_%H%M%S") -> str:
    """
    Generate a formatted timestamp string.

    Args:
        format_str: strftime format string.

    Returns:
        Formatted timestamp string.

    Example:
        >>> generate_timestamp("%Y-%m-%d")
        "2026-10-18"
    """
    return datetime.now().strftime(format_str)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def parse_float(text: Any) -> Optional[float]:
    """
    Parse the leading float literal of a string.

    Leading whitespace is ignored and trailing garbage is dropped, so
    "12.5abc" parses to 12.5 and "1.2.3" to 1.2. Returns None when no
    number can be read.

    Example:
        >>> parse_float("1234.56")
        1234.56
        >>> parse_float("-")
        None
    """
    if text is None:
        return None
    match = _FLOAT_PREFIX.match(str(text).strip())
    if not match:
        return None
    return float(match.group(0))


def is_number(value: Any) -> bool:
    """True for int/float values, excluding booleans."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_number(value: Any) -> float:
    """
    Coerce a value to a float for ordering comparisons.

    Booleans become 1/0, missing values become NaN, blank strings become 0
    and non-numeric strings become NaN. NaN makes every comparison false.
    """
    if value is None:
        return math.nan
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if is_number(value):
        return float(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return 0.0
        try:
            return float(stripped)
        except ValueError:
            return math.nan
    return math.nan


def stringify(value: Any, missing: str = "") -> str:
    """
    Canonical string form of an attribute value.

    Booleans render as "true"/"false", integral floats drop their ".0"
    and None renders as `missing`.

    Example:
        >>> stringify(True)
        "true"
        >>> stringify(1.0)
        "1"
    """
    if value is None:
        return missing
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def parse_timestamp_ms(value: Optional[str]) -> Optional[int]:
    """
    Convert a date/time string into epoch milliseconds.

    Naive timestamps are treated as UTC. Returns None for empty or
    unparseable input.

    Example:
        >>> parse_timestamp_ms("2024-01-15T00:00:00Z")
        1705276800000
    """
    if not value:
        return None
    try:
        parsed = date_parser.isoparse(value)
    except (ValueError, OverflowError):
        try:
            parsed = date_parser.parse(value)
        except (ValueError, OverflowError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def to_camel_case(name: str) -> str:
    """
    Convert a snake_case name to camelCase.

    Example:
        >>> to_camel_case("verification_status")
        "verificationStatus"
    """
    head, *rest = name.split('_')
    return head + ''.join(part[:1].upper() + part[1:] for part in rest)


def to_snake_case(name: str) -> str:
    """
    Convert a camelCase name to snake_case.

    Example:
        >>> to_snake_case("verificationStatus")
        "verification_status"
    """
    return re.sub(r'(?<=[a-z0-9])([A-Z])', r'_\1', name).lower()

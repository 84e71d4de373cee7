"""Single-cell conversions between external text and typed values.

``infer`` guesses a type from a bare token, ``decode``/``encode`` convert
under a declared column type, and ``coerce`` handles native spreadsheet
cells (openpyxl already yields int/float/bool/datetime).
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any

from tablebridge.contracts.table import INVALID_DATE, DataType

_BARE_NUMBER = re.compile(r"-?[0-9]+(\.[0-9]+)?")
_NUMBER_LITERAL = r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|[+-]?Infinity"
_FULL_NUMBER = re.compile(_NUMBER_LITERAL)
# Leading numeric prefix, the way a lenient float parser reads "12.5kg" as 12.5.
_FLOAT_PREFIX = re.compile(rf"\s*({_NUMBER_LITERAL})")
_BOOLEAN_SPELLINGS = {"true", "false", "1", "0"}


def _to_number(text: str) -> int | float:
    if "Infinity" in text:
        return float(text.replace("Infinity", "inf"))
    if any(ch in text for ch in ".eE"):
        return float(text)
    try:
        return int(text)
    except ValueError:
        # past the int-string digit limit
        return float(text)


def parse_number(text: str) -> int | float | None:
    """Parse the leading number of ``text``. Returns None when there is none."""
    m = _FLOAT_PREFIX.match(text)
    if not m:
        return None
    return _to_number(m.group(1))


def is_number_text(text: str) -> bool:
    """True when the whole of ``text`` (blank included) is a numeric literal."""
    stripped = text.strip()
    return not stripped or _FULL_NUMBER.fullmatch(stripped) is not None


def parse_date(text: str) -> date | Any:
    """Parse an ISO-8601 calendar date (datetimes truncate to the day).

    Returns ``INVALID_DATE`` instead of raising.
    """
    text = text.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return INVALID_DATE


def infer(token: str | None) -> Any:
    """Guess the value of a bare token with no declared column type."""
    if token is None:
        return None
    if _BARE_NUMBER.fullmatch(token):
        return _to_number(token)
    lowered = token.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if token == "":
        return None
    return token


def decode(token: str | None, data_type: DataType | None = None) -> Any:
    """Convert raw text to a value of the declared type."""
    if data_type is None:
        return infer(token)
    if token is None or token == "":
        return None
    if data_type == "number":
        num = parse_number(token)
        if num is None or (isinstance(num, float) and math.isnan(num)):
            return None
        return num
    if data_type == "boolean":
        return token.lower() == "true"
    if data_type == "date":
        return parse_date(token)
    return token


def encode(value: Any, data_type: DataType | None = None) -> str:
    """Render a value as cell text."""
    if value is None:
        return ""
    if value is INVALID_DATE:
        return str(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float):
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
    return str(value)


def coerce(value: Any, data_type: DataType | None = None) -> Any:
    """Normalise a native grid cell to the declared type."""
    if value is None:
        return None
    if isinstance(value, str):
        return decode(value.strip(), data_type)
    if data_type is None:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, (bool, int, float, date)):
            return value
        return str(value)
    if data_type == "number":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return None if math.isnan(value) else value
    if data_type == "boolean" and isinstance(value, bool):
        return value
    if data_type == "date":
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
    return decode(encode(value), data_type)


def rejects(raw: Any, data_type: DataType | None, decoded: Any) -> bool:
    """True when a typed decode silently lost a non-empty raw token."""
    if data_type is None or raw is None or raw == "":
        return False
    if data_type == "number":
        return decoded is None
    if data_type == "boolean":
        if isinstance(raw, bool):
            return False
        return encode(raw).strip().lower() not in _BOOLEAN_SPELLINGS
    return False

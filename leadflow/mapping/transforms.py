"""
leadflow/mapping/transforms.py

Named, pure value transforms referenced by field mappings.

Each function takes the resolved value and returns the transformed value, or
raises ValueError when the value cannot be converted.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

TransformFn = Callable[[Any], Any]

TIMESTAMP_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%d %b %Y",
    "%b %d, %Y",
)

_NON_DIGITS = re.compile(r"\D")


def trim(value: Any) -> str:
    return str(value).strip()


def lowercase(value: Any) -> str:
    return str(value).lower()


def uppercase(value: Any) -> str:
    return str(value).upper()


def normalize_phone(value: Any) -> str:
    """
    Strip every non-digit and prefix the result with ``+``.

    Returns an empty string when the value holds no digits at all.
    """

    digits = _NON_DIGITS.sub("", str(value))
    if not digits:
        return ""
    return f"+{digits}"


def parse_date(value: Any) -> datetime:
    """
    Parse a date or timestamp into a timezone-aware UTC datetime.

    Numbers are read as epoch milliseconds. Naive values are taken as UTC.
    """

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValueError(f"Invalid date value: {value}") from exc
    else:
        parsed = _parse_date_text(str(value).strip())

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_date_text(raw: str) -> datetime:
    if not raw:
        raise ValueError("Invalid date value: ")

    normalized = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        pass

    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(raw, fmt)
        except ValueError:
            continue

    raise ValueError(f"Invalid date value: {raw}")


def to_number(value: Any) -> int | float:
    """
    Coerce a value to int when it is integral text, else to float.
    """

    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            raise ValueError(f"Cannot convert to number: {value}")
        return value

    raw = str(value).strip()
    if not raw:
        raise ValueError("Cannot convert to number: empty value")
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        number = float(raw)
    except ValueError as exc:
        raise ValueError(f"Cannot convert to number: {value}") from exc
    if math.isnan(number):
        raise ValueError(f"Cannot convert to number: {value}")
    return number


TRANSFORM_FUNCTIONS: Mapping[str, TransformFn] = MappingProxyType(
    {
        "trim": trim,
        "lowercase": lowercase,
        "uppercase": uppercase,
        "normalize_phone": normalize_phone,
        "parse_date": parse_date,
        "to_number": to_number,
    }
)


def get_transform(name: str) -> TransformFn | None:
    return TRANSFORM_FUNCTIONS.get(name)

"""Semantic type detection for individual JSON values."""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any, Mapping

from pipelines.model import FieldType

CURRENCY_PATTERN = re.compile(r"^\$[\d,]+\.?\d*$")
PERCENTAGE_PATTERN = re.compile(r"-?\d+(\.\d+)?\s*%|\bpercent\b", re.IGNORECASE)
DATETIME_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?$"
)
TIMESTAMP_PATTERN = re.compile(r"^(\d{10}|\d{13})$")
NUMERIC_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
DATE_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}([ T]\d{2}:\d{2}(:\d{2})?.*)?$")

# (regex, strptime format) pairs; the format rejects impossible calendar dates.
DATE_FORMATS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^\d{4}-\d{2}-\d{2}$"), "%Y-%m-%d"),
    (re.compile(r"^\d{2}/\d{2}/\d{4}$"), "%m/%d/%Y"),
    (re.compile(r"^\d{4}/\d{2}/\d{2}$"), "%Y/%m/%d"),
)


def _is_date_string(value: str) -> bool:
    for pattern, fmt in DATE_FORMATS:
        if pattern.match(value):
            try:
                datetime.strptime(value, fmt)
            except ValueError:
                return False
            return True
    return False


def is_numeric_string(value: str) -> bool:
    """True for strings such as ``"150.25"``, ``"-3"`` or ``"1,234,567"``."""

    stripped = value.strip().replace(",", "")
    return bool(stripped) and NUMERIC_PATTERN.match(stripped) is not None


def to_number(value: Any) -> Any:
    """Convert numeric-looking strings to ``float``; anything else passes through."""

    if isinstance(value, str) and is_numeric_string(value):
        numeric = float(value.strip().replace(",", ""))
        if not (math.isnan(numeric) or math.isinf(numeric)):
            return numeric
    return value


def looks_like_date_key(key: str) -> bool:
    """Keys of date-indexed maps, e.g. ``2024-01-15`` or ``2024-01-15 16:00:00``."""

    return DATE_KEY_PATTERN.match(key.strip()) is not None


def detect_field_type(value: Any) -> FieldType:
    """Classify ``value``; never raises.

    Specific string shapes (currency, percentage, dates, epoch timestamps) are
    checked before the generic numeric-string test, otherwise ``"$100.50"`` or
    ``"1704110400"`` would come back as plain numbers.
    """

    if value is None:
        return FieldType.NULL
    if isinstance(value, (list, tuple)):
        return FieldType.ARRAY
    if isinstance(value, Mapping):
        return FieldType.OBJECT
    if isinstance(value, bool):
        return FieldType.BOOLEAN
    if isinstance(value, (int, float)):
        return FieldType.NUMBER
    if isinstance(value, datetime):
        return FieldType.DATETIME
    if isinstance(value, date):
        return FieldType.DATE
    if not isinstance(value, str):
        return FieldType.STRING

    text = value.strip()
    if CURRENCY_PATTERN.match(text):
        return FieldType.CURRENCY
    if PERCENTAGE_PATTERN.search(text):
        return FieldType.PERCENTAGE
    if _is_date_string(text):
        return FieldType.DATE
    if DATETIME_PATTERN.match(text):
        return FieldType.DATETIME
    if TIMESTAMP_PATTERN.match(text):
        return FieldType.TIMESTAMP
    if is_numeric_string(text):
        return FieldType.NUMBER
    return FieldType.STRING


__all__ = [
    "detect_field_type",
    "is_numeric_string",
    "looks_like_date_key",
    "to_number",
]

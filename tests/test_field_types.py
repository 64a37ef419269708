from datetime import date, datetime

import pytest

from pipelines.field_types import detect_field_type, is_numeric_string, looks_like_date_key, to_number
from pipelines.model import FieldType


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, FieldType.NULL),
        ([1, 2], FieldType.ARRAY),
        ((1, 2), FieldType.ARRAY),
        ({"a": 1}, FieldType.OBJECT),
        (True, FieldType.BOOLEAN),
        (0, FieldType.NUMBER),
        (150.25, FieldType.NUMBER),
        ("150.25", FieldType.NUMBER),
        ("1,234,567", FieldType.NUMBER),
        ("-3", FieldType.NUMBER),
        ("$1,234.56", FieldType.CURRENCY),
        ("$100.50", FieldType.CURRENCY),
        ("10.5%", FieldType.PERCENTAGE),
        ("-0.8065 %", FieldType.PERCENTAGE),
        ("5 percent", FieldType.PERCENTAGE),
        ("2024-01-15", FieldType.DATE),
        ("01/15/2024", FieldType.DATE),
        ("2024/01/15", FieldType.DATE),
        ("2024-01-15T10:30:00Z", FieldType.DATETIME),
        ("2024-01-15T10:30:00.123+05:30", FieldType.DATETIME),
        ("1704110400", FieldType.TIMESTAMP),
        ("1704110400000", FieldType.TIMESTAMP),
        ("IBM", FieldType.STRING),
        ("", FieldType.STRING),
        ("2024-13-45", FieldType.STRING),
        (datetime(2024, 1, 15, 10, 30), FieldType.DATETIME),
        (date(2024, 1, 15), FieldType.DATE),
    ],
)
def test_detect_field_type(value, expected):
    assert detect_field_type(value) is expected


def test_specific_string_shapes_win_over_numeric():
    assert is_numeric_string("1704110400")
    assert detect_field_type("1704110400") is FieldType.TIMESTAMP
    assert detect_field_type("12345678901") is FieldType.NUMBER


@pytest.mark.parametrize("value", [object(), float("nan"), b"bytes", {1, 2}, "   "])
def test_detect_field_type_is_total(value):
    assert isinstance(detect_field_type(value), FieldType)


@pytest.mark.parametrize("value", ["$1,234.56", "10.5%", "2024-01-15", "1704110400", "IBM"])
def test_detection_is_stable_on_string_form(value):
    detected = detect_field_type(value)
    assert detect_field_type(str(value)) is detected


def test_to_number_converts_only_numeric_strings():
    assert to_number("162.5000") == pytest.approx(162.5)
    assert to_number("1,234") == pytest.approx(1234.0)
    assert to_number("0.8065%") == "0.8065%"
    assert to_number("$10.00") == "$10.00"
    assert to_number("IBM") == "IBM"
    assert to_number("nan") == "nan"
    assert to_number(7) == 7


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("2024-01-05", True),
        ("2024-01-05 19:55:00", True),
        ("2024-01-05T19:55:00Z", True),
        ("01. symbol", False),
        ("Meta Data", False),
    ],
)
def test_looks_like_date_key(key, expected):
    assert looks_like_date_key(key) is expected

"""Fast-path parsers for provider-agnostic response shapes."""

from __future__ import annotations

import math
from typing import Any, Mapping, Sequence

from pipelines.views import ChartDataPoint, chart_label

_SENTINEL_VALUES = {".", "NA", "N/A", "", "None", "null", "-"}

# Wrapper keys that commonly hold the record list, checked in order.
ARRAY_PROPERTIES = ("data", "results", "items", "stocks", "quotes", "list", "entries")


def coerce_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        numeric = float(value)
    elif isinstance(value, str):
        stripped = value.strip().replace(",", "").rstrip("%")
        if stripped in _SENTINEL_VALUES:
            return None
        try:
            numeric = float(stripped)
        except ValueError:
            return None
    else:
        return None

    if math.isnan(numeric) or math.isinf(numeric):
        return None
    return numeric


def first_present(item: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        value = item.get(key)
        if value not in (None, "", 0):
            return value
    return None


def parse_array_chart(items: Sequence[Any]) -> list[ChartDataPoint]:
    """``[{date, price, volume}, ...]``; elements without a date are numbered ``Day N``."""

    points: list[ChartDataPoint] = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, Mapping):
            continue
        raw_date = first_present(item, ("date", "timestamp", "time"))
        full_date = str(raw_date) if raw_date is not None else f"Day {index}"
        price = coerce_float(first_present(item, ("price", "close", "value")))
        points.append(
            ChartDataPoint(
                date=chart_label(raw_date) if raw_date is not None else full_date,
                full_date=full_date,
                price=price or 0.0,
                volume=coerce_float(item.get("volume")),
                open=coerce_float(item.get("open")),
                high=coerce_float(item.get("high")),
                low=coerce_float(item.get("low")),
                close=coerce_float(item.get("close")),
            )
        )
    return points


def is_parallel_price_object(data: Mapping[str, Any]) -> bool:
    return isinstance(data.get("dates"), list) and isinstance(data.get("prices"), list)


def parse_parallel_price_chart(data: Mapping[str, Any]) -> list[ChartDataPoint]:
    """``{dates: [...], prices: [...], volumes: [...]}``."""

    dates = data.get("dates") or []
    volumes = data.get("volumes") if isinstance(data.get("volumes"), list) else []
    points: list[ChartDataPoint] = []
    for index, price in enumerate(data.get("prices") or []):
        label = str(dates[index]) if index < len(dates) else f"Day {index + 1}"
        points.append(
            ChartDataPoint(
                date=label,
                full_date=str(dates[index]) if index < len(dates) else str(index),
                price=coerce_float(price) or 0.0,
                volume=coerce_float(volumes[index]) if index < len(volumes) else None,
            )
        )
    return points


def unwrap_rows(data: Mapping[str, Any]) -> list[dict[str, Any]] | None:
    """Record list from the first known wrapper key holding an array, else ``None``."""

    for prop in ARRAY_PROPERTIES:
        value = data.get(prop)
        if isinstance(value, list):
            return [dict(item) for item in value if isinstance(item, Mapping)]
    return None


def first_row(data: Mapping[str, Any]) -> dict[str, Any] | None:
    wrapped = data.get("data")
    if isinstance(wrapped, list) and wrapped and isinstance(wrapped[0], Mapping):
        return dict(wrapped[0])
    return None


__all__ = [
    "ARRAY_PROPERTIES",
    "coerce_float",
    "first_row",
    "is_parallel_price_object",
    "parse_array_chart",
    "parse_parallel_price_chart",
    "unwrap_rows",
]

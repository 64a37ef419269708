"""Finnhub candles: parallel ``c/h/l/o/t/v`` arrays indexed by position."""

from __future__ import annotations

from datetime import datetime, UTC
from typing import Any, Mapping

from pipelines.sources.generic import coerce_float
from pipelines.views import ChartDataPoint, chart_label

FINNHUB_BASE_URL = "https://finnhub.io/api/v1"


def is_candles(data: Mapping[str, Any]) -> bool:
    return isinstance(data.get("c"), list) and isinstance(data.get("t"), list)


def _column(data: Mapping[str, Any], key: str) -> list[Any]:
    values = data.get(key)
    return values if isinstance(values, list) else []


def _iso_date(epoch: Any) -> str | None:
    seconds = coerce_float(epoch)
    if seconds is None:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=UTC).date().isoformat()
    except (OverflowError, OSError, ValueError):
        return None


def _at(values: list[Any], index: int) -> float | None:
    return coerce_float(values[index]) if index < len(values) else None


def parse_table(data: Mapping[str, Any]) -> list[dict[str, Any]]:
    closes = _column(data, "c")
    opens, highs, lows = _column(data, "o"), _column(data, "h"), _column(data, "l")
    times, volumes = _column(data, "t"), _column(data, "v")
    return [
        {
            "date": _iso_date(times[index]) if index < len(times) else None,
            "open": _at(opens, index),
            "high": _at(highs, index),
            "low": _at(lows, index),
            "close": coerce_float(close),
            "volume": _at(volumes, index),
        }
        for index, close in enumerate(closes)
    ]


def parse_chart(data: Mapping[str, Any]) -> list[ChartDataPoint]:
    points: list[ChartDataPoint] = []
    for row in parse_table(data):
        full_date = row["date"] or ""
        points.append(
            ChartDataPoint(
                date=chart_label(full_date),
                full_date=full_date,
                price=row["close"] or 0.0,
                volume=row["volume"],
                open=row["open"],
                high=row["high"],
                low=row["low"],
                close=row["close"],
            )
        )
    return points


def parse_card(data: Mapping[str, Any]) -> dict[str, Any]:
    rows = parse_table(data)
    if not rows:
        return {}
    latest = dict(rows[-1])
    return {"date": latest.pop("date"), "price": latest["close"], **latest}


__all__ = ["FINNHUB_BASE_URL", "is_candles", "parse_card", "parse_chart", "parse_table"]

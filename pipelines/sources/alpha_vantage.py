"""Alpha Vantage response shapes: date-keyed time series and ``Global Quote``."""

from __future__ import annotations

from typing import Any, Mapping

from pipelines.sources.generic import coerce_float
from pipelines.views import ChartDataPoint, chart_label

ALPHA_VANTAGE_BASE_URL = "https://www.alphavantage.co/query"
TIME_SERIES_KEYS = ("Time Series (Daily)", "Weekly Time Series", "Monthly Time Series")
GLOBAL_QUOTE_KEY = "Global Quote"

# Numbered Global Quote keys -> plain field names.
GLOBAL_QUOTE_FIELDS: dict[str, str] = {
    "01. symbol": "symbol",
    "02. open": "open",
    "03. high": "high",
    "04. low": "low",
    "05. price": "price",
    "06. volume": "volume",
    "07. latest trading day": "latest trading day",
    "08. previous close": "previous close",
    "09. change": "change",
    "10. change percent": "change percent",
}
_TEXT_QUOTE_FIELDS = {"symbol", "latest trading day", "change percent"}


def find_time_series(data: Mapping[str, Any]) -> Mapping[str, Any] | None:
    for key in TIME_SERIES_KEYS:
        series = data.get(key)
        if isinstance(series, Mapping):
            return series
    return None


def _ohlcv(values: Any) -> dict[str, float | None]:
    values = values if isinstance(values, Mapping) else {}
    return {
        "open": coerce_float(values.get("1. open")),
        "high": coerce_float(values.get("2. high")),
        "low": coerce_float(values.get("3. low")),
        "close": coerce_float(values.get("4. close")),
        "volume": coerce_float(values.get("5. volume")),
    }


def parse_chart(series: Mapping[str, Any]) -> list[ChartDataPoint]:
    """Oldest first; the close doubles as the plotted price."""

    points: list[ChartDataPoint] = []
    for date_key in sorted(series):
        values = _ohlcv(series[date_key])
        points.append(
            ChartDataPoint(
                date=chart_label(date_key),
                full_date=date_key,
                price=values["close"] or 0.0,
                **values,
            )
        )
    return points


def parse_table(series: Mapping[str, Any]) -> list[dict[str, Any]]:
    return [{"date": date_key, **_ohlcv(series[date_key])} for date_key in sorted(series)]


def parse_card(series: Mapping[str, Any]) -> dict[str, Any]:
    if not series:
        return {}
    latest = max(series)
    values = _ohlcv(series[latest])
    return {"date": latest, "price": values["close"], **values}


def parse_global_quote(quote: Mapping[str, Any]) -> dict[str, Any]:
    card: dict[str, Any] = {}
    for source_key, target in GLOBAL_QUOTE_FIELDS.items():
        value = quote.get(source_key)
        card[target] = value if target in _TEXT_QUOTE_FIELDS else coerce_float(value)
    return card


def map_field_path(original_path: str, data: Any) -> str:
    """``"Global Quote.05. price"`` -> ``"price"`` for Global Quote payloads."""

    if not isinstance(data, Mapping) or GLOBAL_QUOTE_KEY not in data:
        return original_path
    prefix = f"{GLOBAL_QUOTE_KEY}."
    if original_path.startswith(prefix):
        return GLOBAL_QUOTE_FIELDS.get(original_path[len(prefix):], original_path)
    return original_path


__all__ = [
    "ALPHA_VANTAGE_BASE_URL",
    "GLOBAL_QUOTE_FIELDS",
    "GLOBAL_QUOTE_KEY",
    "TIME_SERIES_KEYS",
    "find_time_series",
    "map_field_path",
    "parse_card",
    "parse_chart",
    "parse_global_quote",
    "parse_table",
]

"""Fast-path widget data for response shapes that are recognized on sight.

These parsers bypass schema inference entirely. Unrecognized shapes produce an
empty result, and callers fall back to :func:`pipelines.service.transform`.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from pipelines.sources import alpha_vantage, finnhub, generic, indian_api
from pipelines.sources.registry import get_symbol_from_url
from pipelines.views import VIEW_TYPES, ChartDataPoint

logger = logging.getLogger(__name__)

WidgetData = list[ChartDataPoint] | list[dict[str, Any]] | dict[str, Any]


def _empty(widget_type: str) -> WidgetData:
    return {} if widget_type == "card" else []


def transform_for_widget(data: Any, widget_type: str) -> WidgetData:
    """Chart points, table rows or a card dict for ``data``; never raises."""

    if widget_type not in VIEW_TYPES:
        logger.warning("Unsupported widget type '%s'", widget_type)
        return []
    if not data:
        return _empty(widget_type)
    try:
        if widget_type == "chart":
            return detect_chart_data(data)
        if widget_type == "table":
            return detect_table_data(data)
        return detect_card_data(data)
    except Exception:  # noqa: BLE001 - adapters degrade to an empty result
        logger.exception("Fast-path %s parsing failed", widget_type)
        return _empty(widget_type)


def detect_chart_data(data: Any) -> list[ChartDataPoint]:
    if isinstance(data, list):
        return generic.parse_array_chart(data)
    if not isinstance(data, Mapping):
        return []
    if isinstance(data.get("datasets"), list):
        return indian_api.parse_chart(data)
    series = alpha_vantage.find_time_series(data)
    if series is not None:
        return alpha_vantage.parse_chart(series)
    if finnhub.is_candles(data):
        return finnhub.parse_chart(data)
    if generic.is_parallel_price_object(data):
        return generic.parse_parallel_price_chart(data)
    return []


def detect_table_data(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, list):
        return [dict(item) for item in data if isinstance(item, Mapping)]
    if not isinstance(data, Mapping):
        return []
    if indian_api.TRENDING_KEY in data:
        return indian_api.trending_rows(data)
    rows = generic.unwrap_rows(data)
    if rows is not None:
        return rows
    series = alpha_vantage.find_time_series(data)
    if series is not None:
        return alpha_vantage.parse_table(series)
    if finnhub.is_candles(data):
        return finnhub.parse_table(data)
    return [dict(data)]


def detect_card_data(data: Any) -> dict[str, Any]:
    if isinstance(data, list):
        return dict(data[0]) if data and isinstance(data[0], Mapping) else {}
    if not isinstance(data, Mapping):
        return {}
    if indian_api.TRENDING_KEY in data:
        return indian_api.trending_summary(data)
    quote = data.get(alpha_vantage.GLOBAL_QUOTE_KEY)
    if isinstance(quote, Mapping):
        return alpha_vantage.parse_global_quote(quote)
    row = generic.first_row(data)
    if row is not None:
        return row
    series = alpha_vantage.find_time_series(data)
    if series is not None:
        return alpha_vantage.parse_card(series)
    if finnhub.is_candles(data):
        return finnhub.parse_card(data)
    return dict(data)


map_field_path = alpha_vantage.map_field_path

__all__ = [
    "detect_card_data",
    "detect_chart_data",
    "detect_table_data",
    "get_symbol_from_url",
    "map_field_path",
    "transform_for_widget",
]

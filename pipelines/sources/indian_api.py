"""Indian stock API shapes: metric ``datasets`` and ``trending_stocks`` lists."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from pipelines.sources.generic import coerce_float
from pipelines.views import ChartDataPoint, chart_label

INDIAN_API_BASE_URL = "https://stock.indianapi.in"
TRENDING_KEY = "trending_stocks"
TRENDING_LISTS = ("top_gainers", "top_losers")


def _dataset(datasets: Sequence[Any], metric: str) -> Sequence[Any]:
    for dataset in datasets:
        if isinstance(dataset, Mapping) and dataset.get("metric") == metric:
            values = dataset.get("values")
            return values if isinstance(values, list) else []
    return []


def _value_at(values: Sequence[Any], index: int) -> float | None:
    if index >= len(values):
        return None
    entry = values[index]
    if not isinstance(entry, (list, tuple)) or len(entry) < 2:
        return None
    return coerce_float(entry[1])


def parse_chart(data: Mapping[str, Any]) -> list[ChartDataPoint]:
    """Points follow the ``Price`` dataset; Volume/DMA50/DMA200 are joined by position."""

    datasets = data.get("datasets")
    if not isinstance(datasets, list):
        return []
    prices = _dataset(datasets, "Price")
    volumes = _dataset(datasets, "Volume")
    dma50 = _dataset(datasets, "DMA50")
    dma200 = _dataset(datasets, "DMA200")

    points: list[ChartDataPoint] = []
    for index, entry in enumerate(prices):
        if not isinstance(entry, (list, tuple)) or len(entry) < 2:
            continue
        full_date = str(entry[0])
        points.append(
            ChartDataPoint(
                date=chart_label(full_date),
                full_date=full_date,
                price=coerce_float(entry[1]) or 0.0,
                volume=_value_at(volumes, index),
                dma50=_value_at(dma50, index),
                dma200=_value_at(dma200, index),
            )
        )
    return points


def _trending_lists(data: Mapping[str, Any]) -> dict[str, list[dict[str, Any]]]:
    trending = data.get(TRENDING_KEY)
    trending = trending if isinstance(trending, Mapping) else {}
    lists: dict[str, list[dict[str, Any]]] = {}
    for name in TRENDING_LISTS:
        items = trending.get(name)
        lists[name] = [dict(item) for item in items if isinstance(item, Mapping)] if isinstance(items, list) else []
    return lists


def trending_rows(data: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Gainers followed by losers."""

    lists = _trending_lists(data)
    return [row for name in TRENDING_LISTS for row in lists[name]]


def trending_summary(data: Mapping[str, Any]) -> dict[str, Any]:
    lists = _trending_lists(data)
    gainers, losers = lists["top_gainers"], lists["top_losers"]
    return {
        "total_gainers": len(gainers),
        "total_losers": len(losers),
        "top_gainer": gainers[0].get("company_name", "N/A") if gainers else "N/A",
        "top_gainer_change": gainers[0].get("percent_change", "0") if gainers else "0",
        "top_loser": losers[0].get("company_name", "N/A") if losers else "N/A",
        "top_loser_change": losers[0].get("percent_change", "0") if losers else "0",
    }


__all__ = [
    "INDIAN_API_BASE_URL",
    "TRENDING_KEY",
    "TRENDING_LISTS",
    "parse_chart",
    "trending_rows",
    "trending_summary",
]

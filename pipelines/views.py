"""Table, chart and card views over a normalized :class:`FinancialDataset`."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from pipelines.model import ColumnDefinition, DataType, FinancialDataset

VIEW_TYPES = ("table", "chart", "card")
_PRICE_KEYS = ("price", "close", "adjustedClose", "value")


class ChartDataPoint(BaseModel):
    """One point of a price chart."""

    model_config = ConfigDict(frozen=True)

    date: str = Field(..., description="Short axis label, e.g. 'Jan 2'.")
    full_date: str = Field(..., description="Original date or timestamp string.")
    price: float = Field(..., description="Plotted value, usually the close.")
    volume: Optional[float] = None
    dma50: Optional[float] = None
    dma200: Optional[float] = None
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    close: Optional[float] = None


class TableView(BaseModel):
    model_config = ConfigDict(frozen=True)

    columns: list[ColumnDefinition]
    rows: list[dict[str, Any]]
    total_records: int
    data_type: DataType
    source: str


def parse_date(raw: str) -> datetime | None:
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        try:
            return datetime.strptime(raw, "%Y-%m-%d")
        except ValueError:
            return None


def chart_label(raw: Any) -> str:
    """``"2024-01-02"`` -> ``"Jan 2"``; unparseable values are returned as text."""

    parsed = parse_date(raw) if isinstance(raw, str) else None
    if parsed is None:
        return str(raw)
    return f"{parsed:%b} {parsed.day}"


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _first_number(row: dict[str, Any], keys: tuple[str, ...]) -> float | None:
    for key in keys:
        number = _number(row.get(key))
        if number is not None:
            return number
    return None


def _date_key(dataset: FinancialDataset) -> str:
    for column in dataset.columns:
        if column.type in ("date", "datetime"):
            return column.key
    return "date"


def get_table_data(dataset: FinancialDataset) -> TableView:
    return TableView(
        columns=dataset.columns,
        rows=dataset.rows,
        total_records=dataset.total_records or len(dataset.rows),
        data_type=dataset.data_type,
        source=dataset.source,
    )


def get_chart_data(dataset: FinancialDataset) -> list[ChartDataPoint]:
    """Time series rows become dated points; other shapes are numbered ``Point N``."""

    points: list[ChartDataPoint] = []
    if dataset.data_type is DataType.TIME_SERIES:
        date_key = _date_key(dataset)
        for row in dataset.rows:
            full_date = str(row.get(date_key) or row.get("date") or "")
            price = _first_number(row, _PRICE_KEYS)
            points.append(
                ChartDataPoint(
                    date=chart_label(full_date),
                    full_date=full_date,
                    price=price or 0.0,
                    volume=_number(row.get("volume")),
                    dma50=_number(row.get("dma50")),
                    dma200=_number(row.get("dma200")),
                    open=_number(row.get("open")),
                    high=_number(row.get("high")),
                    low=_number(row.get("low")),
                    close=_number(row.get("close")),
                )
            )
        return points

    for index, row in enumerate(dataset.rows, start=1):
        price = _first_number(row, _PRICE_KEYS)
        label = str(row.get("symbol") or f"Point {index}")
        points.append(ChartDataPoint(date=label, full_date=label, price=price or 0.0))
    return points


def get_card_data(dataset: FinancialDataset) -> dict[str, Any]:
    """Latest row for time series, the single row for quotes, a summary for trending lists."""

    if not dataset.rows:
        return {}
    if dataset.data_type is DataType.QUOTE or len(dataset.rows) == 1:
        return dict(dataset.rows[0])
    if dataset.data_type is DataType.TIME_SERIES:
        date_key = _date_key(dataset)
        return dict(max(dataset.rows, key=lambda row: str(row.get(date_key) or "")))
    return {
        "totalRecords": len(dataset.rows),
        "dataType": dataset.data_type.value,
        **dataset.rows[0],
    }


def render_view(dataset: FinancialDataset, view: str) -> Any:
    """JSON-ready view of ``dataset``; ``view`` is one of :data:`VIEW_TYPES`."""

    if view == "table":
        return get_table_data(dataset).model_dump(mode="json")
    if view == "chart":
        return [point.model_dump(mode="json") for point in get_chart_data(dataset)]
    if view == "card":
        return get_card_data(dataset)
    raise ValueError(f"Unsupported view '{view}'. Expected one of: {', '.join(VIEW_TYPES)}")


__all__ = [
    "ChartDataPoint",
    "TableView",
    "VIEW_TYPES",
    "chart_label",
    "get_card_data",
    "get_chart_data",
    "get_table_data",
    "parse_date",
    "render_view",
]

import pytest

from pipelines.mapper import generate_mapping_template
from pipelines.model import DataType
from pipelines.schema import generate_schema
from pipelines.transformer import DataTransformer, extract_fields, get_nested_value


def _transform(raw, source="test_api"):
    schema = generate_schema(raw)
    return DataTransformer(schema, source).transform(raw, generate_mapping_template(schema))


def test_get_nested_value_prefers_whole_keys():
    payload = {"Meta Data": {"5. Time Zone": "US/Eastern"}, "a.b": 1, "a": {"b": 2}}

    assert get_nested_value(payload, "Meta Data.5. Time Zone") == "US/Eastern"
    assert get_nested_value(payload, "a.b") == 1
    assert get_nested_value(payload, "missing.path") is None
    assert get_nested_value("not a mapping", "a") is None


def test_extract_fields_converts_numeric_strings_and_omits_missing():
    row = extract_fields(
        {"1. open": "150.2500", "pct": "1.5%", "empty": None},
        {"open": "1. open", "changePercent": "pct", "bid": "empty", "ask": "absent"},
    )

    assert row == {"open": pytest.approx(150.25), "changePercent": "1.5%"}


def test_alpha_vantage_daily_rows(alpha_vantage_daily):
    result = _transform(alpha_vantage_daily, "alpha_vantage")

    assert result.success
    dataset = result.data
    assert dataset.data_type is DataType.TIME_SERIES
    assert dataset.total_records == 3
    assert [row["date"] for row in dataset.rows] == ["2024-01-02", "2024-01-03", "2024-01-04"]
    first = dataset.rows[0]
    assert first["timestamp"] == "2024-01-02"
    for key in ("open", "high", "low", "close", "volume"):
        assert isinstance(first[key], float)
    assert first["close"] == pytest.approx(162.83)
    assert [column.key for column in dataset.columns] == [
        "date",
        "timestamp",
        "open",
        "high",
        "low",
        "close",
        "volume",
    ]
    assert dataset.attributes["symbol"] == "IBM"
    assert dataset.attributes["timezone"] == "US/Eastern"
    assert dataset.title == "Time Series - alpha_vantage"
    assert result.metadata.records_processed == 3
    assert result.metadata.records_successful == 3
    assert result.metadata.warnings == []


def test_intraday_rows_are_sorted(alpha_vantage_intraday):
    rows = _transform(alpha_vantage_intraday).data.rows

    assert [row["date"] for row in rows] == ["2024-01-05 19:50:00", "2024-01-05 19:55:00"]


def test_finnhub_candles_yield_one_row_per_index(finnhub_candles):
    result = _transform(finnhub_candles, "finnhub")

    rows = result.data.rows
    assert len(rows) == len(finnhub_candles["c"])
    assert rows[0]["date"] == "2024-01-02"
    assert rows[0]["close"] == pytest.approx(185.64)
    assert rows[0]["timestamp"] == 1704153600
    keys = [column.key for column in result.data.columns]
    assert keys[0] == "date"
    assert "timestamp" in keys
    assert "s" not in keys


def test_trending_rows_concatenate_gainers_and_losers(indian_trending):
    result = _transform(indian_trending, "indian_trending")

    rows = result.data.rows
    assert result.data.data_type is DataType.TRENDING
    assert len(rows) == 5
    assert rows[0]["symbol"] == "S0003"
    assert rows[-1]["name"] == "Asian Paints"
    assert rows[3]["change"] == pytest.approx(-170.85)
    assert rows[0]["price"] == pytest.approx(145.5)


def test_quote_produces_exactly_one_row(alpha_vantage_global_quote):
    result = _transform(alpha_vantage_global_quote, "alpha_vantage")

    assert result.data.data_type is DataType.QUOTE
    assert len(result.data.rows) == 1
    row = result.data.rows[0]
    assert row["symbol"] == "IBM"
    assert row["price"] == pytest.approx(162.5)
    assert row["changePercent"] == "0.8065%"
    change_percent = next(column for column in result.columns if column.key == "changePercent")
    assert change_percent.type == "percentage"
    assert change_percent.align == "right"


def test_tuple_datasets_pivot_by_date(indian_historical):
    result = _transform(indian_historical, "indian_historical")

    rows = result.data.rows
    assert len(rows) == 3
    assert rows[0] == {
        "date": "2024-01-01",
        "timestamp": "2024-01-01",
        "price": pytest.approx(2585.05),
        "volume": 3410239,
    }
    assert [column.key for column in result.columns] == ["date", "timestamp", "price", "volume"]
    assert result.metadata.warnings == [
        "No source field matched 'open'",
        "No source field matched 'high'",
        "No source field matched 'low'",
        "No source field matched 'close'",
    ]


def test_unmapped_targets_are_absent_from_rows_and_columns(root_quote_array):
    result = _transform(root_quote_array)

    keys = {column.key for column in result.columns}
    assert "bid" not in keys
    assert all("bid" not in row for row in result.data.rows)
    assert {"symbol", "price", "change", "volume"} <= keys


def test_non_object_elements_are_counted_as_failed():
    raw = {"stocks": [{"company_name": "A", "price": 1.0, "change": 0.1}, "junk"]}
    schema = generate_schema(raw)

    result = DataTransformer(schema, "test").transform(raw, generate_mapping_template(schema))

    assert result.success
    assert result.metadata.records_processed == 2
    assert result.metadata.records_failed == 1
    assert len(result.data.rows) == 1


def test_unknown_template_fails_without_raising():
    raw = {"name": "nothing to see"}
    schema = generate_schema(raw)

    result = DataTransformer(schema, "test").transform(raw)

    assert result.success is False
    assert result.error_code == "UNCLASSIFIABLE_STRUCTURE"
    assert result.data.rows == []
    assert result.columns == []


def test_dataset_is_key_order_independent(alpha_vantage_daily):
    series = alpha_vantage_daily["Time Series (Daily)"]
    reordered = {
        "Time Series (Daily)": dict(reversed(list(series.items()))),
        "Meta Data": alpha_vantage_daily["Meta Data"],
    }

    first = _transform(alpha_vantage_daily).data
    second = _transform(reordered).data

    assert first.id == second.id
    assert first.rows == second.rows
    assert first.columns == second.columns


def test_columnar_without_timestamps_has_no_date_column():
    raw = {"o": [1.0, 2.0], "h": [1.5, 2.5], "l": [0.5, 1.5], "c": [1.2, 2.2], "v": [10, 20]}

    result = _transform(raw)

    keys = [column.key for column in result.columns]
    assert keys == ["open", "high", "low", "close", "volume"]
    assert all(key in row for row in result.data.rows for key in keys)


def test_columnar_iso_timestamps_become_dates():
    raw = {
        "o": [1.0, 2.0],
        "h": [1.5, 2.5],
        "l": [0.5, 1.5],
        "c": [1.2, 2.2],
        "t": ["2024-01-02", "2024-01-03"],
    }

    result = _transform(raw)

    assert [row["date"] for row in result.data.rows] == ["2024-01-02", "2024-01-03"]
    assert [column.key for column in result.columns][0] == "date"


def test_quote_without_mapped_values_counts_as_failed():
    result = _transform({"price": None, "change": None})

    assert result.success
    assert result.data.rows == []
    assert result.metadata.records_processed == 1
    assert result.metadata.records_successful == 0
    assert result.metadata.records_failed == 1


def test_root_array_skips_leading_nulls():
    result = _transform([None, {"price": 1.0, "change": 2.0}])

    assert result.success
    assert result.data.rows == [{"price": 1.0, "change": 2.0}]
    assert result.metadata.records_failed == 1

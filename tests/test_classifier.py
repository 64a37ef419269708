import logging

from pipelines.classifier import StructureClassifier, detect_data_structure
from pipelines.model import DATE_WILDCARD, DataType
from pipelines.schema import generate_schema


def _classify(raw):
    return detect_data_structure(generate_schema(raw))


def test_date_keyed_ohlcv_is_time_series(alpha_vantage_daily):
    result = _classify(alpha_vantage_daily)

    assert result.type is DataType.TIME_SERIES
    assert result.data_path == ("Time Series (Daily)", DATE_WILDCARD)
    assert result.is_array is False


def test_object_array_with_ohlcv_is_time_series(ohlcv_array):
    result = _classify(ohlcv_array)

    assert result.type is DataType.TIME_SERIES
    assert result.data_path == ("data",)
    assert result.is_array is True


def test_nested_trending_lists_collect_sibling_paths(indian_trending):
    result = _classify(indian_trending)

    assert result.type is DataType.TRENDING
    assert result.data_path == ("trending_stocks", "top_gainers")
    assert result.data_paths == (
        ("trending_stocks", "top_gainers"),
        ("trending_stocks", "top_losers"),
    )


def test_tuple_datasets_are_time_series(indian_historical):
    result = _classify(indian_historical)

    assert result.type is DataType.TIME_SERIES
    assert result.data_path == ("datasets",)


def test_parallel_arrays_are_columnar_time_series(finnhub_candles):
    result = _classify(finnhub_candles)

    assert result.type is DataType.TIME_SERIES
    assert result.columnar is True
    assert result.data_path == ()


def test_three_parallel_arrays_are_not_enough():
    result = _classify({"c": [1.0], "h": [1.0], "l": [1.0], "t": [1704153600]})

    assert result.type is DataType.UNKNOWN


def test_root_object_quote():
    result = _classify({"symbol": "IBM", "price": 162.5, "change": 1.3})

    assert result.type is DataType.QUOTE
    assert result.data_path == ()


def test_wrapped_quote(alpha_vantage_global_quote):
    result = _classify(alpha_vantage_global_quote)

    assert result.type is DataType.QUOTE
    assert result.data_path == ("Global Quote",)


def test_single_matching_term_is_not_a_quote():
    assert _classify({"price": 10.0, "name": "Widget"}).type is DataType.UNKNOWN


def test_root_array_of_quotes_is_trending(root_quote_array):
    result = _classify(root_quote_array)

    assert result.type is DataType.TRENDING
    assert result.data_path == ()
    assert result.is_array is True


def test_root_array_of_candles_is_time_series(ohlcv_array):
    result = _classify(ohlcv_array["data"])

    assert result.type is DataType.TIME_SERIES
    assert result.is_array is True


def test_metadata_only_payload_is_unknown(alpha_vantage_rate_limit):
    assert _classify(alpha_vantage_rate_limit).type is DataType.UNKNOWN


def test_empty_schema_is_unknown():
    assert _classify({}).type is DataType.UNKNOWN


def test_classification_ignores_key_order(indian_trending):
    reordered = {
        "trending_stocks": dict(reversed(list(indian_trending["trending_stocks"].items())))
    }

    assert _classify(reordered) == _classify(indian_trending)


def test_decision_is_logged(caplog, alpha_vantage_daily):
    logger = logging.getLogger("tests.classifier")
    with caplog.at_level(logging.INFO, logger="tests.classifier"):
        StructureClassifier(logger=logger).classify(generate_schema(alpha_vantage_daily))

    assert "Classified payload as time_series" in caplog.text

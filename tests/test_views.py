import pytest

from pipelines.model import DataType
from pipelines.service import transform
from pipelines.views import (
    chart_label,
    get_card_data,
    get_chart_data,
    get_table_data,
    render_view,
)


@pytest.mark.parametrize(
    ("raw", "label"),
    [
        ("2024-01-02", "Jan 2"),
        ("2024-12-31 19:55:00", "Dec 31"),
        ("Day 3", "Day 3"),
        (1704153600, "1704153600"),
    ],
)
def test_chart_label(raw, label):
    assert chart_label(raw) == label


def test_table_view_mirrors_dataset(alpha_vantage_daily):
    dataset = transform(alpha_vantage_daily, "alpha_vantage").data

    table = get_table_data(dataset)

    assert table.total_records == 3
    assert table.columns == dataset.columns
    assert table.rows == dataset.rows
    assert table.data_type is DataType.TIME_SERIES
    assert table.source == "alpha_vantage"


def test_time_series_chart_points(alpha_vantage_daily):
    dataset = transform(alpha_vantage_daily, "alpha_vantage").data

    points = get_chart_data(dataset)

    assert [point.date for point in points] == ["Jan 2", "Jan 3", "Jan 4"]
    assert points[0].full_date == "2024-01-02"
    assert points[0].price == pytest.approx(162.83)
    assert points[0].close == pytest.approx(162.83)
    assert points[0].volume == pytest.approx(3935458)
    assert points[0].dma50 is None


def test_pivoted_chart_uses_price_metric(indian_historical):
    dataset = transform(indian_historical, "indian_historical").data

    points = get_chart_data(dataset)

    assert len(points) == 3
    assert points[0].price == pytest.approx(2585.05)
    assert points[0].volume == pytest.approx(3410239)


def test_trending_chart_points_are_labelled_by_symbol(indian_trending):
    dataset = transform(indian_trending, "indian_trending").data

    points = get_chart_data(dataset)

    assert [point.date for point in points][:2] == ["S0003", "S0012"]
    assert points[0].price == pytest.approx(145.5)


def test_time_series_card_is_latest_row(alpha_vantage_daily):
    dataset = transform(alpha_vantage_daily, "alpha_vantage").data

    card = get_card_data(dataset)

    assert card["date"] == "2024-01-04"
    assert card["close"] == pytest.approx(161.1)


def test_quote_card_is_the_single_row(alpha_vantage_global_quote):
    dataset = transform(alpha_vantage_global_quote, "alpha_vantage").data

    card = get_card_data(dataset)

    assert card["symbol"] == "IBM"
    assert card["price"] == pytest.approx(162.5)


def test_trending_card_summarizes(indian_trending):
    dataset = transform(indian_trending, "indian_trending").data

    card = get_card_data(dataset)

    assert card["totalRecords"] == 5
    assert card["dataType"] == "trending"
    assert card["symbol"] == "S0003"


def test_card_of_failed_transformation_is_empty():
    dataset = transform({}, "empty").data

    assert get_card_data(dataset) == {}
    assert get_chart_data(dataset) == []


def test_render_view_is_json_ready(alpha_vantage_daily):
    dataset = transform(alpha_vantage_daily, "alpha_vantage").data

    table = render_view(dataset, "table")
    chart = render_view(dataset, "chart")

    assert table["data_type"] == "time_series"
    assert table["total_records"] == 3
    assert chart[0]["date"] == "Jan 2"
    assert render_view(dataset, "card")["date"] == "2024-01-04"


def test_render_view_rejects_unknown_views(alpha_vantage_daily):
    dataset = transform(alpha_vantage_daily, "alpha_vantage").data

    with pytest.raises(ValueError, match="Unsupported view"):
        render_view(dataset, "heatmap")

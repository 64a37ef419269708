import pytest

from pipelines.model import DATE_WILDCARD, FieldType
from pipelines.schema import SchemaGenerator, generate_schema, is_metadata_field, print_schema


@pytest.mark.parametrize("raw", [None, {}, [], "text", 42])
def test_unusable_input_yields_empty_schema(raw):
    schema = generate_schema(raw)

    assert schema.fields == {}
    assert schema.data_fields == {}


def test_empty_object_is_object_root():
    schema = generate_schema({})

    assert schema.root_type == "object"
    assert len(schema.fields) == 0


def test_empty_array_is_array_root():
    assert generate_schema([]).root_type == "array"


def test_self_referential_object_terminates():
    payload = {"price": 10.0}
    payload["self"] = payload
    payload["nested"] = {"parent": payload}

    schema = generate_schema(payload)

    assert schema.fields["self"].description == "Circular reference"
    assert schema.fields["nested"].object_schema["parent"].description == "Circular reference"


def test_depth_cap_truncates_deep_nesting():
    payload = current = {}
    for _ in range(10):
        current["child"] = {}
        current = current["child"]

    schema = SchemaGenerator(max_depth=3).generate(payload)

    level = schema.fields["child"]
    while level.object_schema:
        level = level.object_schema["child"]
    assert level.description == "Nesting depth limit reached"


def test_date_keyed_map_collapses_to_wildcard(alpha_vantage_daily):
    schema = generate_schema(alpha_vantage_daily)

    series = schema.fields["Time Series (Daily)"]
    assert series.type is FieldType.OBJECT
    assert list(series.object_schema) == [DATE_WILDCARD]
    entry = series.object_schema[DATE_WILDCARD]
    assert entry.object_schema["1. open"].type is FieldType.NUMBER
    assert series.description == "Date-keyed map (3 entries: 2024-01-02 ... 2024-01-04)"


def test_intraday_keys_are_date_keyed(alpha_vantage_intraday):
    schema = generate_schema(alpha_vantage_intraday)

    assert DATE_WILDCARD in schema.fields["Time Series (5min)"].object_schema


def test_metadata_sections_are_separated(alpha_vantage_daily):
    schema = generate_schema(alpha_vantage_daily)

    assert set(schema.metadata) == {"Meta Data"}
    assert set(schema.data_fields) == {"Time Series (Daily)"}
    assert set(schema.fields) == {"Meta Data", "Time Series (Daily)"}


@pytest.mark.parametrize(
    ("name", "expected"),
    [("Meta Data", True), ("metadata", True), ("Note", True), ("Information", True), ("data", False)],
)
def test_is_metadata_field(name, expected):
    assert is_metadata_field(name) is expected


def test_root_array_samples_first_element(root_quote_array):
    schema = generate_schema(root_quote_array)

    assert schema.root_type == "array"
    assert set(schema.fields) == {"symbol", "price", "change", "volume"}
    assert schema.fields["price"].type is FieldType.NUMBER


def test_object_arrays_describe_their_elements(indian_trending):
    schema = generate_schema(indian_trending)

    gainers = schema.fields["trending_stocks"].object_schema["top_gainers"]
    assert gainers.type is FieldType.ARRAY
    assert gainers.array_item_type is FieldType.OBJECT
    assert gainers.object_schema["company_name"].type is FieldType.STRING
    assert gainers.object_schema["date"].type is FieldType.DATE


def test_tuple_arrays_record_positional_types(indian_historical):
    schema = generate_schema(indian_historical)

    values = schema.fields["datasets"].object_schema["values"]
    assert values.tuple_types == [FieldType.DATE, FieldType.NUMBER]
    assert set(values.object_schema) == {"0", "1"}
    assert values.description == "Tuple: [date, number]"


def test_long_inner_arrays_are_not_tuples():
    schema = SchemaGenerator(tuple_max_length=2).generate({"rows": [[1, 2, 3], [4, 5, 6]]})

    rows = schema.fields["rows"]
    assert rows.tuple_types is None
    assert rows.array_item_type is FieldType.ARRAY


def test_mixed_array_items_report_object():
    schema = generate_schema({"mixed": [1, "IBM", None]})

    assert schema.fields["mixed"].array_item_type is FieldType.OBJECT


def test_primitive_array_item_type(finnhub_candles):
    schema = generate_schema(finnhub_candles)

    assert schema.fields["c"].array_item_type is FieldType.NUMBER
    assert schema.fields["c"].object_schema is None
    assert schema.fields["s"].type is FieldType.STRING


def test_null_fields_are_nullable():
    schema = generate_schema({"bid": None})

    assert schema.fields["bid"].type is FieldType.NULL
    assert schema.fields["bid"].is_nullable


def test_schema_is_immutable(alpha_vantage_daily):
    schema = generate_schema(alpha_vantage_daily)

    with pytest.raises(ValueError):
        schema.root_type = "array"


def test_print_schema_renders_sections(alpha_vantage_daily):
    rendered = print_schema(generate_schema(alpha_vantage_daily))

    assert rendered.startswith("Root Type: object")
    assert "=== DATA FIELDS ===" in rendered
    assert "=== METADATA FIELDS (Excluded) ===" in rendered
    assert "[DATE]: object" in rendered


def test_root_array_samples_first_record_after_nulls():
    schema = generate_schema([None, 3, {"price": 1.0, "change": 2.0}])

    assert schema.root_type == "array"
    assert set(schema.fields) == {"price", "change"}

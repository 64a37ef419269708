"""Materialize normalized rows and columns from raw JSON and a mapping template."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Mapping, Sequence

from pipelines.errors import TransformationError, UnclassifiableStructureError
from pipelines.field_types import to_number
from pipelines.mapper import SchemaMapper
from pipelines.model import (
    DATE_WILDCARD,
    DataSchema,
    DataType,
    FinancialDataset,
    MappingTemplate,
    TransformationMetadata,
    TransformResult,
    empty_dataset,
)
from pipelines.rules import DEFAULT_RULE_SETS, EXPECTED_FIELDS, RuleSets

TITLE_PREFIXES: dict[DataType, str] = {
    DataType.TIME_SERIES: "Time Series",
    DataType.TRENDING: "Trending Stocks",
    DataType.QUOTE: "Quote",
}
_DATE_COLUMNS: tuple[tuple[str, str], ...] = (("date", "date"), ("timestamp", "datetime"))


def get_nested_value(obj: Any, path: str) -> Any:
    """Resolve ``path`` in ``obj``.

    The whole path is tried as a key first, then dotted segments, preferring the
    longest key prefix that exists, so keys containing dots (``"1. open"``)
    still resolve. Missing paths return ``None``.
    """

    if not path or not isinstance(obj, Mapping):
        return None
    if path in obj:
        return obj[path]
    parts = path.split(".")
    for split in range(len(parts) - 1, 0, -1):
        head = ".".join(parts[:split])
        if head in obj:
            value = get_nested_value(obj[head], ".".join(parts[split:]))
            if value is not None:
                return value
    return None


def extract_fields(source: Any, mappings: Mapping[str, str]) -> dict[str, Any]:
    """Copy mapped values out of ``source``; numeric strings become floats.

    Unresolved or null values are left out of the row entirely.
    """

    row: dict[str, Any] = {}
    for target, path in mappings.items():
        value = get_nested_value(source, path)
        if value is None:
            continue
        row[target] = to_number(value)
    return row


def _resolve_path(raw: Any, path: Sequence[str]) -> Any:
    current = raw
    for segment in path:
        if segment == DATE_WILDCARD:
            break
        if not isinstance(current, Mapping):
            return None
        current = current.get(segment)
    return current


def _dataset_id(source: str, raw: Any, data_type: DataType) -> str:
    try:
        encoded = json.dumps(raw, sort_keys=True, default=str)
    except (TypeError, ValueError):
        return f"{source}_{data_type.value}"
    return f"{source}_{hashlib.sha1(encoded.encode('utf-8')).hexdigest()[:12]}"


def _epoch_to_date(value: Any) -> str | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    seconds = value / 1000 if value > 1e11 else value
    try:
        return datetime.fromtimestamp(seconds, tz=UTC).date().isoformat()
    except (OverflowError, OSError, ValueError):
        return None


def failure_result(source: str, message: str, code: str = TransformationError.code) -> TransformResult:
    """The structured failure envelope: empty dataset, no columns, the reason in ``error``."""

    return TransformResult(
        success=False,
        use_transformed_data=False,
        data=empty_dataset(source),
        columns=[],
        error=message,
        error_code=code,
        metadata=TransformationMetadata(
            source_api=source,
            transformed_at=datetime.now(UTC).isoformat(),
            errors=[message],
        ),
    )


@dataclass
class _Extraction:
    rows: list[dict[str, Any]] = field(default_factory=list)
    leading: list[tuple[str, str]] = field(default_factory=list)
    processed: int = 0
    failed: int = 0
    warnings: list[str] = field(default_factory=list)
    # False when rows are built without the field mappings (dataset pivots).
    mapped: bool = True

    def add(self, row: dict[str, Any]) -> None:
        self.processed += 1
        if row:
            self.rows.append(row)
        else:
            self.failed += 1

    def skip(self, reason: str) -> None:
        self.processed += 1
        self.failed += 1
        self.warnings.append(reason)


class DataTransformer:
    """Turns a raw payload into a :class:`FinancialDataset` using a mapping template."""

    def __init__(
        self,
        schema: DataSchema,
        source: str,
        *,
        rule_sets: RuleSets = DEFAULT_RULE_SETS,
        logger: logging.Logger | None = None,
    ) -> None:
        self.schema = schema
        self.source = source
        self.logger = logger or logging.getLogger(__name__)
        self.mapper = SchemaMapper(schema, rule_sets=rule_sets, logger=self.logger)

    def transform(self, raw: Any, template: MappingTemplate | None = None) -> TransformResult:
        """Dispatch on the template's data type; failures come back as ``success=False``."""

        try:
            template = template or self.mapper.generate_mapping_template()
            dataset, extraction = self._build(raw, template)
        except TransformationError as exc:
            return self._failure(exc.message, exc.code)
        except Exception as exc:  # noqa: BLE001 - never propagate to callers
            self.logger.exception("Unexpected failure transforming %s payload", self.source)
            return self._failure(str(exc) or exc.__class__.__name__, TransformationError.code)

        metadata = TransformationMetadata(
            source_api=self.source,
            transformed_at=datetime.now(UTC).isoformat(),
            field_mappings=template.all_mappings(),
            records_processed=extraction.processed,
            records_successful=len(extraction.rows),
            records_failed=extraction.failed,
            warnings=extraction.warnings,
        )
        return TransformResult(
            success=True,
            use_transformed_data=True,
            data=dataset,
            columns=dataset.columns,
            metadata=metadata,
        )

    def _failure(self, message: str, code: str) -> TransformResult:
        self.logger.warning("Transformation of %s failed: %s", self.source, message)
        return failure_result(self.source, message, code)

    def _build(self, raw: Any, template: MappingTemplate) -> tuple[FinancialDataset, _Extraction]:
        if template.data_type is DataType.TIME_SERIES:
            extraction = self._transform_time_series(raw, template)
        elif template.data_type is DataType.TRENDING:
            extraction = self._transform_trending(raw, template)
        elif template.data_type is DataType.QUOTE:
            extraction = self._transform_quote(raw, template)
        else:
            raise UnclassifiableStructureError(
                f"Unsupported data type: {template.data_type.value}"
            )

        column_template = template if extraction.mapped else MappingTemplate(data_type=template.data_type)
        extraction.warnings.extend(self._unmapped_warnings(column_template, extraction.leading))
        columns = self.mapper.generate_column_definitions(column_template, extraction.leading)
        attributes = extract_fields(raw, template.metadata_mapping)
        dataset = FinancialDataset(
            id=_dataset_id(self.source, raw, template.data_type),
            title=f"{TITLE_PREFIXES[template.data_type]} - {self.source}",
            data_type=template.data_type,
            columns=columns,
            rows=extraction.rows,
            total_records=len(extraction.rows),
            source=self.source,
            attributes=attributes,
        )
        self.logger.info(
            "Transformed %s payload into %d %s rows (%d columns, %d failed)",
            self.source,
            len(extraction.rows),
            template.data_type.value,
            len(columns),
            extraction.failed,
        )
        return dataset, extraction

    def _unmapped_warnings(
        self, template: MappingTemplate, leading: Sequence[tuple[str, str]]
    ) -> list[str]:
        mapped = {*template.all_mappings(), *(key for key, _ in leading)}
        missing = [name for name in EXPECTED_FIELDS.get(template.data_type, ()) if name not in mapped]
        if missing:
            self.logger.info(
                "No source field matched %s for %s payload", ", ".join(missing), self.source
            )
        return [f"No source field matched '{name}'" for name in missing]

    def _transform_time_series(self, raw: Any, template: MappingTemplate) -> _Extraction:
        extraction = _Extraction()
        mappings = template.all_mappings()

        if template.columnar:
            return self._transform_columnar(raw, mappings)

        data = _resolve_path(raw, template.data_path)
        if DATE_WILDCARD in template.data_path:
            extraction.leading = list(_DATE_COLUMNS)
            if not isinstance(data, Mapping):
                raise TransformationError("Date-keyed series not found at data path")
            for date_key in sorted(data):
                row = extract_fields(data[date_key], mappings)
                row["date"] = date_key
                row["timestamp"] = date_key
                extraction.add(row)
            return extraction

        if not isinstance(data, list):
            raise TransformationError(
                f"Expected an array at {'.'.join(template.data_path) or 'root'}"
            )

        if any(isinstance(item, Mapping) and isinstance(item.get("values"), list) for item in data):
            return self._pivot_datasets(data)

        for index, item in enumerate(data):
            if not isinstance(item, Mapping):
                extraction.skip(f"Skipped element {index}: not an object")
                continue
            extraction.add(extract_fields(item, mappings))
        return extraction

    def _pivot_datasets(self, datasets: Sequence[Any]) -> _Extraction:
        """One row per date; each dataset's metric becomes a column."""

        extraction = _Extraction(mapped=False)
        by_date: dict[str, dict[str, Any]] = {}
        metrics: list[str] = []
        for index, item in enumerate(datasets):
            values = item.get("values") if isinstance(item, Mapping) else None
            if not isinstance(values, list):
                extraction.skip(f"Skipped dataset {index}: no values array")
                continue
            metric = str(item.get("metric") or item.get("label") or "value").lower()
            if metric not in metrics:
                metrics.append(metric)
            for entry in values:
                extraction.processed += 1
                if not isinstance(entry, (list, tuple)) or len(entry) < 2 or entry[0] is None:
                    extraction.failed += 1
                    continue
                date_key = str(entry[0])
                row = by_date.get(date_key)
                if row is None:
                    row = by_date[date_key] = {"date": date_key, "timestamp": date_key}
                    extraction.rows.append(row)
                if entry[1] is not None:
                    row[metric] = to_number(entry[1])

        extraction.leading = [*_DATE_COLUMNS, *((metric, "number") for metric in metrics)]
        return extraction

    def _transform_columnar(self, raw: Any, mappings: Mapping[str, str]) -> _Extraction:
        extraction = _Extraction()
        if not isinstance(raw, Mapping):
            raise TransformationError("Columnar series requires an object payload")
        columns = {
            target: raw.get(path) for target, path in mappings.items() if isinstance(raw.get(path), list)
        }
        length = max((len(values) for values in columns.values()), default=0)
        for index in range(length):
            row: dict[str, Any] = {}
            for target, values in columns.items():
                if index < len(values) and values[index] is not None:
                    row[target] = to_number(values[index])
            stamp = row.get("timestamp")
            row_date = stamp if isinstance(stamp, str) else _epoch_to_date(stamp)
            if row_date:
                row = {"date": row_date, **row}
            extraction.add(row)
        if any("date" in row for row in extraction.rows):
            extraction.leading = [("date", "date")]
        return extraction

    def _transform_trending(self, raw: Any, template: MappingTemplate) -> _Extraction:
        extraction = _Extraction()
        mappings = template.all_mappings()
        for path in template.data_paths or [template.data_path]:
            data = _resolve_path(raw, path)
            if not isinstance(data, list):
                extraction.warnings.append(f"No array found at {'.'.join(path) or 'root'}")
                continue
            for index, item in enumerate(data):
                if not isinstance(item, Mapping):
                    extraction.skip(f"Skipped element {index} of {'.'.join(path) or 'root'}: not an object")
                    continue
                extraction.add(extract_fields(item, mappings))
        return extraction

    def _transform_quote(self, raw: Any, template: MappingTemplate) -> _Extraction:
        extraction = _Extraction()
        data = _resolve_path(raw, template.data_path)
        if not isinstance(data, Mapping):
            raise TransformationError("Quote object not found at data path")
        extraction.add(extract_fields(data, template.all_mappings()))
        return extraction


__all__ = ["DataTransformer", "extract_fields", "failure_result", "get_nested_value"]

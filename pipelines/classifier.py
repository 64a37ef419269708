"""Decide which canonical financial shape a generated schema describes."""

from __future__ import annotations

import logging
from typing import Mapping

from pipelines.model import DATE_WILDCARD, Classification, DataSchema, DataType, FieldSchema, FieldType
from pipelines.rules import (
    COLUMNAR_OHLCV_ALIASES,
    OHLCV_SIGNATURE,
    QUOTE_SIGNATURE,
    TRENDING_SIGNATURE,
)

UNKNOWN = Classification(type=DataType.UNKNOWN)


def _is_object_array(field_schema: FieldSchema) -> bool:
    return (
        field_schema.type is FieldType.ARRAY
        and field_schema.array_item_type is FieldType.OBJECT
        and bool(field_schema.object_schema)
        and not field_schema.tuple_types
    )


def _is_tuple_dataset(field_schema: FieldSchema) -> bool:
    values = (field_schema.object_schema or {}).get("values")
    return _is_object_array(field_schema) and values is not None and bool(values.tuple_types)


def _date_keyed_entry(field_schema: FieldSchema) -> FieldSchema | None:
    if field_schema.type is not FieldType.OBJECT or not field_schema.object_schema:
        return None
    return field_schema.object_schema.get(DATE_WILDCARD)


class StructureClassifier:
    """Implements the first-match-wins decision procedure over a schema.

    Fields are visited in sorted name order so the outcome never depends on the
    key order of the payload.
    """

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    def classify(self, schema: DataSchema) -> Classification:
        result = self._classify(schema)
        self.logger.info(
            "Classified payload as %s (path=%s, array=%s, columnar=%s)",
            result.type.value,
            list(result.data_path),
            result.is_array,
            result.columnar,
        )
        return result

    def _classify(self, schema: DataSchema) -> Classification:
        fields = schema.mapping_fields
        if not fields:
            return UNKNOWN

        if schema.root_type == "array":
            return self._classify_root_array(fields)

        return (
            self._find_date_keyed_series(fields)
            or self._find_array_data(fields)
            or self._find_columnar_series(fields)
            or self._find_quote(fields)
            or UNKNOWN
        )

    @staticmethod
    def _classify_root_array(fields: Mapping[str, FieldSchema]) -> Classification:
        names = list(fields)
        if TRENDING_SIGNATURE.matches(names) or (
            QUOTE_SIGNATURE.matches(names) and not OHLCV_SIGNATURE.matches(names)
        ):
            return Classification(type=DataType.TRENDING, data_path=(), is_array=True)
        if OHLCV_SIGNATURE.matches(names):
            return Classification(type=DataType.TIME_SERIES, data_path=(), is_array=True)
        return UNKNOWN

    @staticmethod
    def _find_date_keyed_series(fields: Mapping[str, FieldSchema]) -> Classification | None:
        for name in sorted(fields):
            entry = _date_keyed_entry(fields[name])
            if entry is not None and entry.object_schema and OHLCV_SIGNATURE.matches(entry.object_schema):
                return Classification(
                    type=DataType.TIME_SERIES,
                    data_path=(name, DATE_WILDCARD),
                    is_array=False,
                )
        return None

    def _find_array_data(self, fields: Mapping[str, FieldSchema]) -> Classification | None:
        for name in sorted(fields):
            field_schema = fields[name]
            if _is_object_array(field_schema):
                found = self._test_array(fields, (), name)
                if found:
                    return found
            elif field_schema.type is FieldType.OBJECT and field_schema.object_schema:
                if _date_keyed_entry(field_schema) is not None:
                    continue
                nested = field_schema.object_schema
                for inner in sorted(nested):
                    if _is_object_array(nested[inner]):
                        found = self._test_array(nested, (name,), inner)
                        if found:
                            return found
        return None

    @staticmethod
    def _test_array(
        siblings: Mapping[str, FieldSchema], prefix: tuple[str, ...], name: str
    ) -> Classification | None:
        item_fields = siblings[name].object_schema or {}
        if TRENDING_SIGNATURE.matches(item_fields):
            paths = tuple(
                (*prefix, sibling)
                for sibling in sorted(siblings)
                if _is_object_array(siblings[sibling])
                and TRENDING_SIGNATURE.matches(siblings[sibling].object_schema or {})
            )
            return Classification(
                type=DataType.TRENDING,
                data_path=(*prefix, name),
                is_array=True,
                data_paths=paths,
            )
        if OHLCV_SIGNATURE.matches(item_fields) or _is_tuple_dataset(siblings[name]):
            return Classification(
                type=DataType.TIME_SERIES,
                data_path=(*prefix, name),
                is_array=True,
            )
        return None

    @staticmethod
    def _find_columnar_series(fields: Mapping[str, FieldSchema]) -> Classification | None:
        terms = {
            COLUMNAR_OHLCV_ALIASES[name.lower()]
            for name, field_schema in fields.items()
            if name.lower() in COLUMNAR_OHLCV_ALIASES
            and field_schema.type is FieldType.ARRAY
            and field_schema.array_item_type is FieldType.NUMBER
        }
        if len(terms) >= OHLCV_SIGNATURE.threshold:
            return Classification(
                type=DataType.TIME_SERIES,
                data_path=(),
                is_array=True,
                columnar=True,
            )
        return None

    @staticmethod
    def _find_quote(fields: Mapping[str, FieldSchema]) -> Classification | None:
        if QUOTE_SIGNATURE.matches(fields):
            return Classification(type=DataType.QUOTE, data_path=(), is_array=False)
        for name in sorted(fields):
            field_schema = fields[name]
            if (
                field_schema.type is FieldType.OBJECT
                and field_schema.object_schema
                and _date_keyed_entry(field_schema) is None
                and QUOTE_SIGNATURE.matches(field_schema.object_schema)
            ):
                return Classification(type=DataType.QUOTE, data_path=(name,), is_array=False)
        return None


def detect_data_structure(schema: DataSchema, *, logger: logging.Logger | None = None) -> Classification:
    """Classify ``schema`` as time_series, trending, quote or unknown."""

    return StructureClassifier(logger=logger).classify(schema)


__all__ = ["StructureClassifier", "detect_data_structure"]

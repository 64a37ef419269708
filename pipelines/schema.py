"""Structural schema inference for arbitrary JSON payloads.

The generator walks a decoded JSON value once and records, for every field, the
detected :class:`~pipelines.model.FieldType`, nested object fields, array item
types and tuple layouts. Arrays are sampled from their first element only, so a
heterogeneous array is described by the shape of element zero.

Two shapes common in market data APIs get special treatment:

* date-keyed maps (``{"2024-01-02": {...}, "2024-01-03": {...}}``) collapse to a
  single ``[DATE]`` entry describing the per-date object;
* arrays of fixed-length arrays (``[["2024-01-02", "150.1"], ...]``) record one
  type per tuple position.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from pipelines.field_types import detect_field_type, looks_like_date_key
from pipelines.model import DATE_WILDCARD, DataSchema, FieldSchema, FieldType

DEFAULT_MAX_DEPTH = 32
DEFAULT_TUPLE_MAX_LENGTH = 10
TUPLE_SAMPLE_SIZE = 10

# Top-level keys that describe the response rather than carry data.
METADATA_ENVELOPE_KEYS = frozenset(
    {
        "note",
        "notes",
        "information",
        "message",
        "status",
        "error message",
        "api version",
        "version",
    }
)


def is_metadata_field(name: str) -> bool:
    lowered = name.strip().lower()
    return "meta" in lowered or lowered in METADATA_ENVELOPE_KEYS


def _is_date_keyed(obj: Mapping[Any, Any]) -> bool:
    if not obj:
        return False
    return all(
        isinstance(key, str) and looks_like_date_key(key) and isinstance(value, Mapping)
        for key, value in obj.items()
    )


def _common_type(types: Sequence[FieldType]) -> FieldType:
    non_null = [item for item in types if item is not FieldType.NULL]
    if not non_null:
        return FieldType.NULL
    first = non_null[0]
    return first if all(item is first for item in non_null) else FieldType.OBJECT


class SchemaGenerator:
    """Builds a :class:`DataSchema` from a decoded JSON value."""

    def __init__(
        self,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        tuple_max_length: int = DEFAULT_TUPLE_MAX_LENGTH,
        logger: logging.Logger | None = None,
    ) -> None:
        self.max_depth = max_depth
        self.tuple_max_length = tuple_max_length
        self.logger = logger or logging.getLogger(__name__)

    def generate(self, raw: Any) -> DataSchema:
        """Infer the schema of ``raw``; returns an empty schema for unusable input."""

        root_type = "array" if isinstance(raw, (list, tuple)) else "object"
        source: Mapping[Any, Any] | None = None
        if isinstance(raw, (list, tuple)):
            # Nulls and primitives ahead of the first record are skipped.
            source = next((item for item in raw if isinstance(item, Mapping)), None)
        elif isinstance(raw, Mapping):
            source = raw

        fields: dict[str, FieldSchema] = {}
        data_fields: dict[str, FieldSchema] = {}
        metadata: dict[str, FieldSchema] = {}
        if source is not None:
            visiting = {id(raw), id(source)}
            for key, value in source.items():
                name = str(key)
                field_schema = self._analyze_field(name, value, 1, visiting)
                fields[name] = field_schema
                if is_metadata_field(name):
                    metadata[name] = field_schema
                else:
                    data_fields[name] = field_schema

        self.logger.debug(
            "Generated schema root=%s fields=%d data_fields=%d metadata=%d",
            root_type,
            len(fields),
            len(data_fields),
            len(metadata),
        )
        return DataSchema(
            root_type=root_type,
            fields=fields,
            data_fields=data_fields,
            metadata=metadata,
        )

    def _analyze_field(
        self, name: str, value: Any, depth: int, visiting: set[int]
    ) -> FieldSchema:
        field_type = detect_field_type(value)
        if field_type not in (FieldType.OBJECT, FieldType.ARRAY):
            return FieldSchema(name=name, type=field_type, is_nullable=value is None)

        if id(value) in visiting:
            return self._truncated(name, field_type, "Circular reference")
        if depth >= self.max_depth:
            return self._truncated(name, field_type, "Nesting depth limit reached")

        visiting = visiting | {id(value)}
        if field_type is FieldType.OBJECT:
            object_schema, description = self._analyze_object(value, depth, visiting)
            return FieldSchema(
                name=name,
                type=FieldType.OBJECT,
                object_schema=object_schema,
                description=description,
            )
        return self._analyze_array(name, value, depth, visiting)

    @staticmethod
    def _truncated(name: str, field_type: FieldType, reason: str) -> FieldSchema:
        return FieldSchema(
            name=name,
            type=field_type,
            object_schema={} if field_type is FieldType.OBJECT else None,
            description=reason,
        )

    def _analyze_object(
        self, obj: Mapping[Any, Any], depth: int, visiting: set[int]
    ) -> tuple[dict[str, FieldSchema], str | None]:
        if _is_date_keyed(obj):
            keys = sorted(obj)
            sample = self._analyze_field(DATE_WILDCARD, obj[keys[0]], depth + 1, visiting)
            description = f"Date-keyed map ({len(keys)} entries: {keys[0]} ... {keys[-1]})"
            return {DATE_WILDCARD: sample.model_copy(update={"description": description})}, description

        return {
            str(key): self._analyze_field(str(key), value, depth + 1, visiting)
            for key, value in obj.items()
        }, None

    def _analyze_array(
        self, name: str, items: Sequence[Any], depth: int, visiting: set[int]
    ) -> FieldSchema:
        if not items:
            return FieldSchema(name=name, type=FieldType.ARRAY, array_item_type=FieldType.NULL)

        item_type = _common_type([detect_field_type(item) for item in items])
        first = next((item for item in items if item is not None), None)

        if item_type is FieldType.OBJECT and isinstance(first, Mapping):
            if id(first) in visiting:
                return self._truncated(name, FieldType.ARRAY, "Circular reference")
            object_schema, description = self._analyze_object(
                first, depth, visiting | {id(first)}
            )
            return FieldSchema(
                name=name,
                type=FieldType.ARRAY,
                array_item_type=FieldType.OBJECT,
                object_schema=object_schema,
                description=description,
            )

        if item_type is FieldType.ARRAY and isinstance(first, (list, tuple)):
            tuple_schema = self._analyze_tuples(name, items, first, depth, visiting)
            if tuple_schema is not None:
                return tuple_schema
            inner_type = _common_type([detect_field_type(item) for item in first])
            return FieldSchema(
                name=name,
                type=FieldType.ARRAY,
                array_item_type=FieldType.ARRAY,
                description=f"Array of array (items are {inner_type.value})",
            )

        return FieldSchema(name=name, type=FieldType.ARRAY, array_item_type=item_type)

    def _analyze_tuples(
        self,
        name: str,
        items: Sequence[Any],
        first: Sequence[Any],
        depth: int,
        visiting: set[int],
    ) -> FieldSchema | None:
        width = len(first)
        if not 0 < width <= self.tuple_max_length:
            return None
        if not all(isinstance(item, (list, tuple)) and len(item) == width for item in items):
            return None

        sample = items[:TUPLE_SAMPLE_SIZE]
        tuple_types: list[FieldType] = []
        for position in range(width):
            seen = {detect_field_type(item[position]) for item in sample}
            tuple_types.append(seen.pop() if len(seen) == 1 else FieldType.OBJECT)

        positions = {
            str(index): self._analyze_field(str(index), value, depth + 1, visiting)
            for index, value in enumerate(first)
        }
        return FieldSchema(
            name=name,
            type=FieldType.ARRAY,
            array_item_type=FieldType.ARRAY,
            object_schema=positions,
            tuple_types=tuple_types,
            description=f"Tuple: [{', '.join(item.value for item in tuple_types)}]",
        )


def generate_schema(raw: Any, **options: Any) -> DataSchema:
    """Module-level shortcut for ``SchemaGenerator(**options).generate(raw)``."""

    return SchemaGenerator(**options).generate(raw)


def _format_field(field_schema: FieldSchema, indent: int) -> list[str]:
    pad = " " * indent
    line = f"{pad}{field_schema.name}: {field_schema.type.value}"
    if field_schema.is_nullable:
        line += " (nullable)"
    if field_schema.array_item_type:
        line += f" [{field_schema.array_item_type.value}]"
    lines = [line]
    if field_schema.description:
        lines.append(f"{pad}  // {field_schema.description}")
    if field_schema.object_schema:
        lines.append(f"{pad}  {{")
        for nested in field_schema.object_schema.values():
            lines.extend(_format_field(nested, indent + 4))
        lines.append(f"{pad}  }}")
    return lines


def print_schema(schema: DataSchema) -> str:
    """Render ``schema`` as an indented, human-readable tree."""

    lines = [f"Root Type: {schema.root_type}", ""]
    if schema.data_fields:
        lines.append("=== DATA FIELDS ===")
        for field_schema in schema.data_fields.values():
            lines.extend(_format_field(field_schema, 2))
        lines.append("")
    if schema.metadata:
        lines.append("=== METADATA FIELDS (Excluded) ===")
        for field_schema in schema.metadata.values():
            lines.extend(_format_field(field_schema, 2))
    return "\n".join(lines).rstrip() + "\n"


__all__ = [
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_TUPLE_MAX_LENGTH",
    "METADATA_ENVELOPE_KEYS",
    "SchemaGenerator",
    "generate_schema",
    "is_metadata_field",
    "print_schema",
]

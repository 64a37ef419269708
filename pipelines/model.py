"""Canonical data model for schemas, mappings and normalized financial datasets."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

TRANSFORMATION_VERSION = "1.0.0"
DATE_WILDCARD = "[DATE]"


class FieldType(str, Enum):
    """Semantic type of a single JSON value, decided by inspecting the value."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    TIMESTAMP = "timestamp"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    ARRAY = "array"
    OBJECT = "object"
    NULL = "null"


class DataType(str, Enum):
    """Canonical payload shapes recognized by the structure classifier."""

    TIME_SERIES = "time_series"
    TRENDING = "trending"
    QUOTE = "quote"
    UNKNOWN = "unknown"


class FieldSchema(BaseModel):
    """Inferred description of one field in a JSON payload."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Field name as it appears in the payload.")
    type: FieldType = Field(..., description="Detected semantic type of the sampled value.")
    is_nullable: bool = Field(default=False, description="True when the sampled value was null.")
    array_item_type: Optional[FieldType] = Field(
        default=None, description="Common type of array items (arrays only)."
    )
    object_schema: Optional[dict[str, FieldSchema]] = Field(
        default=None,
        description="Nested fields for objects, object arrays and tuple arrays (positional keys).",
    )
    tuple_types: Optional[list[FieldType]] = Field(
        default=None, description="Per-position types when array items are fixed-length tuples."
    )
    description: Optional[str] = Field(
        default=None, description="Human-readable note, e.g. the range of a date-keyed map."
    )


FieldSchema.model_rebuild()


class DataSchema(BaseModel):
    """Root container produced once per raw payload."""

    model_config = ConfigDict(frozen=True)

    root_type: str = Field(..., description="Either 'object' or 'array'.")
    fields: dict[str, FieldSchema] = Field(default_factory=dict)
    data_fields: dict[str, FieldSchema] = Field(
        default_factory=dict, description="Top-level fields minus recognized metadata sections."
    )
    metadata: dict[str, FieldSchema] = Field(
        default_factory=dict, description="Top-level metadata sections (titles, time zones, notes)."
    )

    @property
    def mapping_fields(self) -> dict[str, FieldSchema]:
        return self.data_fields or self.fields


@dataclass(frozen=True)
class Classification:
    """Outcome of structure classification."""

    type: DataType
    data_path: tuple[str, ...] = ()
    is_array: bool = False
    data_paths: tuple[tuple[str, ...], ...] = field(default=())
    columnar: bool = False

    @property
    def paths(self) -> tuple[tuple[str, ...], ...]:
        return self.data_paths or (self.data_path,)


class MappingTemplate(BaseModel):
    """Where the data lives and which source field feeds each canonical field."""

    model_config = ConfigDict(frozen=True)

    data_type: DataType
    data_path: list[str] = Field(default_factory=list)
    data_paths: list[list[str]] = Field(default_factory=list)
    is_array: bool = False
    columnar: bool = False
    entity_mapping: dict[str, str] = Field(default_factory=dict)
    time_mapping: dict[str, str] = Field(default_factory=dict)
    price_mapping: dict[str, str] = Field(default_factory=dict)
    quote_mapping: Optional[dict[str, str]] = None
    metadata_mapping: dict[str, str] = Field(default_factory=dict)

    def all_mappings(self) -> dict[str, str]:
        """Row-level mappings merged in column order; later rule-sets win on clashes."""

        merged: dict[str, str] = {}
        merged.update(self.entity_mapping)
        merged.update(self.time_mapping)
        merged.update(self.price_mapping)
        merged.update(self.quote_mapping or {})
        return merged


class ColumnDefinition(BaseModel):
    """Column metadata used by table rendering."""

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    type: str = Field(
        ..., description="Display type: string, number, currency, percentage, date, datetime, boolean."
    )
    align: str = Field(..., description="left, center or right; derived from the display type.")
    sortable: bool = True
    filterable: bool = True


class FinancialDataset(BaseModel):
    """Normalized rows and columns ready for tables, cards and charts."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    data_type: DataType
    columns: list[ColumnDefinition] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)
    total_records: int = 0
    source: str = Field(..., description="Caller-supplied source identifier.")
    attributes: dict[str, Any] = Field(
        default_factory=dict, description="Values pulled from metadata sections (symbol, timezone...)."
    )


class TransformationMetadata(BaseModel):
    """Provenance of a transformation run."""

    model_config = ConfigDict(frozen=True)

    source_api: str
    transformed_at: str
    transformation_version: str = TRANSFORMATION_VERSION
    field_mappings: dict[str, str] = Field(default_factory=dict)
    records_processed: int = 0
    records_successful: int = 0
    records_failed: int = 0
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class TransformResult(BaseModel):
    """Envelope returned to callers; failures never raise."""

    model_config = ConfigDict(frozen=True)

    success: bool
    use_transformed_data: bool
    data: FinancialDataset
    columns: list[ColumnDefinition] = Field(default_factory=list)
    error: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Optional[TransformationMetadata] = None


def empty_dataset(source: str = "unknown") -> FinancialDataset:
    """Dataset returned alongside failures."""

    return FinancialDataset(
        id="empty",
        title="No Data",
        data_type=DataType.UNKNOWN,
        columns=[],
        rows=[],
        total_records=0,
        source=source,
    )


__all__ = [
    "Classification",
    "ColumnDefinition",
    "DATE_WILDCARD",
    "DataSchema",
    "DataType",
    "FieldSchema",
    "FieldType",
    "FinancialDataset",
    "MappingTemplate",
    "TRANSFORMATION_VERSION",
    "TransformResult",
    "TransformationMetadata",
    "empty_dataset",
]

"""Rule-driven mapping of unknown source fields onto canonical financial fields."""

from __future__ import annotations

import logging
import re
from typing import Iterable, Mapping, NamedTuple, Sequence

from pipelines.classifier import StructureClassifier
from pipelines.model import (
    Classification,
    ColumnDefinition,
    DataSchema,
    DataType,
    DATE_WILDCARD,
    FieldSchema,
    FieldType,
    MappingTemplate,
)
from pipelines.rules import DEFAULT_RULE_SETS, FieldMappingRule, RuleSets

RIGHT_ALIGNED_TYPES = frozenset({"number", "currency", "percentage"})
CENTER_ALIGNED_TYPES = frozenset({"date", "datetime"})
_CURRENCY_FIELDS = frozenset({"price", "open", "high", "low", "close", "bid", "ask"})
_NUMBER_FIELDS = frozenset({"volume", "change", "lotSize", "bidSize", "askSize"})
_PRIMITIVE_TYPES = frozenset(
    {
        FieldType.STRING,
        FieldType.NUMBER,
        FieldType.BOOLEAN,
        FieldType.DATE,
        FieldType.DATETIME,
        FieldType.TIMESTAMP,
        FieldType.CURRENCY,
        FieldType.PERCENTAGE,
    }
)


class SourceMatch(NamedTuple):
    path: str
    schema: FieldSchema
    priority: int


def format_label(key: str) -> str:
    """``changePercent`` -> ``Change Percent``; ``percent_change`` -> ``Percent change``."""

    spaced = re.sub(r"(?<=[a-z0-9])([A-Z])", r" \1", key).replace("_", " ").strip()
    return spaced[:1].upper() + spaced[1:]


def infer_display_type(key: str) -> str:
    lowered = key.lower()
    if "date" in lowered:
        return "date"
    if "time" in lowered:
        return "datetime"
    if "percent" in lowered:
        return "percentage"
    if key in _CURRENCY_FIELDS:
        return "currency"
    if key in _NUMBER_FIELDS:
        return "number"
    return "string"


def column_alignment(display_type: str) -> str:
    if display_type in RIGHT_ALIGNED_TYPES:
        return "right"
    if display_type in CENTER_ALIGNED_TYPES:
        return "center"
    return "left"


def _exact_owners(
    rules: Sequence[FieldMappingRule], fields: Mapping[str, FieldSchema]
) -> dict[str, str]:
    """Source path -> the target whose pattern equals that field name."""

    owners: dict[str, str] = {}
    for rule in rules:
        for path, field_schema in fields.items():
            if path not in owners and rule.match_strength(field_schema.name) == 3:
                owners[path] = rule.target_field
    return owners


def find_source_field(
    rules: Iterable[FieldMappingRule],
    target_field: str,
    fields: Mapping[str, FieldSchema],
    *,
    exact_owners: Mapping[str, str] | None = None,
) -> SourceMatch | None:
    """Best source field for ``target_field`` among ``fields``.

    A candidate must match one of the rule's patterns by name and, when the
    rule declares ``required_type``, have a compatible detected type. The
    highest priority wins; ties go to the first candidate in scan order, which
    is equal names, then pattern-in-name, then name-in-pattern, each in sorted
    name order. A name-in-pattern match is dropped when the field name equals a
    pattern of another target (``bid`` is not ``bidSize``). ``exact_owners``
    defaults to the owners within ``rules``.
    """

    rules = tuple(rules)
    if exact_owners is None:
        exact_owners = _exact_owners(rules, fields)
    best: tuple[int, int, str, FieldSchema] | None = None
    for rule in rules:
        if rule.target_field != target_field:
            continue
        for path, field_schema in fields.items():
            if field_schema.name == DATE_WILDCARD:
                continue
            strength = rule.match_strength(field_schema.name)
            if not strength or not rule.accepts_type(field_schema.type):
                continue
            if strength == 1 and exact_owners.get(path, target_field) != target_field:
                continue
            candidate = (-rule.priority, -strength, path, field_schema)
            if best is None or candidate[:3] < best[:3]:
                best = candidate

    if best is None:
        return None
    return SourceMatch(path=best[2], schema=best[3], priority=-best[0])


class SchemaMapper:
    """Builds a :class:`MappingTemplate` for one source schema."""

    def __init__(
        self,
        schema: DataSchema,
        *,
        rule_sets: RuleSets = DEFAULT_RULE_SETS,
        classification: Classification | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.schema = schema
        self.rule_sets = rule_sets
        self.logger = logger or logging.getLogger(__name__)
        self._classification = classification

    def detect_data_structure(self) -> Classification:
        if self._classification is None:
            self._classification = StructureClassifier(logger=self.logger).classify(self.schema)
        return self._classification

    def data_level_fields(self, classification: Classification) -> dict[str, FieldSchema]:
        """Fields of one data record: the element, per-date object or root object."""

        fields = self.schema.mapping_fields
        if classification.columnar:
            return {
                name: field_schema.model_copy(update={"type": field_schema.array_item_type})
                for name, field_schema in fields.items()
                if field_schema.type is FieldType.ARRAY
                and field_schema.array_item_type in _PRIMITIVE_TYPES
            }

        current: Mapping[str, FieldSchema] = fields
        for segment in classification.data_path:
            field_schema = current.get(segment)
            if field_schema is None:
                return {}
            current = field_schema.object_schema or {}
        return dict(current)

    def metadata_fields(self) -> dict[str, FieldSchema]:
        """Metadata sections flattened one level; keys are dotted source paths."""

        flattened: dict[str, FieldSchema] = {}
        for name, field_schema in self.schema.metadata.items():
            if field_schema.type is FieldType.OBJECT and field_schema.object_schema:
                for inner_name, inner_schema in field_schema.object_schema.items():
                    flattened[f"{name}.{inner_name}"] = inner_schema
            else:
                flattened[name] = field_schema
        return flattened

    def map_rules(
        self,
        rules: Sequence[FieldMappingRule],
        fields: Mapping[str, FieldSchema],
        exact_owners: Mapping[str, str] | None = None,
    ) -> dict[str, str]:
        mapping: dict[str, str] = {}
        for target in dict.fromkeys(rule.target_field for rule in rules):
            match = find_source_field(rules, target, fields, exact_owners=exact_owners)
            if match:
                mapping[target] = match.path
        return mapping

    def generate_mapping_template(self) -> MappingTemplate:
        classification = self.detect_data_structure()
        fields = self.data_level_fields(classification)

        entity_mapping: dict[str, str] = {}
        time_mapping: dict[str, str] = {}
        quote_mapping: dict[str, str] | None = None
        if classification.columnar:
            price_mapping = self.map_rules(self.rule_sets.columnar, fields)
        else:
            # A field named exactly like a pattern belongs to that target in every rule-set.
            owners = _exact_owners(self.rule_sets.row_rules(), fields)
            entity_mapping = self.map_rules(self.rule_sets.entity, fields, owners)
            time_mapping = self.map_rules(self.rule_sets.time, fields, owners)
            price_mapping = self.map_rules(self.rule_sets.price, fields, owners)
            if classification.type in (DataType.QUOTE, DataType.TRENDING):
                quote_mapping = self.map_rules(self.rule_sets.quote_superset(), fields, owners)

        metadata_mapping = self.map_rules(self.rule_sets.metadata, self.metadata_fields())

        template = MappingTemplate(
            data_type=classification.type,
            data_path=list(classification.data_path),
            data_paths=[list(path) for path in classification.paths],
            is_array=classification.is_array,
            columnar=classification.columnar,
            entity_mapping=entity_mapping,
            time_mapping=time_mapping,
            price_mapping=price_mapping,
            quote_mapping=quote_mapping,
            metadata_mapping=metadata_mapping,
        )
        self.logger.debug(
            "Mapping template for %s: %s", classification.type.value, template.all_mappings()
        )
        return template

    def generate_column_definitions(
        self,
        template: MappingTemplate,
        leading: Sequence[tuple[str, str]] = (),
    ) -> list[ColumnDefinition]:
        """Columns for every mapped canonical field, after any implicit ``leading`` columns."""

        display_types = self.rule_sets.display_types()
        ordered: dict[str, str] = dict(leading)
        for target in template.all_mappings():
            ordered.setdefault(target, display_types.get(target) or infer_display_type(target))

        return [
            ColumnDefinition(
                key=key,
                label=format_label(key),
                type=display_type,
                align=column_alignment(display_type),
            )
            for key, display_type in ordered.items()
        ]


def generate_mapping_template(
    schema: DataSchema,
    *,
    rule_sets: RuleSets = DEFAULT_RULE_SETS,
    logger: logging.Logger | None = None,
) -> MappingTemplate:
    """Classify ``schema`` and map its fields onto the canonical vocabulary."""

    return SchemaMapper(schema, rule_sets=rule_sets, logger=logger).generate_mapping_template()


__all__ = [
    "SchemaMapper",
    "SourceMatch",
    "column_alignment",
    "find_source_field",
    "format_label",
    "generate_mapping_template",
    "infer_display_type",
]

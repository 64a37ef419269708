"""Primary entry point: raw JSON plus a source identifier in, ``TransformResult`` out."""

from __future__ import annotations

import logging
from typing import Any

from pipelines.errors import EmptySchemaError, TransformationError, UnclassifiableStructureError
from pipelines.mapper import SchemaMapper
from pipelines.model import DataType, TransformResult
from pipelines.rules import RuleSets, load_rule_sets
from pipelines.schema import DEFAULT_MAX_DEPTH, DEFAULT_TUPLE_MAX_LENGTH, SchemaGenerator
from pipelines.sources.registry import detect_source_identifier
from pipelines.transformer import DataTransformer, failure_result


class TransformationService:
    """Runs generation, classification, mapping and extraction for one payload at a time.

    Holds only read-only configuration, so one instance can serve concurrent
    callers.
    """

    def __init__(
        self,
        *,
        rule_sets: RuleSets | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        tuple_max_length: int = DEFAULT_TUPLE_MAX_LENGTH,
        logger: logging.Logger | None = None,
    ) -> None:
        self.rule_sets = rule_sets or load_rule_sets()
        self.logger = logger or logging.getLogger(__name__)
        self.generator = SchemaGenerator(
            max_depth=max_depth, tuple_max_length=tuple_max_length, logger=self.logger
        )

    def transform(self, raw: Any, source_identifier: str) -> TransformResult:
        self.logger.info(
            "Transforming %s payload (%s)", source_identifier, type(raw).__name__
        )
        try:
            schema = self.generator.generate(raw)
            if not schema.fields:
                raise EmptySchemaError("Could not generate schema from API response")

            mapper = SchemaMapper(schema, rule_sets=self.rule_sets, logger=self.logger)
            template = mapper.generate_mapping_template()
            if template.data_type is DataType.UNKNOWN:
                raise UnclassifiableStructureError(
                    "Could not recognize the response as a time series, quote or trending list"
                )

            transformer = DataTransformer(
                schema, source_identifier, rule_sets=self.rule_sets, logger=self.logger
            )
            return transformer.transform(raw, template)
        except TransformationError as exc:
            self.logger.warning("Transformation of %s failed: %s", source_identifier, exc.message)
            return failure_result(source_identifier, exc.message, exc.code)
        except Exception as exc:  # noqa: BLE001 - never propagate to callers
            self.logger.exception("Unexpected failure transforming %s payload", source_identifier)
            return failure_result(
                source_identifier, str(exc) or "Unknown transformation error"
            )

    def transform_url_response(self, raw: Any, url: str) -> TransformResult:
        """Like :meth:`transform`, labelling the result by the provider detected from ``url``."""

        return self.transform(raw, detect_source_identifier(url))


def transform(
    raw: Any,
    source_identifier: str,
    *,
    rule_sets: RuleSets | None = None,
    logger: logging.Logger | None = None,
) -> TransformResult:
    """Normalize ``raw`` into a :class:`FinancialDataset`; failures come back as ``success=False``."""

    return TransformationService(rule_sets=rule_sets, logger=logger).transform(raw, source_identifier)


__all__ = ["TransformationService", "detect_source_identifier", "transform"]

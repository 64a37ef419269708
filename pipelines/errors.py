"""Failure taxonomy for the transformation pipeline."""

from __future__ import annotations


class TransformationError(Exception):
    """Base error; ``code`` is surfaced to callers in the failure envelope."""

    code = "TRANSFORMATION_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class EmptySchemaError(TransformationError):
    """Input has no discoverable fields."""

    code = "EMPTY_SCHEMA"


class UnclassifiableStructureError(TransformationError):
    """A schema was generated but no canonical shape matched."""

    code = "UNCLASSIFIABLE_STRUCTURE"


class RuleConfigurationError(ValueError):
    """Raised when a mapping rule table cannot be loaded or validated."""


__all__ = [
    "EmptySchemaError",
    "RuleConfigurationError",
    "TransformationError",
    "UnclassifiableStructureError",
]

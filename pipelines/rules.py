"""Static field-mapping rule tables and structure signatures.

Rules are plain records grouped into rule-sets. Supporting a new provider is a
matter of adding patterns here (or in a JSON file passed to
:func:`load_rule_sets`), not of writing a parser.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pipelines.errors import RuleConfigurationError
from pipelines.model import DataType, FieldType

RULES_PATH_ENV_VAR = "FIELD_MAPPING_RULES_PATH"

# Shorter names (e.g. "c", "dp") would match inside almost any pattern.
MIN_REVERSE_MATCH_LENGTH = 3

logger = logging.getLogger(__name__)


class FieldMappingRule(BaseModel):
    """How to recognize the source field for one canonical field."""

    model_config = ConfigDict(frozen=True)

    target_field: str = Field(..., description="Canonical field name, e.g. 'price'.")
    source_patterns: tuple[str, ...] = Field(
        ..., min_length=1, description="Case-insensitive name fragments to match."
    )
    required_type: Optional[tuple[FieldType, ...]] = Field(
        default=None, description="Detected types a candidate must have, if set."
    )
    priority: int = Field(default=5, description="Higher wins when several rules match.")
    display_type: str = Field(default="string", description="Column display type.")
    exact: bool = Field(
        default=False, description="Match whole field names only (short aliases such as 'c')."
    )

    def match_strength(self, field_name: str) -> int:
        """3 for an equal name, 2 when a pattern occurs in the name, 1 when the name
        occurs in a pattern (names of three characters or more), else 0."""

        lowered = field_name.strip().lower()
        if not lowered:
            return 0
        patterns = [pattern.lower() for pattern in self.source_patterns]
        if lowered in patterns:
            return 3
        if self.exact:
            return 0
        if any(pattern in lowered for pattern in patterns):
            return 2
        if len(lowered) >= MIN_REVERSE_MATCH_LENGTH and any(lowered in pattern for pattern in patterns):
            return 1
        return 0

    def matches_name(self, field_name: str) -> bool:
        return self.match_strength(field_name) > 0

    def accepts_type(self, field_type: FieldType) -> bool:
        return self.required_type is None or field_type in self.required_type


class RuleSets(BaseModel):
    """All rule-sets consulted by the field mapper."""

    model_config = ConfigDict(frozen=True)

    entity: tuple[FieldMappingRule, ...] = ()
    price: tuple[FieldMappingRule, ...] = ()
    quote: tuple[FieldMappingRule, ...] = ()
    time: tuple[FieldMappingRule, ...] = ()
    metadata: tuple[FieldMappingRule, ...] = ()
    columnar: tuple[FieldMappingRule, ...] = ()

    def quote_superset(self) -> tuple[FieldMappingRule, ...]:
        return (*self.price, *self.quote)

    def row_rules(self) -> tuple[FieldMappingRule, ...]:
        """Rules that map fields of a data record, in column order."""

        return (*self.entity, *self.time, *self.price, *self.quote)

    def display_types(self) -> dict[str, str]:
        """Canonical field -> display type, first declaration wins."""

        result: dict[str, str] = {}
        for rule in (*self.entity, *self.time, *self.price, *self.quote, *self.columnar):
            result.setdefault(rule.target_field, rule.display_type)
        return result


_PRICE_TYPES = (FieldType.NUMBER, FieldType.CURRENCY)
_NUMBER = (FieldType.NUMBER,)
# Ten- or thirteen-digit counts are indistinguishable from epoch strings.
_COUNT_TYPES = (FieldType.NUMBER, FieldType.TIMESTAMP)
# Epoch numbers or strings, or ISO dates.
_STAMP_TYPES = (FieldType.NUMBER, FieldType.TIMESTAMP, FieldType.DATE, FieldType.DATETIME)


def _rule(
    target: str,
    patterns: Iterable[str],
    priority: int,
    required: tuple[FieldType, ...] | None = None,
    display: str = "string",
    exact: bool = False,
) -> FieldMappingRule:
    return FieldMappingRule(
        target_field=target,
        source_patterns=tuple(patterns),
        required_type=required,
        priority=priority,
        display_type=display,
        exact=exact,
    )


ENTITY_RULES: tuple[FieldMappingRule, ...] = (
    _rule("symbol", ("symbol", "ticker", "stock_symbol", "ticker_id"), 10),
    _rule("name", ("name", "company_name", "stock_name", "security_name", "description"), 10),
    _rule("exchange", ("exchange", "exchange_type", "market", "trading_exchange"), 9),
    _rule("isin", ("isin",), 10),
    _rule("cusip", ("cusip",), 10),
    _rule("ric", ("ric",), 10, exact=True),
    _rule("tickerId", ("ticker_id", "security_id"), 8),
    _rule("sector", ("sector", "industry_sector"), 9),
    _rule("industry", ("industry", "sub_industry"), 9),
    _rule("currency", ("currency", "currency_code"), 9),
    _rule("lotSize", ("lot_size", "lotsize", "min_lot"), 9, _NUMBER, "number"),
)

# Alpha Vantage numbers its keys ("1. open"); substring matching covers those.
PRICE_RULES: tuple[FieldMappingRule, ...] = (
    _rule("open", ("open", "opening_price"), 10, _PRICE_TYPES, "currency"),
    _rule("high", ("high", "day_high", "high_price"), 10, _PRICE_TYPES, "currency"),
    _rule("low", ("low", "day_low", "low_price"), 10, _PRICE_TYPES, "currency"),
    _rule("close", ("close", "closing_price", "last_price"), 10, _PRICE_TYPES, "currency"),
    _rule("volume", ("volume", "trading_volume"), 10, _COUNT_TYPES, "number"),
    _rule(
        "price",
        ("price", "current_price", "last", "ltp", "last_traded_price"),
        10,
        _PRICE_TYPES,
        "currency",
    ),
    _rule(
        "adjustedClose",
        ("adjusted_close", "adjusted close", "adj_close"),
        9,
        _PRICE_TYPES,
        "currency",
    ),
)

QUOTE_RULES: tuple[FieldMappingRule, ...] = (
    _rule("change", ("change", "net_change", "price_change", "absolute_change"), 10, _NUMBER, "number"),
    _rule(
        "changePercent",
        ("change_percent", "percent_change", "change percent", "change %", "change%", "pct_change"),
        10,
        (FieldType.NUMBER, FieldType.PERCENTAGE),
        "percentage",
    ),
    _rule("bid", ("bid", "bid_price"), 10, _PRICE_TYPES, "currency"),
    _rule("ask", ("ask", "ask_price", "offer"), 10, _PRICE_TYPES, "currency"),
    _rule("bidSize", ("bid_size", "bid_quantity"), 9, _NUMBER, "number"),
    _rule("askSize", ("ask_size", "ask_quantity"), 9, _NUMBER, "number"),
    _rule(
        "upperCircuitLimit",
        ("upper_circuit_limit", "up_circuit_limit", "upper_limit"),
        9,
        _PRICE_TYPES,
        "currency",
    ),
    _rule(
        "lowerCircuitLimit",
        ("lower_circuit_limit", "low_circuit_limit", "lower_limit"),
        9,
        _PRICE_TYPES,
        "currency",
    ),
    _rule("week52High", ("52_week_high", "52week_high", "year_high"), 9, _PRICE_TYPES, "currency"),
    _rule("week52Low", ("52_week_low", "52week_low", "year_low"), 9, _PRICE_TYPES, "currency"),
)

TIME_RULES: tuple[FieldMappingRule, ...] = (
    _rule(
        "date",
        ("date", "trading_date", "timestamp", "time"),
        10,
        (FieldType.DATE, FieldType.DATETIME),
        "date",
    ),
    _rule("time", ("time", "trading_time"), 9, (FieldType.STRING, FieldType.NUMBER), "string"),
)

METADATA_RULES: tuple[FieldMappingRule, ...] = (
    _rule("timezone", ("timezone", "time zone"), 9),
    _rule("lastRefreshed", ("last_refreshed", "last refreshed", "updated_at"), 9),
    _rule("symbol", ("symbol",), 9),
    _rule("information", ("information",), 8),
)

# Parallel arrays such as Finnhub candles ({"o": [...], "c": [...], "t": [...]}).
COLUMNAR_RULES: tuple[FieldMappingRule, ...] = (
    _rule("open", ("o", "open"), 10, _NUMBER, "currency", exact=True),
    _rule("high", ("h", "high"), 10, _NUMBER, "currency", exact=True),
    _rule("low", ("l", "low"), 10, _NUMBER, "currency", exact=True),
    _rule("close", ("c", "close"), 10, _NUMBER, "currency", exact=True),
    _rule("volume", ("v", "volume"), 10, _NUMBER, "number", exact=True),
    _rule("timestamp", ("t", "timestamp", "time"), 10, _STAMP_TYPES, "datetime", exact=True),
)

DEFAULT_RULE_SETS = RuleSets(
    entity=ENTITY_RULES,
    price=PRICE_RULES,
    quote=QUOTE_RULES,
    time=TIME_RULES,
    metadata=METADATA_RULES,
    columnar=COLUMNAR_RULES,
)


@dataclass(frozen=True)
class StructureSignature:
    """A payload passes when at least ``threshold`` distinct terms occur in its field names."""

    name: str
    terms: tuple[str, ...]
    threshold: int

    def matched_terms(self, field_names: Iterable[str]) -> set[str]:
        lowered = [name.lower() for name in field_names]
        return {term for term in self.terms if any(term in name for name in lowered)}

    def matches(self, field_names: Iterable[str]) -> bool:
        return len(self.matched_terms(field_names)) >= self.threshold


OHLCV_SIGNATURE = StructureSignature("ohlcv", ("open", "high", "low", "close", "volume"), 4)
TRENDING_SIGNATURE = StructureSignature(
    "trending", ("price", "change", "percent_change", "company_name", "ticker"), 3
)
QUOTE_SIGNATURE = StructureSignature("quote", ("price", "bid", "ask", "change", "volume"), 2)

# Exact names of parallel OHLCV arrays, mapped onto the OHLCV signature terms.
COLUMNAR_OHLCV_ALIASES: dict[str, str] = {
    "o": "open",
    "h": "high",
    "l": "low",
    "c": "close",
    "v": "volume",
    "open": "open",
    "high": "high",
    "low": "low",
    "close": "close",
    "volume": "volume",
}

# Canonical fields whose absence is reported as a warning, per data type.
EXPECTED_FIELDS: dict[DataType, tuple[str, ...]] = {
    DataType.TIME_SERIES: ("open", "high", "low", "close", "volume"),
    DataType.TRENDING: ("symbol", "price", "change"),
    DataType.QUOTE: ("price", "change"),
}


def load_rule_sets(path: str | os.PathLike[str] | None = None) -> RuleSets:
    """Load rule-sets from a JSON file, or return the built-in tables.

    The JSON document mirrors :class:`RuleSets`: an object with optional
    ``entity``, ``price``, ``quote``, ``time``, ``metadata`` and ``columnar``
    lists of rule records. Missing rule-sets fall back to the built-in ones.
    """

    resolved = path or os.getenv(RULES_PATH_ENV_VAR)
    if not resolved:
        return DEFAULT_RULE_SETS

    rules_path = Path(resolved)
    try:
        document = json.loads(rules_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise RuleConfigurationError(f"Cannot read rule file {rules_path}: {exc}") from exc
    if not isinstance(document, dict):
        raise RuleConfigurationError(f"Rule file {rules_path} must contain a JSON object.")

    merged = DEFAULT_RULE_SETS.model_dump()
    unknown = set(document) - set(merged)
    if unknown:
        raise RuleConfigurationError(
            f"Unknown rule-sets in {rules_path}: {', '.join(sorted(unknown))}"
        )
    merged.update(document)
    try:
        rule_sets = RuleSets.model_validate(merged)
    except ValidationError as exc:
        raise RuleConfigurationError(f"Invalid rule file {rules_path}: {exc}") from exc

    logger.info("Loaded field mapping rules from %s (%s).", rules_path, ", ".join(sorted(document)))
    return rule_sets


__all__ = [
    "COLUMNAR_OHLCV_ALIASES",
    "DEFAULT_RULE_SETS",
    "EXPECTED_FIELDS",
    "FieldMappingRule",
    "OHLCV_SIGNATURE",
    "QUOTE_SIGNATURE",
    "RULES_PATH_ENV_VAR",
    "RuleSets",
    "StructureSignature",
    "TRENDING_SIGNATURE",
    "load_rule_sets",
]

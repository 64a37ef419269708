"""Runtime settings read from the environment (and ``.env`` via python-dotenv)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import load_dotenv

from pipelines.common import DEFAULT_TIMEOUT_SECONDS
from pipelines.rules import RULES_PATH_ENV_VAR, RuleSets, load_rule_sets
from pipelines.schema import DEFAULT_MAX_DEPTH, DEFAULT_TUPLE_MAX_LENGTH


@dataclass(frozen=True)
class PipelineSettings:
    """Configuration shared by the CLI and the HTTP API."""

    log_level: str = "INFO"
    rules_path: str | None = None
    schema_max_depth: int = DEFAULT_MAX_DEPTH
    tuple_max_length: int = DEFAULT_TUPLE_MAX_LENGTH
    fetch_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def rule_sets(self) -> RuleSets:
        return load_rule_sets(self.rules_path)


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def load_settings(env: Mapping[str, str] | None = None) -> PipelineSettings:
    """Build settings from ``env`` (defaults to ``os.environ`` after loading ``.env``)."""

    if env is None:
        load_dotenv()
        env = os.environ

    timeout_raw = env.get("FETCH_TIMEOUT_SECONDS")
    try:
        timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT_SECONDS
    except ValueError as exc:
        raise ValueError(f"FETCH_TIMEOUT_SECONDS must be a number, got {timeout_raw!r}") from exc

    return PipelineSettings(
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        rules_path=env.get(RULES_PATH_ENV_VAR) or None,
        schema_max_depth=_int_setting(env, "SCHEMA_MAX_DEPTH", DEFAULT_MAX_DEPTH),
        tuple_max_length=_int_setting(env, "TUPLE_MAX_LENGTH", DEFAULT_TUPLE_MAX_LENGTH),
        fetch_timeout_seconds=timeout,
    )


__all__ = ["PipelineSettings", "load_settings"]

"""Transform saved or freshly fetched provider responses from the command line."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Iterable, TextIO

import httpx

from jobs.config import PipelineSettings, load_settings
from pipelines.common import fetch_json, parse_header
from pipelines.model import TransformResult
from pipelines.schema import SchemaGenerator, print_schema
from pipelines.service import TransformationService
from pipelines.sources.registry import detect_source_identifier
from pipelines.views import render_view

logger = logging.getLogger(__name__)


def configure_logging(settings: PipelineSettings) -> None:
    logging.basicConfig(level=settings.log_level)


def build_service(settings: PipelineSettings) -> TransformationService:
    return TransformationService(
        rule_sets=settings.rule_sets(),
        max_depth=settings.schema_max_depth,
        tuple_max_length=settings.tuple_max_length,
    )


def load_payload(path: str | Path) -> Any:
    """Decode a JSON file; ``-`` reads standard input."""

    if str(path) == "-":
        return json.load(sys.stdin)
    with Path(path).open(encoding="utf-8") as handle:
        return json.load(handle)


def _emit(payload: Any, out: TextIO | None) -> None:
    out = out or sys.stdout
    out.write(json.dumps(payload, indent=2, default=str))
    out.write("\n")


def emit_result(result: TransformResult, view: str | None, out: TextIO | None = None) -> int:
    """Write the result (or one view of its dataset); returns the process exit code."""

    if view and result.success:
        _emit(render_view(result.data, view), out)
    else:
        _emit(result.model_dump(mode="json"), out)
    if not result.success:
        logger.warning("Transformation failed (%s): %s", result.error_code, result.error)
        return 1
    return 0


def transform_file(
    path: str | Path,
    *,
    source: str | None = None,
    view: str | None = None,
    settings: PipelineSettings | None = None,
    out: TextIO | None = None,
) -> int:
    settings = settings or load_settings()
    raw = load_payload(path)
    source_id = source or Path(str(path)).stem or "local_file"
    result = build_service(settings).transform(raw, source_id)
    return emit_result(result, view, out)


async def fetch_and_transform_async(
    url: str,
    *,
    source: str | None = None,
    headers: Iterable[str] = (),
    settings: PipelineSettings | None = None,
) -> TransformResult:
    """Fetch ``url`` and transform the decoded body."""

    settings = settings or load_settings()
    request_headers = dict(parse_header(item) for item in headers)
    source_id = source or detect_source_identifier(url)
    logger.info("Fetching %s as %s", url, source_id)
    raw = await fetch_json(
        url, headers=request_headers or None, timeout=settings.fetch_timeout_seconds
    )
    return build_service(settings).transform(raw, source_id)


def fetch_and_transform(
    url: str,
    *,
    source: str | None = None,
    view: str | None = None,
    headers: Iterable[str] = (),
    settings: PipelineSettings | None = None,
    out: TextIO | None = None,
) -> int:
    try:
        result = asyncio.run(
            fetch_and_transform_async(url, source=source, headers=headers, settings=settings)
        )
    except httpx.HTTPError as exc:
        logger.error("Fetching %s failed: %s", url, exc)
        return 1
    return emit_result(result, view, out)


def describe_schema(
    path: str | Path, *, settings: PipelineSettings | None = None, out: TextIO | None = None
) -> int:
    settings = settings or load_settings()
    generator = SchemaGenerator(
        max_depth=settings.schema_max_depth, tuple_max_length=settings.tuple_max_length
    )
    (out or sys.stdout).write(print_schema(generator.generate(load_payload(path))))
    return 0


__all__ = [
    "build_service",
    "configure_logging",
    "describe_schema",
    "emit_result",
    "fetch_and_transform",
    "fetch_and_transform_async",
    "load_payload",
    "transform_file",
]

"""HTTP helper for retrieving provider responses ahead of transformation.

The transformation pipeline itself never performs I/O; only the CLI ``fetch``
command goes through here.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx
from tenacity import before_sleep_log, retry, retry_if_exception, stop_after_attempt, wait_exponential

DEFAULT_TIMEOUT_SECONDS = 30.0
_DEFAULT_WAIT = wait_exponential(min=1, max=16)
_DEFAULT_STOP = stop_after_attempt(5)

logger = logging.getLogger(__name__)

Headers = Mapping[str, str] | None
Params = Mapping[str, Any] | None


def _is_transient(exc: BaseException) -> bool:
    """Transport errors, 429 and 5xx are retried; other HTTP errors are final."""

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return isinstance(exc, httpx.TransportError)


@retry(
    wait=_DEFAULT_WAIT,
    stop=_DEFAULT_STOP,
    retry=retry_if_exception(_is_transient),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def fetch_json(
    url: str,
    *,
    headers: Headers = None,
    params: Params = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Any:
    """GET ``url`` and return the decoded JSON payload.

    Retries with exponential backoff on transient failures.
    """

    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.get(url, headers=headers, params=params)

    response.raise_for_status()
    return response.json()


def parse_header(raw: str) -> tuple[str, str]:
    """``"X-Api-Key: abc"`` -> ``("X-Api-Key", "abc")``."""

    name, separator, value = raw.partition(":")
    if not separator or not name.strip():
        raise ValueError(f"Header must use the format 'Name: value', got {raw!r}")
    return name.strip(), value.strip()


__all__ = ["DEFAULT_TIMEOUT_SECONDS", "fetch_json", "parse_header"]

"""Known data providers and source-identifier detection from request URLs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable
from urllib.parse import urlsplit

from pipelines.sources.alpha_vantage import ALPHA_VANTAGE_BASE_URL
from pipelines.sources.finnhub import FINNHUB_BASE_URL
from pipelines.sources.indian_api import INDIAN_API_BASE_URL

UNKNOWN_SOURCE = "unknown_api"
DEFAULT_SYMBOL = "STOCK"
_SYMBOL_PATTERNS = (
    re.compile(r"stock_name=([^&]+)"),
    re.compile(r"symbol=([^&]+)"),
)


@dataclass(frozen=True)
class ProviderConfig:
    """A provider recognized by a fragment of its request URL."""

    key: str
    url_fragment: str
    name: str
    base_url: str
    # (url fragment, source id) refinements checked before ``key``.
    endpoints: tuple[tuple[str, str], ...] = ()

    def source_identifier(self, url: str) -> str:
        for fragment, source_id in self.endpoints:
            if fragment in url:
                return source_id
        return self.key


PROVIDERS: tuple[ProviderConfig, ...] = (
    ProviderConfig(
        key="alpha_vantage",
        url_fragment="alphavantage",
        name="Alpha Vantage",
        base_url=ALPHA_VANTAGE_BASE_URL,
    ),
    ProviderConfig(
        key="indian_stock_api",
        url_fragment="indianapi",
        name="Indian Stock API",
        base_url=INDIAN_API_BASE_URL,
        endpoints=(("historical", "indian_historical"), ("trending", "indian_trending")),
    ),
    ProviderConfig(
        key="finnhub",
        url_fragment="finnhub",
        name="Finnhub",
        base_url=FINNHUB_BASE_URL,
    ),
)


def get_provider_by_key(key: str) -> ProviderConfig | None:
    for provider in PROVIDERS:
        if provider.key == key:
            return provider
    return None


def iter_providers(keys: Iterable[str] | None = None) -> Iterable[ProviderConfig]:
    if keys is None:
        return PROVIDERS
    return tuple(provider for provider in map(get_provider_by_key, keys) if provider)


def detect_source_identifier(url: str) -> str:
    """Known providers by URL fragment, else the hostname with dots as underscores."""

    for provider in PROVIDERS:
        if provider.url_fragment in url:
            return provider.source_identifier(url)
    try:
        hostname = urlsplit(url).hostname if url else None
    except ValueError:
        return UNKNOWN_SOURCE
    if not hostname:
        return UNKNOWN_SOURCE
    return hostname.replace(".", "_")


def get_symbol_from_url(url: str) -> str:
    for pattern in _SYMBOL_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return DEFAULT_SYMBOL


__all__ = [
    "DEFAULT_SYMBOL",
    "PROVIDERS",
    "ProviderConfig",
    "UNKNOWN_SOURCE",
    "detect_source_identifier",
    "get_provider_by_key",
    "get_symbol_from_url",
    "iter_providers",
]

from __future__ import annotations

from fastapi import Request

from app.core.hls_proxy import HlsCache, UpstreamFetcher
from app.core.resolver import StreamResolver
from app.providers.registry import ProviderRegistry


def get_hls_cache(request: Request) -> HlsCache:
    return request.app.state.hls_cache


def get_fetcher(request: Request) -> UpstreamFetcher:
    return request.app.state.fetcher


def get_resolver(request: Request) -> StreamResolver:
    return request.app.state.resolver


def get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.registry

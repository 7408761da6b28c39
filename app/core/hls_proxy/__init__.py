from .types import (
    CacheEntry,
    MediaKind,
    UpstreamResponse,
    cache_key,
    is_hls_content_type,
    media_kind,
)
from .errors import InvalidRequest, NetworkError, ProxyError, UpstreamError
from .hls import percent_encode, rewrite, rewrite_hls_playlist
from .urls import (
    build_proxy_url,
    build_serverless_url,
    origin_of,
    proxy_prefix,
    public_origin,
    referer_suffix,
    serverless_rewriter,
    unwrap_proxy_url,
    validate_upstream_url,
)
from .upstream import UpstreamFetcher, redact_upstream
from .cache import DiskStore, HlsCache, MemoryStore


__all__ = [
    "CacheEntry",
    "MediaKind",
    "UpstreamResponse",
    "cache_key",
    "is_hls_content_type",
    "media_kind",
    "InvalidRequest",
    "NetworkError",
    "ProxyError",
    "UpstreamError",
    "percent_encode",
    "rewrite",
    "rewrite_hls_playlist",
    "build_proxy_url",
    "build_serverless_url",
    "origin_of",
    "proxy_prefix",
    "public_origin",
    "referer_suffix",
    "serverless_rewriter",
    "unwrap_proxy_url",
    "validate_upstream_url",
    "UpstreamFetcher",
    "redact_upstream",
    "DiskStore",
    "HlsCache",
    "MemoryStore",
]

from __future__ import annotations

from contextlib import asynccontextmanager

from loguru import logger
from fastapi import FastAPI

from app.config import (
    HLS_CACHE_DIR,
    HLS_DISK_CACHE_ENABLED,
    HLS_MANIFEST_TTL_SECONDS,
    HLS_MEMORY_MAX_ENTRIES,
    HLS_SEGMENT_TTL_SECONDS,
    PROVIDER_ORDER,
    PROVIDER_TIMEOUT_SECONDS,
    PROVIDERS_DISABLED,
)
from app.core.hls_proxy import DiskStore, HlsCache, MemoryStore, UpstreamFetcher
from app.core.resolver import StreamResolver
from app.providers import build_default_registry


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup: building upstream fetcher, HLS cache and providers.")
    fetcher = UpstreamFetcher()

    disk = None
    if HLS_DISK_CACHE_ENABLED:
        try:
            disk = DiskStore(HLS_CACHE_DIR)
        except OSError as e:
            logger.warning(f"HLS disk cache unavailable at {HLS_CACHE_DIR}: {e}")
    else:
        logger.info("HLS disk cache disabled (HLS_DISK_CACHE_ENABLED=0)")

    app.state.fetcher = fetcher
    app.state.hls_cache = HlsCache(
        fetcher,
        memory=MemoryStore(HLS_MEMORY_MAX_ENTRIES),
        disk=disk,
        manifest_ttl=HLS_MANIFEST_TTL_SECONDS,
        segment_ttl=HLS_SEGMENT_TTL_SECONDS,
    )
    app.state.registry = build_default_registry(
        fetcher, order=PROVIDER_ORDER, disabled=PROVIDERS_DISABLED
    )
    app.state.resolver = StreamResolver(
        app.state.registry, timeout=PROVIDER_TIMEOUT_SECONDS
    )
    logger.info(
        f"Providers ready: {len(app.state.registry)} registered; "
        f"disk cache: {disk.directory if disk else 'off'}"
    )

    try:
        yield
    finally:
        logger.info("Application shutdown: closing upstream client.")
        await fetcher.aclose()

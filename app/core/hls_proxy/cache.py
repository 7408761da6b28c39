from __future__ import annotations

import json
import os
from pathlib import Path
import tempfile
import time
from typing import Callable, Optional, Protocol

import anyio
from loguru import logger

from .types import (
    CacheEntry,
    MediaKind,
    UpstreamResponse,
    cache_key,
    cacheable_headers,
    is_hls_content_type,
    media_kind,
)
from .upstream import redact_upstream


class Fetcher(Protocol):
    async def fetch(
        self, url: str, *, referer: Optional[str] = None
    ) -> UpstreamResponse: ...


class MemoryStore:
    """
    Process-local map of cache key -> CacheEntry.

    Expired entries are dropped on lookup and on every insert. When
    `max_entries` is set, the oldest insertions are evicted past that count.
    Only touched from the event loop, so no locking is needed.
    """

    def __init__(self, max_entries: Optional[int] = None) -> None:
        self._data: dict[str, CacheEntry] = {}
        self.max_entries = max_entries if max_entries and max_entries > 0 else None

    def get(self, key: str, now: float) -> Optional[CacheEntry]:
        entry = self._data.get(key)
        if entry is None:
            logger.trace("Memory cache miss for {}", key)
            return None
        if not entry.is_fresh(now):
            logger.debug("Memory cache expired for {}", key)
            self._data.pop(key, None)
            return None
        logger.trace("Memory cache hit for {}", key)
        return entry

    def prune(self, now: float) -> int:
        expired = [k for k, e in self._data.items() if not e.is_fresh(now)]
        for key in expired:
            del self._data[key]
        if expired:
            logger.debug("Memory cache pruned {} expired entries", len(expired))
        return len(expired)

    def set(self, entry: CacheEntry, now: float) -> None:
        logger.trace("Memory cache set for {}", entry.key)
        self.prune(now)
        self._data.pop(entry.key, None)
        self._data[entry.key] = entry
        if self.max_entries is None:
            return
        while len(self._data) > self.max_entries:
            oldest = next(iter(self._data))
            logger.trace("Memory cache evicting {}", oldest)
            del self._data[oldest]

    def __len__(self) -> int:
        return len(self._data)


def _atomic_write(path: Path, data: bytes) -> None:
    """Write `data` to a temp file beside `path`, then rename it into place."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


class DiskStore:
    """
    On-disk blob store: `<key>.bin` holds the payload, `<key>.json` holds
    `{"headers": {...}, "expires": <epoch-ms>}`.

    The sidecar is written last, so a payload without valid metadata is never
    considered a hit.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _paths(self, key: str) -> tuple[Path, Path]:
        return self.directory / f"{key}.bin", self.directory / f"{key}.json"

    def read(self, key: str, now: float) -> Optional[CacheEntry]:
        data_path, meta_path = self._paths(key)
        if not data_path.exists() or not meta_path.exists():
            return None
        try:
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
            expires_at = float(meta["expires"]) / 1000.0
            headers = dict(meta.get("headers") or {})
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Ignoring unreadable cache sidecar {}: {}", meta_path.name, exc)
            return None
        if expires_at <= now:
            logger.debug("Disk cache expired for {}", key)
            return None
        try:
            payload = data_path.read_bytes()
        except OSError as exc:
            logger.warning("Ignoring unreadable cache payload {}: {}", data_path.name, exc)
            return None
        return CacheEntry(key=key, payload=payload, headers=headers, expires_at=expires_at)

    def write(self, entry: CacheEntry) -> None:
        data_path, meta_path = self._paths(entry.key)
        meta = {"headers": entry.headers, "expires": int(entry.expires_at * 1000)}
        _atomic_write(data_path, entry.payload)
        _atomic_write(meta_path, json.dumps(meta).encode("utf-8"))


class HlsCache:
    """
    Two-tier cache in front of an upstream fetcher.

    Manifests live in memory only with a short TTL; segments are looked up in
    memory, then on disk, and are written to both with a long TTL. Any other
    resource is kept in memory with the segment TTL, unless the upstream
    labels it as an HLS playlist, in which case it is treated as a manifest.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        memory: Optional[MemoryStore] = None,
        disk: Optional[DiskStore] = None,
        manifest_ttl: float = 30.0,
        segment_ttl: float = 3600.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._fetcher = fetcher
        self.memory = memory if memory is not None else MemoryStore()
        self.disk = disk
        self.manifest_ttl = manifest_ttl
        self.segment_ttl = segment_ttl
        self._clock = clock

    def ttl_for(self, kind: MediaKind) -> float:
        if kind is MediaKind.MANIFEST:
            return self.manifest_ttl
        return self.segment_ttl

    async def _read_disk(self, key: str, now: float) -> Optional[CacheEntry]:
        if self.disk is None:
            return None
        return await anyio.to_thread.run_sync(self.disk.read, key, now)

    async def _write_disk(self, entry: CacheEntry) -> None:
        if self.disk is None:
            return
        try:
            await anyio.to_thread.run_sync(self.disk.write, entry)
        except OSError as exc:
            logger.warning("Disk cache write failed for {}: {}", entry.key, exc)

    async def fetch_with_cache(
        self,
        url: str,
        ttl: Optional[float] = None,
        *,
        referer: Optional[str] = None,
    ) -> CacheEntry:
        """
        Return the cached entry for `url`, fetching it upstream on a miss.

        The kind comes from the URL suffix; a suffix-less response served with
        an HLS content type is cached as a manifest. An explicit `ttl`
        overrides the per-kind default.

        Raises UpstreamError / NetworkError from the fetcher unchanged.
        """
        kind = media_kind(url)
        key = cache_key(url)
        now = self._clock()

        entry = self.memory.get(key, now)
        if entry is not None:
            logger.debug("HLS cache hit (memory) kind={} key={}", kind.value, key)
            return entry

        if kind is MediaKind.SEGMENT:
            entry = await self._read_disk(key, now)
            if entry is not None:
                logger.debug("HLS cache hit (disk) key={}", key)
                self.memory.set(entry, now)
                return entry

        logger.debug(
            "HLS cache miss kind={} upstream={}", kind.value, redact_upstream(url)
        )
        response = await self._fetcher.fetch(url, referer=referer)
        headers = cacheable_headers(response.headers)
        if kind is MediaKind.OTHER and is_hls_content_type(headers["content-type"]):
            logger.debug("Treating {} as a manifest by content type", key)
            kind = MediaKind.MANIFEST
        now = self._clock()
        entry = CacheEntry(
            key=key,
            payload=response.content,
            headers=headers,
            expires_at=now + (self.ttl_for(kind) if ttl is None else ttl),
            url=response.url or url,
        )
        self.memory.set(entry, now)
        if kind is MediaKind.SEGMENT:
            await self._write_disk(entry)
        return entry

    def stats(self) -> dict[str, object]:
        return {
            "memory_entries": len(self.memory),
            "disk_directory": str(self.disk.directory) if self.disk else None,
        }

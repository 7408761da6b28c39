from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import hashlib
from typing import Mapping, Optional
from urllib.parse import urlsplit

_MANIFEST_SUFFIXES = (".m3u8", ".m3u")
_SEGMENT_SUFFIXES = (".ts", ".m4s", ".mp4", ".aac", ".m4a", ".mp3")

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_CACHE_CONTROL = "public, max-age=0"
HLS_CONTENT_TYPE = "application/vnd.apple.mpegurl"
_HLS_CONTENT_TYPES = {
    "application/vnd.apple.mpegurl",
    "application/x-mpegurl",
    "audio/mpegurl",
}


class MediaKind(str, Enum):
    MANIFEST = "manifest"
    SEGMENT = "segment"
    OTHER = "other"


def media_kind(url: str) -> MediaKind:
    """
    Classify an upstream URL by the suffix of its path (query ignored).
    """
    path = urlsplit(url).path.lower()
    if path.endswith(_MANIFEST_SUFFIXES):
        return MediaKind.MANIFEST
    if path.endswith(_SEGMENT_SUFFIXES):
        return MediaKind.SEGMENT
    return MediaKind.OTHER


def is_hls_content_type(content_type: Optional[str]) -> bool:
    """True for the content types origins use to label HLS playlists."""
    if not content_type:
        return False
    return content_type.split(";", 1)[0].strip().lower() in _HLS_CONTENT_TYPES


def cache_key(url: str) -> str:
    """
    Deterministic cache key for a fully resolved upstream URL (SHA-1 hex).
    """
    return hashlib.sha1(url.encode("utf-8")).hexdigest()


def cacheable_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """
    Pick the response headers worth echoing back from a cached entry.
    """
    lowered = {k.lower(): v for k, v in headers.items()}
    return {
        "content-type": lowered.get("content-type") or DEFAULT_CONTENT_TYPE,
        "cache-control": lowered.get("cache-control") or DEFAULT_CACHE_CONTROL,
    }


@dataclass(frozen=True)
class UpstreamResponse:
    """A fully buffered upstream response."""

    url: str
    status: int
    content: bytes
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CacheEntry:
    """
    Cached upstream payload plus the headers to replay with it.

    `expires_at` is an absolute epoch timestamp in seconds; the entry is dead
    once the clock reaches it.
    `url` is the upstream URL the payload finally came from, after redirects.
    """

    key: str
    payload: bytes
    headers: dict[str, str]
    expires_at: float
    url: Optional[str] = None

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", DEFAULT_CONTENT_TYPE)

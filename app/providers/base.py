from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlsplit


class StreamType(str, Enum):
    HLS = "hls"
    MP4 = "mp4"
    IFRAME = "iframe"


class ProviderKind(str, Enum):
    """Capability tag for a provider variant."""

    EMBED = "embed"  # formats a fixed embed URL
    SCRAPE = "scrape"  # fetches an embed page and digs out the media URL
    DIRECT = "direct"  # caller supplied a manifest URL
    CUSTOM = "custom"  # caller supplied an embed URL


class ProviderFailure(Exception):
    """A single provider could not produce a stream; resolution moves on."""

    def __init__(self, provider_key: str, reason: str) -> None:
        self.provider_key = provider_key
        self.reason = reason
        super().__init__(f"{provider_key}: {reason}")


def infer_stream_type(url: str) -> StreamType:
    """Guess the stream type from the URL path extension."""
    path = urlsplit(url).path.lower()
    if path.endswith(".m3u8") or ".m3u8" in url.lower():
        return StreamType.HLS
    if path.endswith(".mp4"):
        return StreamType.MP4
    return StreamType.IFRAME


@dataclass(frozen=True)
class SubtitleTrack:
    lang: str
    url: str

    def to_dict(self) -> Dict[str, str]:
        return {"lang": self.lang, "url": self.url}


@dataclass(frozen=True)
class StreamSource:
    url: str
    quality: str = "auto"
    type: StreamType = StreamType.IFRAME

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "quality": self.quality, "type": self.type.value}


@dataclass(frozen=True)
class StreamResult:
    """Normalized outcome of one provider attempt (or of a whole resolution).

    Attributes:
        success: Whether `url` is usable.
        url: Playable manifest/file URL (possibly proxy-wrapped) or iframe embed URL.
        type: How the UI should play `url`.
        provider: Human-readable provider name for diagnostics and the UI badge.
        quality: Advertised quality label, e.g. '1080p' or 'auto'.
        subtitles: Known subtitle tracks.
        sources: Alternative sources the UI may fall back to.
        languages: Advertised audio languages.
        error: Failure reason when `success` is False.
    """

    success: bool
    url: str = ""
    type: Optional[StreamType] = None
    provider: str = ""
    quality: Optional[str] = None
    subtitles: Tuple[SubtitleTrack, ...] = ()
    sources: Tuple[StreamSource, ...] = ()
    languages: Tuple[str, ...] = ()
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str, *, provider: str = "") -> "StreamResult":
        return cls(success=False, provider=provider, error=error)

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            out: Dict[str, Any] = {"success": False, "error": self.error or "unavailable"}
            if self.provider:
                out["provider"] = self.provider
            return out
        return {
            "success": True,
            "url": self.url,
            "type": (self.type or infer_stream_type(self.url)).value,
            "provider": self.provider,
            "quality": self.quality,
            "subtitles": [s.to_dict() for s in self.subtitles],
            "sources": [s.to_dict() for s in self.sources],
            "languages": list(self.languages),
        }


def _coerce_type(raw: Any, url: str) -> StreamType:
    if isinstance(raw, StreamType):
        return raw
    try:
        return StreamType(str(raw).strip().lower())
    except ValueError:
        return infer_stream_type(url)


def _coerce_subtitles(raw: Any) -> Tuple[SubtitleTrack, ...]:
    tracks: List[SubtitleTrack] = []
    for item in raw or ():
        if isinstance(item, SubtitleTrack):
            tracks.append(item)
        elif isinstance(item, str):
            tracks.append(SubtitleTrack(lang="Unknown", url=item))
        elif isinstance(item, dict):
            url = item.get("url") or item.get("file")
            if url:
                lang = item.get("lang") or item.get("language") or "Unknown"
                tracks.append(SubtitleTrack(lang=str(lang), url=str(url)))
    return tuple(tracks)


def _coerce_sources(raw: Any) -> Tuple[StreamSource, ...]:
    sources: List[StreamSource] = []
    for item in raw or ():
        if isinstance(item, StreamSource):
            sources.append(item)
        elif isinstance(item, dict):
            url = item.get("url") or item.get("src") or item.get("file")
            if url:
                sources.append(
                    StreamSource(
                        url=str(url),
                        quality=str(item.get("quality") or "auto"),
                        type=_coerce_type(item.get("type"), str(url)),
                    )
                )
    return tuple(sources)


def _coerce_languages(raw: Dict[str, Any]) -> Tuple[str, ...]:
    seen: Dict[str, None] = {}
    for item in list(raw.get("audioTracks") or []) + list(raw.get("languages") or []):
        if isinstance(item, str):
            seen.setdefault(item, None)
        elif isinstance(item, dict) and item.get("lang"):
            seen.setdefault(str(item["lang"]), None)
    return tuple(seen)


def coerce_stream_result(raw: Any, provider_name: str) -> StreamResult:
    """Normalize loosely shaped provider output into a StreamResult.

    Accepts a StreamResult, a mapping using either `url` or `src`, or None.
    A missing `type` is inferred from the URL extension, and a "success"
    without any URL is downgraded to a failure.
    """
    if raw is None:
        return StreamResult.failure("provider returned nothing", provider=provider_name)

    if isinstance(raw, StreamResult):
        result = raw
        if not result.provider:
            result = replace(result, provider=provider_name)
    elif isinstance(raw, dict):
        url = str(raw.get("url") or raw.get("src") or "")
        success = bool(raw["success"]) if "success" in raw else bool(url)
        if not success:
            return StreamResult.failure(
                str(raw.get("error") or raw.get("message") or "provider reported failure"),
                provider=str(raw.get("provider") or provider_name),
            )
        result = StreamResult(
            success=True,
            url=url,
            type=_coerce_type(raw.get("type"), url) if url else None,
            provider=str(raw.get("provider") or provider_name),
            quality=raw.get("quality"),
            subtitles=_coerce_subtitles(raw.get("subtitles")),
            sources=_coerce_sources(raw.get("sources") or raw.get("allSources")),
            languages=_coerce_languages(raw),
        )
    else:
        return StreamResult.failure(
            f"unsupported provider result {type(raw).__name__}", provider=provider_name
        )

    if result.success and not result.url:
        return StreamResult.failure("provider returned no url", provider=result.provider)
    if result.success and result.type is None:
        result = replace(result, type=infer_stream_type(result.url))
    return result


@dataclass(frozen=True)
class MediaRequest:
    """Catalog item a stream is requested for, plus optional caller hints.

    Attributes:
        media_id: Provider-facing media ID (TMDB ID).
        media_type: 'movie' or 'tv' ('show' is accepted and normalized to 'tv').
        season: Season number for TV episodes.
        episode: Episode number for TV episodes.
        hls_url: Manifest URL supplied directly by the caller.
        hls_referer: Referer to use when proxying `hls_url`.
        custom_embed_url: Embed URL supplied directly by the caller.
    """

    media_id: str
    media_type: str = "movie"
    season: Optional[int] = None
    episode: Optional[int] = None
    hls_url: Optional[str] = None
    hls_referer: Optional[str] = None
    custom_embed_url: Optional[str] = None

    def __post_init__(self) -> None:
        media_type = (self.media_type or "movie").strip().lower()
        if media_type == "show":
            media_type = "tv"
        object.__setattr__(self, "media_type", media_type)

    @property
    def is_episode(self) -> bool:
        return self.media_type == "tv" and bool(self.season) and bool(self.episode)


@dataclass(frozen=True)
class ProviderDescriptor:
    key: str
    name: str
    priority: int
    kind: ProviderKind
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "priority": self.priority,
            "kind": self.kind.value,
            "enabled": self.enabled,
        }


@dataclass
class StreamProvider(ABC):
    """Base class for a named strategy that turns a MediaRequest into a stream.

    Subclasses set `kind` and implement `get_stream`, which must return a
    StreamResult (or something `coerce_stream_result` understands). Raising
    is allowed; the resolver treats it as a failed attempt.
    """

    kind: ClassVar[ProviderKind]

    key: str
    name: str
    priority: int
    enabled: bool = True

    @abstractmethod
    async def get_stream(self, request: MediaRequest) -> StreamResult: ...

    def descriptor(self) -> ProviderDescriptor:
        return ProviderDescriptor(
            key=self.key,
            name=self.name,
            priority=self.priority,
            kind=self.kind,
            enabled=self.enabled,
        )


def names(providers: Iterable[StreamProvider]) -> List[str]:
    return [p.key for p in providers]

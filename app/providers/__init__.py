"""Stream provider implementations."""

from .base import (
    MediaRequest,
    ProviderDescriptor,
    ProviderFailure,
    ProviderKind,
    StreamProvider,
    StreamResult,
    StreamSource,
    StreamType,
    SubtitleTrack,
    coerce_stream_result,
)
from .catalog import build_default_registry, default_providers
from .direct import DirectHlsProvider
from .embeds import CustomEmbedProvider, EmbedTemplateProvider, format_embed_url
from .meta import audio_languages, best_quality, subtitle_tracks
from .registry import ProviderRegistry
from .scraping import ScrapingProvider, find_iframe_urls, find_media_url, follow_embed_chain

__all__ = [
    "MediaRequest",
    "ProviderDescriptor",
    "ProviderFailure",
    "ProviderKind",
    "StreamProvider",
    "StreamResult",
    "StreamSource",
    "StreamType",
    "SubtitleTrack",
    "coerce_stream_result",
    "build_default_registry",
    "default_providers",
    "DirectHlsProvider",
    "CustomEmbedProvider",
    "EmbedTemplateProvider",
    "format_embed_url",
    "audio_languages",
    "best_quality",
    "subtitle_tracks",
    "ProviderRegistry",
    "ScrapingProvider",
    "find_iframe_urls",
    "find_media_url",
    "follow_embed_chain",
]

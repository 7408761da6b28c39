from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional
from urllib.parse import urlsplit

from loguru import logger

from .base import (
    MediaRequest,
    ProviderKind,
    StreamProvider,
    StreamResult,
    StreamSource,
    StreamType,
)


def format_embed_url(
    movie_template: str, tv_template: Optional[str], request: MediaRequest
) -> str:
    """Fill an embed URL template for a request.

    The TV template is used only when the request is a TV item with both a
    season and an episode; everything else falls back to the movie template.

    Parameters:
        movie_template (str): Template with an `{id}` placeholder.
        tv_template (str | None): Template with `{id}`, `{season}` and `{episode}`.
        request (MediaRequest): Item to format the URL for.

    Returns:
        str: The formatted embed URL.
    """
    if request.is_episode and tv_template:
        return tv_template.format(
            id=request.media_id, season=request.season, episode=request.episode
        )
    return movie_template.format(id=request.media_id)


@dataclass
class EmbedTemplateProvider(StreamProvider):
    """Provider that only formats a third-party player URL (no network)."""

    kind: ClassVar[ProviderKind] = ProviderKind.EMBED

    movie_template: str = ""
    tv_template: Optional[str] = None
    quality: str = "auto"

    async def get_stream(self, request: MediaRequest) -> StreamResult:
        if not request.media_id:
            return StreamResult.failure("missing media id", provider=self.name)
        url = format_embed_url(self.movie_template, self.tv_template, request)
        logger.debug("{} embed URL: {}", self.key, url)
        return StreamResult(
            success=True,
            url=url,
            type=StreamType.IFRAME,
            provider=self.name,
            quality=self.quality,
            sources=(StreamSource(url=url, quality=self.quality, type=StreamType.IFRAME),),
        )


@dataclass
class CustomEmbedProvider(StreamProvider):
    """Returns the embed URL the caller supplied, unchanged."""

    kind: ClassVar[ProviderKind] = ProviderKind.CUSTOM

    async def get_stream(self, request: MediaRequest) -> StreamResult:
        url = (request.custom_embed_url or "").strip()
        if not url:
            return StreamResult.failure("no custom embed url", provider=self.name)
        if urlsplit(url).scheme not in ("http", "https"):
            return StreamResult.failure("custom embed url must be http(s)", provider=self.name)
        return StreamResult(
            success=True,
            url=url,
            type=StreamType.IFRAME,
            provider=self.name,
            quality="auto",
        )

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, ClassVar, List, Optional, Protocol
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup  # type: ignore
from loguru import logger

from app.config import SCRAPE_MAX_IFRAMES
from app.core.hls_proxy import ProxyError, build_proxy_url, origin_of, public_origin

from .base import (
    MediaRequest,
    ProviderKind,
    StreamProvider,
    StreamResult,
    StreamSource,
    StreamType,
)
from .embeds import format_embed_url

_URL_BODY = r"""(?:https?:)?//[^\s"'<>\\]+?"""
_M3U8_RE = re.compile(_URL_BODY + r"""\.m3u8(?:\?[^\s"'<>\\]*)?""", re.IGNORECASE)
_MP4_RE = re.compile(_URL_BODY + r"""\.mp4(?:\?[^\s"'<>\\]*)?""", re.IGNORECASE)


class FetchPage(Protocol):
    def __call__(self, url: str, *, referer: Optional[str] = None) -> Awaitable[str]: ...


@dataclass(frozen=True)
class MediaHit:
    """A media URL found while scraping, plus the page it was found on."""

    url: str
    type: StreamType
    page_url: str


def find_media_url(html: str, page_url: str) -> Optional[MediaHit]:
    """
    Search page markup and inline scripts for a playable media URL.

    JSON-escaped slashes (`\\/`) are unescaped first. An `.m3u8` URL wins over
    an `.mp4` one; protocol-relative URLs resolve against `page_url`.

    Parameters:
        html (str): Page body to search.
        page_url (str): URL the body was fetched from.

    Returns:
        MediaHit | None: The first match, or None when the page has no media URL.
    """
    text = html.replace("\\/", "/")
    for pattern, stream_type in ((_M3U8_RE, StreamType.HLS), (_MP4_RE, StreamType.MP4)):
        match = pattern.search(text)
        if match:
            url = urljoin(page_url, match.group(0))
            logger.debug("Found {} URL on {}", stream_type.value, page_url)
            return MediaHit(url=url, type=stream_type, page_url=page_url)
    return None


def find_iframe_urls(html: str, page_url: str, *, limit: int) -> List[str]:
    """
    Extract nested iframe URLs from `data-src` or `src`, in document order.

    Non-navigable sources (`about:`, `javascript:`) are skipped and duplicates
    dropped. At most `limit` URLs are returned.
    """
    soup = BeautifulSoup(html, "html.parser")
    links: List[str] = []
    for iframe in soup.find_all("iframe"):
        src = (iframe.get("data-src") or iframe.get("src") or "").strip()
        if not src or src.lower().startswith(("about:", "javascript:")):
            continue
        absolute = urljoin(page_url, src)
        if urlsplit(absolute).scheme not in ("http", "https") or absolute in links:
            continue
        links.append(absolute)
        if len(links) >= limit:
            break
    return links


async def follow_embed_chain(
    fetch_page: FetchPage,
    url: str,
    *,
    referer: Optional[str] = None,
    max_depth: int = 1,
    max_iframes: int = SCRAPE_MAX_IFRAMES,
) -> Optional[MediaHit]:
    """
    Fetch an embed page and look for media, descending into nested iframes.

    Recursion is bounded by `max_depth` levels of iframes and `max_iframes`
    per page. Fetch errors on the top-level page propagate; errors on nested
    pages are logged and that branch is skipped.
    """
    html = await fetch_page(url, referer=referer)
    hit = find_media_url(html, url)
    if hit is not None or max_depth <= 0:
        return hit

    for iframe_url in find_iframe_urls(html, url, limit=max_iframes):
        logger.trace("Following nested iframe {} (depth {})", iframe_url, max_depth)
        try:
            nested = await follow_embed_chain(
                fetch_page,
                iframe_url,
                referer=url,
                max_depth=max_depth - 1,
                max_iframes=max_iframes,
            )
        except ProxyError as exc:
            logger.warning("Nested iframe fetch failed ({}): {}", iframe_url, exc)
            continue
        if nested is not None:
            return nested
    return None


@dataclass
class ScrapingProvider(StreamProvider):
    """
    Provider that digs the real media URL out of a third-party embed page.

    HLS hits are returned wrapped in the local proxy with the embedding page
    as referer; MP4 hits are returned as-is.
    """

    kind: ClassVar[ProviderKind] = ProviderKind.SCRAPE

    movie_template: str = ""
    tv_template: Optional[str] = None
    referer: Optional[str] = None
    max_depth: int = 1
    max_iframes: int = SCRAPE_MAX_IFRAMES
    fetcher: Any = field(default=None, repr=False)

    async def get_stream(self, request: MediaRequest) -> StreamResult:
        if self.fetcher is None:
            return StreamResult.failure("no fetcher configured", provider=self.name)
        if not request.media_id:
            return StreamResult.failure("missing media id", provider=self.name)

        embed_url = format_embed_url(self.movie_template, self.tv_template, request)
        referer = self.referer or origin_of(embed_url)
        logger.debug("{} scraping {}", self.key, embed_url)
        try:
            hit = await follow_embed_chain(
                self.fetcher.fetch_text,
                embed_url,
                referer=referer,
                max_depth=self.max_depth,
                max_iframes=self.max_iframes,
            )
        except ProxyError as exc:
            return StreamResult.failure(str(exc), provider=self.name)
        if hit is None:
            return StreamResult.failure("no media url found", provider=self.name)

        if hit.type is StreamType.HLS:
            url = build_proxy_url(hit.url, origin=public_origin(), referer=hit.page_url)
        else:
            url = hit.url
        return StreamResult(
            success=True,
            url=url,
            type=hit.type,
            provider=self.name,
            quality="auto",
            sources=(StreamSource(url=embed_url, quality="auto", type=StreamType.IFRAME),),
        )

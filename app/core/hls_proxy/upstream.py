from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit

import httpx
from loguru import logger

from app.utils import http_client
from .errors import NetworkError, UpstreamError
from .types import UpstreamResponse


def redact_upstream(url: str) -> str:
    """
    Produce a redacted identifier for logging upstream URLs.
    """
    try:
        parsed = urlsplit(url)
        host = parsed.netloc
        path = parsed.path or "/"
        return f"{host}:{hash(path) & 0xFFFF_FFFF:x}"
    except Exception:
        return "<redacted>"


class UpstreamFetcher:
    """
    Performs single outbound GETs against third-party media hosts.

    Every request carries the configured browser identity and, when given, a
    Referer. Failures surface as UpstreamError / NetworkError and are never
    retried here.
    """

    def __init__(self) -> None:
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = http_client.build_async_client()
        return self._client

    async def fetch(self, url: str, *, referer: Optional[str] = None) -> UpstreamResponse:
        headers: dict[str, str] = {}
        if referer:
            headers["Referer"] = referer
        logger.trace("Fetching upstream {}", redact_upstream(url))
        try:
            response = await self._get_client().get(url, headers=headers)
        except httpx.RequestError as exc:
            logger.warning(
                "Upstream request failed (upstream={}): {}",
                redact_upstream(url),
                type(exc).__name__,
            )
            raise NetworkError(url, type(exc).__name__) from exc

        if not response.is_success:
            logger.warning(
                "Upstream status {} (upstream={})",
                response.status_code,
                redact_upstream(url),
            )
            raise UpstreamError(response.status_code, url)

        logger.debug(
            "Upstream {} -> {} ({} bytes)",
            redact_upstream(url),
            response.status_code,
            len(response.content),
        )
        return UpstreamResponse(
            url=str(response.url),
            status=response.status_code,
            content=response.content,
            headers=dict(response.headers),
        )

    async def fetch_text(self, url: str, *, referer: Optional[str] = None) -> str:
        """Fetch a page and decode it as text (UTF-8, lenient)."""
        response = await self.fetch(url, referer=referer)
        return response.content.decode("utf-8", errors="replace")

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

from __future__ import annotations

from typing import List, Optional

import anyio
from loguru import logger

from app.config import PROVIDER_TIMEOUT_SECONDS
from app.providers.base import (
    MediaRequest,
    ProviderFailure,
    StreamProvider,
    StreamResult,
    coerce_stream_result,
    names,
)
from app.providers.registry import ProviderRegistry

NO_STREAM_FOUND = "no stream found"


class StreamResolver:
    """
    Walks the provider registry until one provider yields a playable stream.

    Attempts run strictly one after another, each bounded by `timeout`
    seconds. Provider problems are never raised to the caller; exhausting
    every candidate yields `StreamResult.failure("no stream found")`.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        timeout: float = PROVIDER_TIMEOUT_SECONDS,
    ) -> None:
        self.registry = registry
        self.timeout = timeout

    async def _attempt(
        self, provider: StreamProvider, request: MediaRequest
    ) -> StreamResult:
        """
        Run one provider and normalize its output.

        Raises:
            ProviderFailure: On exception, timeout, failure result or missing URL.
        """
        try:
            with anyio.fail_after(self.timeout):
                raw = await provider.get_stream(request)
        except TimeoutError as exc:
            raise ProviderFailure(
                provider.key, f"timed out after {self.timeout:g}s"
            ) from exc
        except Exception as exc:
            raise ProviderFailure(
                provider.key, f"{type(exc).__name__}: {exc}"
            ) from exc

        result = coerce_stream_result(raw, provider.name)
        if not result.success:
            raise ProviderFailure(provider.key, result.error or "unavailable")
        return result

    async def resolve(
        self,
        media_id: str,
        media_type: str = "movie",
        season: Optional[int] = None,
        episode: Optional[int] = None,
        preferred_provider: Optional[str] = None,
        *,
        hls_url: Optional[str] = None,
        hls_referer: Optional[str] = None,
        custom_embed_url: Optional[str] = None,
    ) -> StreamResult:
        """
        Resolve a playable stream for a catalog item.

        Parameters:
            media_id (str): Provider-facing media ID (TMDB ID).
            media_type (str): 'movie' or 'tv' ('show' is accepted).
            season (int | None): Season number for TV episodes.
            episode (int | None): Episode number for TV episodes.
            preferred_provider (str | None): Provider key to try first.
            hls_url (str | None): Caller-supplied manifest URL for the direct provider.
            hls_referer (str | None): Referer to proxy `hls_url` with.
            custom_embed_url (str | None): Caller-supplied embed URL for the custom provider.

        Returns:
            StreamResult: The first successful provider result, or a failure
            result with error "no stream found".
        """
        request = MediaRequest(
            media_id=str(media_id or "").strip(),
            media_type=media_type,
            season=season,
            episode=episode,
            hls_url=hls_url,
            hls_referer=hls_referer,
            custom_embed_url=custom_embed_url,
        )
        candidates: List[StreamProvider] = self.registry.candidates(preferred_provider)
        logger.info(
            "Resolving stream for {} {} (S{}E{}); candidates: {}",
            request.media_type,
            request.media_id,
            request.season,
            request.episode,
            ", ".join(names(candidates)) or "<none>",
        )

        tried: List[str] = []
        for provider in candidates:
            tried.append(provider.key)
            try:
                result = await self._attempt(provider, request)
            except ProviderFailure as failure:
                logger.warning(
                    "Provider '{}' failed: {}", failure.provider_key, failure.reason
                )
                continue
            logger.success(
                "Resolved {} {} via provider '{}' ({})",
                request.media_type,
                request.media_id,
                provider.key,
                result.type.value if result.type else "unknown",
            )
            return result

        logger.error(
            "No stream found for {} {}. Tried: {}",
            request.media_type,
            request.media_id,
            ", ".join(tried) or "<none>",
        )
        return StreamResult.failure(NO_STREAM_FOUND)

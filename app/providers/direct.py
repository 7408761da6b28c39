from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from loguru import logger

from app.core.hls_proxy import (
    InvalidRequest,
    build_proxy_url,
    origin_of,
    public_origin,
    validate_upstream_url,
)

from .base import MediaRequest, ProviderKind, StreamProvider, StreamResult, StreamType


@dataclass
class DirectHlsProvider(StreamProvider):
    """Wraps a caller-supplied manifest URL in the local HLS proxy."""

    kind: ClassVar[ProviderKind] = ProviderKind.DIRECT

    async def get_stream(self, request: MediaRequest) -> StreamResult:
        if not (request.hls_url or "").strip():
            return StreamResult.failure("no hls url supplied", provider=self.name)
        try:
            hls_url = validate_upstream_url(request.hls_url)
        except InvalidRequest as exc:
            return StreamResult.failure(str(exc), provider=self.name)

        referer = (request.hls_referer or "").strip() or origin_of(hls_url)
        logger.debug("Direct HLS with referer {}", referer)
        return StreamResult(
            success=True,
            url=build_proxy_url(hls_url, origin=public_origin(), referer=referer),
            type=StreamType.HLS,
            provider=self.name,
            quality="auto",
        )

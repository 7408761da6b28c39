from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

import anyio
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response
from loguru import logger

from app.core.hls_proxy import (
    HlsCache,
    InvalidRequest,
    MediaKind,
    ProxyError,
    UpstreamError,
    UpstreamFetcher,
    is_hls_content_type,
    media_kind,
    proxy_prefix,
    public_origin,
    redact_upstream,
    referer_suffix,
    rewrite,
    rewrite_hls_playlist,
    serverless_rewriter,
    validate_upstream_url,
)
from app.core.hls_proxy.types import (
    DEFAULT_CONTENT_TYPE,
    HLS_CONTENT_TYPE,
    cacheable_headers,
)
from .deps import get_fetcher, get_hls_cache


router = APIRouter()

_DISCONNECT_POLL_SECONDS = 0.25
# nginx's "client closed request"; never actually seen by the client
_CLIENT_CLOSED_REQUEST = 499


def _validate_upstream_url(url: Optional[str]) -> str:
    try:
        return validate_upstream_url(url)
    except InvalidRequest as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _request_origin(request: Request) -> str:
    return str(request.base_url).rstrip("/")


def _is_manifest(url: str, content_type: str) -> bool:
    if media_kind(url) is MediaKind.MANIFEST:
        return True
    return is_hls_content_type(content_type)


def _manifest_response(text: str) -> Response:
    return Response(
        content=text,
        media_type=HLS_CONTENT_TYPE,
        headers={"Cache-Control": "no-cache"},
    )


def _upstream_http_error(exc: ProxyError) -> HTTPException:
    if isinstance(exc, UpstreamError):
        return HTTPException(status_code=502, detail=f"upstream returned {exc.status}")
    return HTTPException(status_code=502, detail="upstream request failed")


async def _run_until_disconnect(
    request: Request, work: Callable[[], Awaitable[Any]]
) -> tuple[bool, Any]:
    """
    Run `work` while watching the client connection.

    Returns `(True, result)` when the work finished, or `(False, None)` when
    the client went away first, in which case the work has been cancelled.
    Exceptions raised by `work` are re-raised unchanged.
    """
    outcome: dict[str, Any] = {}

    async with anyio.create_task_group() as tg:

        async def _work() -> None:
            try:
                outcome["result"] = await work()
            except Exception as exc:
                outcome["error"] = exc
            finally:
                tg.cancel_scope.cancel()

        async def _watch() -> None:
            while True:
                if await request.is_disconnected():
                    outcome["disconnected"] = True
                    tg.cancel_scope.cancel()
                    return
                await anyio.sleep(_DISCONNECT_POLL_SECONDS)

        tg.start_soon(_watch)
        tg.start_soon(_work)

    if "error" in outcome:
        raise outcome["error"]
    if "result" in outcome:
        return True, outcome["result"]
    return False, None


@router.get("/hls/proxy")
async def hls_proxy(
    request: Request,
    url: Optional[str] = Query(default=None),
    referer: Optional[str] = Query(default=None),
    cache: HlsCache = Depends(get_hls_cache),
):
    """
    Fetch a manifest or segment through the shared cache.

    Manifests come back rewritten so every URI points at this endpoint again
    (carrying `referer` along); relative URIs resolve against the URL the
    upstream finally answered from. Anything else is replayed with its cached
    headers.
    """
    target = _validate_upstream_url(url)
    referer = (referer or "").strip() or None
    logger.info(
        "HLS proxy request kind={} upstream={}",
        media_kind(target).value,
        redact_upstream(target),
    )

    try:
        finished, entry = await _run_until_disconnect(
            request, lambda: cache.fetch_with_cache(target, referer=referer)
        )
    except ProxyError as exc:
        raise _upstream_http_error(exc) from exc
    if not finished:
        logger.info("Client disconnected; abandoned {}", redact_upstream(target))
        return Response(status_code=_CLIENT_CLOSED_REQUEST)

    if _is_manifest(target, entry.content_type):
        text = entry.payload.decode("utf-8", errors="replace")
        origin = public_origin(_request_origin(request))
        rewritten = rewrite(
            text,
            entry.url or target,
            proxy_prefix(origin),
            suffix=referer_suffix(referer),
        )
        return _manifest_response(rewritten)

    return Response(content=entry.payload, headers=dict(entry.headers))


@router.get("/api/hls-proxy")
async def hls_proxy_serverless(
    request: Request,
    url: Optional[str] = Query(default=None),
    kind: Optional[str] = Query(default=None, alias="type"),
    referer: Optional[str] = Query(default=None),
    fetcher: UpstreamFetcher = Depends(get_fetcher),
):
    """
    Stateless proxy variant: no cache, request type chosen by the caller.
    """
    kind = (kind or "manifest").strip().lower()
    if kind not in ("manifest", "segment"):
        raise HTTPException(status_code=400, detail="type must be manifest or segment")
    target = _validate_upstream_url(url)
    referer = (referer or "").strip() or None
    logger.info("Serverless HLS proxy type={} upstream={}", kind, redact_upstream(target))

    try:
        finished, response = await _run_until_disconnect(
            request, lambda: fetcher.fetch(target, referer=referer)
        )
    except ProxyError as exc:
        raise _upstream_http_error(exc) from exc
    if not finished:
        logger.info("Client disconnected; abandoned {}", redact_upstream(target))
        return Response(status_code=_CLIENT_CLOSED_REQUEST)

    if kind == "manifest":
        text = response.content.decode("utf-8", errors="replace")
        rewritten = rewrite_hls_playlist(
            text,
            base_url=response.url or target,
            rewrite_url=serverless_rewriter(referer=referer, origin=public_origin()),
        )
        return _manifest_response(rewritten)

    headers = cacheable_headers(response.headers)
    return Response(
        content=response.content,
        media_type=headers.get("content-type") or DEFAULT_CONTENT_TYPE,
        headers={"Cache-Control": headers["cache-control"]},
    )

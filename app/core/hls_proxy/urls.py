from __future__ import annotations

from typing import Callable, Optional
from urllib.parse import unquote, urlsplit

from loguru import logger

from app.config import HLS_PROXY_PUBLIC_BASE_URL
from .errors import InvalidRequest
from .hls import percent_encode
from .types import MediaKind, media_kind

PROXY_PATH = "/hls/proxy"
SERVERLESS_PATH = "/api/hls-proxy"


def public_origin(request_origin: str = "") -> str:
    """
    Origin embedded into rewritten manifests.

    The configured HLS_PROXY_PUBLIC_BASE_URL wins; otherwise the origin the
    request arrived on is used. An empty result yields root-relative URLs.
    """
    base = (HLS_PROXY_PUBLIC_BASE_URL or request_origin or "").strip()
    return base.rstrip("/")


def proxy_prefix(origin: str = "") -> str:
    """
    Build the `<origin>/hls/proxy?url=` prefix.
    """
    return f"{origin.rstrip('/')}{PROXY_PATH}?url="


def referer_suffix(referer: Optional[str]) -> str:
    if not referer:
        return ""
    return f"&referer={percent_encode(referer)}"


def build_proxy_url(
    upstream_url: str, *, origin: str = "", referer: Optional[str] = None
) -> str:
    """
    Wrap an upstream URL so the player fetches it through `/hls/proxy`.
    """
    logger.trace("Building HLS proxy URL for {}", upstream_url)
    return f"{proxy_prefix(origin)}{percent_encode(upstream_url)}{referer_suffix(referer)}"


def unwrap_proxy_url(proxied: str, prefix: str) -> Optional[str]:
    """
    Recover the upstream URL from a proxy URL built with `prefix`.

    Returns None when `proxied` does not start with `prefix`.
    """
    if not proxied.startswith(prefix):
        return None
    encoded = proxied[len(prefix) :].split("&", 1)[0]
    return unquote(encoded)


def origin_of(url: str) -> Optional[str]:
    """
    Return `scheme://host[:port]` for a URL, or None when it has no host.
    """
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}"


def build_serverless_url(
    upstream_url: str,
    *,
    kind: str,
    referer: Optional[str] = None,
    origin: str = "",
) -> str:
    """
    Build a `/api/hls-proxy` URL of the given `type` (manifest or segment).
    """
    return (
        f"{origin.rstrip('/')}{SERVERLESS_PATH}?type={kind}"
        f"&url={percent_encode(upstream_url)}{referer_suffix(referer)}"
    )


def serverless_rewriter(
    *, referer: Optional[str] = None, origin: str = ""
) -> Callable[[str], str]:
    """
    URL rewriter for the stateless endpoint: nested playlists stay manifests,
    everything else is fetched as a segment.
    """

    def _rewrite(absolute: str) -> str:
        kind = "manifest" if media_kind(absolute) is MediaKind.MANIFEST else "segment"
        return build_serverless_url(absolute, kind=kind, referer=referer, origin=origin)

    return _rewrite


def validate_upstream_url(url: Optional[str]) -> str:
    """
    Return the stripped upstream URL, or raise InvalidRequest when it is
    missing or not an absolute http(s) URL.
    """
    target = (url or "").strip()
    if not target:
        raise InvalidRequest("missing upstream url")
    parts = urlsplit(target)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise InvalidRequest("invalid upstream url scheme")
    return target

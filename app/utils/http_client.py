from __future__ import annotations

import httpx
from loguru import logger

from app.config import UPSTREAM_TIMEOUT_SECONDS, UPSTREAM_USER_AGENT
from app.utils.logger import config as configure_logger

configure_logger()


def default_headers() -> dict[str, str]:
    """Headers attached to every outbound request to a media host."""
    return {"User-Agent": UPSTREAM_USER_AGENT, "Accept": "*/*"}


def build_async_client() -> httpx.AsyncClient:
    """
    Build an AsyncClient for upstream media hosts without env proxies.

    The whole request (connect, read, pool wait) is bounded by
    UPSTREAM_TIMEOUT_SECONDS so a hung host cannot stall a client request.
    """
    logger.trace("Building upstream AsyncClient")
    timeout = httpx.Timeout(
        UPSTREAM_TIMEOUT_SECONDS,
        connect=min(10.0, UPSTREAM_TIMEOUT_SECONDS),
    )
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        trust_env=False,
        headers=default_headers(),
    )

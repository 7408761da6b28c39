from __future__ import annotations

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

# Players issue plain GETs (plus preflights when they send Range)
_ALLOWED_METHODS = ["GET", "HEAD", "OPTIONS"]
_EXPOSED_HEADERS = ["Content-Length", "Content-Type", "Cache-Control"]


def apply_cors_middleware(
    app: FastAPI,
    *,
    origins: list[str],
    allow_credentials: bool,
) -> None:
    """Let browser players on other origins read proxied manifests and segments.

    - No middleware if origins is empty.
    - Wildcard origins ("*") always disable credentials.
    """

    if not origins:
        return

    is_wildcard = "*" in origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if is_wildcard else origins,
        allow_credentials=False if is_wildcard else allow_credentials,
        allow_methods=_ALLOWED_METHODS,
        allow_headers=["*"],
        expose_headers=_EXPOSED_HEADERS,
    )

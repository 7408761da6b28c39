from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger

from app.core.resolver import StreamResolver
from app.providers.meta import audio_languages, best_quality, subtitle_tracks
from app.providers.registry import ProviderRegistry
from .deps import get_registry, get_resolver


router = APIRouter()


def _parse_positive_int(raw: Optional[str], name: str) -> Optional[int]:
    """
    Parse an optional 1-based season/episode number, rejecting anything else.
    """
    if raw is None or not raw.strip():
        return None
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"invalid {name}") from exc
    if value < 1:
        raise HTTPException(status_code=400, detail=f"invalid {name}")
    return value


@router.get("/api/stream")
async def get_stream(
    id: Optional[str] = Query(default=None),
    type: str = Query(default="movie"),
    season: Optional[str] = Query(default=None),
    episode: Optional[str] = Query(default=None),
    provider: Optional[str] = Query(default=None),
    hls: Optional[str] = Query(default=None),
    hls_referer: Optional[str] = Query(default=None, alias="hlsReferer"),
    custom_embed: Optional[str] = Query(default=None, alias="customEmbed"),
    resolver: StreamResolver = Depends(get_resolver),
):
    """
    Resolve a playable stream for a movie or TV episode.

    Always answers 200 with a StreamResult body once the input is valid;
    `success: false` means no provider produced a stream.
    """
    media_id = (id or "").strip()
    if not media_id:
        raise HTTPException(status_code=400, detail="missing id")
    media_type = (type or "movie").strip().lower()
    if media_type not in ("movie", "tv", "show"):
        raise HTTPException(status_code=400, detail="invalid type")
    season_no = _parse_positive_int(season, "season")
    episode_no = _parse_positive_int(episode, "episode")

    result = await resolver.resolve(
        media_id,
        media_type,
        season_no,
        episode_no,
        preferred_provider=provider,
        hls_url=hls,
        hls_referer=hls_referer,
        custom_embed_url=custom_embed,
    )
    payload = result.to_dict()
    if result.success:
        payload["bestQuality"] = best_quality(result)
        payload["subtitles"] = [t.to_dict() for t in subtitle_tracks(result)]
        payload["languages"] = audio_languages(result)
    else:
        logger.info("No stream for {} {}: {}", media_type, media_id, result.error)
    return payload


@router.get("/api/providers")
async def list_providers(registry: ProviderRegistry = Depends(get_registry)):
    return {"providers": [d.to_dict() for d in registry.descriptors()]}

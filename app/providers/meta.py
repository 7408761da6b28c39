from __future__ import annotations

"""Presentation helpers derived from a resolved StreamResult."""

from typing import Dict, List

from .base import StreamResult, SubtitleTrack

QUALITY_SCORES: Dict[str, int] = {
    "1080p": 1080,
    "720p": 720,
    "480p": 480,
    "360p": 360,
    "auto": 1080,
    "hd": 720,
    "sd": 480,
}

DEFAULT_LANGUAGES = ("English", "Multi-Audio")


def best_quality(result: StreamResult) -> str:
    """Return the highest advertised quality label of a result.

    The result's own `quality` (default '720p') competes with every
    alternative source; unknown labels never win over a known one.
    """
    best = result.quality or "720p"
    best_score = QUALITY_SCORES.get(best.lower(), 720)
    for source in result.sources:
        score = QUALITY_SCORES.get((source.quality or "").lower(), 0)
        if score > best_score:
            best, best_score = source.quality, score
    return best


def subtitle_tracks(result: StreamResult) -> List[SubtitleTrack]:
    return [track for track in result.subtitles if track.url]


def audio_languages(result: StreamResult) -> List[str]:
    """Advertised audio languages, or a generic default when none are known."""
    languages = list(dict.fromkeys(lang for lang in result.languages if lang))
    return languages or list(DEFAULT_LANGUAGES)

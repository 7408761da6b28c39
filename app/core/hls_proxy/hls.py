from __future__ import annotations

import re
from typing import Callable
from urllib.parse import quote, urljoin

from loguru import logger

# Any attribute literally named URI (not e.g. a vendor "X-ASSOC-URI").
_URI_ATTR_RE = re.compile(
    r'(?<![A-Z0-9-])URI=(?:"(?P<uri_quoted>[^"]*)"|(?P<uri_unquoted>[^,\s]*))'
)

# Same reserved set as JavaScript's encodeURIComponent.
_COMPONENT_SAFE = "!~*'()"


def percent_encode(url: str) -> str:
    """
    Encode a URL so it can be carried as a single query-string value.
    """
    return quote(url, safe=_COMPONENT_SAFE)


def _rewrite_uri_attr(
    line: str, base_url: str, rewrite_url: Callable[[str], str]
) -> str:
    """
    Rewrite URI attributes found in a single HLS tag line.

    Parameters:
        line (str): An HLS tag line that may contain one or more `URI=...` attributes.
        base_url (str): Base URL used to resolve any relative URIs found in the line.
        rewrite_url (Callable[[str], str]): Function that takes an absolute URI and returns its rewritten (proxied) form.

    Returns:
        str: The input line with each `URI` attribute replaced by its resolved and rewritten URI, preserving whether the original attribute used quotes.
    """
    logger.trace("Rewriting HLS tag URI in line: {}", line.strip())

    def _replace(match: re.Match[str]) -> str:
        raw_uri = match.group("uri_quoted") or match.group("uri_unquoted") or ""
        if not raw_uri:
            return match.group(0)
        proxied = rewrite_url(urljoin(base_url, raw_uri))
        if match.group("uri_quoted") is not None:
            return f'URI="{proxied}"'
        return f"URI={proxied}"

    return _URI_ATTR_RE.sub(_replace, line)


def rewrite_hls_playlist(
    playlist_text: str, *, base_url: str, rewrite_url: Callable[[str], str]
) -> str:
    """
    Rewrite every URI in an HLS playlist using a base URL to resolve relative references and a provided URL-rewriting function.

    Tag lines keep their formatting except for `URI=` attributes (alternate
    audio, subtitles, I-frame playlists, keys, init maps). Every other
    non-blank, non-tag line is a segment or nested playlist reference and is
    replaced wholesale. Blank lines and the original trailing newline are
    preserved.

    Parameters:
        playlist_text (str): The raw HLS playlist text to rewrite.
        base_url (str): URL the playlist was fetched from; relative URIs resolve against it.
        rewrite_url (Callable[[str], str]): Callable that receives an absolute URI and returns the rewritten/proxied URI.

    Returns:
        str: The rewritten playlist text.
    """
    logger.debug("Rewriting HLS playlist from {}", base_url)
    if not playlist_text:
        return playlist_text

    ends_with_newline = playlist_text.endswith("\n")
    out_lines: list[str] = []

    for line in playlist_text.splitlines():
        stripped = line.strip()
        if not stripped:
            out_lines.append(line)
            continue
        if stripped.startswith("#"):
            if "URI=" in stripped:
                out_lines.append(_rewrite_uri_attr(line, base_url, rewrite_url))
            else:
                out_lines.append(line)
            continue

        abs_uri = urljoin(base_url, stripped)
        logger.trace("Rewriting HLS URI line: {}", stripped)
        out_lines.append(rewrite_url(abs_uri))

    result = "\n".join(out_lines)
    if ends_with_newline:
        result += "\n"
    logger.debug("Rewrote HLS playlist ({} lines)", len(out_lines))
    return result


def rewrite(
    playlist_text: str, base_url: str, proxy_prefix: str, *, suffix: str = ""
) -> str:
    """
    Rewrite a playlist so every reference becomes `proxy_prefix + encoded URL`.

    `suffix` is appended verbatim after the encoded URL (used to carry extra
    query parameters such as a referer).
    """
    return rewrite_hls_playlist(
        playlist_text,
        base_url=base_url,
        rewrite_url=lambda absolute: f"{proxy_prefix}{percent_encode(absolute)}{suffix}",
    )

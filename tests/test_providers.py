from functools import partial

import anyio
import pytest

from app.core.hls_proxy import NetworkError, UpstreamError, unwrap_proxy_url
from app.providers import (
    CustomEmbedProvider,
    DirectHlsProvider,
    EmbedTemplateProvider,
    MediaRequest,
    ProviderKind,
    ScrapingProvider,
    StreamProvider,
    StreamResult,
    StreamSource,
    SubtitleTrack,
    audio_languages,
    best_quality,
    build_default_registry,
    coerce_stream_result,
    find_iframe_urls,
    find_media_url,
    follow_embed_chain,
    format_embed_url,
    subtitle_tracks,
)


class FakePages:
    """Serves canned HTML by URL and records the referer of every fetch."""

    def __init__(self, pages):
        self.pages = pages
        self.fetched = []

    async def fetch_text(self, url, *, referer=None):
        self.fetched.append((url, referer))
        page = self.pages.get(url)
        if page is None:
            raise UpstreamError(404, url)
        if isinstance(page, Exception):
            raise page
        return page


def _get(provider, request):
    return anyio.run(partial(provider.get_stream, request))


# ---- templates -------------------------------------------------------------


def test_format_embed_url_uses_tv_template_only_for_full_episodes():
    movie = "https://player.example/movie/{id}"
    tv = "https://player.example/tv/{id}/{season}/{episode}"

    assert format_embed_url(movie, tv, MediaRequest("7", "tv", 1, 2)) == (
        "https://player.example/tv/7/1/2"
    )
    assert format_embed_url(movie, tv, MediaRequest("7", "tv", 1, None)) == (
        "https://player.example/movie/7"
    )
    assert format_embed_url(movie, tv, MediaRequest("7", "movie", 1, 2)) == (
        "https://player.example/movie/7"
    )


def test_embed_template_provider_returns_iframe():
    provider = EmbedTemplateProvider(
        key="videasy",
        name="Videasy",
        priority=10,
        movie_template="https://player.videasy.net/movie/{id}",
        tv_template="https://player.videasy.net/tv/{id}/{season}/{episode}",
        quality="1080p",
    )

    result = _get(provider, MediaRequest("550", "show", 1, 4))

    assert result.success is True
    assert result.url == "https://player.videasy.net/tv/550/1/4"
    assert result.type.value == "iframe"
    assert result.quality == "1080p"


def test_custom_embed_provider():
    provider = CustomEmbedProvider(key="custom", name="Custom Embed", priority=99)

    missing = _get(provider, MediaRequest("1"))
    bad = _get(provider, MediaRequest("1", custom_embed_url="javascript:alert(1)"))
    ok = _get(provider, MediaRequest("1", custom_embed_url="https://my.example/embed/1"))

    assert missing.success is False
    assert bad.success is False
    assert ok.success is True and ok.url == "https://my.example/embed/1"


def test_direct_hls_provider_wraps_in_proxy_with_origin_referer():
    provider = DirectHlsProvider(key="direct-hls", name="Custom HLS", priority=0)

    result = _get(
        provider, MediaRequest("1", hls_url="https://cdn.example/v/master.m3u8")
    )

    assert result.success is True
    assert result.type.value == "hls"
    assert result.url.endswith(
        "/hls/proxy?url=https%3A%2F%2Fcdn.example%2Fv%2Fmaster.m3u8"
        "&referer=https%3A%2F%2Fcdn.example"
    )
    assert _get(provider, MediaRequest("1")).success is False


def test_direct_hls_provider_prefers_explicit_referer():
    provider = DirectHlsProvider(key="direct-hls", name="Custom HLS", priority=0)

    result = _get(
        provider,
        MediaRequest(
            "1",
            hls_url="https://cdn.example/master.m3u8",
            hls_referer="https://site.example/watch",
        ),
    )

    assert result.url.endswith("&referer=https%3A%2F%2Fsite.example%2Fwatch")


# ---- scraping --------------------------------------------------------------


def test_find_media_url_prefers_m3u8_and_unescapes_json():
    html = (
        '<script>var cfg = {"mp4":"https:\\/\\/cdn.example\\/v.mp4",'
        '"hls":"https:\\/\\/cdn.example\\/hls\\/master.m3u8?token=abc"};</script>'
    )

    hit = find_media_url(html, "https://embed.example/e/1")

    assert hit.url == "https://cdn.example/hls/master.m3u8?token=abc"
    assert hit.type.value == "hls"
    assert hit.page_url == "https://embed.example/e/1"


def test_find_media_url_falls_back_to_mp4_and_protocol_relative():
    hit = find_media_url('<video src="//files.example/movie.mp4"></video>', "https://e.example/p")

    assert hit.url == "https://files.example/movie.mp4"
    assert hit.type.value == "mp4"
    assert find_media_url("<p>nothing here</p>", "https://e.example/p") is None


def test_find_iframe_urls_dedupes_and_limits():
    html = (
        '<iframe src="about:blank"></iframe>'
        '<iframe data-src="/player/1" src="ignored"></iframe>'
        '<iframe src="https://other.example/player/2"></iframe>'
        '<iframe src="/player/1"></iframe>'
        '<iframe src="https://third.example/3"></iframe>'
    )

    links = find_iframe_urls(html, "https://embed.example/e/1", limit=2)

    assert links == [
        "https://embed.example/player/1",
        "https://other.example/player/2",
    ]


def test_follow_embed_chain_descends_one_level():
    pages = FakePages(
        {
            "https://embed.example/e/1": '<iframe src="https://inner.example/p"></iframe>',
            "https://inner.example/p": 'file: "https://cdn.example/a/index.m3u8"',
        }
    )

    hit = anyio.run(
        partial(follow_embed_chain, pages.fetch_text, "https://embed.example/e/1", referer="https://embed.example")
    )

    assert hit.url == "https://cdn.example/a/index.m3u8"
    assert hit.page_url == "https://inner.example/p"
    assert pages.fetched[1] == ("https://inner.example/p", "https://embed.example/e/1")


def test_follow_embed_chain_respects_depth_bound():
    pages = FakePages(
        {
            "https://embed.example/e/1": '<iframe src="https://inner.example/p"></iframe>',
            "https://inner.example/p": '<iframe src="https://deeper.example/q"></iframe>',
            "https://deeper.example/q": "https://cdn.example/a/index.m3u8",
        }
    )

    hit = anyio.run(partial(follow_embed_chain, pages.fetch_text, "https://embed.example/e/1"))

    assert hit is None
    assert [u for u, _ in pages.fetched] == [
        "https://embed.example/e/1",
        "https://inner.example/p",
    ]


def test_follow_embed_chain_skips_broken_nested_pages():
    pages = FakePages(
        {
            "https://embed.example/e/1": (
                '<iframe src="https://broken.example/x"></iframe>'
                '<iframe src="https://ok.example/y"></iframe>'
            ),
            "https://broken.example/x": NetworkError("https://broken.example/x", "ConnectError"),
            "https://ok.example/y": "https://cdn.example/movie.mp4",
        }
    )

    hit = anyio.run(partial(follow_embed_chain, pages.fetch_text, "https://embed.example/e/1"))

    assert hit.url == "https://cdn.example/movie.mp4"


def _scraper(pages):
    return ScrapingProvider(
        key="site-direct",
        name="Site (direct)",
        priority=1,
        movie_template="https://embed.example/movie/{id}",
        tv_template="https://embed.example/tv/{id}/{season}/{episode}",
        fetcher=pages,
    )


def test_scraping_provider_proxies_hls_hits():
    pages = FakePages(
        {"https://embed.example/tv/9/1/2": "src: 'https://cdn.example/s/index.m3u8'"}
    )

    result = _get(_scraper(pages), MediaRequest("9", "tv", 1, 2))

    assert result.success is True
    assert result.type.value == "hls"
    prefix = result.url[: result.url.index("?url=") + len("?url=")]
    assert prefix.endswith("/hls/proxy?url=")
    assert unwrap_proxy_url(result.url, prefix) == "https://cdn.example/s/index.m3u8"
    assert "&referer=https%3A%2F%2Fembed.example%2Ftv%2F9%2F1%2F2" in result.url
    assert pages.fetched[0] == ("https://embed.example/tv/9/1/2", "https://embed.example")
    assert result.sources[0].url == "https://embed.example/tv/9/1/2"


def test_scraping_provider_returns_mp4_directly():
    pages = FakePages({"https://embed.example/movie/5": '"https://cdn.example/m.mp4"'})

    result = _get(_scraper(pages), MediaRequest("5"))

    assert result.url == "https://cdn.example/m.mp4"
    assert result.type.value == "mp4"


def test_scraping_provider_reports_failures_as_results():
    empty = _get(_scraper(FakePages({"https://embed.example/movie/5": "<p></p>"})), MediaRequest("5"))
    down = _get(_scraper(FakePages({})), MediaRequest("5"))

    assert empty.success is False and empty.error == "no media url found"
    assert down.success is False


# ---- result normalization & meta -------------------------------------------


def test_coerce_stream_result_accepts_src_and_infers_type():
    result = coerce_stream_result(
        {
            "src": "https://cdn.example/x.m3u8",
            "quality": "720p",
            "subtitles": ["https://s/en.vtt", {"file": "https://s/de.vtt", "language": "German"}, {}],
            "audioTracks": [{"lang": "English"}, "Japanese"],
        },
        "Loose",
    )

    assert result.success is True
    assert result.provider == "Loose"
    assert result.type.value == "hls"
    assert result.subtitles == (
        SubtitleTrack(lang="Unknown", url="https://s/en.vtt"),
        SubtitleTrack(lang="German", url="https://s/de.vtt"),
    )
    assert result.languages == ("English", "Japanese")


@pytest.mark.parametrize(
    "raw",
    [None, {}, {"success": False, "error": "blocked"}, {"success": True, "url": ""}, 42],
)
def test_coerce_stream_result_failures(raw):
    assert coerce_stream_result(raw, "X").success is False


def test_best_quality_picks_highest_known_label():
    result = StreamResult(
        success=True,
        url="https://x/y.m3u8",
        quality="480p",
        sources=(
            StreamSource(url="https://a", quality="720p"),
            StreamSource(url="https://b", quality="weird"),
            StreamSource(url="https://c", quality="1080p"),
        ),
    )

    assert best_quality(result) == "1080p"
    assert best_quality(StreamResult(success=True, url="https://x")) == "720p"


def test_audio_languages_and_subtitles_defaults():
    result = StreamResult(success=True, url="https://x")

    assert audio_languages(result) == ["English", "Multi-Audio"]
    assert subtitle_tracks(result) == []


# ---- registry --------------------------------------------------------------


def test_default_registry_order_and_overrides():
    registry = build_default_registry()
    keys = [p.key for p in registry.providers()]

    assert keys[0] == "direct-hls"
    assert keys[-1] == "custom"
    assert keys.index("vidsrcxyz-direct") < keys.index("videasy")

    tuned = build_default_registry(order=["autoembed", "videasy"], disabled=["vidsrcpro", "nope"])
    tuned_keys = [p.key for p in tuned.providers()]

    assert tuned_keys[:3] == ["autoembed", "videasy", "direct-hls"]
    assert "vidsrcpro" not in tuned
    assert tuned_keys[-1] == "custom"


def test_registry_candidates_promote_preferred():
    registry = build_default_registry()

    candidates = registry.candidates("embedsu")

    assert candidates[0].key == "embedsu"
    assert [c.key for c in candidates].count("embedsu") == 1
    assert len(candidates) == len(registry)


def test_provider_without_get_stream_cannot_be_built():
    class Incomplete(StreamProvider):
        kind = ProviderKind.EMBED

    with pytest.raises(TypeError):
        Incomplete(key="x", name="X", priority=0)

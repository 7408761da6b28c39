from app.core.hls_proxy import (
    percent_encode,
    proxy_prefix,
    referer_suffix,
    rewrite,
    rewrite_hls_playlist,
    unwrap_proxy_url,
)


def _proxy_rewrite(u: str) -> str:
    """
    Prefix the given URL with the proxy scheme.

    Parameters:
        u (str): The original URL to rewrite.

    Returns:
        str: The URL prefixed with "proxy://".
    """
    return f"proxy://{u}"


def test_rewrite_segment_and_audio_rendition():
    playlist = (
        "#EXTM3U\n"
        '#EXT-X-MEDIA:TYPE=AUDIO,URI="audio/en.m3u8"\n'
        "#EXTINF:6.0,\n"
        "segment1.ts\n"
    )

    rewritten = rewrite(playlist, "https://host/a/index.m3u8", "/hls/proxy?url=")

    assert "/hls/proxy?url=https%3A%2F%2Fhost%2Fa%2Fsegment1.ts" in rewritten
    assert 'URI="/hls/proxy?url=https%3A%2F%2Fhost%2Fa%2Faudio%2Fen.m3u8"' in rewritten


def test_rewrite_hls_master_playlist():
    playlist = (
        "#EXTM3U\n"
        "#EXT-X-STREAM-INF:BANDWIDTH=800000,RESOLUTION=640x360\n"
        "low/playlist.m3u8\n"
        "#EXT-X-STREAM-INF:BANDWIDTH=1400000,RESOLUTION=1280x720\n"
        "https://cdn.example.com/high/playlist.m3u8\n"
        '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="audio",NAME="English",URI="audio/eng/playlist.m3u8"\n'
    )
    base_url = "https://origin.example/dir/master.m3u8"

    rewritten = rewrite_hls_playlist(
        playlist, base_url=base_url, rewrite_url=_proxy_rewrite
    )

    assert "proxy://https://origin.example/dir/low/playlist.m3u8" in rewritten
    assert "proxy://https://cdn.example.com/high/playlist.m3u8" in rewritten
    assert (
        'URI="proxy://https://origin.example/dir/audio/eng/playlist.m3u8"' in rewritten
    )
    assert "#EXT-X-STREAM-INF:BANDWIDTH=800000,RESOLUTION=640x360" in rewritten


def test_rewrite_media_playlist_with_key_and_map():
    playlist = (
        "#EXTM3U\n"
        "#EXT-X-VERSION:7\n"
        '#EXT-X-MAP:URI="init.mp4"\n'
        '#EXT-X-KEY:METHOD=AES-128,URI="https://keys.example.com/key.bin"\n'
        "#EXTINF:6.0,\n"
        "segment001.m4s\n"
        "#EXT-X-ENDLIST\n"
    )
    base_url = "https://origin.example/media/playlist.m3u8"

    rewritten = rewrite_hls_playlist(
        playlist, base_url=base_url, rewrite_url=_proxy_rewrite
    )

    assert 'URI="proxy://https://origin.example/media/init.mp4"' in rewritten
    assert 'URI="proxy://https://keys.example.com/key.bin"' in rewritten
    assert "proxy://https://origin.example/media/segment001.m4s" in rewritten
    assert rewritten.endswith("#EXT-X-ENDLIST\n")


def test_rewrite_preserves_iframe_variant_metadata():
    playlist = (
        "#EXTM3U\n"
        "#EXT-X-I-FRAME-STREAM-INF:BANDWIDTH=185267,RESOLUTION=1280x720,"
        'CODECS="avc1.4d4028",URI="iframes-f1-v1-a1.m3u8?t=token&sp=2500",'
        "VIDEO-RANGE=SDR\n"
    )
    base_url = "https://origin.example/dir/master.m3u8"

    rewritten = rewrite_hls_playlist(
        playlist, base_url=base_url, rewrite_url=_proxy_rewrite
    )

    assert (
        "#EXT-X-I-FRAME-STREAM-INF:BANDWIDTH=185267,RESOLUTION=1280x720,"
        'CODECS="avc1.4d4028",'
        'URI="proxy://https://origin.example/dir/iframes-f1-v1-a1.m3u8?t=token&sp=2500",'
        "VIDEO-RANGE=SDR" in rewritten
    )


def test_rewrite_ignores_vendor_uri_attributes():
    playlist = '#EXT-X-SESSION-DATA:DATA-ID="x",X-ASSOC-URI="keep.json"\n'

    rewritten = rewrite_hls_playlist(
        playlist, base_url="https://origin.example/", rewrite_url=_proxy_rewrite
    )

    assert rewritten == playlist


def test_rewrite_unquoted_uri_and_blank_lines():
    playlist = "#EXTM3U\n\n#EXT-X-KEY:METHOD=AES-128,URI=key.bin,IV=0x01\nseg.ts"

    rewritten = rewrite_hls_playlist(
        playlist, base_url="https://origin.example/v/p.m3u8", rewrite_url=_proxy_rewrite
    )

    assert rewritten.split("\n") == [
        "#EXTM3U",
        "",
        "#EXT-X-KEY:METHOD=AES-128,URI=proxy://https://origin.example/v/key.bin,IV=0x01",
        "proxy://https://origin.example/v/seg.ts",
    ]


def test_rewrite_accepts_crlf_input():
    playlist = "#EXTM3U\r\n#EXTINF:4,\r\nseg.ts\r\n"

    rewritten = rewrite(playlist, "https://h/p/x.m3u8", "/hls/proxy?url=")

    assert "/hls/proxy?url=https%3A%2F%2Fh%2Fp%2Fseg.ts" in rewritten
    assert "\r" not in rewritten


def test_rewrite_leaves_no_bare_upstream_urls_and_is_deterministic():
    playlist = (
        "#EXTM3U\n"
        '#EXT-X-MEDIA:TYPE=SUBTITLES,URI="https://subs.example/en.m3u8"\n'
        "https://cdn.example/seg-1.ts\n"
        "seg-2.ts\n"
    )
    prefix = proxy_prefix("http://proxy.local")

    first = rewrite(playlist, "https://cdn.example/master.m3u8", prefix)
    second = rewrite(playlist, "https://cdn.example/master.m3u8", prefix)

    assert first == second
    for line in first.splitlines():
        if line.startswith("#EXTM3U"):
            continue
        assert "https://" not in line


def test_unwrap_recovers_resolved_url():
    prefix = proxy_prefix("")
    upstream = "https://cdn.example/path with space/seg.ts?a=1&b=2"

    rewritten = rewrite("seg.ts?a=1&b=2\n", "https://cdn.example/path with space/x.m3u8", prefix)
    proxied = rewritten.strip()

    assert proxied == prefix + percent_encode(upstream)
    assert unwrap_proxy_url(proxied, prefix) == upstream
    assert unwrap_proxy_url("https://elsewhere/seg.ts", prefix) is None


def test_rewrite_carries_referer_suffix():
    suffix = referer_suffix("https://embed.example/page")

    rewritten = rewrite("seg.ts\n", "https://cdn.example/x.m3u8", "/hls/proxy?url=", suffix=suffix)

    assert rewritten == (
        "/hls/proxy?url=https%3A%2F%2Fcdn.example%2Fseg.ts"
        "&referer=https%3A%2F%2Fembed.example%2Fpage\n"
    )
    assert unwrap_proxy_url(rewritten.strip(), "/hls/proxy?url=") == "https://cdn.example/seg.ts"


def test_rewrite_empty_playlist():
    assert rewrite("", "https://cdn.example/x.m3u8", "/hls/proxy?url=") == ""

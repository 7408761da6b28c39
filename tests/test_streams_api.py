import httpx


def _patch_upstream_404(monkeypatch):
    """Make every outbound fetch (embed page scraping) answer 404."""

    def _handler(request):
        return httpx.Response(404, text="not found")

    def _factory():
        return httpx.AsyncClient(transport=httpx.MockTransport(_handler))

    monkeypatch.setattr("app.utils.http_client.build_async_client", _factory)


def test_stream_requires_id(client):
    resp = client.get("/api/stream")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "missing id"


def test_stream_rejects_bad_episode_numbers(client):
    assert client.get("/api/stream", params={"id": "1", "type": "tv", "season": "x"}).status_code == 400
    assert client.get("/api/stream", params={"id": "1", "type": "tv", "episode": "0"}).status_code == 400
    assert client.get("/api/stream", params={"id": "1", "type": "book"}).status_code == 400


def test_stream_falls_back_past_scrapers_to_embed(client, monkeypatch):
    _patch_upstream_404(monkeypatch)

    resp = client.get("/api/stream", params={"id": "550", "type": "tv", "season": 1, "episode": 3})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["provider"] == "Videasy"
    assert body["url"] == "https://player.videasy.net/tv/550/1/3"
    assert body["type"] == "iframe"
    assert body["bestQuality"] == "1080p"
    assert body["languages"] == ["English", "Multi-Audio"]


def test_stream_with_direct_hls(client):
    resp = client.get(
        "/api/stream",
        params={"id": "1", "hls": "https://cdn.example/v/master.m3u8", "hlsReferer": "https://site.example/"},
    )

    body = resp.json()
    assert body["success"] is True
    assert body["type"] == "hls"
    assert body["url"] == (
        "/hls/proxy?url=https%3A%2F%2Fcdn.example%2Fv%2Fmaster.m3u8"
        "&referer=https%3A%2F%2Fsite.example%2F"
    )


def test_stream_preferred_custom_embed(client):
    resp = client.get(
        "/api/stream",
        params={"id": "1", "provider": "custom", "customEmbed": "https://my.example/embed/1"},
    )

    body = resp.json()
    assert body["provider"] == "Custom Embed"
    assert body["url"] == "https://my.example/embed/1"


def test_providers_listing(client):
    resp = client.get("/api/providers")

    assert resp.status_code == 200
    providers = resp.json()["providers"]
    assert providers[0]["key"] == "direct-hls"
    assert providers[0]["kind"] == "direct"
    assert providers[-1]["key"] == "custom"
    assert {p["kind"] for p in providers} == {"direct", "scrape", "embed", "custom"}
    priorities = [p["priority"] for p in providers]
    assert priorities == sorted(priorities)

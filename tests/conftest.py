import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient


def _purge_app_modules():
    for name in list(sys.modules):
        if name == "app" or name.startswith("app."):
            del sys.modules[name]


@pytest.fixture
def client(tmp_path, monkeypatch):
    # Keep the disk cache inside the test's tmp dir and config at defaults
    cache_dir = tmp_path / "cache" / "hls"
    monkeypatch.setenv("HLS_CACHE_DIR", str(cache_dir))
    monkeypatch.setenv("HLS_DISK_CACHE_ENABLED", "1")
    for key in (
        "HLS_PROXY_PUBLIC_BASE_URL",
        "PROVIDER_ORDER",
        "PROVIDERS_DISABLED",
        "CORS_ORIGINS",
        "LOG_FILE",
        "HLS_MEMORY_MAX_ENTRIES",
    ):
        monkeypatch.delenv(key, raising=False)

    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

    # Re-import so module-level config picks up the env above
    _purge_app_modules()

    from app.main import app

    with TestClient(app) as c:
        yield c

import os
from pathlib import Path
from dotenv import load_dotenv
from loguru import logger
from app.utils.logger import config as configure_logger

# Load .env as early as possible so all downstream imports see the intended env
load_dotenv()

# Configure logger after env is loaded (LOG_LEVEL honored)
configure_logger()

logger.debug("Checking if running in Docker...")
IN_DOCKER = Path("/.dockerenv").exists()
logger.debug(f"IN_DOCKER={IN_DOCKER}")


def _as_bool(val: str | None, default: bool) -> bool:
    if val is None:
        return default
    v = val.strip().lower()
    return v in ("1", "true", "yes", "on")


def _as_list(val: str | None) -> list[str]:
    if not val:
        return []
    return list(dict.fromkeys(p.strip() for p in val.split(",") if p.strip()))


def _str_to_path(val: str | os.PathLike[str] | None) -> Path | None:
    if not val:
        return None
    try:
        return Path(val).expanduser()
    except Exception:
        return None


def _ensure_dir(candidates: list[Path], label: str) -> Path:
    """Return first usable path from candidates, creating it if needed.

    Logs fallbacks and exits with a clear error if none are writable.
    """
    for p in candidates:
        try:
            p.mkdir(parents=True, exist_ok=True)
            resolved = p.resolve()
            logger.info(f"{label} using: {resolved}")
            return resolved
        except PermissionError as e:
            logger.warning(f"No permission to create {label} at {p}: {e}")
        except OSError as e:
            logger.warning(f"Cannot create {label} at {p}: {e}")

    logger.error(f"No writable candidate found for {label}. Tried: {candidates}")
    raise SystemExit(
        f"Fatal: {label} is not writable. Please fix your volume mounts or set"
        f" a writable {label} via environment variables. Tried:"
        f" {', '.join(str(c) for c in candidates)}"
    )


# ---- HLS cache ----
env_cache = os.getenv("HLS_CACHE_DIR")
env_cache_path = _str_to_path(env_cache.strip() if env_cache else None)

cache_candidates: list[Path] = []
if env_cache_path:
    cache_candidates.append(env_cache_path)
cache_candidates.extend(
    [
        Path("/data/cache/hls") if IN_DOCKER else (Path.cwd() / ".cache" / "hls"),
        Path("/tmp/cinematichub/cache/hls"),
    ]
)

HLS_CACHE_DIR = _ensure_dir(cache_candidates, "HLS_CACHE_DIR")

# Segments may be spilled to disk; manifests never are.
HLS_DISK_CACHE_ENABLED = _as_bool(os.getenv("HLS_DISK_CACHE_ENABLED", None), True)

# Playlists rotate (live windows, new sources) so they only live briefly.
HLS_MANIFEST_TTL_SECONDS = float(os.getenv("HLS_MANIFEST_TTL_SECONDS", "30"))
# Published segment bytes never change.
HLS_SEGMENT_TTL_SECONDS = float(os.getenv("HLS_SEGMENT_TTL_SECONDS", "3600"))
# Upper bound on in-memory entries; 0 disables the cap.
HLS_MEMORY_MAX_ENTRIES = int(os.getenv("HLS_MEMORY_MAX_ENTRIES", "512"))
logger.debug(
    f"HLS_DISK_CACHE_ENABLED={HLS_DISK_CACHE_ENABLED}, "
    f"HLS_MANIFEST_TTL_SECONDS={HLS_MANIFEST_TTL_SECONDS}, "
    f"HLS_SEGMENT_TTL_SECONDS={HLS_SEGMENT_TTL_SECONDS}, "
    f"HLS_MEMORY_MAX_ENTRIES={HLS_MEMORY_MAX_ENTRIES}"
)

# Origin embedded in rewritten manifests, e.g. https://watch.example.com.
# Empty means "use the origin the request came in on".
HLS_PROXY_PUBLIC_BASE_URL = os.getenv("HLS_PROXY_PUBLIC_BASE_URL", "").strip()
logger.debug(f"HLS_PROXY_PUBLIC_BASE_URL={HLS_PROXY_PUBLIC_BASE_URL or '<request>'}")

# ---- Upstream identity ----
_default_user_agent = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
UPSTREAM_USER_AGENT = (
    os.getenv("UPSTREAM_USER_AGENT", _default_user_agent).strip()
    or _default_user_agent
)
UPSTREAM_TIMEOUT_SECONDS = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30"))
if UPSTREAM_TIMEOUT_SECONDS <= 0:
    UPSTREAM_TIMEOUT_SECONDS = 30.0
logger.debug(f"UPSTREAM_TIMEOUT_SECONDS={UPSTREAM_TIMEOUT_SECONDS}")

# ---- Provider fallback ----
# Comma-separated provider keys; position = priority. Unlisted providers keep
# their built-in priority and run after the listed ones.
_raw = os.getenv("PROVIDER_ORDER", "")
logger.debug(f"PROVIDER_ORDER raw string: {_raw}")
PROVIDER_ORDER = _as_list(_raw)
logger.debug(f"PROVIDER_ORDER normalized: {PROVIDER_ORDER}")

PROVIDERS_DISABLED = _as_list(os.getenv("PROVIDERS_DISABLED", ""))
logger.debug(f"PROVIDERS_DISABLED={PROVIDERS_DISABLED}")

PROVIDER_TIMEOUT_SECONDS = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "20"))
logger.debug(f"PROVIDER_TIMEOUT_SECONDS={PROVIDER_TIMEOUT_SECONDS}")

# Nested iframes followed per embed page while scraping.
SCRAPE_MAX_IFRAMES = max(1, int(os.getenv("SCRAPE_MAX_IFRAMES", "2") or 2))
logger.debug(f"SCRAPE_MAX_IFRAMES={SCRAPE_MAX_IFRAMES}")

# ---- HTTP surface ----
CORS_ORIGINS = _as_list(os.getenv("CORS_ORIGINS", "*"))
CORS_ALLOW_CREDENTIALS = _as_bool(os.getenv("CORS_ALLOW_CREDENTIALS", None), False)
logger.debug(
    f"CORS_ORIGINS={CORS_ORIGINS}, CORS_ALLOW_CREDENTIALS={CORS_ALLOW_CREDENTIALS}"
)

APP_RELOAD = _as_bool(os.getenv("APP_RELOAD", None), False)
APP_HOST = os.getenv("APP_HOST", "0.0.0.0").strip() or "0.0.0.0"
APP_PORT = int(os.getenv("APP_PORT", "3000") or 3000)

from pathlib import Path

DIST_NAME = "cinematichub-proxy"


def get_version() -> str:
    """Return the release version.

    A VERSION file at the repository root wins (source checkouts and Docker
    images); otherwise the installed distribution metadata is used.
    """
    vfile = Path(__file__).resolve().parents[1] / "VERSION"
    if vfile.exists():
        return vfile.read_text().strip()
    try:
        from importlib.metadata import version as _version

        return _version(DIST_NAME)
    except Exception:
        return "0.0.0"


__version__ = get_version()

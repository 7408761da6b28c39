from __future__ import annotations

import os
import sys
from loguru import logger

from app.config import APP_HOST, APP_PORT, APP_RELOAD


def run_server(app_obj):
    """Run the Uvicorn server.

    - Reload follows APP_RELOAD when it is set in the environment
    - Otherwise reload is on for source runs and off for frozen builds
    """
    import uvicorn

    is_frozen = getattr(sys, "frozen", False) or hasattr(sys, "_MEIPASS")
    if os.environ.get("APP_RELOAD") is not None:
        reload_flag = APP_RELOAD
    else:
        reload_flag = not is_frozen

    if reload_flag:
        logger.info("Uvicorn reload enabled (development mode).")
        uvicorn.run(
            "app.main:app",
            host=APP_HOST,
            port=APP_PORT,
            reload=True,
        )
    else:
        logger.info("Uvicorn reload disabled (production mode).")
        uvicorn.run(
            app_obj,
            host=APP_HOST,
            port=APP_PORT,
            reload=False,
        )


def main() -> None:
    from app.main import app

    run_server(app)

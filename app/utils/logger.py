import os
import sys
from typing import Optional

from loguru import logger

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def config(level: Optional[str] = None) -> None:
    """
    Configure the global Loguru logger: one colorized stdout sink at LOG_LEVEL,
    plus a rotating file sink when LOG_FILE is set. Safe to call repeatedly;
    existing sinks are replaced.
    """
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    logger.remove()
    logger.add(sys.stdout, level=log_level, colorize=True, format=_FORMAT)

    log_file = os.environ.get("LOG_FILE", "").strip()
    if log_file:
        logger.add(
            log_file,
            level=log_level,
            format=_FORMAT,
            colorize=False,
            rotation="10 MB",
            retention=5,
            enqueue=True,
        )

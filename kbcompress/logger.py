from __future__ import annotations

import sys

from loguru import logger

from .config import get_log_level

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def setup_logger(level: str | None = None) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        colorize=True,
        format=LOG_FORMAT,
        level=(level or get_log_level()).upper(),
    )


__all__ = ["logger", "setup_logger"]

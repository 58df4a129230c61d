"""Logging setup.

stdout carries the MCP stdio transport, so every sink writes to stderr.
"""

import sys

from loguru import logger

from .config import Settings, get_settings


def configure_logging(settings: Settings = None) -> None:
    """Replace loguru's default handler with a single stderr sink."""
    settings = settings or get_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        ),
        level=settings.log_level,
        colorize=False,
    )
    logger.debug("logging configured level={}", settings.log_level)

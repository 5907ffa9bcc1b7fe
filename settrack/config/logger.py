"""Loguru setup shared by the CLI and tests."""

from __future__ import annotations

import logging
import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> None:
    logger.remove()
    logger.configure(
        handlers=[  # type: ignore[list-item]
            {
                "sink": sys.stderr,
                "level": level.upper(),
                "format": LOG_FORMAT,
                "colorize": sys.stderr.isatty(),
            },
        ]
    )
    _suppress_third_party_logs()


def _suppress_third_party_logs() -> None:
    for name in ("asyncio",):
        logging.getLogger(name).setLevel("WARNING")

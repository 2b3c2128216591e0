"""Utility functions for minidrive."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger


def setup_logging(log_level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Minimum level for every sink
        log_file: Optional file to also log to, rotated at 10 MB
    """
    # Remove default handler and any existing handlers
    logger.remove()

    logger.add(sys.stderr, level=log_level, backtrace=True, diagnose=False)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_file),
            level=log_level,
            rotation="10 MB",
            retention="10 days",
            backtrace=True,
            diagnose=False,
            enqueue=True,
        )

    logger.debug(f"Logging configured at level {log_level}")

"""Logging helpers for the feed client."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

DEFAULT_LOG_PATH = Path("logs/feed.log")


def level_from_name(name: object, default: int = logging.INFO) -> int:
    level = getattr(logging, str(name).upper(), None)
    return level if isinstance(level, int) else default


def setup_logging(
    log_level: int = logging.INFO,
    log_file: Optional[Path] = None,
    *,
    to_file: bool = True,
) -> None:
    """Configure console and rotating file handlers.

    Args:
        log_level: Numeric logging level (e.g., ``logging.INFO``).
        log_file: Optional path to a log file. Defaults to ``logs/feed.log``.
        to_file: Set to ``False`` for console-only tools such as replay.
    """

    logger = logging.getLogger()
    if logger.handlers:
        # Avoid adding duplicate handlers when called multiple times.
        return

    logger.setLevel(log_level)

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if not to_file:
        return

    file_path = log_file or DEFAULT_LOG_PATH
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(file_path, maxBytes=2_000_000, backupCount=5)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    logger.debug("Logging configured", extra={"log_file": str(file_path)})


__all__ = ["DEFAULT_LOG_PATH", "level_from_name", "setup_logging"]

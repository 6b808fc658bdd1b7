"""Logging setup for the weld_tracker package namespace."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from pathlib import Path

PACKAGE_LOGGER = "weld_tracker"

# Libraries pulled in by the vision layer that may log at INFO or below
THIRD_PARTY_LOGGERS = ("cv2", "numpy")


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    quiet_loggers: Iterable[str] = THIRD_PARTY_LOGGERS,
) -> None:
    """Attach console and file handlers to the package logger.

    Args:
        level: Level name for the package logger and its handlers
        log_file: Optional log file, parent directories are created
        quiet_loggers: Third-party loggers capped at WARNING
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(log_level)
    package_logger.handlers.clear()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger under the package namespace.

    Names outside ``weld_tracker`` (scripts run as ``__main__``) are
    prefixed so they share the package handlers.
    """
    if not name.startswith(PACKAGE_LOGGER):
        name = f"{PACKAGE_LOGGER}.{name}"

    return logging.getLogger(name)

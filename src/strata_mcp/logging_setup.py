"""Logging configuration for the server process.

stdout is reserved for JSON-RPC frames, so every handler installed here writes
elsewhere: stderr always, plus an optional size-rotated log file.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_PACKAGE_LOGGER = "strata_mcp"


def _parse_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def configure_logging(
    level: str | int = "WARNING",
    *,
    log_path: Path | None = None,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> logging.Logger:
    """Attach stderr (and optionally file) handlers to the package logger.

    Calling it again replaces the handlers installed by the previous call.

    Raises:
        ValueError: If ``level`` is not a known logging level name.
    """
    numeric = _parse_level(level)
    formatter = logging.Formatter(LOG_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_path,
                maxBytes=max(1, max_bytes),
                backupCount=max(1, backup_count),
                encoding="utf-8",
            )
        )

    logger = logging.getLogger(_PACKAGE_LOGGER)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    for handler in handlers:
        handler.setLevel(numeric)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(numeric)
    logger.propagate = False
    return logger

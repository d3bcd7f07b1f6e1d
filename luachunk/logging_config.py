"""Logging helpers for the command line front end."""

from __future__ import annotations

import logging
from pathlib import Path

__all__ = [
    "LOG_FORMAT",
    "setup_logging",
    "configure_debug_file_logger",
    "close_debug_logger",
]

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: int = logging.WARNING) -> None:
    """Configure root logging for a CLI run."""

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=_DATE_FORMAT)
    logging.getLogger("luachunk").setLevel(level)


def configure_debug_file_logger(
    name: str,
    path: Path,
    *,
    level: int = logging.DEBUG,
    formatter: logging.Formatter | None = None,
) -> logging.Logger:
    """Return a logger writing codec traces to ``path``.

    Handlers installed by an earlier call on ``name`` are replaced, so a
    second run overwrites the previous trace instead of appending to it.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(name)
    logger.setLevel(level)

    close_debug_logger(logger)
    logger.propagate = False

    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler._luachunk_trace = True  # type: ignore[attr-defined]
    handler.setFormatter(formatter or logging.Formatter(LOG_FORMAT, _DATE_FORMAT))
    logger.addHandler(handler)
    return logger


def close_debug_logger(logger: logging.Logger) -> None:
    """Remove and close handlers installed by :func:`configure_debug_file_logger`."""

    for handler in list(logger.handlers):
        if getattr(handler, "_luachunk_trace", False):
            logger.removeHandler(handler)
            handler.close()
    logger.propagate = True

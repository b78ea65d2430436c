"""Logging setup for site2md."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional, TextIO, Union

if TYPE_CHECKING:
    from .models.config import LoggingSettings

LOGGER_NAME = "site2md"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _attach(logger: logging.Logger, handler: logging.Handler, level: int, format_string: str) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(format_string))
    logger.addHandler(handler)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    format_string: Optional[str] = None,
    force: bool = False,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Configure the ``site2md`` logger.

    Records go to stderr (documents are printed on stdout) and, when
    ``log_file`` is given, to that file as well. Existing handlers are kept
    unless ``force`` is set.

    Args:
        level: Logging level name; unknown names fall back to INFO
        log_file: Optional file receiving the same records
        format_string: Format for both handlers
        force: Replace handlers installed by an earlier call
        stream: Console stream (defaults to sys.stderr)

    Returns:
        The configured logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    fmt = format_string or DEFAULT_FORMAT

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)

    if force or not logger.handlers:
        logger.handlers.clear()
        _attach(logger, logging.StreamHandler(stream or sys.stderr), numeric_level, fmt)
        if log_file:
            _attach(logger, logging.FileHandler(log_file, encoding="utf-8"), numeric_level, fmt)

    # Records are handled here only, never again by the root logger
    logger.propagate = False
    return logger


def configure_from_settings(
    settings: LoggingSettings,
    level: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """Apply configured logging, letting explicit ``level``/``log_file`` win."""
    return setup_logging(
        level=level or settings.level,
        log_file=log_file or settings.log_file,
        force=True,
    )

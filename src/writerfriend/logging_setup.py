"""Logging configuration for the ``writerfriend`` logger hierarchy."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from writerfriend.config.models import LoggingSettings

ROOT_LOGGER_NAME = "writerfriend"
_HANDLER_MARKER = "_writerfriend_handler"


def configure_logging(
    settings: LoggingSettings,
    *,
    console: Console | None = None,
    level_override: str | None = None,
) -> logging.Logger:
    """Install console and optional rotating-file handlers on the package logger.

    Calling this again replaces the handlers installed by a previous call, so
    tests and repeated CLI invocations do not stack duplicate output.

    Args:
        settings: Logging section of the loaded configuration.
        console: Rich console to render log records on; stderr when omitted.
        level_override: Level name that takes precedence over ``settings.level``.

    Returns:
        logging.Logger: The configured ``writerfriend`` logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)
            handler.close()

    level_name = (level_override or settings.level).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.WARNING
    logger.setLevel(level)

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    setattr(rich_handler, _HANDLER_MARKER, True)
    logger.addHandler(rich_handler)

    if settings.file:
        log_path = Path(settings.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max(1, settings.max_size_mb) * 1024 * 1024,
            backupCount=max(0, settings.backup_count),
            encoding="utf-8",
        )
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        setattr(file_handler, _HANDLER_MARKER, True)
        logger.addHandler(file_handler)

    return logger


__all__ = ["ROOT_LOGGER_NAME", "configure_logging"]

"""
Logging setup for textweaver.

Console output goes through rich; a rotating file keeps the full DEBUG trail.
Modules log through ``logging.getLogger(__name__)`` under the ``textweaver``
namespace.
"""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from textweaver.config import LoggingConfig

ROOT_LOGGER = "textweaver"


def setup_logging(
    config: LoggingConfig | None = None, console: Console | None = None
) -> logging.Logger:
    """
    Configure the ``textweaver`` logger.

    Safe to call more than once: handlers installed by a previous call are
    replaced rather than duplicated.

    Args:
        config: Logging configuration. Defaults to ``LoggingConfig()``.
        console: Rich console to share with the CLI output.

    Returns:
        The configured package logger.
    """
    config = config or LoggingConfig()
    logger = logging.getLogger(ROOT_LOGGER)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console_handler = RichHandler(
        console=console,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    console_handler.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    logger.addHandler(console_handler)

    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(config.format))
        logger.addHandler(file_handler)

    return logger

"""Logging for Mangatrack: a rotating file plus a Rich console.

`setup_logging` is called once by the CLI after the config is loaded; the
log location and console level come from the `[logging]` section.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

if TYPE_CHECKING:
    from .config import LoggingConfig

FILE_FORMAT = "%(asctime)s - %(levelname)-8s - %(name)s - %(message)s"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

# third-party loggers that only matter when something breaks
QUIET_LOGGERS = ("uvicorn.access", "urllib3")

_installed: list[logging.Handler] = []


def _file_handler(log_file: Path) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _console_handler(level: int) -> logging.Handler:
    console = Console(theme=Theme({"logging.level.info": "bold cyan"}))
    handler = RichHandler(console=console, rich_tracebacks=True, show_time=False, show_path=False)
    handler.setLevel(level)
    return handler


def setup_logging(settings: "LoggingConfig", level: Optional[str] = None) -> Path:
    """Attach file and console handlers to the root logger once.

    Args:
        settings: the `[logging]` section of the loaded config
        level: console level overriding settings.level (e.g. from --log-level)

    Returns:
        Path of the log file being written.
    """
    log_file = settings.log_file
    if _installed:
        return log_file

    console_level = getattr(logging, (level or settings.level).upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in (_file_handler(log_file), _console_handler(console_level)):
        root_logger.addHandler(handler)
        _installed.append(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return log_file


def teardown_logging() -> None:
    """Detach and close the handlers added by setup_logging."""
    root_logger = logging.getLogger()
    while _installed:
        handler = _installed.pop()
        root_logger.removeHandler(handler)
        handler.close()


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

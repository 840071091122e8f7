"""SILK Audio Converter - Logging configuration.

One call at startup attaches two handlers to the root logger:
- a file handler writing logs/audio_converter_YYYY-MM-DD.log
- a console handler, coloured through rich when enabled

Modules log through logging.getLogger(__name__) as usual.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from app.config import LOG_FILE_PREFIX, LOG_LEVELS
from app.errors import LoggingSetupError

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] [%(filename)s:%(lineno)d] %(message)s"

# Third-party loggers that are only noise at DEBUG
_NOISY_LOGGERS = ("multipart", "python_multipart", "httpx", "httpcore", "asyncio")


@dataclass
class LoggingHandle:
    """Handlers installed by configure_logging, for later removal."""

    log_path: Path
    handlers: list[logging.Handler] = field(default_factory=list)


def log_file_path(logs_dir: str | Path, day: date | None = None) -> Path:
    """Path of the log file for a given day."""
    day = day or date.today()
    return Path(logs_dir) / f"{LOG_FILE_PREFIX}{day:%Y-%m-%d}.log"


def configure_logging(logs_dir: str | Path, level: str = "DEBUG", color: bool = True) -> LoggingHandle:
    """Attach file and console handlers to the root logger.

    Args:
        logs_dir: Directory for the date-named log file (created if absent).
        level: One of DEBUG, INFO, WARNING, ERROR.
        color: Use rich's coloured console output.

    Returns:
        LoggingHandle to pass to close_logging().

    Raises:
        LoggingSetupError: Unknown level, or the log file cannot be opened.
    """
    level = level.upper()
    if level not in LOG_LEVELS:
        raise LoggingSetupError(f"Unknown log level: {level}")

    log_path = log_file_path(logs_dir)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    except OSError as e:
        raise LoggingSetupError(f"Cannot open log file {log_path}: {e}") from e

    plain = logging.Formatter(PLAIN_FORMAT)
    file_handler.setFormatter(plain)

    console_handler: logging.Handler
    if color:
        console_handler = RichHandler(
            console=Console(file=sys.stdout),
            show_path=True,
            markup=False,
            rich_tracebacks=True,
        )
    else:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(plain)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level))
    for handler in (file_handler, console_handler):
        root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    handle = LoggingHandle(log_path=log_path, handlers=[file_handler, console_handler])
    logging.getLogger(__name__).info("Logging initialised, log file: %s", log_path)
    return handle


def close_logging(handle: LoggingHandle | None) -> None:
    """Detach and close handlers installed by configure_logging."""
    if handle is None:
        return
    root = logging.getLogger()
    for handler in handle.handlers:
        root.removeHandler(handler)
        handler.close()
    handle.handlers.clear()

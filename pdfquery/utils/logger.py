"""
Logging setup for pdfquery.

Every module logs under the "pdfquery" namespace. The CLI configures that
namespace once from settings.yaml; library callers who never do so get
Python's default handling (nothing below WARNING is shown).

Console records go to stderr, because stdout carries query output that
may be piped into another tool.

    from pdfquery.utils.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Compiled %d pages", count)
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

import colorama
from colorama import Fore, Style

colorama.init()

LOGGER_NAMESPACE = "pdfquery"

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024


class ColoredFormatter(logging.Formatter):
    """Wraps each console line in the ANSI color of its level."""

    COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }
    RESET = Style.RESET_ALL

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelno, '')
        return f"{color}{super().format(record)}{self.RESET}"


def setup_logger(
    level: str = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = 5,
    colorize: bool = True,
    stream=None
) -> logging.Logger:
    """
    Attach console (and optionally rotating file) handlers to the
    "pdfquery" logger, replacing whatever handlers it had.

    The logger stops propagating to the root logger, so an application
    that embeds pdfquery and has its own root handlers sees each record
    once.

    Args:
        level: Level name, applied to the logger and to each handler.
        log_format: Record format; DEFAULT_FORMAT when None.
        date_format: asctime format; DEFAULT_DATE_FORMAT when None.
        log_file: Also write to this file, creating parent directories.
        max_bytes: Size at which the log file rolls over.
        backup_count: Rolled-over files kept next to the log file.
        colorize: Color console lines by level (never applied to the file).
        stream: Console stream; stderr when None.

    Returns:
        The "pdfquery" logger.

    Example:
        >>> setup_logger(level="DEBUG", log_file="logs/pdfquery.log")
    """
    log_format = log_format or DEFAULT_FORMAT
    date_format = date_format or DEFAULT_DATE_FORMAT
    numeric_level = getattr(logging, level.upper())

    package_logger = logging.getLogger(LOGGER_NAMESPACE)
    package_logger.setLevel(numeric_level)
    package_logger.handlers.clear()

    formatter_class = ColoredFormatter if colorize else logging.Formatter
    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setFormatter(formatter_class(log_format, datefmt=date_format))
    handlers = [console_handler]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(numeric_level)
        package_logger.addHandler(handler)

    package_logger.propagate = False
    package_logger.debug(f"Logging at {level.upper()} ({len(handlers)} handlers)")
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Logger for `name`, placed under the "pdfquery" namespace."""
    if name.startswith(LOGGER_NAMESPACE):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def setup_logger_from_config() -> logging.Logger:
    """
    Call setup_logger with the `logging` section of the active config.

    An unreadable config or an unknown level name prints a warning and
    configures the defaults instead.
    """
    try:
        from config import get_config

        log_file = None
        if get_config("logging.file.enabled", False):
            log_file = get_config("logging.file.path")

        return setup_logger(
            level=get_config("logging.level", "INFO"),
            log_format=get_config("logging.format"),
            date_format=get_config("logging.date_format"),
            log_file=log_file,
            max_bytes=get_config("logging.file.max_bytes", DEFAULT_MAX_BYTES),
            backup_count=get_config("logging.file.backup_count", 5),
            colorize=get_config("logging.console.colorize", True)
        )
    except (FileNotFoundError, OSError, ValueError, AttributeError) as e:
        print(f"Warning: Could not load logging config, using defaults: {e}", file=sys.stderr)
        return setup_logger()

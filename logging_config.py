#!/usr/bin/env python3

"""
Centralized Logging Configuration

Sets up application-wide logging using Python's standard `logging` module.
Features:
- Log level from the configuration, an environment variable or the caller
- Console (stderr) and rotating file handlers
- Custom formatter for aligned, coloured multi-line messages
- Filter to reduce noise from HTTP libraries (urllib3, requests)
- Handler levels updated in place when called again
"""

# --- Standard library imports ---
import copy
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from testing.test_framework import Colors, has_ansi_codes

logger = logging.getLogger(__name__)

# --- Define log format constants ---
LOG_FORMAT: str = "%(asctime)s %(levelname).3s [%(module)-10.10s %(funcName)-12.12s %(lineno)-4d] %(message)s"
DATE_FORMAT: str = "%H:%M:%S"

NOISY_LOGGERS = ["urllib3", "requests", "charset_normalizer", "keyring"]


# --- Custom Logging Filters ---
class NameFilter(logging.Filter):
    """Filters log records based on logger name starting with excluded prefixes."""

    def __init__(self, excluded_names: list[str]):
        super().__init__()
        self.excluded_names = excluded_names

    def filter(self, record: logging.LogRecord) -> bool:
        """Return False if record name starts with any excluded prefix, True otherwise."""
        return not any(record.name.startswith(name) for name in self.excluded_names)


# --- Custom Logging Formatter ---
class AlignedMessageFormatter(logging.Formatter):
    """
    Formats log records to align multi-line messages below the initial log prefix.
    Leading whitespace from subsequent lines of the original message is removed.
    """

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, use_color: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color

    def _apply_level_color(self, message: str, level: int) -> str:
        """Colour WARNING and above unless the message is already coloured."""
        if not self.use_color or has_ansi_codes(message):
            return message
        if level >= logging.ERROR:
            return Colors.red(message)
        if level >= logging.WARNING:
            return Colors.yellow(message)
        return message

    def format(self, record: logging.LogRecord) -> str:
        """Formats the log record with alignment and level colouring."""
        message = self._apply_level_color(record.getMessage(), record.levelno)

        # Format a copy with a one-character message to measure the prefix
        record_copy = copy.copy(record)
        placeholder = "X"
        record_copy.msg = placeholder
        record_copy.args = ()
        record_copy.exc_info = None
        record_copy.exc_text = None
        record_copy.stack_info = None
        prefix_with_placeholder = super().format(record_copy)
        start = prefix_with_placeholder.rfind(placeholder)
        prefix = prefix_with_placeholder[:start]
        indent = " " * start

        lines = message.split("\n")
        if record.exc_info:
            lines.extend(self.formatException(record.exc_info).split("\n"))
        if record.stack_info:
            lines.extend(self.formatStack(record.stack_info).split("\n"))

        formatted = [f"{prefix}{lines[0].lstrip()}"]
        formatted.extend(f"{indent}{line.lstrip()}" for line in lines[1:])
        return "\n".join(formatted)


# --- Initialization Flag ---
class _LoggingState:
    """Manages logging initialization state."""

    initialized: bool = False
    handlers: list[logging.Handler] = []


def _resolve_log_dir(log_dir: Optional[Union[str, Path]]) -> Path:
    directory = Path(log_dir) if log_dir else Path(os.getenv("LOG_DIR", "Logs"))
    if not directory.is_absolute():
        directory = (Path(__file__).parent.resolve() / directory).resolve()
    return directory


def setup_logging(
    log_file: str = "",
    log_level: str = "INFO",
    log_dir: Optional[Union[str, Path]] = None,
    max_log_size_mb: int = 10,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure the root logger so every module logger reaches the handlers.

    If called again, updates existing handler levels instead of re-adding them.

    Args:
        log_file: Base name for the log file; defaults to LOG_FILE or "game_session.log"
        log_level: Minimum level for the handlers (e.g. "DEBUG", "INFO")
        log_dir: Directory for the log file; defaults to LOG_DIR or "Logs"
        max_log_size_mb: Size at which the log file is rotated
        backup_count: Number of rotated files kept

    Returns:
        The configured root logger.
    """
    root_logger = logging.getLogger()
    numeric_log_level = getattr(logging, log_level.upper(), logging.INFO)

    if _LoggingState.initialized:
        for handler in _LoggingState.handlers:
            handler.setLevel(numeric_log_level)
        return root_logger

    if not log_file:
        log_file = os.getenv("LOG_FILE", "game_session.log")

    logs_dir = _resolve_log_dir(log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file_path = logs_dir / Path(str(log_file)).name

    root_logger.setLevel(logging.DEBUG)

    file_handler = RotatingFileHandler(
        log_file_path,
        maxBytes=max_log_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(AlignedMessageFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT, use_color=False))
    file_handler.setLevel(numeric_log_level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(AlignedMessageFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    console_handler.setLevel(numeric_log_level)
    console_handler.addFilter(NameFilter(NOISY_LOGGERS))

    for handler in (file_handler, console_handler):
        root_logger.addHandler(handler)
    _LoggingState.handlers = [file_handler, console_handler]

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _LoggingState.initialized = True
    logger.debug(f"Logging initialised: level={log_level.upper()}, file={log_file_path}")
    return root_logger


def reset_logging() -> None:
    """Remove the handlers added by setup_logging (used by tests)."""
    root_logger = logging.getLogger()
    for handler in _LoggingState.handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _LoggingState.handlers = []
    _LoggingState.initialized = False


__all__ = ["AlignedMessageFormatter", "NameFilter", "reset_logging", "setup_logging"]

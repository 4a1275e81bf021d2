"""
Logging configuration for arif-music.

This module sets up the logging system with multiple outputs:
    - Console: coloured, compact messages (colorama)
    - log_full.log: Complete log of all events (DEBUG and above), rotated
    - log_errors.log: Only ERROR and CRITICAL level messages
    - sync_fallbacks.log: One line per write that was served by the local
      store instead of the API, so offline changes can be reviewed

Log File Locations:
    All log files are created in the 'logs' subdirectory of the data
    directory configured in config.yaml.

Usage:
    from arif_music.core.logger import setup_logging, get_logger

    setup_logging(config.storage.data_dir, level="INFO")  # once at startup
    logger = get_logger(__name__)

    logger.info("Session restored")
    log_sync_fallback("playlist.create", "network unavailable", entity_id=42)
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import TextIO

import colorama
from colorama import Fore, Style


LOG_FULL_FILENAME = "log_full.log"
LOG_ERRORS_FILENAME = "log_errors.log"
SYNC_FALLBACKS_FILENAME = "sync_fallbacks.log"

FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3

# Third-party loggers that are too chatty at INFO
NOISY_LIBRARIES = ("urllib3", "urllib3.connectionpool", "requests")


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that colours the level name for console output.

    Colors:
        - DEBUG: Cyan
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bright Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return f"{record.levelname}: {record.getMessage()}"
        color = self.LEVEL_COLORS.get(record.levelno, Fore.WHITE)
        return f"{color}{record.levelname}{Style.RESET_ALL}: {record.getMessage()}"


class ErrorOnlyFilter(logging.Filter):
    """Filter that only allows ERROR and CRITICAL level records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


class SyncFallbackHandler(logging.Handler):
    """
    Handler that records writes served by the local store.

    Only records carrying the 'sync_fallback_operation' extra field are
    written, one per line:

        2026-10-18 14:02:11 | playlist.create | network unavailable | 1760796131000

    Attributes:
        report_path: Path to the sync_fallbacks.log file.
        report_file: Open file handle, or None before open()/after close().
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None
        self.setFormatter(logging.Formatter(datefmt=FILE_DATE_FORMAT))

    def open(self) -> None:
        """Open the report file in append mode."""
        self.report_file = open(self.report_path, "a", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "sync_fallback_operation"):
            return

        if self.report_file is None:
            return

        try:
            timestamp = self.formatter.formatTime(record, FILE_DATE_FORMAT)
            operation = getattr(record, "sync_fallback_operation")
            reason = getattr(record, "sync_fallback_reason", "")
            entity_id = getattr(record, "sync_fallback_entity_id", None)

            line = f"{timestamp} | {operation} | {reason}"
            if entity_id is not None:
                line += f" | {entity_id}"

            self.report_file.write(line + "\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        if self.report_file is not None:
            self.report_file.close()
            self.report_file = None
        super().close()


def setup_logging(
    data_dir: Path | None = None,
    level: str = "INFO",
    colored: bool = True,
    stream: TextIO = sys.stderr
) -> None:
    """
    Configure the logging system for the application.

    Call once at startup, after the configuration is loaded.

    Args:
        data_dir: Directory whose 'logs' subdirectory receives the log files.
                  None disables file logging (console only).
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        colored: Whether console output uses ANSI colours.
        stream: Console stream, stderr by default.

    Behavior:
        1. Reset the root logger (level DEBUG, no handlers)
        2. Add the coloured console handler at the requested level
        3. If data_dir is given, add the rotating full log, the errors-only
           log and the sync fallback report
        4. Quiet third-party HTTP loggers
    """
    colorama.init()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Remove any existing handlers
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(stream)
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(ColoredConsoleFormatter(use_colors=colored))
    root_logger.addHandler(console_handler)

    if data_dir is not None:
        logs_dir = data_dir / "logs"
        logs_dir.mkdir(parents=True, exist_ok=True)

        full_handler = logging.handlers.RotatingFileHandler(
            logs_dir / LOG_FULL_FILENAME,
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8"
        )
        full_handler.setLevel(logging.DEBUG)
        full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
        root_logger.addHandler(full_handler)

        error_handler = logging.FileHandler(logs_dir / LOG_ERRORS_FILENAME, encoding="utf-8")
        error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
        error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
        error_handler.addFilter(ErrorOnlyFilter())
        root_logger.addHandler(error_handler)

        fallback_handler = SyncFallbackHandler(logs_dir / SYNC_FALLBACKS_FILENAME)
        fallback_handler.open()
        root_logger.addHandler(fallback_handler)

    for lib in NOISY_LIBRARIES:
        logging.getLogger(lib).setLevel(logging.WARNING)

    logging.getLogger("arif_music").debug(
        f"Logging initialized - Level: {level}, Files: {data_dir is not None}"
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Returns:
        logging.Logger: A logger configured by setup_logging().
    """
    return logging.getLogger(name)


def log_sync_fallback(
    operation: str,
    reason: str,
    entity_id: str | int | None = None,
    level: int = logging.WARNING
) -> None:
    """
    Log that a write was served by the local store instead of the API.

    Args:
        operation: Dotted operation name, e.g. "playlist.add_music".
        reason: Why the remote path was skipped or failed.
        entity_id: Id of the entity written locally, if known.
        level: Log level; INFO when the client is knowingly offline.
    """
    logger = logging.getLogger("arif_music.sync")
    logger.log(
        level,
        f"{operation}: using local store ({reason})",
        extra={
            "sync_fallback_operation": operation,
            "sync_fallback_reason": reason,
            "sync_fallback_entity_id": entity_id,
        }
    )


def shutdown_logging() -> None:
    """
    Flush and close every handler on the root logger.

    Typically called in a finally block at application exit.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except Exception:
            pass
        root_logger.removeHandler(handler)

"""
Logging configuration for playlist-finder.

This module sets up the logging system with multiple outputs:
    - Console: Real-time messages with tqdm-compatible, coloured formatting
    - log_full_<ts>.log: Complete log of all events (DEBUG and above)
    - log_errors_<ts>.log: Only ERROR and CRITICAL level messages
    - load_failures_<ts>.log: Playlists whose contents could not be loaded

Log File Locations:
    All log files are created in <output directory>/logs. Each run gets
    its own timestamped files.

Usage:
    from playlist_finder.core.logger import setup_logging, get_logger

    setup_logging(output_dir)  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Starting sync")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


LOG_FULL_FILENAME = "log_full"
LOG_ERRORS_FILENAME = "log_errors"
LOAD_FAILURES_FILENAME = "load_failures"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that colours the level name on console output.

    Colors:
        - DEBUG: Blue
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bold Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        colored_levelname = f"{color}{record.levelname}{Colors.RESET}"
        return f"{colored_levelname}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking progress bars.

    Uses tqdm.write(), which prints above any active bar instead of
    tearing through it.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class LoadFailureReportHandler(logging.Handler):
    """
    Handler that captures playlists which failed to load into a report file.

    The report is meant for the user, one block per playlist:

        Road Trip (owner: alice)
        https://open.spotify.com/playlist/xxxxx
        HTTP 500

    The handler looks for specific extra fields in log records:
        - 'load_failed_container_name'
        - 'load_failed_container_owner'
        - 'load_failed_container_url'
        - 'load_failed_reason'

    Only records containing these fields are written; everything else is
    ignored. Use log_load_failure() to attach them.
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file for writing (overwrites)."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "load_failed_container_name"):
            return

        if self.report_file is None:
            return

        try:
            name = getattr(record, "load_failed_container_name", "Unknown")
            owner = getattr(record, "load_failed_container_owner", "")
            url = getattr(record, "load_failed_container_url", "")
            reason = getattr(record, "load_failed_reason", "")

            header = f"{name} (owner: {owner})" if owner else name
            self.report_file.write(f"{header}\n")
            self.report_file.write(f"{url}\n")
            self.report_file.write(f"{reason}\n\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """Close the report file handle. Safe to call multiple times."""
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """
    Filter that only allows ERROR and CRITICAL level records.

    Used by the error log file handler to exclude DEBUG, INFO, and WARNING.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(output_dir: Path, console_level: int = logging.INFO) -> Path:
    """
    Configure the logging system for the application.

    Call ONCE at application startup, after the configuration is loaded.

    Args:
        output_dir: Directory where log files will be created.
                    Logs are stored in a 'logs' subdirectory.
        console_level: Minimum level shown on the console.

    Returns:
        The logs directory that was configured.

    Behavior:
        1. Create output_dir/logs if it doesn't exist
        2. Configure root logger level to DEBUG and drop existing handlers
        3. Console handler (TqdmLoggingHandler), coloured, console_level
        4. Full log file handler, DEBUG
        5. Error log file handler, ERROR+ via ErrorOnlyFilter
        6. Load failure report handler
    """
    logs_dir = output_dir / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    full_handler = logging.FileHandler(
        logs_dir / f"{LOG_FULL_FILENAME}_{timestamp}.log", mode="w", encoding="utf-8"
    )
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_handler = logging.FileHandler(
        logs_dir / f"{LOG_ERRORS_FILENAME}_{timestamp}.log", mode="w", encoding="utf-8"
    )
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    load_failures_handler = LoadFailureReportHandler(
        logs_dir / f"{LOAD_FAILURES_FILENAME}_{timestamp}.log"
    )
    load_failures_handler.open()
    root_logger.addHandler(load_failures_handler)

    # spotipy and urllib3 are chatty at DEBUG
    logging.getLogger("spotipy").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return logs_dir


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Note:
        Loggers obtained before setup_logging() is called have no handlers
        of their own and propagate to whatever the root logger has.
    """
    return logging.getLogger(name)


def log_load_failure(
    logger: logging.Logger,
    container_name: str,
    owner_id: str,
    external_url: str,
    reason: str
) -> None:
    """
    Log a playlist whose contents could not be loaded.

    Logs an ERROR with the extra fields LoadFailureReportHandler picks up,
    so the playlist also lands in load_failures_<ts>.log.

    Example:
        log_load_failure(
            logger,
            container_name="Road Trip",
            owner_id="alice",
            external_url="https://open.spotify.com/playlist/xxx",
            reason="HTTP 500"
        )
    """
    logger.error(
        f"Failed to load playlist: {container_name} ({reason})",
        extra={
            "load_failed_container_name": container_name,
            "load_failed_container_owner": owner_id,
            "load_failed_container_url": external_url,
            "load_failed_reason": reason,
        }
    )


def format_cache_pressure_message(container_name: str) -> str:
    """Format the user-facing cache pressure advisory with colors."""
    return (
        f"{Colors.YELLOW}Cache full{Colors.RESET}: "
        f"'{container_name}' was not saved; "
        f"continuing without persistence for this sync"
    )


def shutdown_logging() -> None:
    """
    Flush, close and remove all root logger handlers.

    Typically called in a finally block at application exit.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except (OSError, ValueError):
            pass
        root_logger.removeHandler(handler)

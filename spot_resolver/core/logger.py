"""
Logging configuration for spot-resolver.

This module sets up the logging system with multiple outputs:
    - Console: Coloured, tqdm-compatible output (INFO and above)
    - log_full_<ts>.log: Complete log of all events (DEBUG and above)
    - log_errors_<ts>.log: Only ERROR and CRITICAL level messages
    - link_failures_<ts>.log: Tracks whose download link could not be
      resolved, each followed by the full diagnostic trace

Log File Locations:
    All log files are created in {output_dir}/logs. Each run gets new
    files with a unique timestamp.

Usage:
    from spot_resolver.core.logger import setup_logging, get_logger

    setup_logging(output_dir)  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Resolving link")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from tqdm import tqdm

if TYPE_CHECKING:
    from spot_resolver.core.models import TrackDetails
    from spot_resolver.core.trace import DiagnosticTrace


LOG_FULL_FILENAME = "log_full"
LOG_ERRORS_FILENAME = "log_errors"
LINK_FAILURES_FILENAME = "link_failures"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at DEBUG
NOISY_LOGGERS = ("urllib3", "spotipy", "yt_dlp", "ytmusicapi", "asyncio")


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
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
        return f"{color}{record.levelname}{Colors.RESET}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking tqdm progress bars.

    Callers that resolve many tracks usually show a tqdm bar; writing
    through tqdm.write() makes messages appear above any active bar
    instead of tearing it.
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


class LinkFailureHandler(logging.Handler):
    """
    Handler that captures unresolved download links for the failure report.

    Listens for log records carrying the extra fields set by
    log_download_link_failure() and writes them to link_failures.log:

        Song Title - Artist One, Artist Two
        https://open.spotify.com/track/xxxxx
        yt-mp3: couldn't fetch link for abc, trying local extraction
        saavn: SaavnError: no songs found
        ...

    Records without 'link_failed_track_title' are ignored.

    Attributes:
        report_path: Path to the report file.
        report_file: Open file handle, set by open().
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file for writing (overwrites existing content)."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "link_failed_track_title"):
            return

        if self.report_file is None:
            return

        try:
            title = getattr(record, "link_failed_track_title", "Unknown")
            artists = getattr(record, "link_failed_track_artists", "")
            url = getattr(record, "link_failed_track_url", None) or ""
            trace = getattr(record, "link_failed_trace", "")

            heading = f"{title} - {artists}" if artists else title
            self.acquire()
            try:
                self.report_file.write(f"{heading}\n")
                if url:
                    self.report_file.write(f"{url}\n")
                if trace:
                    self.report_file.write(f"{trace}\n")
                self.report_file.write("\n")
                self.report_file.flush()
            finally:
                self.release()
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
    """Filter that only allows ERROR and CRITICAL level records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(output_dir: Path, console_level: int = logging.INFO) -> Path:
    """
    Configure the logging system for the application.

    This function should be called ONCE at application startup, after
    the configuration is loaded but before any other operations.

    Args:
        output_dir: Directory where log files will be created.
                    Logs are stored in a 'logs' subdirectory.
        console_level: Minimum level shown on the console.

    Returns:
        The logs directory.

    Behavior:
        1. Create output_dir/logs if it doesn't exist
        2. Configure root logger level to DEBUG and drop existing handlers
        3. Console handler (TqdmLoggingHandler, coloured)
        4. Full log file handler (DEBUG)
        5. Error log file handler (ERROR+ via ErrorOnlyFilter)
        6. Link failure report handler
        7. Lower noisy third-party loggers to WARNING
    """
    logs_dir = output_dir / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

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

    failures_handler = LinkFailureHandler(logs_dir / f"{LINK_FAILURES_FILENAME}_{timestamp}.log")
    failures_handler.open()
    root_logger.addHandler(failures_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logs_dir


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Note:
        Loggers obtained before setup_logging() is called will have no
        handlers and will not produce output.
    """
    return logging.getLogger(name)


def log_download_link_failure(
    logger: logging.Logger,
    track: "TrackDetails",
    trace: "DiagnosticTrace"
) -> None:
    """
    Log a track whose download link could not be resolved.

    Logs an ERROR with the extra fields LinkFailureHandler picks up, so
    the full trace ends up in link_failures.log.

    Example:
        log_download_link_failure(logger, track, trace)
    """
    artists = ", ".join(track.artists)
    logger.error(
        f"No download link for: {track.title} - {artists} ({len(trace)} stages failed)",
        extra={
            "link_failed_track_title": track.title,
            "link_failed_track_artists": artists,
            "link_failed_track_url": track.track_url,
            "link_failed_trace": trace.render(),
        }
    )


def shutdown_logging() -> None:
    """
    Flush, close and remove all root handlers.

    Typically called in a finally block at application exit.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except OSError:
            pass
        root_logger.removeHandler(handler)

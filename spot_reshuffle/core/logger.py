"""
Logging configuration for spot-reshuffle.

Outputs:
    - Console: one colored line per record, printed with tqdm.write() so it
      never tears an active progress bar
    - log_full_<timestamp>.log: every record, DEBUG included
    - log_errors_<timestamp>.log: ERROR and CRITICAL only
    - rejected_tracks_<timestamp>.log: one line per track the identity
      filter skipped, with the reason and the source it came from

The three files exist only when a log directory is configured
(`logging.directory` in config.yaml, or --log-dir).

Usage:
    from spot_reshuffle.core.logger import setup_logging, get_logger

    setup_logging(log_dir)
    logger = get_logger(__name__)

    log_rejected_track(logger, uri, "local_file", origin="Liked Songs")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


LOG_FULL_FILENAME = "log_full"
LOG_ERRORS_FILENAME = "log_errors"
REJECTED_TRACKS_FILENAME = "rejected_tracks"

FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every request at INFO/DEBUG
QUIET_LOGGERS = ("spotipy", "urllib3", "aiohttp", "asyncio")

REJECTED_URI_FIELD = "rejected_track_uri"


class Colors:
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """Formats console records as `LEVEL: message` with a colored level."""

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
    """Console handler printing through tqdm.write()."""

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream)
        except Exception:
            self.handleError(record)


class RejectedTrackFormatter(logging.Formatter):
    """
    Formats a rejection as a fixed-width report line:

        local_file    spotify:local:Artist:Album:Title:215    (playlist 37i9dQ...)
        unavailable   spotify:track:4iV5W9uYEdYUVa79Axb7Rh    (Liked Songs)
    """

    def format(self, record: logging.LogRecord) -> str:
        uri = getattr(record, REJECTED_URI_FIELD) or "<empty>"
        reason = getattr(record, "rejected_track_reason", "unknown")
        origin = getattr(record, "rejected_track_origin", None)

        line = f"{reason:<13} {uri}"
        if origin:
            line += f"    ({origin})"
        return line


class RejectedTrackHandler(logging.FileHandler):
    """
    File handler for the rejected-tracks report.

    Accepts only records created by log_rejected_track(), whatever their
    level, and writes them with RejectedTrackFormatter.
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__(report_path, mode="w", encoding="utf-8")
        self.setLevel(logging.DEBUG)
        self.setFormatter(RejectedTrackFormatter())
        self.addFilter(lambda record: hasattr(record, REJECTED_URI_FIELD))


class ErrorOnlyFilter(logging.Filter):
    """Passes ERROR and CRITICAL records only."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def _file_handler(path: Path, error_only: bool = False) -> logging.FileHandler:
    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    if error_only:
        handler.addFilter(ErrorOnlyFilter())
    return handler


def setup_logging(log_dir: Path | None = None, verbose: bool = False) -> None:
    """
    Configure the root logger. Call once, after the configuration is loaded.

    Any handler installed by an earlier call is dropped, so calling it again
    (e.g. from tests) starts from a clean state.

    Args:
        log_dir: Directory for the log files, created if missing.
                 None configures console output only.
        verbose: Print DEBUG records, including every rejected track,
                 on the console.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_dir is None:
        return

    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger.addHandler(_file_handler(log_dir / f"{LOG_FULL_FILENAME}_{timestamp}.log"))
    root_logger.addHandler(
        _file_handler(log_dir / f"{LOG_ERRORS_FILENAME}_{timestamp}.log", error_only=True)
    )
    root_logger.addHandler(
        RejectedTrackHandler(log_dir / f"{REJECTED_TRACKS_FILENAME}_{timestamp}.log")
    )


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module; pass __name__."""
    return logging.getLogger(name)


def log_rejected_track(
    logger: logging.Logger,
    uri: str | None,
    reason: str,
    origin: str | None = None
) -> None:
    """
    Record a track skipped by the identity filter.

    The record goes out at DEBUG, so the console only shows it with
    --verbose; the collector reports per-source totals at WARNING instead.
    The extra fields route it to the rejected-tracks report.

    Example:
        log_rejected_track(
            logger,
            uri="spotify:local:Artist:Album:Title:215",
            reason="local_file",
            origin="playlist 37i9dQZF1DXcBWIGoYBM5M"
        )
    """
    logger.debug(
        f"Skipped track ({reason}): {uri or '<empty>'}",
        extra={
            REJECTED_URI_FIELD: uri,
            "rejected_track_reason": reason,
            "rejected_track_origin": origin,
        }
    )


def shutdown_logging() -> None:
    """Flush, close and detach every root handler. Use in a finally block."""
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except OSError:
            pass
        root_logger.removeHandler(handler)

"""
Logging configuration for ytplaylist.

This module sets up the logging system with multiple outputs:
    - Console: coloured, written through tqdm so progress bars stay intact
    - log_full_<ts>.log: every event (DEBUG and above)
    - log_errors_<ts>.log: only ERROR and CRITICAL records
    - download_failures_<ts>.log: items whose download job ended in Failed
    - ambiguous_matches_<ts>.log: MusicBrainz lookups that ended in a tie

Everything printed on screen is also saved to file; the two report files
only receive records carrying their dedicated `extra` fields, which the
log_download_failure() and log_ambiguous_match() helpers attach.

Usage:
    from ytplaylist.core.logger import setup_logging, get_logger

    setup_logging(destination / "logs")   # once at startup
    logger = get_logger(__name__)
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Sequence, TextIO

from tqdm import tqdm


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
    Formatter that prefixes each console line with a coloured level name.

    DEBUG is blue, INFO green, WARNING yellow, ERROR red, CRITICAL bold red.
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
    Console handler that writes through tqdm.write().

    A plain StreamHandler on stderr would tear through an active progress
    bar; tqdm.write() prints the message above it instead.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream)
        except Exception:
            self.handleError(record)


class _ReportHandler(logging.Handler):
    """
    Base for handlers that turn specially tagged records into a report file.

    Subclasses set `marker` (the extra attribute that identifies their
    records) and implement `render()`. Records without the marker are
    ignored.
    """

    marker = ""

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file (overwriting any previous content)."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def render(self, record: logging.LogRecord) -> str:
        raise NotImplementedError

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, self.marker) or self.report_file is None:
            return
        try:
            self.report_file.write(self.render(record))
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class DownloadFailedTrackHandler(_ReportHandler):
    """
    Writes failed items to download_failures.log:

        Artist - Title
        https://www.youtube.com/watch?v=xxxxxxxxxxx
        HTTP 403 (Forbidden)

    Picks up records carrying 'download_failed_title'.
    """

    marker = "download_failed_title"

    def render(self, record: logging.LogRecord) -> str:
        title = getattr(record, "download_failed_title", "Unknown")
        artist = getattr(record, "download_failed_artist", "")
        url = getattr(record, "download_failed_url", "")
        reason = getattr(record, "download_failed_reason", "")
        name = f"{artist} - {title}" if artist else title
        return f"{name}\n{url}\n{reason}\n\n"


class AmbiguousMatchHandler(_ReportHandler):
    """
    Writes inconclusive MusicBrainz lookups to ambiguous_matches.log:

        [artist] Queen
          - Queen (score 100) 0383dadf-...
          - Queen (score 100) 5eecaf18-...
        Multiple candidates tied. No metadata was applied.

    Picks up records carrying 'ambiguous_match_query'.
    """

    marker = "ambiguous_match_query"

    def render(self, record: logging.LogRecord) -> str:
        kind = getattr(record, "ambiguous_match_kind", "?")
        query = getattr(record, "ambiguous_match_query", "")
        candidates = getattr(record, "ambiguous_match_candidates", [])
        lines = [f"[{kind}] {query}"]
        lines.extend(f"  - {candidate}" for candidate in candidates)
        lines.append("Multiple candidates tied. No metadata was applied.")
        return "\n".join(lines) + "\n\n"


class ErrorOnlyFilter(logging.Filter):
    """Only lets ERROR and CRITICAL records through."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(log_dir: Path, console_level: int = logging.INFO) -> Path:
    """
    Configure the logging system for one run.

    Call ONCE at startup, after the configuration is loaded and before
    the event loop starts any work.

    Args:
        log_dir: Directory for this run's log files (created if missing).
        console_level: Minimum level printed on the console.

    Returns:
        The log directory actually used.

    Behavior:
        1. Create log_dir
        2. Timestamp this run's files
        3. Root logger at DEBUG, existing handlers removed
        4. Console (tqdm + colours), full log, error log, and the two
           report handlers are attached to the root logger
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    file_formatter = logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT)

    full_handler = logging.FileHandler(
        log_dir / f"log_full_{timestamp}.log", mode="w", encoding="utf-8"
    )
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(file_formatter)
    root_logger.addHandler(full_handler)

    error_handler = logging.FileHandler(
        log_dir / f"log_errors_{timestamp}.log", mode="w", encoding="utf-8"
    )
    error_handler.setLevel(logging.DEBUG)  # ErrorOnlyFilter does the filtering
    error_handler.setFormatter(file_formatter)
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    download_handler = DownloadFailedTrackHandler(log_dir / f"download_failures_{timestamp}.log")
    download_handler.open()
    root_logger.addHandler(download_handler)

    ambiguous_handler = AmbiguousMatchHandler(log_dir / f"ambiguous_matches_{timestamp}.log")
    ambiguous_handler.open()
    root_logger.addHandler(ambiguous_handler)

    # Third-party DEBUG output is not useful in log_full
    for noisy in ("asyncio", "aiohttp", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return log_dir


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module, typically get_logger(__name__).

    Loggers obtained before setup_logging() have no handlers of their own
    and propagate to the root logger once it is configured.
    """
    return logging.getLogger(name)


def log_download_failure(
    logger: logging.Logger,
    title: str,
    artist: str,
    url: str,
    reason: str
) -> None:
    """
    Log a playlist item whose download job ended in Failed.

    Emits one ERROR record "Failed to download <title>: <reason>" carrying
    the extra fields DownloadFailedTrackHandler writes to its report.
    """
    logger.error(
        f"Failed to download {title}: {reason}",
        extra={
            "download_failed_title": title,
            "download_failed_artist": artist,
            "download_failed_url": url,
            "download_failed_reason": reason,
        }
    )


def log_ambiguous_match(
    logger: logging.Logger,
    kind: str,
    query: str,
    candidates: Sequence[str],
    message: str
) -> None:
    """
    Log a MusicBrainz lookup whose best candidates tied.

    Args:
        logger: The logger to use.
        kind: "artist", "recording" or "release".
        query: What was searched for.
        candidates: One printable line per tied candidate.
        message: The console warning.
    """
    details = "".join(f"\n  - {candidate}" for candidate in candidates)
    logger.warning(
        f"{message}{details}",
        extra={
            "ambiguous_match_kind": kind,
            "ambiguous_match_query": query,
            "ambiguous_match_candidates": list(candidates),
        }
    )


def format_summary_line(label: str, value: object, color: str = "") -> str:
    """Format one aligned line of the end-of-run statistics block."""
    if color:
        return f"{label:<18} {color}{value}{Colors.RESET}"
    return f"{label:<18} {value}"


def shutdown_logging() -> None:
    """
    Flush, close and detach all root handlers.

    Called from the CLI's finally block.
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except (OSError, ValueError):
            pass
        root_logger.removeHandler(handler)

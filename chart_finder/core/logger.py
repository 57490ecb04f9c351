"""
Logging configuration for chart-finder.

This module sets up the logging system with multiple outputs:
    - Console: Real-time progress with tqdm-compatible formatting
    - log_full.log: Complete log of all events (DEBUG and above)
    - log_errors.log: Only ERROR and CRITICAL level messages
    - recommendations.log: One block per recommended chart with the
      reasons the chart selector gave for choosing it

Everything written to screen is also saved to file, then filtered into
specialized files.

Log File Locations:
    All log files are created in a 'logs' subdirectory of the output
    directory specified in config.yaml. Each run creates new files with
    a timestamp suffix.

Usage:
    from chart_finder.core.logger import setup_logging, get_logger

    setup_logging(output_dir)  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Scanning library")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


# Log file name prefixes (created in output_dir/logs)
LOG_FULL_FILENAME = "log_full"
LOG_ERRORS_FILENAME = "log_errors"
RECOMMENDATIONS_FILENAME = "recommendations"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Log format for console output (compact, tqdm-friendly)
CONSOLE_LOG_FORMAT = "%(levelname)s: %(message)s"


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
    Formatter that adds colors to console output.

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

    Progress bars redraw in place using carriage returns. Standard logging
    to stderr interleaves with those redraws and leaves broken lines.
    tqdm.write() prints above any active bar instead.

    Attributes:
        stream: The output stream (defaults to sys.stderr).
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self.stream = stream if stream is not None else sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        """
        Emit a log record using tqdm.write().

        Thread Safety:
            tqdm.write() handles synchronization between threads.
        """
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class RecommendationReportHandler(logging.Handler):
    """
    Handler that captures recommended charts for the recommendations report.

    This handler listens for log records that carry recommendation
    information and writes them to recommendations.log in a human-readable
    format for later review:

        Metallica - One
        Chart: One by Harmonix (drums: 5, guitar: 6)
        Download: https://files.enchor.us/0123abcd.sng
        Reasons:
          - Better chart is from Harmonix
          - Better chart is from official game

    The handler looks for specific extra fields in log records:
        - 'recommendation_artist': Track artist
        - 'recommendation_title': Track title
        - 'recommendation_chart': Display name of the chosen chart
        - 'recommendation_charter': Charter of the chosen chart
        - 'recommendation_url': Download URL of the chosen chart
        - 'recommendation_instruments': Instrument summary string
        - 'recommendation_reasons': List of selector reasons (may be empty)

    Only records containing these fields are written to the report.

    Attributes:
        report_path: Path to the recommendations.log file.
        report_file: Open file handle (set by open()).
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """
        Open the report file for writing.

        Called by setup_logging() after handler is created.
        File is opened in write mode (overwrites existing content).
        """
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        """
        Write recommendation info to report if present in the log record.

        Thread Safety:
            Records are emitted under the handler lock acquired by
            logging.Handler.handle(), so blocks from different worker
            threads do not interleave.
        """
        if not hasattr(record, "recommendation_artist"):
            return

        if self.report_file is None:
            return

        try:
            artist = getattr(record, "recommendation_artist", "Unknown")
            title = getattr(record, "recommendation_title", "Unknown")
            chart = getattr(record, "recommendation_chart", "")
            charter = getattr(record, "recommendation_charter", "")
            url = getattr(record, "recommendation_url", "")
            instruments = getattr(record, "recommendation_instruments", "")
            reasons = getattr(record, "recommendation_reasons", [])

            self.report_file.write(f"{artist} - {title}\n")
            self.report_file.write(f"Chart: {chart} by {charter} ({instruments})\n")
            self.report_file.write(f"Download: {url}\n")
            if reasons:
                self.report_file.write("Reasons:\n")
                for reason in reasons:
                    self.report_file.write(f"  - {reason}\n")
            self.report_file.write("\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """
        Close the report file handle.

        Safe to call multiple times.
        """
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
        Path of the logs directory.

    Behavior:
        1. Create output_dir/logs if it doesn't exist
        2. Generate timestamp for this run's log files
        3. Configure root logger level to DEBUG
        4. Console handler (TqdmLoggingHandler), colored, console_level+
        5. Full log file handler, DEBUG+
        6. Error log file handler, ERROR+ (via ErrorOnlyFilter)
        7. Recommendation report handler

    Thread Safety:
        This function is NOT thread-safe. Call it once from the main
        thread before starting any worker threads.
    """
    logs_dir = output_dir / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Remove any existing handlers
    shutdown_logging()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    full_log_path = logs_dir / f"{LOG_FULL_FILENAME}_{timestamp}.log"
    full_handler = logging.FileHandler(full_log_path, mode="w", encoding="utf-8")
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_log_path = logs_dir / f"{LOG_ERRORS_FILENAME}_{timestamp}.log"
    error_handler = logging.FileHandler(error_log_path, mode="w", encoding="utf-8")
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    report_path = logs_dir / f"{RECOMMENDATIONS_FILENAME}_{timestamp}.log"
    report_handler = RecommendationReportHandler(report_path)
    report_handler.open()
    root_logger.addHandler(report_handler)

    return logs_dir


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Returns:
        logging.Logger: A logger instance configured by setup_logging().

    Note:
        Loggers obtained before setup_logging() is called will have no
        handlers and will not produce output.
    """
    return logging.getLogger(name)


def format_recommended_message(artist: str, title: str, charter: str) -> str:
    """Format a 'Recommended' message with colors."""
    return (
        f"{Colors.GREEN}Recommended{Colors.RESET}: "
        f"{artist} - {title} -> "
        f"{Colors.CYAN}{charter}{Colors.RESET}"
    )


def format_skipped_message(artist: str, title: str, reason: str) -> str:
    """Format a 'Skipped' message with colors."""
    return (
        f"{Colors.YELLOW}Skipped{Colors.RESET}: "
        f"{artist} - {title} "
        f"({reason})"
    )


def format_failed_message(artist: str, title: str, reason: str) -> str:
    """Format a 'Failed' error message with colors."""
    return (
        f"{Colors.RED}Failed{Colors.RESET}: "
        f"{artist} - {title} "
        f"({reason})"
    )


def format_update_message(artist: str, title: str, reasons: list[str]) -> str:
    """Format an 'Update available' message with colors."""
    return (
        f"{Colors.YELLOW}Update available{Colors.RESET}: "
        f"{artist} - {title} "
        f"({'; '.join(reasons)})"
    )


def log_recommendation(
    logger: logging.Logger,
    artist: str,
    title: str,
    chart: str,
    charter: str,
    url: str,
    instruments: str,
    reasons: list[str],
) -> None:
    """
    Log a recommended chart for the recommendations report.

    This is a convenience function that logs a recommendation with the
    correct extra fields for the RecommendationReportHandler to pick up.

    Args:
        logger: The logger to use for the message.
        artist: Track artist.
        title: Track title.
        chart: Display name of the chosen chart.
        charter: Charter of the chosen chart (style tags removed).
        url: Download URL of the chosen chart.
        instruments: Instrument summary, e.g. "drums: 5, guitar: 6".
        reasons: Selector reasons; empty when the default chart was kept.

    Behavior:
        Logs a DEBUG level message (the console shows a colored summary
        through the progress bar instead) with extra fields for the report.
    """
    logger.debug(
        f"Recommended {charter} chart for: {artist} - {title}",
        extra={
            "recommendation_artist": artist,
            "recommendation_title": title,
            "recommendation_chart": chart,
            "recommendation_charter": charter,
            "recommendation_url": url,
            "recommendation_instruments": instruments,
            "recommendation_reasons": list(reasons),
        }
    )


def shutdown_logging() -> None:
    """
    Flush, close and remove all handlers of the root logger.

    This function should be called at application exit. After calling
    it, logging will no longer produce output until setup_logging() is
    called again.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except OSError:
            pass
        root_logger.removeHandler(handler)

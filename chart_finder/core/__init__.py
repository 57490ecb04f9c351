"""
Core module for chart-finder.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with multiple outputs
    - progress: Rich progress bars
    - cached_file: Size-adaptive file cache with streaming MD5 digest

Usage:
    from chart_finder.core import (
        Config, load_config,
        CachedFile,
        setup_logging, get_logger,
        ChartFinderError, ConfigError
    )
"""

from chart_finder.core.cached_file import (
    Buffered,
    CachedFile,
    FileRef,
    LocalFileRef,
    MEMORY_THRESHOLD_BYTES,
    Streamed,
)
from chart_finder.core.config import (
    CacheConfig,
    CatalogConfig,
    Config,
    LibraryConfig,
    MatchingConfig,
    OutputConfig,
    SelectionConfig,
    WorkersConfig,
    load_config,
)
from chart_finder.core.exceptions import (
    BufferTooLargeError,
    CatalogFetchError,
    ChartFinderError,
    ConfigError,
    HistoryError,
    InvalidTrackError,
    LibraryScanError,
    NotAFileError,
    UserCanceledError,
)
from chart_finder.core.logger import (
    get_logger,
    log_recommendation,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "LibraryConfig",
    "CatalogConfig",
    "MatchingConfig",
    "SelectionConfig",
    "WorkersConfig",
    "CacheConfig",
    "OutputConfig",
    "load_config",
    # Cached file
    "CachedFile",
    "FileRef",
    "LocalFileRef",
    "Buffered",
    "Streamed",
    "MEMORY_THRESHOLD_BYTES",
    # Exceptions
    "ChartFinderError",
    "ConfigError",
    "NotAFileError",
    "BufferTooLargeError",
    "InvalidTrackError",
    "UserCanceledError",
    "CatalogFetchError",
    "LibraryScanError",
    "HistoryError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_recommendation",
    "shutdown_logging",
]

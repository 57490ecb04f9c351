"""
Exception classes for chart-finder.

This module defines all custom exceptions used throughout the application.
Each exception is designed to provide clear, actionable error messages
and to distinguish between different failure modes.

Exception Hierarchy:
    ChartFinderError (base)
        ConfigError - Configuration file issues
        NotAFileError - File reference is not a regular file
        BufferTooLargeError - In-memory access on a stream-backed file
        InvalidTrackError - Empty or malformed track identity
        UserCanceledError - User aborted the library scan
        CatalogFetchError - Remote catalog could not be loaded
        LibraryScanError - Local library could not be scanned
        HistoryError - Listening history dump could not be read
"""


class ChartFinderError(Exception):
    """
    Base exception for all chart-finder errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all chart-finder errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., paths, URLs).

    Example:
        try:
            result = reconcile(...)
        except ChartFinderError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'file_path': Path involved in the error
                     - 'url': URL that caused the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(ChartFinderError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - Explicit config path does not exist
        - config.yaml has invalid YAML syntax
        - A section is not a mapping
        - Invalid field values (e.g., negative edit distance, zero threads)

    Example:
        raise ConfigError(
            "'matching.artist_max_distance' must be a non-negative integer",
            details={'field': 'matching.artist_max_distance', 'value': -1}
        )
    """
    pass


class NotAFileError(ChartFinderError):
    """
    Raised when a file reference does not resolve to a regular file.

    Common causes:
        - The path points to a directory
        - The path does not exist
    """
    pass


class BufferTooLargeError(ChartFinderError):
    """
    Raised when the in-memory buffer of a stream-backed CachedFile is requested.

    Files at or above the memory threshold are never materialized in
    memory. Callers must use CachedFile.read_stream() for them.
    """
    pass


class InvalidTrackError(ChartFinderError):
    """
    Raised when a track has an empty artist or title.

    Matching an empty identity would match every catalog entry, so the
    matcher fails fast instead.

    Example:
        raise InvalidTrackError(
            "Track artist must be a non-empty string",
            details={'artist': '', 'title': 'Song Title'}
        )
    """
    pass


class UserCanceledError(ChartFinderError):
    """
    Raised when the user cancels the library scan.

    This is NOT a failure: the reconciliation driver turns it into an
    empty, non-error result. It is never retried.
    """

    def __init__(self, message: str = "User canceled the library scan", details: dict | None = None) -> None:
        super().__init__(message, details)


class CatalogFetchError(ChartFinderError):
    """
    Raised when the remote chart catalog cannot be loaded.

    This is a CRITICAL error for the current run: no partial
    recommendations are produced from a partial catalog.

    Common causes:
        - Catalog file not found
        - Invalid JSON or unexpected document shape
        - HTTP error status
        - Network failure that persisted through all retries

    Attributes:
        is_transient: True if the failure was caused by rate limiting or
                      network errors and a later retry may succeed.

    Example:
        raise CatalogFetchError(
            "Catalog request failed after 5 attempts",
            details={'url': url, 'status_code': 503},
            is_transient=True
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        is_transient: bool = False
    ) -> None:
        """
        Initialize catalog error with transient flag.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
            is_transient: Set to True if a later retry may succeed.
        """
        super().__init__(message, details)
        self.is_transient = is_transient


class LibraryScanError(ChartFinderError):
    """
    Raised when the local song library cannot be scanned.

    This is a CRITICAL error for the current run.

    Common causes:
        - Songs directory does not exist or is not a directory
        - Permission denied while walking the directory tree
    """
    pass


class HistoryError(ChartFinderError):
    """
    Raised when a listening history dump or track list cannot be read.

    Common causes:
        - Selected directory does not contain streaming history JSON files
        - A history file is not a JSON list
    """
    pass

"""
Chart catalog fetcher for chart-finder.

This module loads the remote chart catalog, either from a local JSON file
or over HTTP, and parses it into CatalogEntry objects. The catalog is
treated as one atomic snapshot for the run: either the whole document is
loaded or a CatalogFetchError is raised.

Sources:
    - Local path: "charts.json", "~/Downloads/charts.json"
    - URL: "https://example.org/charts.json"

Retry Strategy (HTTP only):
    - Transient failures (connection errors, timeouts, 429, 5xx) are retried
    - Exponential backoff: retry_delay * 2^attempt, capped at RETRY_DELAY_MAX
    - Jitter: ±30% randomization to prevent thundering herd
    - A Retry-After header on 429/503 responses overrides the computed delay
    - A retried request is re-issued; nothing is dropped
    - Exhausting all attempts raises CatalogFetchError(is_transient=True)

Usage:
    from chart_finder.catalog.fetcher import CatalogFetcher

    fetcher = CatalogFetcher(config.catalog)
    entries = fetcher.fetch()
"""

import json
import random
import time
from pathlib import Path
from typing import Any

import requests

from chart_finder.catalog.models import CatalogEntry
from chart_finder.core.config import CatalogConfig
from chart_finder.core.exceptions import CatalogFetchError
from chart_finder.core.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# RETRY CONFIGURATION FOR TRANSIENT ERRORS
# =============================================================================

# Maximum delay between retries (seconds) - caps exponential growth
RETRY_DELAY_MAX = 60.0

# Jitter factor (±30%)
RETRY_JITTER_FACTOR = 0.3

# HTTP status codes worth retrying
TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

USER_AGENT = "chart-finder/1.0"


def is_url(source: str) -> bool:
    """True if the catalog source is an http(s) URL."""
    return source.lower().startswith(("http://", "https://"))


def parse_catalog(document: Any, source: str) -> list[CatalogEntry]:
    """
    Parse a decoded catalog document into catalog entries.

    Args:
        document: The decoded JSON document.
        source: Catalog source, used in messages.

    Returns:
        Catalog entries in document order. Charts without an artist or a
        name are skipped with a warning.

    Raises:
        CatalogFetchError: If the document is not a list.
    """
    if not isinstance(document, list):
        raise CatalogFetchError(
            "Catalog document must be a JSON list of charts",
            details={"source": source, "type": type(document).__name__}
        )

    entries: list[CatalogEntry] = []
    skipped = 0
    for position, item in enumerate(document):
        if not isinstance(item, dict):
            skipped += 1
            logger.warning(f"Skipping catalog item {position}: not an object")
            continue
        try:
            entries.append(CatalogEntry.from_catalog_dict(item))
        except ValueError as e:
            skipped += 1
            logger.warning(f"Skipping catalog item {position}: {e}")

    logger.info(f"Loaded {len(entries)} charts from catalog ({skipped} skipped)")
    return entries


class CatalogFetcher:
    """
    Loads the chart catalog from a file or a URL.

    Attributes:
        config: Catalog configuration (timeout, retries, backoff).
    """

    def __init__(
        self,
        config: CatalogConfig,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config
        self._session = session

    @property
    def session(self) -> requests.Session:
        """HTTP session, created on first use."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({
                "User-Agent": USER_AGENT,
                "Accept": "application/json",
            })
        return self._session

    def fetch(self, source: str | None = None) -> list[CatalogEntry]:
        """
        Load the whole catalog.

        Args:
            source: File path or URL. Defaults to config.source.

        Returns:
            Catalog entries in document order.

        Raises:
            CatalogFetchError: If no source is configured, the source cannot
                               be read, or the document is not a JSON list.
        """
        source = source or self.config.source
        if not source:
            raise CatalogFetchError(
                "No catalog source configured. Use --catalog or set catalog.source"
            )

        logger.info(f"Loading catalog from {source}")
        if is_url(source):
            document = self._fetch_url(source)
        else:
            document = self._read_file(Path(source).expanduser())

        return parse_catalog(document, source)

    def _read_file(self, path: Path) -> Any:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except OSError as e:
            raise CatalogFetchError(
                f"Failed to read catalog file: {e}",
                details={"file_path": str(path), "original_error": str(e)}
            ) from e
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError
            raise CatalogFetchError(
                f"Catalog file is not valid UTF-8 JSON: {e}",
                details={"file_path": str(path), "original_error": str(e)}
            ) from e

    def _fetch_url(self, url: str) -> Any:
        response = self._get_with_retry(url)
        try:
            return response.json()
        except ValueError as e:
            raise CatalogFetchError(
                f"Catalog response is not valid JSON: {e}",
                details={"url": url, "original_error": str(e)}
            ) from e

    def _get_with_retry(self, url: str) -> requests.Response:
        """
        GET a URL, retrying transient failures with backoff.

        Raises:
            CatalogFetchError: On a non-transient HTTP error, or with
                               is_transient=True once all attempts fail.
        """
        max_attempts = self.config.max_retries
        last_error = ""

        for attempt in range(max_attempts):
            retry_after: float | None = None
            try:
                response = self.session.get(url, timeout=self.config.timeout)
            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                last_error = str(e)
            except requests.exceptions.RequestException as e:
                raise CatalogFetchError(
                    f"Catalog request failed: {e}",
                    details={"url": url, "original_error": str(e)}
                ) from e
            else:
                if response.status_code < 400:
                    return response
                if response.status_code not in TRANSIENT_STATUS_CODES:
                    raise CatalogFetchError(
                        f"Catalog request failed with HTTP {response.status_code}",
                        details={"url": url, "status_code": response.status_code}
                    )
                last_error = f"HTTP {response.status_code}"
                retry_after = _parse_retry_after(response.headers.get("Retry-After"))

            if attempt < max_attempts - 1:
                delay = self._retry_delay(attempt, retry_after)
                log_msg = (
                    f"Catalog request attempt {attempt + 1}/{max_attempts} failed: "
                    f"{last_error}. Retrying in {delay:.1f}s"
                )
                if retry_after is not None:
                    logger.warning(log_msg + " (rate limit detected)")
                else:
                    logger.debug(log_msg)
                time.sleep(delay)

        logger.error(f"Catalog request failed after {max_attempts} attempts: {last_error}")
        raise CatalogFetchError(
            f"Catalog request failed after {max_attempts} attempts: {last_error}",
            details={"url": url, "attempts": max_attempts},
            is_transient=True
        )

    def _retry_delay(self, attempt: int, retry_after: float | None) -> float:
        if retry_after is not None:
            return min(retry_after, RETRY_DELAY_MAX)

        base_delay = min(self.config.retry_delay * (2 ** attempt), RETRY_DELAY_MAX)
        jitter = base_delay * RETRY_JITTER_FACTOR * (2 * random.random() - 1)
        return max(0.5, base_delay + jitter)


def _parse_retry_after(value: str | None) -> float | None:
    """Retry-After in seconds; HTTP-date values are not supported."""
    if value is None:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return max(0.0, seconds)


def load_catalog(config: CatalogConfig, source: str | None = None) -> list[CatalogEntry]:
    """
    Convenience function to load the catalog with a fresh fetcher.

    Args:
        config: Catalog configuration.
        source: Optional source overriding config.source.

    Returns:
        Catalog entries in document order.
    """
    return CatalogFetcher(config).fetch(source)

"""
chart-finder: Find rhythm game charts for the songs you listen to.

This package reconciles a user's listening history and local chart
library against a large remote chart catalog, and recommends the best
chart for every song the user listens to but has no chart for yet.

Architecture:
    The run is split into phases:

    Library scan (library/scanner.py):
        - Walk the Songs directory for song.ini folders
        - Read artist, title, charter and difficulties
        - Cancelable; reports progress once per song

    Catalog fetch (catalog/):
        - Load the catalog JSON from a file or URL
        - Retry transient HTTP failures with backoff

    Matching (matching/):
        - IdentityIndex: fuzzy artist lookup with bounded edit distance
        - CandidateMatcher: artist lookup + title verification
        - Installed predicate: skip charts the user already has
        - Chart selector: ranking groups of explainable rules

    Reconciliation (reconcile/):
        - Bounded worker pool over the tracks
        - One recommendation (chart + reasons) per track

    Content cache (core/cached_file.py):
        - Buffers small files, streams large ones
        - Streaming MD5 digest

Modules:
    core/       - Configuration, logging, exceptions, progress, content cache
    catalog/    - Catalog entries and fetching
    matching/   - Normalization, identity index, matcher, selector
    library/    - Tracks, installed charts, history import
    reconcile/  - Reconciliation driver and result records
    cli.py      - Command-line interface

Usage:
    Command Line:
        chartfind --history ~/my_spotify_data --catalog charts.json
        chartfind --tracks playlist.json --out picks.json
        chartfind --updates
        chartfind --md5 song.sng

    Python API:
        from chart_finder.core import load_config, setup_logging
        from chart_finder.catalog import CatalogFetcher
        from chart_finder.library import load_streaming_history, scan_library
        from chart_finder.reconcile import reconcile

        config = load_config()
        setup_logging(config.output.directory)

        tracks = load_streaming_history(history_dir)
        result = reconcile(
            tracks,
            scan=lambda: scan_library(config.library.directory),
            fetch=CatalogFetcher(config.catalog).fetch,
            config=config,
        )

Dependencies:
    - rapidfuzz: Bounded Levenshtein distance
    - requests: Catalog download
    - click: CLI framework
    - rich-click: CLI colors
    - rich: Progress bars
    - tqdm: Progress-safe console logging
    - pyyaml: Configuration file parsing
"""

__version__ = "0.1.0"
__author__ = "chart-finder"
__license__ = "MIT"

# Convenience imports for common usage
from chart_finder.core import (
    CachedFile,
    ChartFinderError,
    Config,
    ConfigError,
    get_logger,
    load_config,
    setup_logging,
)
from chart_finder.catalog import CatalogEntry, CatalogFetcher
from chart_finder.library import InstalledEntry, Track
from chart_finder.reconcile import ReconciliationResult, Recommendation, reconcile

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "setup_logging",
    "get_logger",
    "CachedFile",
    # Exceptions
    "ChartFinderError",
    "ConfigError",
    # Models
    "CatalogEntry",
    "Track",
    "InstalledEntry",
    "Recommendation",
    "ReconciliationResult",
    # Workflow
    "CatalogFetcher",
    "reconcile",
]

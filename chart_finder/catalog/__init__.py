"""
Chart catalog module for chart-finder.

This module loads the remote chart catalog and defines its data model.

Components:
    - models: CatalogEntry dataclass and difficulty parsing
    - fetcher: CatalogFetcher for local files and HTTP sources

Usage:
    from chart_finder.catalog import CatalogFetcher, CatalogEntry

    entries = CatalogFetcher(config.catalog).fetch()
"""

from chart_finder.catalog.fetcher import CatalogFetcher, load_catalog, parse_catalog
from chart_finder.catalog.models import CatalogEntry

__all__ = [
    "CatalogEntry",
    "CatalogFetcher",
    "load_catalog",
    "parse_catalog",
]

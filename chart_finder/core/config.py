"""
Configuration management for chart-finder.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - Songs directory of the local library
    - Catalog source (file path or URL) and download base URL
    - Fuzzy matching thresholds
    - Official charter names used by the chart selector
    - Number of parallel matching threads
    - Memory threshold of the content cache
    - Output directory for log files

Every section is optional. When no config.yaml exists in the current
working directory, defaults are used so the tool can run from CLI flags
alone.

Example config.yaml:
    library:
      directory: "~/Clone Hero/Songs"

    catalog:
      source: "https://example.org/charts.json"
      download_base_url: "https://files.enchor.us"
      timeout: 60
      max_retries: 5
      retry_delay: 2.0

    matching:
      artist_max_distance: 1
      title_max_distance: 4
      installed_artist_max_distance: 2
      installed_title_max_distance: 4

    selection:
      official_charters: ["Harmonix", "Neversoft"]

    workers:
      threads: 10

    cache:
      memory_threshold_mib: 2048

    output:
      directory: "~/.chart-finder"
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from chart_finder.core.exceptions import ConfigError


# Default configuration file name (looked up in current working directory)
CONFIG_FILENAME = "config.yaml"

DEFAULT_DOWNLOAD_BASE_URL = "https://files.enchor.us"
DEFAULT_OFFICIAL_CHARTERS = ("Harmonix", "Neversoft")
DEFAULT_OUTPUT_DIRECTORY = "~/.chart-finder"

# 2048 MiB; files strictly below this size are buffered in memory
DEFAULT_MEMORY_THRESHOLD_MIB = 2048


@dataclass(frozen=True)
class LibraryConfig:
    """
    Local song library configuration.

    Attributes:
        directory: Songs directory to scan, or None if it must be given
                   on the command line.
    """
    directory: Path | None = None


@dataclass(frozen=True)
class CatalogConfig:
    """
    Remote chart catalog configuration.

    Attributes:
        source: Path or http(s) URL of the catalog JSON document.
                None if it must be given on the command line.
        download_base_url: Base URL used to build chart download links
                           ({download_base_url}/{md5}.sng).
        timeout: Seconds to wait for a single HTTP response.
        max_retries: Number of attempts for transient HTTP failures.
        retry_delay: Base delay in seconds of the exponential backoff.
    """
    source: str | None = None
    download_base_url: str = DEFAULT_DOWNLOAD_BASE_URL
    timeout: float = 60.0
    max_retries: int = 5
    retry_delay: float = 2.0


@dataclass(frozen=True)
class MatchingConfig:
    """
    Fuzzy matching thresholds.

    These are tuning values, not derived constants. They are kept here so
    they can be recalibrated without touching the matching code.

    Attributes:
        artist_max_distance: Maximum edit distance between a track artist
                             and a catalog artist.
        title_max_distance: Maximum edit distance between a track title
                            and a catalog title.
        installed_artist_max_distance: Artist distance used when checking
                                       whether a chart is already installed.
        installed_title_max_distance: Title distance used when checking
                                      whether a chart is already installed.
    """
    artist_max_distance: int = 1
    title_max_distance: int = 4
    installed_artist_max_distance: int = 2
    installed_title_max_distance: int = 4


@dataclass(frozen=True)
class SelectionConfig:
    """
    Chart selector configuration.

    Attributes:
        official_charters: Charter names that denote charts ported from
                           official games.
    """
    official_charters: tuple[str, ...] = DEFAULT_OFFICIAL_CHARTERS


@dataclass(frozen=True)
class WorkersConfig:
    """
    Worker pool configuration.

    Attributes:
        threads: Width of the bounded worker pool used for per-track
                 matching. Recommended range: 1-16. Default: 10.
    """
    threads: int = 10


@dataclass(frozen=True)
class CacheConfig:
    """
    Content cache configuration.

    Attributes:
        memory_threshold_mib: Files strictly smaller than this (in MiB)
                              are read fully into memory; larger files
                              are streamed.
    """
    memory_threshold_mib: int = DEFAULT_MEMORY_THRESHOLD_MIB

    @property
    def memory_threshold_bytes(self) -> int:
        """Get the threshold in bytes."""
        return self.memory_threshold_mib * 1024 * 1024


@dataclass(frozen=True)
class OutputConfig:
    """
    Output directory configuration.

    Attributes:
        directory: Directory where the logs/ subdirectory is created.
    """
    directory: Path = field(
        default_factory=lambda: Path(DEFAULT_OUTPUT_DIRECTORY).expanduser()
    )


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    This is the main configuration object that aggregates all configuration
    sections. It is created by load_config() and should be treated as
    immutable (frozen dataclass).

    Example:
        config = load_config()
        print(f"Scanning: {config.library.directory}")
        print(f"Using {config.workers.threads} threads")
    """
    library: LibraryConfig = field(default_factory=LibraryConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    workers: WorkersConfig = field(default_factory=WorkersConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit config file is not found, has invalid
                     YAML syntax, or contains invalid values.

    Behavior:
        1. Locate config file (explicit path or CWD/config.yaml)
        2. If no explicit path was given and CWD/config.yaml is missing,
           return defaults
        3. Read and parse YAML content
        4. Validate and parse each section, applying defaults
        5. Create and return frozen Config object

    Thread Safety:
        This function is NOT thread-safe. It should be called once at
        application startup, before any threads are created.
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        if explicit:
            raise ConfigError(
                f"Configuration file not found: {config_path}",
                details={"file_path": str(config_path)}
            )
        return Config()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    # An empty file parses to None
    if raw_config is None:
        return Config()

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return parse_config(raw_config)


def parse_config(raw_config: dict[str, Any]) -> Config:
    """
    Build a Config from an already parsed YAML dictionary.

    Args:
        raw_config: Dictionary parsed from config.yaml.

    Returns:
        Config with defaults applied for missing sections and fields.

    Raises:
        ConfigError: If a section is not a dictionary or a value is invalid.
    """
    return Config(
        library=_parse_library_config(_section(raw_config, "library")),
        catalog=_parse_catalog_config(_section(raw_config, "catalog")),
        matching=_parse_matching_config(_section(raw_config, "matching")),
        selection=_parse_selection_config(_section(raw_config, "selection")),
        workers=_parse_workers_config(_section(raw_config, "workers")),
        cache=_parse_cache_config(_section(raw_config, "cache")),
        output=_parse_output_config(_section(raw_config, "output")),
    )


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a section dictionary, {} if absent."""
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _parse_path(value: Any, field_name: str) -> Path:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"'{field_name}' must be a non-empty string",
            details={"field": field_name}
        )
    return Path(value.strip()).expanduser().resolve()


def _parse_int(value: Any, field_name: str, minimum: int) -> int:
    # bool is a subclass of int; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        qualifier = "positive" if minimum > 0 else "non-negative"
        raise ConfigError(
            f"'{field_name}' must be a {qualifier} integer",
            details={"field": field_name, "value": value}
        )
    return value


def _parse_positive_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(
            f"'{field_name}' must be a positive number",
            details={"field": field_name, "value": value}
        )
    return float(value)


def _parse_library_config(section: dict[str, Any]) -> LibraryConfig:
    raw_directory = section.get("directory")
    if raw_directory is None:
        return LibraryConfig()
    return LibraryConfig(directory=_parse_path(raw_directory, "library.directory"))


def _parse_catalog_config(section: dict[str, Any]) -> CatalogConfig:
    """
    Parse and validate the catalog configuration section.

    Args:
        section: The 'catalog' section from config.yaml.

    Returns:
        CatalogConfig: Validated catalog settings with defaults applied.

    Raises:
        ConfigError: If source or download_base_url is not a non-empty
                     string, or a numeric setting is out of range.
    """
    defaults = CatalogConfig()

    source = section.get("source")
    if source is not None:
        if not isinstance(source, str) or not source.strip():
            raise ConfigError(
                "'catalog.source' must be a non-empty string",
                details={"field": "catalog.source"}
            )
        source = source.strip()

    base_url = section.get("download_base_url", defaults.download_base_url)
    if not isinstance(base_url, str) or not base_url.strip():
        raise ConfigError(
            "'catalog.download_base_url' must be a non-empty string",
            details={"field": "catalog.download_base_url"}
        )

    timeout = defaults.timeout
    if section.get("timeout") is not None:
        timeout = _parse_positive_number(section["timeout"], "catalog.timeout")

    max_retries = defaults.max_retries
    if section.get("max_retries") is not None:
        max_retries = _parse_int(section["max_retries"], "catalog.max_retries", minimum=1)

    retry_delay = defaults.retry_delay
    if section.get("retry_delay") is not None:
        retry_delay = _parse_positive_number(section["retry_delay"], "catalog.retry_delay")

    return CatalogConfig(
        source=source,
        download_base_url=base_url.strip().rstrip("/"),
        timeout=timeout,
        max_retries=max_retries,
        retry_delay=retry_delay,
    )


def _parse_matching_config(section: dict[str, Any]) -> MatchingConfig:
    """
    Parse the fuzzy matching thresholds.

    Raises:
        ConfigError: If any distance is not a non-negative integer.
    """
    defaults = MatchingConfig()
    values = {}
    for name in (
        "artist_max_distance",
        "title_max_distance",
        "installed_artist_max_distance",
        "installed_title_max_distance",
    ):
        raw = section.get(name)
        if raw is None:
            values[name] = getattr(defaults, name)
        else:
            values[name] = _parse_int(raw, f"matching.{name}", minimum=0)
    return MatchingConfig(**values)


def _parse_selection_config(section: dict[str, Any]) -> SelectionConfig:
    raw = section.get("official_charters")
    if raw is None:
        return SelectionConfig()

    if not isinstance(raw, list) or not all(isinstance(c, str) and c.strip() for c in raw):
        raise ConfigError(
            "'selection.official_charters' must be a list of non-empty strings",
            details={"field": "selection.official_charters", "value": raw}
        )
    return SelectionConfig(official_charters=tuple(c.strip() for c in raw))


def _parse_workers_config(section: dict[str, Any]) -> WorkersConfig:
    raw_threads = section.get("threads")
    if raw_threads is None:
        return WorkersConfig()
    return WorkersConfig(threads=_parse_int(raw_threads, "workers.threads", minimum=1))


def _parse_cache_config(section: dict[str, Any]) -> CacheConfig:
    raw = section.get("memory_threshold_mib")
    if raw is None:
        return CacheConfig()
    return CacheConfig(
        memory_threshold_mib=_parse_int(raw, "cache.memory_threshold_mib", minimum=1)
    )


def _parse_output_config(section: dict[str, Any]) -> OutputConfig:
    raw_directory = section.get("directory")
    if raw_directory is None:
        return OutputConfig()
    return OutputConfig(directory=_parse_path(raw_directory, "output.directory"))

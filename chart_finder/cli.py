"""
Command-line interface for chart-finder.

This module implements the CLI using Click, providing the commands for
recommending charts for the songs you listen to.
rich-click is used for the output colors.

Commands:
    chartfind --history <dir>           Recommend charts for a streaming history dump
    chartfind --tracks <file>           Recommend charts for a track list
    chartfind --updates                 Look for better versions of installed charts
    chartfind --md5 <file>              Print the MD5 digest of a file

Options:
    --library <dir>                     Songs directory (overrides config.yaml)
    --catalog <file-or-url>             Chart catalog (overrides config.yaml)
    --threads <n>                       Matching threads (overrides config.yaml)
    --out <file.json>                   Export results as JSON

Usage:
    # Recommend charts for the most played songs
    chartfind --history ~/Downloads/my_spotify_data --catalog charts.json

    # Recommend charts for a playlist export
    chartfind --tracks playlist.json --library "~/Clone Hero/Songs" --out picks.json

    # Check installed charts for updates
    chartfind --updates --catalog https://example.org/charts.json

Configuration:
    config.yaml in the current directory is optional. Every value it holds
    can be given on the command line instead.

Exit Codes:
    0    Success
    1    Error (configuration, catalog, library, history)
    130  Canceled by the user
"""

import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional

import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
click.rich_click.OPTION_GROUPS = {
    "cli": [
        {
            "name": "Input Sources",
            "options": ["--history", "--tracks", "--updates"],
        },
        {
            "name": "Library and Catalog",
            "options": ["--library", "--catalog", "--config"],
        },
        {
            "name": "Advanced Options",
            "options": ["--threads", "--out", "--md5"],
        },
        {
            "name": "Info",
            "options": ["--version", "--help"],
        },
    ],
}

from chart_finder import __version__
from chart_finder.catalog import CatalogFetcher
from chart_finder.core import (
    CachedFile,
    ChartFinderError,
    Config,
    ConfigError,
    UserCanceledError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from chart_finder.core.config import LibraryConfig, WorkersConfig
from chart_finder.core.logger import format_update_message
from chart_finder.core.progress import MatchingProgressBar, ScanProgressBar
from chart_finder.library import (
    InstalledEntry,
    Track,
    load_streaming_history,
    load_track_list,
    scan_library,
)
from chart_finder.reconcile import ReconciliationResult, UpdateCheck, check_for_updates, reconcile

logger = get_logger(__name__)


@click.command()
@click.option(
    "--history",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    metavar="<dir>",
    help="Streaming history dump directory"
)
@click.option(
    "--tracks",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    metavar="<file.json>",
    help="Track list JSON file"
)
@click.option(
    "--updates",
    is_flag=True,
    help="Look for better versions of installed charts"
)
@click.option(
    "--library",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    metavar="<dir>",
    help="Songs directory of the local library"
)
@click.option(
    "--catalog",
    type=str,
    default=None,
    metavar="<file-or-url>",
    help="Chart catalog JSON (path or URL)"
)
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml)"
)
@click.option(
    "--threads",
    type=click.IntRange(min=1),
    default=None,
    metavar="<n>",
    help="Number of matching threads"
)
@click.option(
    "--out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    metavar="<file.json>",
    help="Export results as JSON"
)
@click.option(
    "--md5",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    metavar="<file>",
    help="Print the MD5 digest of a file and exit"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(
    ctx: click.Context,
    history: Optional[Path],
    tracks: Optional[Path],
    updates: bool,
    library: Optional[Path],
    catalog: Optional[str],
    config_path: Optional[Path],
    threads: Optional[int],
    out: Optional[Path],
    md5: Optional[Path],
    version: bool
) -> None:
    """
    chart-finder: Find charts for the songs you listen to.

    Matches your listening history against a chart catalog, skips songs
    you already have charts for, and picks the best chart for the rest.

    \b
    BASIC USAGE:
        chartfind --history ~/my_spotify_data     # Streaming history dump
        chartfind --tracks playlist.json          # Track list

    \b
    UPDATES:
        chartfind --updates                       # Better versions of installed charts

    \b
    TOOLS:
        chartfind --md5 song.sng                  # Digest of a chart file
    """
    if version:
        click.echo(f"chart-finder {__version__}")
        ctx.exit(0)

    if md5 is not None:
        _handle_md5(md5, config_path)
        ctx.exit(0)

    if not history and not tracks and not updates:
        click.echo(ctx.get_help())
        ctx.exit(0)

    if history and tracks:
        raise click.UsageError("Cannot use both --history and --tracks")
    if updates and (history or tracks):
        raise click.UsageError("--updates cannot be combined with --history or --tracks")

    ctx.ensure_object(dict)
    ctx.obj.update({
        "history": history,
        "tracks": tracks,
        "updates": updates,
        "library": library,
        "catalog": catalog,
        "config_path": config_path,
        "threads": threads,
        "out": out,
    })

    _run(ctx.obj)


def _run(options: dict) -> None:
    """
    Execute the workflow based on CLI options.

    1. Loads configuration and applies CLI overrides
    2. Sets up logging
    3. Runs the recommendation or update workflow
    4. Reports results

    Raises:
        SystemExit: On fatal errors (with appropriate exit code).
    """
    try:
        config = _load_configuration(options)

        setup_logging(config.output.directory)
        logger.info(f"chart-finder {__version__} starting")

        if config.library.directory is None:
            raise click.UsageError("No Songs directory. Use --library or set library.directory")

        if options["updates"]:
            _run_updates(config, options)
        else:
            _run_recommendations(config, options)

        logger.info("chart-finder completed successfully")

    except click.UsageError:
        raise

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except UserCanceledError:
        click.echo("\nCanceled by user", err=True)
        logger.info("Canceled by user")
        sys.exit(130)

    except ChartFinderError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(1)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        shutdown_logging()


def _load_configuration(options: dict) -> Config:
    """
    Load config.yaml and apply command line overrides.

    Raises:
        ConfigError: If configuration is invalid.
    """
    config = load_config(options["config_path"])

    if options["library"] is not None:
        config = replace(
            config,
            library=LibraryConfig(directory=options["library"].expanduser().resolve())
        )
    if options["catalog"] is not None:
        config = replace(config, catalog=replace(config.catalog, source=options["catalog"]))
    if options["threads"] is not None:
        config = replace(config, workers=WorkersConfig(threads=options["threads"]))

    return config


def _scan(config: Config) -> list[InstalledEntry]:
    with ScanProgressBar() as progress:
        return scan_library(config.library.directory, progress_callback=progress)


def _load_tracks(options: dict) -> list[Track]:
    if options["history"] is not None:
        return load_streaming_history(options["history"])
    return load_track_list(options["tracks"])


def _run_recommendations(config: Config, options: dict) -> None:
    """Recommend charts for the listened tracks."""
    tracks = _load_tracks(options)
    if not tracks:
        logger.info("No tracks to match")
        return

    fetcher = CatalogFetcher(config.catalog)
    progress_bar = MatchingProgressBar(total=len(tracks))
    try:
        result = reconcile(
            tracks,
            scan=lambda: _scan(config),
            fetch=fetcher.fetch,
            config=config,
            progress_bar=progress_bar,
        )
    finally:
        progress_bar.stop()

    if result.canceled:
        raise UserCanceledError()

    _print_recommendation_stats(result, len(tracks))

    if options["out"] is not None:
        _export(options["out"], [
            recommendation.to_export_dict(config.catalog.download_base_url)
            for recommendation in result.recommendations
        ])


def _run_updates(config: Config, options: dict) -> None:
    """Look for better versions of installed charts."""
    installed = _scan(config)
    catalog = CatalogFetcher(config.catalog).fetch()

    checks = check_for_updates(installed, catalog, config)
    for check in checks:
        if check.has_update:
            click.echo(format_update_message(
                check.installed.artist,
                check.installed.title,
                list(check.reasons)
            ))

    _print_update_stats(checks)

    if options["out"] is not None:
        _export(options["out"], [
            check.to_export_dict(config.catalog.download_base_url)
            for check in checks
        ])


def _handle_md5(file_path: Path, config_path: Path | None) -> None:
    """
    Print the MD5 digest of a file.

    Large files are hashed from a stream, never loaded fully.
    """
    try:
        config = load_config(config_path)
        cached = CachedFile.build(file_path, memory_threshold=config.cache.memory_threshold_bytes)
        click.echo(f"{cached.digest()}  {file_path}")
    except ChartFinderError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)
    except OSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _export(out_path: Path, items: list[dict[str, Any]]) -> None:
    out_path = out_path.expanduser()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(items, f, indent=2, ensure_ascii=False)
    logger.info(f"Exported {len(items)} results to {out_path}")


def _print_recommendation_stats(result: ReconciliationResult, total: int) -> None:
    """
    Print final statistics.

    Output:
        Total tracks, recommended, skipped (no chart or already installed)
        and failed tracks.
    """
    logger.info("=" * 60)
    logger.info("FINAL STATISTICS")
    logger.info("=" * 60)
    logger.info(f"Total tracks:      {total}")
    logger.info(f"Recommended:       {result.recommended}")
    logger.info(f"Skipped:           {result.skipped}")
    if result.failed:
        logger.info(f"Failed:            {result.failed}")
    logger.info("=" * 60)


def _print_update_stats(checks: list[UpdateCheck]) -> None:
    updates = sum(1 for check in checks if check.has_update)

    logger.info("=" * 60)
    logger.info("UPDATE CHECK")
    logger.info("=" * 60)
    logger.info(f"Matched charts:    {len(checks)}")
    logger.info(f"Updates found:     {updates}")
    logger.info(f"Up to date:        {len(checks) - updates}")
    logger.info("=" * 60)


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `chartfind` from the command line.
    """
    cli()


if __name__ == "__main__":
    main()

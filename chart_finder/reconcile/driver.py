"""
Reconciliation driver for chart-finder.

This module runs the whole pipeline for one run:

    1. Scan the local library (collaborator; may be canceled)
    2. Fetch the chart catalog (collaborator)
    3. Build the installed predicate and the catalog IdentityIndex
    4. Match every track on a bounded worker pool:
         - CandidateMatcher finds candidate charts
         - tracks whose song is already installed are skipped
         - tracks with no candidates are skipped
         - the chart selector picks one of the candidates
    5. Return recommendations ordered by input track position

Failure Handling:
    - A canceled library scan returns an empty, canceled result
    - Any other scan failure raises LibraryScanError
    - Any catalog failure raises CatalogFetchError
    - A failure while matching one track is logged and the track is
      counted as failed; the run continues

The installed-chart update check (check_for_updates) reuses the same
matcher and selector with each installed chart as the incumbent.

Usage:
    from chart_finder.reconcile.driver import reconcile

    result = reconcile(
        tracks,
        scan=lambda: scan_library(songs_dir),
        fetch=lambda: CatalogFetcher(config.catalog).fetch(),
        config=config,
    )
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Sequence

from chart_finder.catalog.models import CatalogEntry
from chart_finder.core.config import Config
from chart_finder.core.exceptions import (
    CatalogFetchError,
    InvalidTrackError,
    LibraryScanError,
    UserCanceledError,
)
from chart_finder.core.logger import (
    format_failed_message,
    format_recommended_message,
    format_skipped_message,
    get_logger,
    log_recommendation,
)
from chart_finder.core.progress import MatchingProgressBar
from chart_finder.library.models import InstalledEntry, Track
from chart_finder.matching.index import IdentityIndex
from chart_finder.matching.matcher import (
    CandidateMatcher,
    IsInstalledFilter,
    create_is_installed_filter,
)
from chart_finder.matching.selection import RankingGroup, build_ranking_groups, select_chart
from chart_finder.reconcile.models import (
    BEST_CHART_INSTALLED,
    BETTER_CHART_FOUND,
    ReconciliationResult,
    Recommendation,
    UpdateCheck,
)

logger = get_logger(__name__)


SKIP_NO_CANDIDATES = "no charts found"
SKIP_INSTALLED = "already installed"


def _run_library_scan(scan: Callable[[], list[InstalledEntry]]) -> list[InstalledEntry]:
    try:
        return list(scan())
    except (UserCanceledError, LibraryScanError):
        raise
    except Exception as e:
        raise LibraryScanError(
            f"Library scan failed: {e}",
            details={"original_error": str(e)}
        ) from e


def _run_catalog_fetch(fetch: Callable[[], list[CatalogEntry]]) -> list[CatalogEntry]:
    try:
        return list(fetch())
    except CatalogFetchError:
        raise
    except Exception as e:
        raise CatalogFetchError(
            f"Catalog fetch failed: {e}",
            details={"original_error": str(e)}
        ) from e


class TrackReconciler:
    """
    Per-track matching and selection.

    Holds only read-only state (matcher, predicate, ranking groups), so
    process() can run on many worker threads at once.
    """

    def __init__(
        self,
        matcher: CandidateMatcher,
        is_installed: IsInstalledFilter,
        ranking_groups: Sequence[RankingGroup],
    ) -> None:
        self.matcher = matcher
        self.is_installed = is_installed
        self.ranking_groups = ranking_groups

    def process(self, track_index: int, track: Track) -> tuple[Recommendation | None, str]:
        """
        Reconcile one track.

        Returns:
            (recommendation, "") when a chart is recommended, or
            (None, skip_reason) when the track is skipped.

        Raises:
            InvalidTrackError: If the track has an empty artist or title.
        """
        candidates = self.matcher.match(track)
        # Any installed chart of the song satisfies the track
        if self.is_installed(track.artist, track.title):
            return None, SKIP_INSTALLED
        if not candidates:
            return None, SKIP_NO_CANDIDATES

        selection = select_chart(candidates, self.ranking_groups)
        recommendation = Recommendation(
            track=track,
            chart=selection.chosen,
            reasons=selection.reasons,
            candidate_count=len(candidates),
            track_index=track_index,
        )
        return recommendation, ""


def reconcile(
    tracks: Sequence[Track],
    scan: Callable[[], list[InstalledEntry]],
    fetch: Callable[[], list[CatalogEntry]],
    config: Config | None = None,
    cancel_event: threading.Event | None = None,
    progress_bar: MatchingProgressBar | None = None,
) -> ReconciliationResult:
    """
    Recommend one chart per track that the user does not have yet.

    Args:
        tracks: Listened tracks, in the order results should be returned.
        scan: Library scan collaborator. May raise UserCanceledError.
        fetch: Catalog fetch collaborator.
        config: Application configuration (thresholds, worker count).
        cancel_event: When set, matching stops and a canceled result is
                      returned.
        progress_bar: Optional progress bar updated per track. It is
                      started when matching begins; the caller stops it.

    Returns:
        ReconciliationResult. When canceled, it has no recommendations
        and canceled=True.

    Raises:
        LibraryScanError: If the library scan fails.
        CatalogFetchError: If the catalog fetch fails.
    """
    config = config or Config()
    cancel_event = cancel_event or threading.Event()

    try:
        installed = _run_library_scan(scan)
    except UserCanceledError:
        logger.info("Library scan canceled; no recommendations produced")
        return ReconciliationResult.canceled_result()

    if cancel_event.is_set():
        return ReconciliationResult.canceled_result()

    catalog = _run_catalog_fetch(fetch)

    reconciler = TrackReconciler(
        matcher=CandidateMatcher(IdentityIndex.build(catalog), config.matching),
        is_installed=create_is_installed_filter(installed, config.matching),
        ranking_groups=build_ranking_groups(config.selection.official_charters),
    )

    logger.info(
        f"Matching {len(tracks)} tracks against {len(catalog)} charts "
        f"({len(installed)} installed, {config.workers.threads} threads)"
    )

    recommendations: list[Recommendation] = []
    skipped = 0
    failed = 0

    def show(message: str) -> None:
        if progress_bar is not None:
            progress_bar.log(message)

    def advance(recommended: bool = False, has_failed: bool = False) -> None:
        if progress_bar is not None:
            progress_bar.update(recommended=recommended, failed=has_failed)

    if progress_bar is not None:
        progress_bar.start()

    canceled = False
    executor = ThreadPoolExecutor(max_workers=config.workers.threads)
    try:
        future_to_index = {
            executor.submit(reconciler.process, index, track): index
            for index, track in enumerate(tracks)
        }

        for future in as_completed(future_to_index):
            if cancel_event.is_set():
                logger.info("Matching canceled; discarding partial results")
                canceled = True
                return ReconciliationResult.canceled_result()

            track = tracks[future_to_index[future]]
            try:
                recommendation, skip_reason = future.result()
            except Exception as e:
                failed += 1
                logger.error(f"Error matching {track.artist} - {track.title}: {e}")
                show(format_failed_message(track.artist, track.title, str(e)))
                advance(has_failed=True)
                continue

            if recommendation is None:
                skipped += 1
                logger.debug(f"Skipped {track.artist} - {track.title}: {skip_reason}")
                show(format_skipped_message(track.artist, track.title, skip_reason))
                advance()
                continue

            recommendations.append(recommendation)
            chart = recommendation.chart
            log_recommendation(
                logger,
                artist=track.artist,
                title=track.title,
                chart=f"{chart.artist} - {chart.title}",
                charter=chart.charter_display,
                url=chart.download_url(config.catalog.download_base_url),
                instruments=chart.instruments_summary(),
                reasons=list(recommendation.reasons),
            )
            show(format_recommended_message(track.artist, track.title, chart.charter_display))
            advance(recommended=True)
    finally:
        # In-flight tracks are abandoned, not awaited, once canceled
        executor.shutdown(wait=not canceled, cancel_futures=True)

    recommendations.sort(key=lambda rec: rec.track_index)
    logger.info(
        f"Reconciliation complete: {len(recommendations)} recommended, "
        f"{skipped} skipped, {failed} failed"
    )
    return ReconciliationResult(
        recommendations=tuple(recommendations),
        skipped=skipped,
        failed=failed,
    )


def check_for_updates(
    installed: Sequence[InstalledEntry],
    catalog: Sequence[CatalogEntry],
    config: Config | None = None,
) -> list[UpdateCheck]:
    """
    Compare installed charts against the catalog.

    For every installed chart, the installed chart is the incumbent and
    the catalog charts matching its artist and title are the challengers.

    Args:
        installed: Charts from the library scan.
        catalog: Catalog entries.
        config: Application configuration.

    Returns:
        One UpdateCheck per installed chart that has at least one catalog
        match, in library order.
    """
    config = config or Config()
    matcher = CandidateMatcher(IdentityIndex.build(catalog), config.matching)
    ranking_groups = build_ranking_groups(config.selection.official_charters)

    checks: list[UpdateCheck] = []
    for entry in installed:
        try:
            candidates = matcher.match(Track(artist=entry.artist, title=entry.title))
        except InvalidTrackError as e:
            logger.warning(f"Skipping installed chart {entry.path}: {e}")
            continue
        if not candidates:
            continue

        selection = select_chart([entry.to_catalog_entry(), *candidates], ranking_groups)
        if selection.replaced_incumbent:
            logger.info(
                f"Better chart found for {entry.artist} - {entry.title}: "
                f"{'; '.join(selection.reasons)}"
            )
            checks.append(UpdateCheck(
                installed=entry,
                status=BETTER_CHART_FOUND,
                better_chart=selection.chosen,
                reasons=selection.reasons,
            ))
        else:
            checks.append(UpdateCheck(installed=entry, status=BEST_CHART_INSTALLED))

    found = sum(1 for check in checks if check.has_update)
    logger.info(f"Update check complete: {found} of {len(checks)} charts have a better version")
    return checks

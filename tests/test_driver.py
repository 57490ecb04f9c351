# tests/test_driver.py
"""Test the reconciliation driver and the update check"""

import threading
from datetime import timedelta

import pytest

from chart_finder.core.config import Config, WorkersConfig
from chart_finder.core.exceptions import (
    CatalogFetchError,
    LibraryScanError,
    UserCanceledError,
)
from chart_finder.library.models import InstalledEntry, Track
from chart_finder.reconcile.driver import (
    SKIP_INSTALLED,
    SKIP_NO_CANDIDATES,
    TrackReconciler,
    check_for_updates,
    reconcile,
)
from chart_finder.reconcile.models import BEST_CHART_INSTALLED, BETTER_CHART_FOUND
from chart_finder.matching.index import IdentityIndex
from chart_finder.matching.matcher import CandidateMatcher, create_is_installed_filter
from chart_finder.matching.selection import DEFAULT_RANKING_GROUPS
from tests.conftest import T0, make_chart


def _unexpected_fetch():
    raise AssertionError("catalog fetch should not run")


class CancelingProgress:
    """Progress bar stand-in that cancels the run on the first finished track"""

    def __init__(self, cancel_event):
        self.cancel_event = cancel_event
        self.updates = 0

    def start(self):
        pass

    def log(self, message):
        pass

    def update(self, recommended=False, failed=False):
        self.updates += 1
        self.cancel_event.set()


class SlowTrack:
    """Track whose artist lookup blocks until released"""

    title = "One"
    play_count = 0

    def __init__(self, release):
        self.release = release
        self.finished = False

    @property
    def artist(self):
        self.release.wait(5)
        self.finished = True
        return "Metallica"


class TestTrackReconciler:
    """Test per-track processing"""

    def _reconciler(self, catalog, installed=()):
        return TrackReconciler(
            matcher=CandidateMatcher(IdentityIndex.build(catalog)),
            is_installed=create_is_installed_filter(installed),
            ranking_groups=DEFAULT_RANKING_GROUPS,
        )

    def test_no_candidates(self, sample_catalog):
        """Tracks without candidates are skipped"""
        reconciler = self._reconciler(sample_catalog)
        recommendation, reason = reconciler.process(0, Track("Unknown Artist", "Unknown Song"))
        assert recommendation is None
        assert reason == SKIP_NO_CANDIDATES

    def test_installed_song(self, sample_catalog, sample_installed):
        """Tracks whose song is installed are skipped"""
        reconciler = self._reconciler(sample_catalog, sample_installed)
        recommendation, reason = reconciler.process(0, Track("Metallica", "Enter Sandman"))
        assert recommendation is None
        assert reason == SKIP_INSTALLED

    def test_installed_by_other_charter(self):
        """A song installed from any charter satisfies the track"""
        catalog = [make_chart("Metallica", "One", "Harmonix", drums=5)]
        installed = [InstalledEntry("Metallica", "One", charter="SomeDrummer")]
        reconciler = self._reconciler(catalog, installed)
        recommendation, reason = reconciler.process(0, Track("Metallica", "One"))
        assert recommendation is None
        assert reason == SKIP_INSTALLED

    def test_installed_annotated_title(self, sample_catalog):
        """Installed titles with annotations still match the track"""
        installed = [InstalledEntry("Metalica", "One (2x bass pedal)", charter="Drummer")]
        reconciler = self._reconciler(sample_catalog, installed)
        recommendation, reason = reconciler.process(0, Track("Metallica", "One"))
        assert recommendation is None
        assert reason == SKIP_INSTALLED

    def test_selects_better_chart(self, sample_catalog):
        """The selector picks among candidates"""
        reconciler = self._reconciler(sample_catalog)
        recommendation, reason = reconciler.process(3, Track("Metallica", "One"))
        assert reason == ""
        assert recommendation.chart is sample_catalog[1]
        assert recommendation.reasons == ("Better chart has drums, current chart doesn't",)
        assert recommendation.candidate_count == 2
        assert recommendation.track_index == 3


class TestReconcile:
    """Test reconcile()"""

    def test_end_to_end(self, sample_tracks, sample_catalog, sample_installed):
        """Recommendations, skips and ordering for a small library"""
        result = reconcile(
            sample_tracks,
            scan=lambda: sample_installed,
            fetch=lambda: sample_catalog,
        )

        assert not result.canceled
        assert result.recommended == 2
        assert result.skipped == 2
        assert result.failed == 0

        first, second = result.recommendations
        assert first.track == sample_tracks[0]
        assert first.chart.charter == "Drummer"
        assert second.track == sample_tracks[1]
        assert second.chart.charter == "Harmonix"
        assert second.reasons == ()

    def test_no_candidates_produce_no_entry(self, sample_catalog):
        """Unmatched tracks are absent from the output"""
        result = reconcile(
            [Track("Nobody", "Nothing")],
            scan=lambda: [],
            fetch=lambda: sample_catalog,
        )
        assert result.recommendations == ()
        assert result.skipped == 1

    def test_output_follows_input_order(self):
        """Results are ordered by track position regardless of completion order"""
        catalog = [make_chart(f"Artist {i:03d}", f"Song {i:03d}") for i in range(60)]
        tracks = [Track(f"Artist {i:03d}", f"Song {i:03d}") for i in reversed(range(60))]
        config = Config(workers=WorkersConfig(threads=8))

        result = reconcile(tracks, scan=lambda: [], fetch=lambda: catalog, config=config)

        assert [rec.track for rec in result.recommendations] == tracks
        assert [rec.track_index for rec in result.recommendations] == list(range(60))

    def test_track_failure_is_counted(self, sample_catalog):
        """A failing track does not stop the run"""
        tracks = [Track("", "One"), Track("Metallica", "One")]
        result = reconcile(tracks, scan=lambda: [], fetch=lambda: sample_catalog)
        assert result.failed == 1
        assert result.recommended == 1
        assert result.recommendations[0].track_index == 1

    def test_scan_canceled(self, sample_tracks):
        """A canceled scan returns an empty, canceled result"""

        def scan():
            raise UserCanceledError()

        result = reconcile(sample_tracks, scan=scan, fetch=_unexpected_fetch)
        assert result.canceled
        assert result.recommendations == ()

    def test_cancel_event_set_during_scan(self, sample_tracks):
        """Setting the cancel event during the scan stops before matching"""
        cancel_event = threading.Event()

        def scan():
            cancel_event.set()
            return []

        result = reconcile(
            sample_tracks,
            scan=scan,
            fetch=_unexpected_fetch,
            cancel_event=cancel_event,
        )
        assert result.canceled
        assert result.recommended == 0

    def test_cancel_during_matching(self, sample_catalog):
        """Canceling while tracks are matched discards every result"""
        cancel_event = threading.Event()
        progress = CancelingProgress(cancel_event)
        tracks = [Track("Metallica", "One")] * 20

        result = reconcile(
            tracks,
            scan=lambda: [],
            fetch=lambda: sample_catalog,
            config=Config(workers=WorkersConfig(threads=2)),
            cancel_event=cancel_event,
            progress_bar=progress,
        )

        assert result.canceled
        assert result.recommendations == ()
        assert progress.updates == 1

    def test_cancel_does_not_wait_for_running_tracks(self, sample_catalog):
        """A canceled run returns while a track is still being matched"""
        cancel_event = threading.Event()
        release = threading.Event()
        slow = SlowTrack(release)
        tracks = [Track("Metallica", "One"), slow, Track("Metallica", "One")]

        try:
            result = reconcile(
                tracks,
                scan=lambda: [],
                fetch=lambda: sample_catalog,
                config=Config(workers=WorkersConfig(threads=3)),
                cancel_event=cancel_event,
                progress_bar=CancelingProgress(cancel_event),
            )
            assert result.canceled
            assert not slow.finished
        finally:
            release.set()

    def test_scan_failure_is_wrapped(self, sample_tracks):
        """Unexpected scan errors become LibraryScanError"""

        def scan():
            raise PermissionError("denied")

        with pytest.raises(LibraryScanError) as exc_info:
            reconcile(sample_tracks, scan=scan, fetch=_unexpected_fetch)
        assert isinstance(exc_info.value.__cause__, PermissionError)

    def test_scan_error_passes_through(self, sample_tracks):
        """LibraryScanError is raised unchanged"""
        error = LibraryScanError("missing")

        def scan():
            raise error

        with pytest.raises(LibraryScanError) as exc_info:
            reconcile(sample_tracks, scan=scan, fetch=_unexpected_fetch)
        assert exc_info.value is error

    def test_fetch_failure_is_wrapped(self, sample_tracks):
        """Unexpected fetch errors become CatalogFetchError"""

        def fetch():
            raise ConnectionError("offline")

        with pytest.raises(CatalogFetchError):
            reconcile(sample_tracks, scan=lambda: [], fetch=fetch)

    def test_empty_inputs(self):
        """No tracks gives an empty result"""
        result = reconcile([], scan=lambda: [], fetch=lambda: [])
        assert result.recommendations == ()
        assert not result.canceled


class TestCheckForUpdates:
    """Test check_for_updates()"""

    def test_better_chart_found(self):
        """A newer upload by the same charter is an update"""
        installed = [InstalledEntry("Metallica", "One", charter="X", modified_time=T0)]
        newer = make_chart(charter="X", uploaded_at=T0 + timedelta(days=1))

        checks = check_for_updates(installed, [newer])

        assert len(checks) == 1
        assert checks[0].status == BETTER_CHART_FOUND
        assert checks[0].has_update
        assert checks[0].better_chart is newer
        assert checks[0].reasons == ("Chart from same charter is newer",)

    def test_best_chart_installed(self, sample_installed, sample_catalog):
        """The installed chart itself is the best"""
        checks = check_for_updates(sample_installed, sample_catalog)
        assert len(checks) == 1
        assert checks[0].status == BEST_CHART_INSTALLED
        assert checks[0].better_chart is None

    def test_unmatched_installed_chart_is_skipped(self, sample_catalog):
        """Installed charts missing from the catalog produce no check"""
        installed = [InstalledEntry("Local Band", "Demo")]
        assert check_for_updates(installed, sample_catalog) == []

    def test_harmonix_beats_installed(self):
        """An official chart beats a community chart"""
        installed = [InstalledEntry("Muse", "Hysteria", charter="Fan", difficulties={"guitar": 4})]
        official = make_chart("Muse", "Hysteria", "Harmonix", guitar=4, drums=5)

        checks = check_for_updates(installed, [official])

        assert checks[0].has_update
        assert checks[0].reasons[0] == "Better chart is from Harmonix"

"""
Result records of a reconciliation run.

These are the output of the core: plain immutable values that any
presentation layer (console, JSON export) can consume.
"""

from dataclasses import dataclass
from typing import Any

from chart_finder.catalog.models import CatalogEntry
from chart_finder.library.models import InstalledEntry, Track


# Update check statuses
BETTER_CHART_FOUND = "better-chart-found"
BEST_CHART_INSTALLED = "best-chart-installed"


@dataclass(frozen=True)
class Recommendation:
    """
    One recommended chart for one track.

    Attributes:
        track: The listened track.
        chart: The chart chosen by the selector.
        reasons: Selector reasons; empty when the first candidate was kept.
        candidate_count: Number of candidate charts the selector considered.
        track_index: Position of the track in the input list.
    """
    track: Track
    chart: CatalogEntry
    reasons: tuple[str, ...] = ()
    candidate_count: int = 1
    track_index: int = 0

    def to_export_dict(self, download_base_url: str) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "artist": self.track.artist,
            "title": self.track.title,
            "play_count": self.track.play_count,
            "chart": self.chart.to_export_dict(download_base_url),
            "reasons": list(self.reasons),
            "candidate_count": self.candidate_count,
        }


@dataclass(frozen=True)
class UpdateCheck:
    """
    Outcome of comparing one installed chart against the catalog.

    Attributes:
        installed: The installed chart.
        status: BETTER_CHART_FOUND or BEST_CHART_INSTALLED.
        better_chart: The catalog chart that beats the installed one, or
                      None when the installed chart is the best.
        reasons: Why better_chart is better; empty otherwise.
    """
    installed: InstalledEntry
    status: str
    better_chart: CatalogEntry | None = None
    reasons: tuple[str, ...] = ()

    @property
    def has_update(self) -> bool:
        return self.status == BETTER_CHART_FOUND

    def to_export_dict(self, download_base_url: str) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "artist": self.installed.artist,
            "title": self.installed.title,
            "charter": self.installed.charter,
            "path": str(self.installed.path) if self.installed.path else None,
            "status": self.status,
            "better_chart": (
                self.better_chart.to_export_dict(download_base_url)
                if self.better_chart is not None else None
            ),
            "reasons": list(self.reasons),
        }


@dataclass(frozen=True)
class ReconciliationResult:
    """
    Aggregated output of a reconciliation run.

    Attributes:
        recommendations: Recommendations ordered by input track position.
        skipped: Tracks already installed or without any candidate.
        failed: Tracks whose matching raised.
        canceled: True if the user canceled; recommendations is then empty.
    """
    recommendations: tuple[Recommendation, ...] = ()
    skipped: int = 0
    failed: int = 0
    canceled: bool = False

    @classmethod
    def canceled_result(cls) -> "ReconciliationResult":
        return cls(canceled=True)

    @property
    def recommended(self) -> int:
        return len(self.recommendations)

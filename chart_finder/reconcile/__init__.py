"""
Reconciliation module for chart-finder.

Components:
    - models: Recommendation, UpdateCheck, ReconciliationResult
    - driver: reconcile() and check_for_updates()

Usage:
    from chart_finder.reconcile import reconcile

    result = reconcile(tracks, scan=..., fetch=..., config=config)
    for recommendation in result.recommendations:
        print(recommendation.chart, recommendation.reasons)
"""

from chart_finder.reconcile.driver import TrackReconciler, check_for_updates, reconcile
from chart_finder.reconcile.models import (
    BEST_CHART_INSTALLED,
    BETTER_CHART_FOUND,
    ReconciliationResult,
    Recommendation,
    UpdateCheck,
)

__all__ = [
    "reconcile",
    "check_for_updates",
    "TrackReconciler",
    "Recommendation",
    "UpdateCheck",
    "ReconciliationResult",
    "BETTER_CHART_FOUND",
    "BEST_CHART_INSTALLED",
]

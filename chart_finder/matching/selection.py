"""
Chart selection among near-duplicate catalog candidates.

The first candidate is the incumbent (the current recommendation); every
other candidate is a challenger. Rules are pure functions

    rule(incumbent, challenger) -> reason string | None

that explain why the challenger is better. Rules are organized in ranking
groups evaluated in order:

    Group 1: same charter newer upload, Harmonix, official game, drums
    Group 2: guitar
    Group 3: higher difficulty sum

Per-group protocol:
    1. Run every rule of the group for each challenger still in
       consideration, always against the original incumbent.
    2. Exactly one challenger with reasons: it wins, with its reasons.
    3. Several challengers with reasons: only they stay in consideration;
       continue with the next group.
    4. No challenger with reasons: run the group in reverse (first
       challenger in consideration as incumbent, original incumbent as
       challenger). Any reason confirms the incumbent and stops.
       Otherwise continue with the next group.
    5. No decision after the last group: the incumbent wins.

The incumbent is always returned with an empty reason list. The outcome
depends only on candidate order and the rule set.

Usage:
    from chart_finder.matching.selection import select_chart

    result = select_chart(candidates)
    print(result.chosen, result.reasons)
"""

from dataclasses import dataclass
from typing import Callable, Sequence

from chart_finder.catalog.models import CatalogEntry
from chart_finder.core.config import DEFAULT_OFFICIAL_CHARTERS


# (incumbent, challenger) -> reason the challenger is better, or None
Rule = Callable[[CatalogEntry, CatalogEntry], str | None]
RankingGroup = tuple[Rule, ...]

HARMONIX = "Harmonix"


@dataclass(frozen=True)
class SelectionResult:
    """
    Outcome of chart selection.

    Attributes:
        chosen: The selected chart.
        reasons: Why the chosen chart beat the incumbent, in rule order.
                 Empty if and only if the incumbent was kept.
        chosen_index: Position of the chosen chart in the candidate list.
    """
    chosen: CatalogEntry
    reasons: tuple[str, ...] = ()
    chosen_index: int = 0

    @property
    def replaced_incumbent(self) -> bool:
        return self.chosen_index != 0


def _same_charter(a: CatalogEntry, b: CatalogEntry) -> bool:
    return a.charter_display == b.charter_display


def _is_charter(entry: CatalogEntry, names: Sequence[str]) -> bool:
    charter = entry.charter_display.casefold()
    return any(charter == name.casefold() for name in names)


# =============================================================================
# Rules
# =============================================================================

def prefer_same_charter_newer(incumbent: CatalogEntry, challenger: CatalogEntry) -> str | None:
    if incumbent.uploaded_at is None or challenger.uploaded_at is None:
        return None
    if _same_charter(incumbent, challenger) and challenger.uploaded_at > incumbent.uploaded_at:
        return "Chart from same charter is newer"
    return None


def prefer_charter(name: str) -> Rule:
    """Rule preferring charts by one charter (e.g. Harmonix)."""

    def rule(incumbent: CatalogEntry, challenger: CatalogEntry) -> str | None:
        if not _is_charter(incumbent, (name,)) and _is_charter(challenger, (name,)):
            return f"Better chart is from {name}"
        return None

    rule.__name__ = f"prefer_charter_{name.lower()}"
    return rule


def prefer_official_charter(official_charters: Sequence[str]) -> Rule:
    """Rule preferring charts ported from an official game."""
    names = tuple(official_charters)

    def rule(incumbent: CatalogEntry, challenger: CatalogEntry) -> str | None:
        if not _is_charter(incumbent, names) and _is_charter(challenger, names):
            return "Better chart is from official game"
        return None

    rule.__name__ = "prefer_official_charter"
    return rule


def prefer_part(category: str) -> Rule:
    """
    Rule preferring charts that chart a category the incumbent lacks.

    The incumbent lacks the part when the category is absent or negative;
    the challenger must have a strictly positive difficulty.
    """

    def rule(incumbent: CatalogEntry, challenger: CatalogEntry) -> str | None:
        current = incumbent.difficulty(category)
        candidate = challenger.difficulty(category)
        if (current is None or current < 0) and candidate is not None and candidate > 0:
            return f"Better chart has {category}, current chart doesn't"
        return None

    rule.__name__ = f"prefer_{category}"
    return rule


def prefer_higher_difficulty_sum(incumbent: CatalogEntry, challenger: CatalogEntry) -> str | None:
    if challenger.difficulty_sum > incumbent.difficulty_sum:
        return "Better chart has more instruments or difficulty"
    return None


def build_ranking_groups(
    official_charters: Sequence[str] = DEFAULT_OFFICIAL_CHARTERS,
) -> tuple[RankingGroup, ...]:
    """
    Build the default ranking groups.

    Args:
        official_charters: Charter names of official game ports.

    Returns:
        Ranking groups in evaluation order.
    """
    return (
        (
            prefer_same_charter_newer,
            prefer_charter(HARMONIX),
            prefer_official_charter(official_charters),
            prefer_part("drums"),
        ),
        (prefer_part("guitar"),),
        (prefer_higher_difficulty_sum,),
    )


DEFAULT_RANKING_GROUPS = build_ranking_groups()


# =============================================================================
# Selection
# =============================================================================

def _run_group(group: RankingGroup, incumbent: CatalogEntry, challenger: CatalogEntry) -> list[str]:
    reasons = []
    for rule in group:
        reason = rule(incumbent, challenger)
        if reason:
            reasons.append(reason)
    return reasons


def select_chart(
    candidates: Sequence[CatalogEntry],
    ranking_groups: Sequence[RankingGroup] = DEFAULT_RANKING_GROUPS,
) -> SelectionResult:
    """
    Pick one chart among candidates.

    Args:
        candidates: Non-empty candidate list; the first element is the
                    incumbent.
        ranking_groups: Rule groups in evaluation order.

    Returns:
        SelectionResult with the chosen chart and its reasons.

    Raises:
        ValueError: If candidates is empty.

    Example:
        # Same charter, second chart uploaded later
        result = select_chart([old_upload, new_upload])
        result.reasons  # ("Chart from same charter is newer",)
    """
    if not candidates:
        raise ValueError("select_chart() needs at least one candidate")

    incumbent = candidates[0]
    in_consideration = list(range(1, len(candidates)))
    if not in_consideration:
        return SelectionResult(incumbent)

    for group in ranking_groups:
        with_reasons: list[tuple[int, list[str]]] = []
        for position in in_consideration:
            reasons = _run_group(group, incumbent, candidates[position])
            if reasons:
                with_reasons.append((position, reasons))

        if len(with_reasons) == 1:
            position, reasons = with_reasons[0]
            return SelectionResult(candidates[position], tuple(reasons), position)

        if with_reasons:
            in_consideration = [position for position, _ in with_reasons]
            continue

        # Nobody beat the incumbent here; check whether it beats them
        if _run_group(group, candidates[in_consideration[0]], incumbent):
            return SelectionResult(incumbent)

    return SelectionResult(incumbent)

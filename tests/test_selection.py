# tests/test_selection.py
"""Test chart selection rules and the ranking-group protocol"""

from datetime import timedelta

import pytest

from chart_finder.matching.selection import (
    build_ranking_groups,
    prefer_charter,
    prefer_higher_difficulty_sum,
    prefer_official_charter,
    prefer_part,
    prefer_same_charter_newer,
    select_chart,
)
from tests.conftest import T0, make_chart


T1 = T0 + timedelta(days=30)


class TestRules:
    """Test individual selection rules"""

    def test_same_charter_newer(self):
        """A later upload by the same charter wins"""
        old = make_chart(charter="X", uploaded_at=T0)
        new = make_chart(charter="X", uploaded_at=T1)
        assert prefer_same_charter_newer(old, new) == "Chart from same charter is newer"
        assert prefer_same_charter_newer(new, old) is None

    def test_same_charter_ignores_style_tags(self):
        """Charters are compared without markup"""
        old = make_chart(charter="<b>X</b>", uploaded_at=T0)
        new = make_chart(charter="X", uploaded_at=T1)
        assert prefer_same_charter_newer(old, new) is not None

    def test_same_charter_needs_timestamps(self):
        """Missing timestamps never produce a reason"""
        old = make_chart(charter="X", uploaded_at=None)
        new = make_chart(charter="X", uploaded_at=T1)
        assert prefer_same_charter_newer(old, new) is None
        assert prefer_same_charter_newer(new, old) is None

    def test_different_charter_newer(self):
        """Newer uploads by someone else do not count"""
        old = make_chart(charter="X", uploaded_at=T0)
        new = make_chart(charter="Y", uploaded_at=T1)
        assert prefer_same_charter_newer(old, new) is None

    def test_prefer_harmonix(self):
        """Harmonix charts beat everyone else"""
        rule = prefer_charter("Harmonix")
        other = make_chart(charter="RandomUser")
        harmonix = make_chart(charter="<color=#FF0000>harmonix</color>")
        assert rule(other, harmonix) == "Better chart is from Harmonix"
        assert rule(harmonix, other) is None
        assert rule(harmonix, harmonix) is None

    def test_prefer_official(self):
        """Official game ports beat community charts"""
        rule = prefer_official_charter(["Harmonix", "Neversoft"])
        other = make_chart(charter="RandomUser")
        neversoft = make_chart(charter="Neversoft")
        assert rule(other, neversoft) == "Better chart is from official game"
        assert rule(neversoft, make_chart(charter="Harmonix")) is None

    @pytest.mark.parametrize("current", [None, -1])
    def test_prefer_part_when_missing(self, current):
        """A part the incumbent lacks is a reason"""
        rule = prefer_part("drums")
        incumbent = make_chart() if current is None else make_chart(drums=current)
        assert rule(incumbent, make_chart(drums=3)) == "Better chart has drums, current chart doesn't"

    def test_prefer_part_needs_positive_difficulty(self):
        """The challenger must chart the part with a positive difficulty"""
        rule = prefer_part("guitar")
        assert rule(make_chart(guitar=-1), make_chart(guitar=0)) is None
        assert rule(make_chart(guitar=-1), make_chart(guitar=-1)) is None
        assert rule(make_chart(guitar=2), make_chart(guitar=6)) is None

    def test_higher_difficulty_sum(self):
        """Not-charted parts do not count toward the sum"""
        incumbent = make_chart(drums=-1, guitar=5)
        challenger = make_chart(drums=1, guitar=5)
        assert prefer_higher_difficulty_sum(incumbent, challenger) == (
            "Better chart has more instruments or difficulty"
        )
        assert prefer_higher_difficulty_sum(challenger, incumbent) is None
        assert prefer_higher_difficulty_sum(incumbent, make_chart(guitar=5)) is None

    def test_ranking_groups_layout(self):
        """Three groups: charter and drums, guitar, difficulty sum"""
        groups = build_ranking_groups(("Harmonix",))
        assert [len(group) for group in groups] == [4, 1, 1]
        assert groups[2][0] is prefer_higher_difficulty_sum


class TestSelectChart:
    """Test select_chart()"""

    def test_same_charter_newer_wins(self):
        """A newer upload from the same charter replaces the incumbent"""
        candidates = [
            make_chart(charter="X", uploaded_at=T0, drums=-1),
            make_chart(charter="X", uploaded_at=T1, drums=-1),
        ]
        result = select_chart(candidates)
        assert result.chosen is candidates[1]
        assert result.chosen_index == 1
        assert result.reasons == ("Chart from same charter is newer",)
        assert result.replaced_incumbent

    def test_harmonix_with_drums_wins(self):
        """All firing rules of the deciding group are reported in order"""
        candidates = [
            make_chart(charter="RandomUser", drums=-1, guitar=5),
            make_chart(charter="Harmonix", drums=8, guitar=5),
        ]
        result = select_chart(candidates)
        assert result.chosen is candidates[1]
        assert result.reasons == (
            "Better chart is from Harmonix",
            "Better chart is from official game",
            "Better chart has drums, current chart doesn't",
        )

    def test_tie_keeps_incumbent(self):
        """Identical candidates keep the first one"""
        candidates = [make_chart(drums=5, guitar=5), make_chart(drums=5, guitar=5)]
        result = select_chart(candidates)
        assert result.chosen is candidates[0]
        assert result.reasons == ()
        assert not result.replaced_incumbent

    def test_single_candidate(self):
        """A single candidate is returned as is"""
        only = make_chart()
        result = select_chart([only])
        assert result.chosen is only
        assert result.reasons == ()

    def test_empty_candidates(self):
        """An empty candidate list is an error"""
        with pytest.raises(ValueError):
            select_chart([])

    def test_reverse_check_confirms_incumbent(self):
        """An incumbent that beats the challenger in an early group is kept"""
        candidates = [
            make_chart(charter="Harmonix", drums=3, guitar=3),
            make_chart(charter="RandomUser", drums=6, guitar=6),
        ]
        # Without the reverse check the higher sum would win in group 3
        result = select_chart(candidates)
        assert result.chosen is candidates[0]
        assert result.reasons == ()

    def test_reverse_check_uses_first_challenger_only(self):
        """Only the first challenger in consideration is checked in reverse"""
        candidates = [
            make_chart(charter="RandomUser", drums=5, guitar=2),
            make_chart(charter="Other", drums=5, guitar=5),
            make_chart(charter="Someone", drums=-1, guitar=1),
        ]
        result = select_chart(candidates)
        assert result.chosen is candidates[1]
        assert result.reasons == ("Better chart has more instruments or difficulty",)

    def test_narrowing_across_groups(self):
        """Several winners in a group go on to the next group"""
        candidates = [
            make_chart(charter="RandomUser", drums=-1, guitar=-1),
            make_chart(charter="Other", drums=5, guitar=-1),
            make_chart(charter="Someone", drums=5, guitar=4),
        ]
        result = select_chart(candidates)
        assert result.chosen is candidates[2]
        assert result.chosen_index == 2
        assert result.reasons == ("Better chart has guitar, current chart doesn't",)

    def test_undecided_after_last_group_keeps_incumbent(self):
        """Challengers that stay tied through every group lose to the incumbent"""
        candidates = [
            make_chart(charter="RandomUser", drums=-1),
            make_chart(charter="Other", drums=5),
            make_chart(charter="Someone", drums=5),
        ]
        result = select_chart(candidates)
        assert result.chosen is candidates[0]
        assert result.reasons == ()

    def test_custom_ranking_groups(self):
        """Rule sets are pluggable"""
        candidates = [make_chart(guitar=2), make_chart(guitar=6)]
        result = select_chart(candidates, [(prefer_higher_difficulty_sum,)])
        assert result.chosen is candidates[1]

    def test_deterministic(self):
        """Repeated runs give the same outcome"""
        candidates = [
            make_chart(charter="RandomUser", drums=-1, guitar=5),
            make_chart(charter="Harmonix", drums=8, guitar=5),
            make_chart(charter="Neversoft", drums=4, guitar=4),
        ]
        first = select_chart(candidates)
        assert all(select_chart(candidates) == first for _ in range(5))

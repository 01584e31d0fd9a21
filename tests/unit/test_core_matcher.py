"""Unit tests for core cohort matching (exact, family, none)."""

import pytest

from src.contracts.baseline import CoreCohort
from src.contracts.common import CoreMatchKind
from src.core.scoring.core_matcher import core_overlap, family_members, match_core, merge_cohorts


def cohort(games: int, wins: int, **extra) -> CoreCohort:
    return CoreCohort.model_validate({"games": games, "wins": wins, **extra})


@pytest.fixture
def cohorts() -> dict[str, CoreCohort]:
    return {
        "3001_3042_3089": cohort(5, 3),
        "3001_3042_3031": cohort(25, 14, spells={"4_14": {"games": 20, "wins": 11}}),
        "3042_3089_6672": cohort(15, 8, spells={"4_14": {"games": 10, "wins": 5}}),
        "3031_6672_99999": cohort(600, 330),
    }


class TestMatchCore:
    """Precedence: exact, then family, then none."""

    def test_exact_match(self, cohorts):
        match = match_core("3031_6672_99999", cohorts)
        assert match.kind == CoreMatchKind.EXACT
        assert match.matched_key == "3031_6672_99999"
        assert match.cohort is cohorts["3031_6672_99999"]

    def test_exact_wins_over_larger_family(self):
        data = {
            "3001_3042_3089": cohort(12, 6),
            "3001_3042_3031": cohort(400, 220),
            "3042_3089_6672": cohort(300, 160),
        }
        match = match_core("3001_3042_3089", data)
        assert match.kind == CoreMatchKind.EXACT
        assert match.cohort.games == 12

    def test_family_when_exact_undersampled(self, cohorts):
        match = match_core("3001_3042_3089", cohorts)
        assert match.kind == CoreMatchKind.FAMILY
        assert match.cohort.games == 40
        assert match.cohort.wins == 22
        assert match.matched_key.startswith("family:")
        assert set(match.member_keys) == {"3001_3042_3031", "3042_3089_6672"}
        assert match.cohort.spells["4_14"].games == 30

    def test_family_too_small(self, cohorts):
        match = match_core("3001_3042_3089", cohorts, min_family=41)
        assert match.kind == CoreMatchKind.NONE
        assert match.cohort is None

    def test_no_overlap(self, cohorts):
        assert match_core("3153_3124_3091", cohorts).kind == CoreMatchKind.NONE

    def test_missing_key_or_cohorts(self, cohorts):
        assert not match_core(None, cohorts).is_match
        assert not match_core("3001_3042_3089", {}).is_match

    def test_family_members_ordered_by_games(self, cohorts):
        members = family_members("3001_3042_3089", cohorts)
        assert [key for key, _ in members] == ["3001_3042_3031", "3042_3089_6672"]


class TestMergeCohorts:
    def test_sums_nested_dimensions(self):
        a = cohort(10, 6, items={"3031": {"1": {"games": 10, "wins": 6}}}, runes={"primary": {"8008": {"games": 9, "wins": 5}}})
        b = cohort(20, 9, items={"3031": {"1": {"games": 5, "wins": 2}, "2": {"games": 15, "wins": 7}}})
        merged = merge_cohorts([a, b])
        assert (merged.games, merged.wins) == (30, 15)
        assert merged.items["3031"]["1"].games == 15
        assert merged.items["3031"]["2"].wins == 7
        assert merged.runes.primary["8008"].games == 9

    def test_empty(self):
        assert merge_cohorts([]).games == 0

    def test_overlap(self):
        assert core_overlap("3001_3042_3089", "3001_3042_3031") == 2
        assert core_overlap("3001_3042_3089", "bad") == 0

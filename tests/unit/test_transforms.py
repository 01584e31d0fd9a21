"""Unit tests for score transforms.

Covers the sigmoid mapping, the z-score and ratio paths of ``stat_score``,
monotonicity of every metric transform, and the neutral values returned
for degenerate input.
"""

import math

import numpy as np
import pytest

from src.contracts.common import RunningStat
from src.core.scoring.transforms import (
    NEUTRAL_SCORE,
    cc_time_score,
    damage_score,
    deaths_score,
    distance_score,
    has_meaningful_spread,
    kill_participation_score,
    log_z_score,
    percentile_to_score,
    round_half_up,
    sigmoid_score,
    stat_score,
    z_score_to_percentile,
)


def stats_of(mean: float, std: float, n: int = 200) -> RunningStat:
    return RunningStat(n=n, mean=mean, m2=std * std * n)


def assert_non_decreasing(scores: list[float]) -> None:
    diffs = np.diff(np.asarray(scores))
    assert (diffs >= -1e-9).all(), f"scores decrease: {scores}"


# ============================================================================
# Sigmoid and percentile mapping
# ============================================================================


class TestSigmoid:
    """Shape of the z -> score curve."""

    def test_zero_is_neutral(self):
        assert sigmoid_score(0.0) == 50.0

    @pytest.mark.parametrize(
        ("z", "expected"),
        [(2.0, 96.77), (1.0, 84.55), (-1.0, 15.45), (-2.0, 3.23)],
    )
    def test_reference_points(self, z, expected):
        assert sigmoid_score(z) == pytest.approx(expected, abs=0.01)

    def test_symmetric(self):
        assert sigmoid_score(1.3) + sigmoid_score(-1.3) == pytest.approx(100.0)

    def test_extreme_values_do_not_overflow(self):
        assert sigmoid_score(1e6) == pytest.approx(100.0)
        assert sigmoid_score(-1e6) == pytest.approx(0.0)
        assert sigmoid_score(math.inf) <= 100.0
        assert sigmoid_score(-math.inf) >= 0.0

    def test_nan_is_neutral(self):
        assert sigmoid_score(math.nan) == NEUTRAL_SCORE

    def test_percentile_round_trip(self):
        assert z_score_to_percentile(0.0) == pytest.approx(50.0)
        assert percentile_to_score(50.0) == pytest.approx(50.0, abs=0.1)
        assert percentile_to_score(84.13) == pytest.approx(sigmoid_score(1.0), abs=0.5)

    def test_percentile_clamped(self):
        assert 0 < percentile_to_score(0.0) < percentile_to_score(1.0)
        assert percentile_to_score(100.0) < 100


class TestRounding:
    @pytest.mark.parametrize(("value", "expected"), [(0.5, 1), (2.5, 3), (1.49, 1), (99.5, 100), (0.0, 0)])
    def test_half_up(self, value, expected):
        assert round_half_up(value) == expected


# ============================================================================
# stat_score
# ============================================================================


class TestStatScore:
    """Z-score path when the baseline has spread, ratio fallback otherwise."""

    def test_at_baseline_is_fifty(self):
        stats = stats_of(800, 240)
        assert stat_score(800, 800, stats) == pytest.approx(50.0)
        assert stat_score(800, 800, stats, use_log=True) == pytest.approx(50.0)

    def test_ratio_fallback_at_mean_is_fifty(self):
        few = stats_of(800, 240, n=10)
        assert stat_score(800, 800, few) == pytest.approx(50.0)
        assert stat_score(800, 800, None, use_log=True) == pytest.approx(50.0)

    def test_linear_z_path_uses_running_stats(self):
        stats = stats_of(800, 200)
        # one standard deviation above the running mean
        assert stat_score(1000, 790, stats) == pytest.approx(sigmoid_score(1.0))

    def test_flat_spread_uses_ratio(self):
        # std below 5% of the mean cannot back a z-score
        flat = stats_of(800, 30)
        assert not has_meaningful_spread(flat)
        assert stat_score(1000, 800, flat) == pytest.approx(sigmoid_score((1000 / 800 - 1) / 0.25))

    def test_spread_threshold(self):
        assert not has_meaningful_spread(None)
        assert not has_meaningful_spread(stats_of(100, 5, n=30))
        assert has_meaningful_spread(stats_of(100, 6, n=30))
        assert not has_meaningful_spread(stats_of(100, 50, n=29))

    def test_short_game_lowers_expectation(self):
        factor = math.sqrt(7.5 / 15)
        assert stat_score(800 * factor, 800, None, game_minutes=7.5) == pytest.approx(50.0)
        assert stat_score(800 * factor, 800, None, game_minutes=30) < 50.0

    def test_zero_value_on_log_ratio_path_is_floor(self):
        assert stat_score(0, 800, None, use_log=True) < 1.0

    @pytest.mark.parametrize("small", [1e-3, 1.0, 50.0])
    def test_zero_value_never_beats_small_values(self, small):
        assert stat_score(0, 800, None, use_log=True) <= stat_score(small, 800, None, use_log=True)

    @pytest.mark.parametrize("mean", [0.0, -5.0, math.nan, math.inf])
    def test_degenerate_mean_is_neutral(self, mean):
        assert stat_score(500, mean, stats_of(800, 200)) == NEUTRAL_SCORE

    def test_non_finite_value_is_neutral(self):
        assert stat_score(math.nan, 800) == NEUTRAL_SCORE

    @pytest.mark.parametrize(
        "stats",
        [stats_of(800, 240), stats_of(800, 240, n=5), None],
        ids=["z-path", "low-sample", "no-stats"],
    )
    @pytest.mark.parametrize("use_log", [True, False])
    def test_monotonic_in_value(self, stats, use_log):
        values = np.linspace(0, 3000, 61)
        scores = [stat_score(float(v), 800, stats, use_log, game_minutes=25) for v in values]
        assert_non_decreasing(scores)
        assert all(0 <= s <= 100 for s in scores)

    def test_log_z_cv_cap(self):
        assert log_z_score(800, 800, 240) == 0.0
        # a cv of 0.6 is capped at 0.22: same z as a cv of 0.22
        assert log_z_score(1200, 800, 480) == pytest.approx(log_z_score(1200, 800, 176))
        assert log_z_score(1200, 0, 100) == 0.0


# ============================================================================
# Metric transforms
# ============================================================================


class TestDamageScore:
    """Team damage share softens low scores but never past average."""

    def test_above_average_ignores_share(self):
        stats = stats_of(800, 240)
        raw = stat_score(1000, 800, stats, True, 30)
        assert damage_score(1000, 800, stats, 30, team_damage_share=0.05) == pytest.approx(raw)

    def test_high_share_mitigation_capped_at_fifty(self):
        stats = stats_of(800, 240)
        assert damage_score(400, 800, stats, 30, team_damage_share=0.35) == pytest.approx(50.0)

    def test_low_share_keeps_raw(self):
        stats = stats_of(800, 240)
        raw = stat_score(400, 800, stats, True, 30)
        assert damage_score(400, 800, stats, 30, team_damage_share=0.05) == pytest.approx(raw)

    def test_partial_share_blends_halfway(self):
        stats = stats_of(800, 240)
        raw = stat_score(600, 800, stats, True, 30)
        share = (0.2 - 0.1) / 0.2 * 100
        expected = min(50.0, raw + (share - raw) * 0.5)
        assert damage_score(600, 800, stats, 30, team_damage_share=0.2) == pytest.approx(expected)

    @pytest.mark.parametrize("share", [None, 0.05, 0.2, 0.4])
    def test_monotonic_in_damage(self, share):
        stats = stats_of(800, 240)
        scores = [damage_score(float(v), 800, stats, 30, share) for v in np.linspace(0, 2500, 51)]
        assert_non_decreasing(scores)


class TestCcTimeScore:
    def test_non_cc_champion_is_full_marks(self):
        assert cc_time_score(0.0, 0.3) == 100.0

    def test_low_cc_ratio(self):
        assert cc_time_score(1.0, 2.0) == 50.0
        assert cc_time_score(3.0, 2.0) == 100.0
        assert cc_time_score(0.0, 2.0) == 0.0

    def test_high_cc_uses_stat_score(self):
        stats = stats_of(5.0, 1.5)
        assert cc_time_score(5.0, 5.0, stats) == pytest.approx(50.0)

    def test_monotonic(self):
        for mean in (0.3, 1.5, 5.0):
            stats = stats_of(mean, mean * 0.3)
            scores = [cc_time_score(float(v), mean, stats) for v in np.linspace(0, 12, 49)]
            assert_non_decreasing(scores)


class TestDeathsScore:
    """0.5-0.7 deaths per minute is optimal."""

    def test_optimal_band(self):
        assert deaths_score(15, 25) == 100.0

    def test_passive_play(self):
        assert deaths_score(0, 30) == 0.0
        assert deaths_score(12, 30) == 80.0

    def test_excess_deaths(self):
        assert deaths_score(30, 30) == 64.0

    def test_death_quality_refund(self):
        assert deaths_score(30, 30, death_quality=80) == 71.0
        assert deaths_score(30, 30, death_quality=59) == 64.0

    def test_zero_minutes_is_neutral(self):
        assert deaths_score(3, 0) == NEUTRAL_SCORE


class TestKillParticipationScore:
    @pytest.mark.parametrize(("kp", "expected"), [(0.5, 59.0), (0.7, 80.0), (0.9, 100.0), (1.2, 100.0), (0.0, 0.0)])
    def test_curve(self, kp, expected):
        assert kill_participation_score(kp) == expected

    def test_monotonic(self):
        assert_non_decreasing([kill_participation_score(float(kp)) for kp in np.linspace(0, 1, 41)])


class TestDistanceScore:
    def test_gap_costs_five_per_point(self):
        assert distance_score(50, 50) == 100.0
        assert distance_score(45, 50) == 75.0

    def test_floor(self):
        assert distance_score(10, 50) == 20.0

    def test_better_than_best_is_full(self):
        assert distance_score(55, 50) == 100.0

    def test_no_best_is_neutral(self):
        assert distance_score(40, 0) == NEUTRAL_SCORE

"""Score transforms: raw metric value plus baseline statistics to a 0-100 score.

Pure functions with zero I/O. Every transform is total: degenerate input
(non-positive or non-finite means, empty statistics) yields the documented
neutral value instead of raising.

Sigmoid mapping with k = 1.7:

    | z-score | score |
    |---------|-------|
    | +2.0    | ~97   |
    | +1.0    | ~85   |
    |  0.0    |  50   |
    | -1.0    | ~15   |
    | -2.0    | ~3    |
"""

import logging
import math

import numpy as np

from src.contracts.common import RunningStat

logger = logging.getLogger(__name__)

SIGMOID_K = 1.7
LOG_CV_CAP = 0.22
MIN_LOG_SPREAD = 0.01
MEANINGFUL_SPREAD_RATIO = 0.05
SAMPLE_SIZE_MINIMUM = 30

# Ratio fallback: assumed spread when the baseline cannot supply one
_ASSUMED_LOG_STD = 0.20
_ASSUMED_RELATIVE_STD = 0.25

_SHORT_GAME_MINUTES = 15.0

_CC_IGNORED_BELOW = 0.5
_CC_RATIO_BELOW = 3.0

_DEATHS_OPTIMAL_LOW = 0.5
_DEATHS_OPTIMAL_HIGH = 0.7
_DEATHS_PASSIVE_SLOPE = 200
_DEATHS_EXCESS_SLOPE = 120
_DEATH_QUALITY_THRESHOLD = 60
_DEATH_QUALITY_MAX_REFUND = 0.5

_KP_CAP = 0.9
_KP_EXPONENT = 0.9

_SHARE_FLOOR = 0.10
_SHARE_CEILING = 0.30

_DISTANCE_SLOPE = 5
_DISTANCE_FLOOR = 20

NEUTRAL_SCORE = 50.0


def _finite(*values: float | None) -> bool:
    return all(v is not None and math.isfinite(v) for v in values)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (``round`` rounds to even)."""
    return int(math.floor(value + 0.5))


def sigmoid_score(z: float, k: float = SIGMOID_K) -> float:
    """Map a z-score to (0, 100); 50 at z = 0, strictly increasing."""
    if math.isnan(z):
        return NEUTRAL_SCORE
    # exp overflows past ~709; the curve is flat there anyway
    exponent = float(np.clip(-k * z, -700.0, 700.0))
    return 100 / (1 + math.exp(exponent))


def z_score_to_percentile(z: float) -> float:
    """Standard normal CDF as a percentage."""
    if math.isnan(z):
        return 50.0
    return (1 + math.erf(z / math.sqrt(2))) / 2 * 100


def percentile_to_score(percentile: float, k: float = SIGMOID_K) -> float:
    """Inverse normal CDF (Abramowitz-Stegun 26.2.23) followed by the sigmoid.

    The percentile is clamped to [0.1, 99.9] to keep the inverse finite.
    """
    if math.isnan(percentile):
        return NEUTRAL_SCORE
    p = float(np.clip(percentile / 100, 0.001, 0.999))
    sign = -1.0 if p < 0.5 else 1.0
    tail = p if p < 0.5 else 1 - p
    t = math.sqrt(-2 * math.log(tail))
    c0, c1, c2 = 2.515517, 0.802853, 0.010328
    d1, d2, d3 = 1.432788, 0.189269, 0.001308
    z = sign * (t - (c0 + c1 * t + c2 * t * t) / (1 + d1 * t + d2 * t * t + d3 * t**3))
    return sigmoid_score(z, k)


def log_z_score(value: float, mean: float, std_dev: float, cv_cap: float = LOG_CV_CAP) -> float:
    """Z-score in log1p space for right-skewed metrics.

    The log-space spread is estimated from the coefficient of variation,
    capped so naturally high-variance metrics do not flatten every score.
    """
    if not _finite(value, mean, std_dev) or mean <= 0 or std_dev < 0:
        return 0.0
    cv = min(std_dev / mean, cv_cap)
    log_spread = math.sqrt(math.log1p(cv * cv))
    if log_spread <= MIN_LOG_SPREAD:
        return 0.0
    return (math.log1p(max(value, 0.0)) - math.log1p(mean)) / log_spread


def _duration_factor(game_minutes: float | None) -> float:
    if game_minutes is None or not _finite(game_minutes) or game_minutes <= 0:
        return 1.0
    if game_minutes >= _SHORT_GAME_MINUTES:
        return 1.0
    return math.sqrt(game_minutes / _SHORT_GAME_MINUTES)


def has_meaningful_spread(stats: RunningStat | None, sample_size_minimum: int = SAMPLE_SIZE_MINIMUM) -> bool:
    """True when the running stats can back a z-score."""
    if stats is None or stats.n < sample_size_minimum:
        return False
    return stats.std_dev > stats.mean * MEANINGFUL_SPREAD_RATIO


def stat_score(
    value: float,
    mean: float,
    stats: RunningStat | None = None,
    use_log: bool = False,
    game_minutes: float | None = None,
    sample_size_minimum: int = SAMPLE_SIZE_MINIMUM,
    *,
    k: float = SIGMOID_K,
    cv_cap: float = LOG_CV_CAP,
) -> float:
    """Score ``value`` against a baseline mean, 50 being average.

    Uses the running statistics when they hold enough observations with a
    meaningful spread, otherwise an equivalent z-score from the value/mean
    ratio. Games shorter than 15 minutes lower the expectation by
    ``sqrt(minutes / 15)``.
    """
    if not _finite(value, mean) or mean <= 0:
        return NEUTRAL_SCORE
    value = max(value, 0.0)
    factor = _duration_factor(game_minutes)

    if has_meaningful_spread(stats, sample_size_minimum):
        adjusted_value = value / factor
        if use_log and stats.mean > 0:
            return sigmoid_score(log_z_score(adjusted_value, stats.mean, stats.std_dev, cv_cap), k)
        return sigmoid_score(stats.z_score(adjusted_value), k)

    adjusted_mean = mean * factor
    if use_log:
        # log(0) is the bottom of the curve, not a switch to the linear ratio
        z = math.log(value / adjusted_mean) / _ASSUMED_LOG_STD if value > 0 else -math.inf
        return sigmoid_score(z, k)
    return sigmoid_score((value / adjusted_mean - 1) / _ASSUMED_RELATIVE_STD, k)


def damage_score(
    value: float,
    mean: float,
    stats: RunningStat | None = None,
    game_minutes: float | None = None,
    team_damage_share: float | None = None,
    **score_opts: float,
) -> float:
    """Log-scaled damage score, softened by team damage share when below average.

    A low raw number with a high share of the team's damage usually means
    the whole team was behind; when the share score beats the raw score
    the two are blended halfway. The blend never lifts a below-average
    score past 50, so the score stays non-decreasing in damage.
    """
    raw = stat_score(value, mean, stats, True, game_minutes, **score_opts)
    if raw >= NEUTRAL_SCORE or team_damage_share is None or not _finite(team_damage_share):
        return raw
    if team_damage_share >= _SHARE_CEILING:
        share = 100.0
    elif team_damage_share <= _SHARE_FLOOR:
        share = 0.0
    else:
        share = (team_damage_share - _SHARE_FLOOR) / (_SHARE_CEILING - _SHARE_FLOOR) * 100
    if share > raw:
        return min(NEUTRAL_SCORE, raw + (share - raw) * 0.5)
    return raw


def cc_time_score(
    value: float,
    mean: float,
    stats: RunningStat | None = None,
    game_minutes: float | None = None,
    **score_opts: float,
) -> float:
    """Crowd-control seconds per minute.

    Baselines under 0.5 s/min are not a CC champion: 100, excluded downstream
    through a zero weight. Under 3 s/min the metric is too noisy for a
    spread, so reaching the average is full marks.
    """
    if not _finite(value, mean) or mean <= 0:
        return NEUTRAL_SCORE
    if mean < _CC_IGNORED_BELOW:
        return 100.0
    if mean < _CC_RATIO_BELOW:
        ratio = max(value, 0.0) / mean
        if ratio >= 1:
            return 100.0
        return float(round_half_up(ratio * 100))
    return stat_score(value, mean, stats, False, game_minutes, **score_opts)


def deaths_score(deaths: float, game_minutes: float, death_quality: float | None = None) -> float:
    """Death tempo: 0.5-0.7 deaths per minute is optimal.

    Too few deaths reads as passive play (not resetting), too many is
    penalized; a death quality of 60 or more refunds up to half the
    excess penalty.
    """
    if not _finite(deaths, game_minutes) or game_minutes <= 0:
        return NEUTRAL_SCORE
    per_min = max(deaths, 0.0) / game_minutes
    if _DEATHS_OPTIMAL_LOW <= per_min <= _DEATHS_OPTIMAL_HIGH:
        return 100.0
    if per_min < _DEATHS_OPTIMAL_LOW:
        return float(max(0, round_half_up(100 - (_DEATHS_OPTIMAL_LOW - per_min) * _DEATHS_PASSIVE_SLOPE)))

    penalty = (per_min - _DEATHS_OPTIMAL_HIGH) * _DEATHS_EXCESS_SLOPE
    refund = 0.0
    if death_quality is not None and death_quality >= _DEATH_QUALITY_THRESHOLD:
        refund = penalty * min(_DEATH_QUALITY_MAX_REFUND, (death_quality - _DEATH_QUALITY_THRESHOLD) / 100)
    return float(max(0, round_half_up(100 - penalty + refund)))


def kill_participation_score(kill_participation: float) -> float:
    """Power curve capped at 90% participation: 50% -> ~59, 70% -> ~80."""
    if not _finite(kill_participation) or kill_participation <= 0:
        return 0.0
    capped = min(kill_participation, _KP_CAP)
    return float(max(0, round_half_up(100 * (capped / _KP_CAP) ** _KP_EXPONENT)))


def distance_score(player_wilson: float, best_wilson: float) -> float:
    """Score a choice by its Wilson-score gap from the best option.

    Each point of gap costs 5; bounded to [20, 100]. 50 when there is no
    best option to compare against.
    """
    if not _finite(player_wilson, best_wilson) or best_wilson <= 0:
        return NEUTRAL_SCORE
    gap = max(0.0, best_wilson - player_wilson)
    return float(np.clip(round_half_up(100 - gap * _DISTANCE_SLOPE), _DISTANCE_FLOOR, 100))

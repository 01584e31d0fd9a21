"""Write side of the baselines: Welford aggregation of finished participants."""

from src.core.aggregation.aggregator import BaselineKey, StatsAggregator
from src.core.aggregation.welford import merge_running_stats, running_stat_of

__all__ = [
    "BaselineKey",
    "StatsAggregator",
    "merge_running_stats",
    "running_stat_of",
]

"""Welford running statistics helpers.

``RunningStat.updated`` folds one observation; ``merge_running_stats``
combines two partial states (Chan et al. parallel variance), so workers
can aggregate independently and flush into one baseline.
"""

from collections.abc import Iterable

from src.contracts.common import RunningStat


def merge_running_stats(a: RunningStat, b: RunningStat) -> RunningStat:
    if a.n == 0:
        return b
    if b.n == 0:
        return a
    n = a.n + b.n
    delta = b.mean - a.mean
    mean = a.mean + delta * b.n / n
    m2 = a.m2 + b.m2 + delta * delta * a.n * b.n / n
    return RunningStat(n=n, mean=mean, m2=max(0.0, m2))


def running_stat_of(values: Iterable[float]) -> RunningStat:
    stat = RunningStat()
    for value in values:
        stat = stat.updated(value)
    return stat

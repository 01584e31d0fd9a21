"""Versioned scoring weight tables.

Component weights have changed over time; each historical table is kept as
data under a version name so a formula change is a new registry entry, not
a new branch in the calculator. ``PIG_WEIGHTS_VERSION`` selects the table.
"""

from dataclasses import dataclass, field

import numpy as np

from src.core.scoring.errors import UnknownWeightsVersionError
from src.core.scoring.transforms import round_half_up

DEFAULT_WEIGHTS_VERSION = "v2"


@dataclass(frozen=True)
class BuildWeights:
    """Share of each build category in the build component (sums to 1)."""

    starting: float = 0.05
    skills: float = 0.05
    keystone: float = 0.10
    spells: float = 0.05
    core: float = 0.45
    items: float = 0.30


@dataclass(frozen=True)
class PenaltyScale:
    """Penalty that maps a category to a score of 0."""

    items: float = 20.0
    keystone: float = 20.0
    spells: float = 20.0
    skills: float = 20.0
    core: float = 20.0
    starting: float = 10.0


@dataclass(frozen=True)
class ScoringWeights:
    """Final-score composition.

    ``final = performance*P + timeline*T + kda*K + build*B``, rounded and
    clamped to [0, 100].
    """

    version: str
    performance: float
    build: float
    timeline: float
    kda: float
    build_parts: BuildWeights = field(default_factory=BuildWeights)
    penalty_scale: PenaltyScale = field(default_factory=PenaltyScale)
    kda_kill_participation: float = 0.6
    kda_deaths: float = 0.4

    def __post_init__(self) -> None:
        total = self.performance + self.build + self.timeline + self.kda
        if not np.isclose(total, 1.0):
            raise ValueError(f"Component weights of {self.version} sum to {total}, expected 1.0")

    def build_score(self, scores: dict[str, float]) -> float:
        parts = self.build_parts
        return (
            scores["starting"] * parts.starting
            + scores["skills"] * parts.skills
            + scores["keystone"] * parts.keystone
            + scores["spells"] * parts.spells
            + scores["core"] * parts.core
            + scores["items"] * parts.items
        )

    def kda_score(self, kill_participation_score: float, deaths_score: float) -> float:
        return kill_participation_score * self.kda_kill_participation + deaths_score * self.kda_deaths

    def final_score(self, performance: float, build: float, timeline: float, kda: float) -> int:
        combined = (
            performance * self.performance
            + build * self.build
            + timeline * self.timeline
            + kda * self.kda
        )
        return round_half_up(float(np.clip(combined, 0, 100)))


# v2: half performance (stats 60%, timeline 25%, kda 15%), half build
WEIGHTS_V2 = ScoringWeights(version="v2", performance=0.30, build=0.50, timeline=0.125, kda=0.075)

# v1: stats and build only
WEIGHTS_V1 = ScoringWeights(version="v1", performance=0.70, build=0.30, timeline=0.0, kda=0.0)

WEIGHT_VERSIONS: dict[str, ScoringWeights] = {w.version: w for w in (WEIGHTS_V1, WEIGHTS_V2)}


def get_weights(version: str = DEFAULT_WEIGHTS_VERSION) -> ScoringWeights:
    try:
        return WEIGHT_VERSIONS[version]
    except KeyError:
        raise UnknownWeightsVersionError(version, sorted(WEIGHT_VERSIONS)) from None

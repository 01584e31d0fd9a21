"""Contract models for data validation."""

from .baseline import (
    ChampionAggregates,
    ChampionPatchBaseline,
    CoreCohort,
    PerMinuteStats,
    RuneStats,
    ShardStats,
    TreeStats,
    WelfordStats,
)
from .common import ChoiceReason, CoreMatchKind, GameStats, RunningStat
from .participant import ParticipantOutcome, ParticipantSample
from .score_breakdown import (
    BuildSubScores,
    ComponentScores,
    CoreBuildDetail,
    FallbackInfo,
    ItemDetail,
    MetricScore,
    ScoreBreakdown,
    StartingItemsDetail,
)

__all__ = [
    "BuildSubScores",
    "ChampionAggregates",
    "ChampionPatchBaseline",
    "ChoiceReason",
    "ComponentScores",
    "CoreBuildDetail",
    "CoreCohort",
    "CoreMatchKind",
    "FallbackInfo",
    "GameStats",
    "ItemDetail",
    "MetricScore",
    "ParticipantOutcome",
    "ParticipantSample",
    "PerMinuteStats",
    "RuneStats",
    "RunningStat",
    "ScoreBreakdown",
    "ShardStats",
    "StartingItemsDetail",
    "TreeStats",
    "WelfordStats",
]

"""
Scoring output contracts.

A ScoreBreakdown is created fresh per scoring call and never mutated after
it is returned. Besides the final score it carries provenance: which patch
baseline was used, which core cohort the build was compared against, and
which build categories fell back to champion-wide data.
"""

from pydantic import Field

from src.contracts.baseline import PerMinuteStats
from src.contracts.common import ChoiceReason, CoreMatchKind, FrozenContract


class MetricScore(FrozenContract):
    name: str
    score: float = Field(..., ge=0, le=100)
    weight: float = Field(..., ge=0)
    player_value: float | None = None
    avg_value: float | None = None
    percent_of_avg: float | None = None
    z_score: float | None = None


class ComponentScores(FrozenContract):
    performance: int = Field(..., ge=0, le=100)
    build: int = Field(..., ge=0, le=100)
    timeline: int = Field(..., ge=0, le=100)
    kda: int = Field(..., ge=0, le=100)


class BuildSubScores(FrozenContract):
    items: int = Field(..., ge=0, le=100)
    keystone: int = Field(..., ge=0, le=100)
    spells: int = Field(..., ge=0, le=100)
    skills: int = Field(..., ge=0, le=100)
    core: int = Field(..., ge=0, le=100)
    starting: int = Field(..., ge=0, le=100)


class ItemDetail(FrozenContract):
    """Per-item outcome; ``slot`` is the position among non-boot items (0-based)."""

    slot: int = Field(..., ge=0)
    item_id: int
    penalty: float = Field(..., ge=0)
    reason: ChoiceReason
    player_winrate: float | None = None
    top_winrate: float | None = None
    games: int | None = None
    is_in_top5: bool = False


class StartingItemsDetail(FrozenContract):
    item_ids: list[int]
    penalty: float = Field(..., ge=0)
    reason: ChoiceReason
    player_winrate: float | None = None
    top_winrate: float | None = None
    rank: int | None = None
    total_options: int | None = None


class CoreBuildDetail(FrozenContract):
    penalty: float = Field(..., ge=0)
    player_winrate: float | None = None
    top_winrate: float | None = None
    rank: int | None = None
    total_options: int | None = None
    games: int | None = None
    player_core_key: str | None = None
    matched_core_key: str | None = None
    match_kind: CoreMatchKind = CoreMatchKind.NONE
    global_winrate: float | None = None


class FallbackInfo(FrozenContract):
    """True where a category used champion-wide data instead of the core cohort."""

    items: bool = True
    keystone: bool = True
    spells: bool = True
    starting: bool = True


class ScoreBreakdown(FrozenContract):
    final_score: int = Field(..., ge=0, le=100)
    metrics: list[MetricScore]
    component_scores: ComponentScores
    build_sub_scores: BuildSubScores
    item_details: list[ItemDetail] = Field(default_factory=list)
    starting_items_details: StartingItemsDetail | None = None
    core_build_details: CoreBuildDetail | None = None
    core_key: str | None = None
    matched_core_key: str | None = None
    fallback_info: FallbackInfo = Field(default_factory=FallbackInfo)
    player_stats: PerMinuteStats
    champion_avg_stats: PerMinuteStats
    total_games: int = Field(..., ge=0)
    patch: str = Field(..., description="Patch of the baseline actually used")
    match_patch: str | None = Field(None, description="Set only when a fallback patch was used")
    used_fallback_patch: bool = False
    weights_version: str

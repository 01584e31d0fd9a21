"""Champion/patch baseline contracts.

A baseline is the aggregate of every finished game of one champion on one
patch: legacy per-game sums, Welford running statistics for the per-minute
metrics, and nested win/loss counters for every discrete build choice,
including a per-core breakdown keyed by the normalized 3-item core key.

Rows are stored as camelCase JSON (``championStats``, ``sumDamageToChampions``,
``damageToChampionsPerMin``) and parsed here once, at the boundary.
"""

from pydantic import Field

from src.contracts.common import GameStats, RunningStat, StoredContract

ChoiceCounts = dict[str, GameStats]


class ShardStats(StoredContract):
    offense: ChoiceCounts = Field(default_factory=dict)
    flex: ChoiceCounts = Field(default_factory=dict)
    defense: ChoiceCounts = Field(default_factory=dict)


class TreeStats(StoredContract):
    primary: ChoiceCounts = Field(default_factory=dict)
    secondary: ChoiceCounts = Field(default_factory=dict)


class RuneStats(StoredContract):
    """Rune counters.

    ``primary`` holds the keystone and the three primary-tree runes,
    ``secondary`` the two secondary-tree runes.
    """

    primary: ChoiceCounts = Field(default_factory=dict)
    secondary: ChoiceCounts = Field(default_factory=dict)
    tertiary: ShardStats = Field(default_factory=ShardStats)
    tree: TreeStats = Field(default_factory=TreeStats)


class CoreCohort(StoredContract):
    """Games that share one core key.

    ``items`` is keyed ``itemId -> purchaseSlot``. Nested counts are
    independent dimensions, not a partition of ``games``.
    """

    games: int = Field(0, ge=0)
    wins: int = Field(0, ge=0)
    items: dict[str, ChoiceCounts] = Field(default_factory=dict)
    runes: RuneStats = Field(default_factory=RuneStats)
    spells: ChoiceCounts = Field(default_factory=dict)
    starting: ChoiceCounts = Field(default_factory=dict)
    skills: ChoiceCounts = Field(default_factory=dict)

    @property
    def winrate(self) -> float:
        if self.games <= 0:
            return 0.0
        return self.wins / self.games * 100

    def items_by_slot(self) -> dict[str, ChoiceCounts]:
        """Pivot ``items[itemId][slot]`` into ``[slot][itemId]``."""
        pivot: dict[str, ChoiceCounts] = {}
        for item_id, slots in self.items.items():
            for slot, stats in slots.items():
                pivot.setdefault(slot, {})[item_id] = stats
        return pivot


class WelfordStats(StoredContract):
    damage_to_champions_per_min: RunningStat = Field(default_factory=RunningStat)
    total_damage_per_min: RunningStat = Field(default_factory=RunningStat)
    healing_shielding_per_min: RunningStat = Field(default_factory=RunningStat)
    cc_time_per_min: RunningStat = Field(default_factory=RunningStat)
    deaths_per_min: RunningStat = Field(default_factory=RunningStat)


class PerMinuteStats(StoredContract):
    """Per-minute view of one player or of a champion's average player."""

    damage_to_champions_per_min: float
    total_damage_per_min: float
    healing_shielding_per_min: float
    cc_time_per_min: float
    deaths_per_min: float | None = None
    kill_participation: float | None = None


class ChampionAggregates(StoredContract):
    sum_damage_to_champions: float = 0.0
    sum_total_damage: float = 0.0
    sum_healing: float = 0.0
    sum_shielding: float = 0.0
    sum_cc_time: float = Field(0.0, alias="sumCCTime")
    sum_game_duration: float = 0.0
    sum_deaths: float = 0.0
    welford: WelfordStats = Field(default_factory=WelfordStats)


class ChampionPatchBaseline(StoredContract):
    """Aggregate for one (champion, patch). Read-only to the scoring engine."""

    champion_name: str = ""
    patch: str = ""
    games: int = Field(0, ge=0)
    wins: int = Field(0, ge=0)
    champion_stats: ChampionAggregates = Field(default_factory=ChampionAggregates)
    items: dict[str, ChoiceCounts] = Field(default_factory=dict)
    runes: RuneStats = Field(default_factory=RuneStats)
    spells: ChoiceCounts = Field(default_factory=dict)
    starting: ChoiceCounts = Field(default_factory=dict)
    skills: ChoiceCounts = Field(default_factory=dict)
    core: dict[str, CoreCohort] = Field(default_factory=dict)

    @property
    def winrate(self) -> float:
        """Champion win rate in percent; 50 when unknown."""
        if self.games <= 0 or self.wins <= 0:
            return 50.0
        return self.wins / self.games * 100

    def average_per_minute(self) -> PerMinuteStats | None:
        """Average per-minute metrics derived from the legacy sums.

        Returns None when the sums cannot support a division (no games or
        no recorded duration).
        """
        agg = self.champion_stats
        if self.games <= 0 or agg.sum_game_duration <= 0:
            return None
        avg_minutes = agg.sum_game_duration / self.games / 60
        per_game = 1 / self.games / avg_minutes
        return PerMinuteStats(
            damage_to_champions_per_min=agg.sum_damage_to_champions * per_game,
            total_damage_per_min=agg.sum_total_damage * per_game,
            healing_shielding_per_min=(agg.sum_healing + agg.sum_shielding) * per_game,
            cc_time_per_min=agg.sum_cc_time * per_game,
            deaths_per_min=agg.sum_deaths * per_game,
        )

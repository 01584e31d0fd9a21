"""Baseline aggregator - folds finished participants into champion/patch baselines.

One ``StatsAggregator`` per batch: ``add`` every participant, then
``baselines()`` yields one immutable ``ChampionPatchBaseline`` per
(champion, patch), reducing store writes from one per participant to one
per pair. ``merge`` folds a previously stored baseline back in, so a batch
can be flushed on top of the existing row.

Item positions are 1-based purchase slots of the completed items that
survived to the end of the game, the same ordering the choice ranker
reads them in.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from src.contracts.baseline import ChampionPatchBaseline, ChoiceCounts, CoreCohort
from src.contracts.common import RunningStat
from src.contracts.participant import ParticipantOutcome
from src.core.aggregation.welford import merge_running_stats
from src.core.data.item_catalog import ItemCatalog
from src.core.scoring.build_identity import normalize_starter_key, resolve_core_key, spell_pair_key
from src.core.scoring.choice_ranker import completed_items_in_order

logger = logging.getLogger(__name__)

MAX_ITEM_SLOTS = 6

_WELFORD_METRICS = (
    "damage_to_champions_per_min",
    "total_damage_per_min",
    "healing_shielding_per_min",
    "cc_time_per_min",
    "deaths_per_min",
)
_SUM_FIELDS = (
    "sum_damage_to_champions",
    "sum_total_damage",
    "sum_healing",
    "sum_shielding",
    "sum_cc_time",
    "sum_game_duration",
    "sum_deaths",
)
_SHARDS = ("offense", "flex", "defense")
_TREES = ("primary", "secondary")

Counter = dict[str, list[int]]


def _bump(counts: Counter, key: str, games: int, wins: int) -> None:
    acc = counts.setdefault(key, [0, 0])
    acc[0] += games
    acc[1] += wins


def _absorb(counts: Counter, stored: ChoiceCounts) -> None:
    for key, stats in stored.items():
        _bump(counts, key, stats.games, stats.wins)


def _dump(counts: Counter) -> dict[str, dict[str, int]]:
    return {key: {"games": g, "wins": w} for key, (g, w) in sorted(counts.items())}


@dataclass
class _ChoiceAccumulator:
    """Counters shared by the champion level and each core cohort."""

    games: int = 0
    wins: int = 0
    primary: Counter = field(default_factory=dict)
    secondary: Counter = field(default_factory=dict)
    shards: dict[str, Counter] = field(default_factory=lambda: {name: {} for name in _SHARDS})
    trees: dict[str, Counter] = field(default_factory=lambda: {name: {} for name in _TREES})
    spells: Counter = field(default_factory=dict)
    starting: Counter = field(default_factory=dict)
    skills: Counter = field(default_factory=dict)

    def add_choices(self, outcome: ParticipantOutcome) -> None:
        sample = outcome.sample
        win = int(outcome.win)
        self.games += 1
        self.wins += win
        for rune_id in outcome.primary_runes:
            if rune_id > 0:
                _bump(self.primary, str(rune_id), 1, win)
        for rune_id in outcome.secondary_runes:
            if rune_id > 0:
                _bump(self.secondary, str(rune_id), 1, win)
        for name, shard in zip(_SHARDS, outcome.stat_shards):
            if shard > 0:
                _bump(self.shards[name], str(shard), 1, win)
        for name, tree in zip(_TREES, (sample.primary_tree_id, sample.secondary_tree_id)):
            if tree > 0:
                _bump(self.trees[name], str(tree), 1, win)
        if sample.spell1_id > 0 and sample.spell2_id > 0:
            _bump(self.spells, spell_pair_key(sample.spell1_id, sample.spell2_id), 1, win)
        if sample.first_buy:
            _bump(self.starting, normalize_starter_key(sample.first_buy), 1, win)
        if sample.skill_order:
            _bump(self.skills, sample.skill_order, 1, win)

    def absorb_choices(self, stored: ChampionPatchBaseline | CoreCohort) -> None:
        self.games += stored.games
        self.wins += stored.wins
        _absorb(self.primary, stored.runes.primary)
        _absorb(self.secondary, stored.runes.secondary)
        for name in _SHARDS:
            _absorb(self.shards[name], getattr(stored.runes.tertiary, name))
        for name in _TREES:
            _absorb(self.trees[name], getattr(stored.runes.tree, name))
        _absorb(self.spells, stored.spells)
        _absorb(self.starting, stored.starting)
        _absorb(self.skills, stored.skills)

    def dump_choices(self) -> dict:
        return {
            "games": self.games,
            "wins": self.wins,
            "runes": {
                "primary": _dump(self.primary),
                "secondary": _dump(self.secondary),
                "tertiary": {name: _dump(c) for name, c in self.shards.items()},
                "tree": {name: _dump(c) for name, c in self.trees.items()},
            },
            "spells": _dump(self.spells),
            "starting": _dump(self.starting),
            "skills": _dump(self.skills),
        }


@dataclass
class _CoreAccumulator(_ChoiceAccumulator):
    # itemId -> slot
    items: dict[str, Counter] = field(default_factory=dict)

    def dump(self) -> dict:
        return {**self.dump_choices(), "items": {i: _dump(c) for i, c in sorted(self.items.items())}}


@dataclass
class _ChampionAccumulator(_ChoiceAccumulator):
    # slot -> itemId
    items: dict[str, Counter] = field(default_factory=dict)
    sums: dict[str, float] = field(default_factory=lambda: dict.fromkeys(_SUM_FIELDS, 0.0))
    welford: dict[str, RunningStat] = field(
        default_factory=lambda: {name: RunningStat() for name in _WELFORD_METRICS}
    )
    core: dict[str, _CoreAccumulator] = field(default_factory=dict)


@dataclass(frozen=True)
class BaselineKey:
    champion_name: str
    patch: str


class StatsAggregator:
    """Accumulates participants into per (champion, patch) baselines."""

    def __init__(self, catalog: ItemCatalog | None = None) -> None:
        self._catalog = catalog or ItemCatalog.default()
        self._aggregated: dict[BaselineKey, _ChampionAccumulator] = {}
        self._participant_count = 0

    @property
    def participant_count(self) -> int:
        return self._participant_count

    @property
    def champion_patch_count(self) -> int:
        return len(self._aggregated)

    def _slot_items(self, outcome: ParticipantOutcome) -> list[int]:
        sample = outcome.sample
        if sample.purchase_order:
            return completed_items_in_order(sample.purchase_order, sample.inventory, self._catalog)
        return list(sample.inventory)

    def add(self, outcome: ParticipantOutcome) -> None:
        sample = outcome.sample
        if not sample.patch:
            logger.debug("Skipping %s participant without patch", sample.champion_name)
            return
        self._participant_count += 1
        key = BaselineKey(sample.champion_name, sample.patch)
        stats = self._aggregated.setdefault(key, _ChampionAccumulator())
        win = int(outcome.win)

        stats.add_choices(outcome)
        for name, value in (
            ("sum_damage_to_champions", sample.damage_to_champions),
            ("sum_total_damage", sample.total_damage_dealt),
            ("sum_healing", sample.healing_on_teammates),
            ("sum_shielding", sample.shielding_on_teammates),
            ("sum_cc_time", sample.cc_time),
            ("sum_game_duration", sample.game_duration),
            ("sum_deaths", sample.deaths),
        ):
            stats.sums[name] += value

        minutes = sample.game_minutes
        if minutes > 0:
            per_min = {
                "damage_to_champions_per_min": sample.damage_to_champions / minutes,
                "total_damage_per_min": sample.total_damage_dealt / minutes,
                "healing_shielding_per_min": (sample.healing_on_teammates + sample.shielding_on_teammates)
                / minutes,
                "cc_time_per_min": sample.cc_time / minutes,
                "deaths_per_min": sample.deaths / minutes,
            }
            for name, value in per_min.items():
                stats.welford[name] = stats.welford[name].updated(value)

        slot_items = self._slot_items(outcome)[:MAX_ITEM_SLOTS]
        for index, item_id in enumerate(slot_items):
            _bump(stats.items.setdefault(str(index + 1), {}), str(item_id), 1, win)

        core_key = None
        if sample.purchase_order:
            core_key = resolve_core_key(sample.purchase_order, sample.inventory, self._catalog)
        if core_key is None:
            return
        cohort = stats.core.setdefault(core_key, _CoreAccumulator())
        cohort.add_choices(outcome)
        for index, item_id in enumerate(slot_items):
            _bump(cohort.items.setdefault(str(item_id), {}), str(index + 1), 1, win)

    def merge(self, baseline: ChampionPatchBaseline) -> None:
        """Fold an already aggregated baseline (a stored row) into this batch."""
        key = BaselineKey(baseline.champion_name, baseline.patch)
        stats = self._aggregated.setdefault(key, _ChampionAccumulator())
        stats.absorb_choices(baseline)
        stored = baseline.champion_stats
        for name in _SUM_FIELDS:
            stats.sums[name] += getattr(stored, name)
        for name in _WELFORD_METRICS:
            stats.welford[name] = merge_running_stats(stats.welford[name], getattr(stored.welford, name))
        for slot, counts in baseline.items.items():
            _absorb(stats.items.setdefault(slot, {}), counts)
        for core_key, stored_cohort in baseline.core.items():
            cohort = stats.core.setdefault(core_key, _CoreAccumulator())
            cohort.absorb_choices(stored_cohort)
            for item_id, slots in stored_cohort.items.items():
                _absorb(cohort.items.setdefault(item_id, {}), slots)

    def add_all(self, outcomes: Iterable[ParticipantOutcome]) -> int:
        count = 0
        for outcome in outcomes:
            self.add(outcome)
            count += 1
        return count

    def baselines(self) -> list[ChampionPatchBaseline]:
        """Immutable snapshots, ordered by champion then patch."""
        result = []
        for key in sorted(self._aggregated, key=lambda k: (k.champion_name, k.patch)):
            stats = self._aggregated[key]
            result.append(
                ChampionPatchBaseline.model_validate(
                    {
                        **stats.dump_choices(),
                        "champion_name": key.champion_name,
                        "patch": key.patch,
                        "champion_stats": {
                            **stats.sums,
                            "welford": {name: s.model_dump() for name, s in stats.welford.items()},
                        },
                        "items": {slot: _dump(c) for slot, c in sorted(stats.items.items())},
                        "core": {k: c.dump() for k, c in sorted(stats.core.items())},
                    }
                )
            )
        return result

    def baseline_documents(self) -> Mapping[BaselineKey, dict]:
        """Stored-row JSON documents (camelCase), keyed by champion and patch."""
        return {
            BaselineKey(b.champion_name, b.patch): b.model_dump(by_alias=True, exclude={"champion_name", "patch"})
            for b in self.baselines()
        }

    def clear(self) -> None:
        self._aggregated.clear()
        self._participant_count = 0

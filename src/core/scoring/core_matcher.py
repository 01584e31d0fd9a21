"""Core matcher: resolve a core key against a baseline's core cohorts.

Precedence is strict:

1. exact cohort with at least ``min_exact`` games;
2. family: every other cohort sharing at least two of the three items,
   merged by summation, accepted with at least ``min_family`` games;
3. none: build categories fall back to champion-wide data.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from src.contracts.baseline import ChoiceCounts, CoreCohort
from src.contracts.common import CoreMatchKind, GameStats
from src.core.scoring.build_identity import parse_core_key

logger = logging.getLogger(__name__)

MIN_EXACT_GAMES = 10
MIN_FAMILY_GAMES = 30
FAMILY_MIN_OVERLAP = 2
FAMILY_KEY_MEMBERS = 3


@dataclass(frozen=True)
class CoreMatch:
    """Outcome of a core lookup. ``cohort`` is None exactly when ``kind`` is NONE."""

    kind: CoreMatchKind
    cohort: CoreCohort | None = None
    matched_key: str | None = None
    member_keys: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_match(self) -> bool:
        return self.cohort is not None


NO_MATCH = CoreMatch(kind=CoreMatchKind.NONE)


def core_overlap(key_a: str, key_b: str) -> int:
    return len(set(parse_core_key(key_a)) & set(parse_core_key(key_b)))


def _merge_counts(into: dict[str, list[int]], counts: Mapping[str, GameStats]) -> None:
    for key, stats in counts.items():
        acc = into.setdefault(key, [0, 0])
        acc[0] += stats.games
        acc[1] += stats.wins


def _freeze(counts: dict[str, list[int]]) -> ChoiceCounts:
    return {key: GameStats(games=g, wins=w) for key, (g, w) in counts.items()}


def merge_cohorts(cohorts: Iterable[CoreCohort]) -> CoreCohort:
    """Sum every count of every cohort, nested dimensions included.

    A pure structural merge: no weighting across cohorts beyond summation.
    """
    games = wins = 0
    items: dict[str, dict[str, list[int]]] = {}
    primary: dict[str, list[int]] = {}
    secondary: dict[str, list[int]] = {}
    shards: dict[str, dict[str, list[int]]] = {"offense": {}, "flex": {}, "defense": {}}
    trees: dict[str, dict[str, list[int]]] = {"primary": {}, "secondary": {}}
    spells: dict[str, list[int]] = {}
    starting: dict[str, list[int]] = {}
    skills: dict[str, list[int]] = {}

    for cohort in cohorts:
        games += cohort.games
        wins += cohort.wins
        for item_id, slots in cohort.items.items():
            _merge_counts(items.setdefault(item_id, {}), slots)
        _merge_counts(primary, cohort.runes.primary)
        _merge_counts(secondary, cohort.runes.secondary)
        for name, acc in shards.items():
            _merge_counts(acc, getattr(cohort.runes.tertiary, name))
        for name, acc in trees.items():
            _merge_counts(acc, getattr(cohort.runes.tree, name))
        _merge_counts(spells, cohort.spells)
        _merge_counts(starting, cohort.starting)
        _merge_counts(skills, cohort.skills)

    return CoreCohort.model_validate(
        {
            "games": games,
            "wins": wins,
            "items": {item_id: _freeze(slots) for item_id, slots in items.items()},
            "runes": {
                "primary": _freeze(primary),
                "secondary": _freeze(secondary),
                "tertiary": {name: _freeze(acc) for name, acc in shards.items()},
                "tree": {name: _freeze(acc) for name, acc in trees.items()},
            },
            "spells": _freeze(spells),
            "starting": _freeze(starting),
            "skills": _freeze(skills),
        }
    )


def family_members(core_key: str, cohorts: Mapping[str, CoreCohort]) -> list[tuple[str, int]]:
    """Other cohorts sharing at least two items, by overlap then games (desc)."""
    members = []
    for key in sorted(cohorts):
        if key == core_key:
            continue
        overlap = core_overlap(core_key, key)
        if overlap >= FAMILY_MIN_OVERLAP:
            members.append((key, overlap))
    members.sort(key=lambda m: (-m[1], -cohorts[m[0]].games))
    return members


def match_core(
    core_key: str | None,
    cohorts: Mapping[str, CoreCohort],
    min_exact: int = MIN_EXACT_GAMES,
    min_family: int = MIN_FAMILY_GAMES,
) -> CoreMatch:
    if not core_key or not cohorts:
        return NO_MATCH

    exact = cohorts.get(core_key)
    if exact is not None and exact.games >= min_exact:
        return CoreMatch(CoreMatchKind.EXACT, exact, core_key, (core_key,))

    members = family_members(core_key, cohorts)
    if not members:
        logger.debug("No core family for %s", core_key)
        return NO_MATCH

    keys = tuple(key for key, _ in members)
    merged = merge_cohorts(cohorts[key] for key in keys)
    if merged.games < min_family:
        logger.debug("Core family for %s too small: %d games", core_key, merged.games)
        return NO_MATCH

    matched_key = "family:" + "+".join(keys[:FAMILY_KEY_MEMBERS])
    logger.debug("Core %s matched family %s (%d games)", core_key, matched_key, merged.games)
    return CoreMatch(CoreMatchKind.FAMILY, merged, matched_key, keys)

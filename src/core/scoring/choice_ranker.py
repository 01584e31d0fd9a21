"""Choice ranker: confidence-weighted ranking of discrete build choices.

Every category follows the same shape. Options observed in the reference
population (the matched core cohort, or champion-wide data) are ranked by
Wilson lower-bound score; the player's choice is scored by its Wilson
distance from the top option, scaled by a sample-size confidence and
expressed as a penalty capped per category. Choices that were never
observed get a fixed off-meta penalty. No category raises on missing data.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

import numpy as np

from src.contracts.baseline import ChoiceCounts, CoreCohort
from src.contracts.common import ChoiceReason, CoreMatchKind, GameStats
from src.contracts.score_breakdown import CoreBuildDetail, ItemDetail, StartingItemsDetail
from src.core.data.item_catalog import ItemCatalog
from src.core.scoring.build_identity import (
    is_boots,
    normalize_starter_key,
    parse_core_key,
    spell_pair_key,
)
from src.core.scoring.core_matcher import NO_MATCH, CoreMatch, core_overlap, match_core
from src.core.scoring.transforms import distance_score

logger = logging.getLogger(__name__)

WILSON_Z = 1.96
WILSON_VOLUME_BONUS = 1.2

TOP_RANK_CUTOFF = 5
MAX_SCORED_ITEMS = 5
MAX_PURCHASE_SLOT = 6

CORE_RANK_MIN_GAMES = 100
CORE_WINRATE_TOLERANCE = 5.0
CORE_MIN_PLAYER_GAMES = 10
CORE_UNKNOWN_PENALTY = 10.0
CORE_MAX_PENALTY = 20.0

SKILL_RANK_MIN_GAMES = 100
SKILL_MIN_PLAYER_GAMES = 10
SKILL_UNKNOWN_PENALTY = 10.0
SKILL_MAX_PENALTY = 20.0

STARTING_GLOBAL_WEIGHT = 0.5


@dataclass(frozen=True)
class ChoicePolicy:
    """Per-category ranking parameters."""

    min_games: int = 10
    full_confidence_games: int = 30
    max_penalty: float = 20.0
    off_meta_penalty: float = 10.0
    # Score an observed-but-unranked choice at reduced confidence instead of off-meta
    allow_low_sample: bool = True


ITEM_POLICY = ChoicePolicy(max_penalty=20.0, off_meta_penalty=10.0, allow_low_sample=False)
KEYSTONE_POLICY = ChoicePolicy(full_confidence_games=50, max_penalty=20.0, off_meta_penalty=8.0)
SPELLS_POLICY = ChoicePolicy(max_penalty=15.0, off_meta_penalty=5.0)
STARTING_POLICY = ChoicePolicy(max_penalty=10.0, off_meta_penalty=5.0)


@dataclass(frozen=True)
class RankedOption:
    key: str
    games: int
    wins: int
    winrate: float
    wilson: float
    confidence: float


@dataclass(frozen=True)
class ChoiceOutcome:
    penalty: float
    reason: ChoiceReason
    player: RankedOption | None = None
    top: RankedOption | None = None
    rank: int | None = None
    total_options: int = 0

    @property
    def is_in_top5(self) -> bool:
        return self.rank is not None and self.rank <= TOP_RANK_CUTOFF


NO_CHOICE = ChoiceOutcome(penalty=0.0, reason=ChoiceReason.UNKNOWN)


def wilson_score(winrate: float, games: int) -> float:
    """Wilson 95% lower bound (in percent) plus a small volume bonus.

    The bonus, ``1.2 * log10(games)``, breaks near-ties in favour of
    proven options: about 3.6 points at 1k games, 4.8 at 10k.
    """
    if games <= 0 or not math.isfinite(winrate):
        return 0.0
    p = float(np.clip(winrate / 100, 0.0, 1.0))
    n = games
    z2 = WILSON_Z * WILSON_Z
    center = p + z2 / (2 * n)
    spread = WILSON_Z * math.sqrt((p * (1 - p) + z2 / (4 * n)) / n)
    lower = (center - spread) / (1 + z2 / n)
    return lower * 100 + math.log10(max(n, 1)) * WILSON_VOLUME_BONUS


def confidence(games: int, min_games: int = 10, full_confidence_games: int = 30) -> float:
    """Sample-size confidence: up to 0.5 below ``min_games``, 0.5 -> 1.0 up to full."""
    if games <= 0:
        return 0.0
    if games < min_games:
        return min(0.5, games / min_games)
    span = max(full_confidence_games - min_games, 1)
    return min(1.0, 0.5 + 0.5 * (games - min_games) / span)


def penalty_to_score(penalty: float, max_penalty: float) -> float:
    if max_penalty <= 0:
        return 100.0
    return max(0.0, 100 - penalty / max_penalty * 100)


def _option(key: str, stats: GameStats, policy: ChoicePolicy) -> RankedOption:
    winrate = stats.winrate
    return RankedOption(
        key=key,
        games=stats.games,
        wins=stats.wins,
        winrate=winrate,
        wilson=wilson_score(winrate, stats.games),
        confidence=confidence(stats.games, policy.min_games, policy.full_confidence_games),
    )


def rank_options(options: Mapping[str, GameStats], policy: ChoicePolicy = ChoicePolicy()) -> list[RankedOption]:
    """Options with at least ``policy.min_games``, best Wilson score first.

    Ties are broken by key so the ranking is deterministic.
    """
    ranked = [_option(key, stats, policy) for key, stats in options.items() if stats.games >= policy.min_games]
    ranked.sort(key=lambda o: (-o.wilson, o.key))
    return ranked


def choice_penalty(distance: float, confidence_factor: float, max_penalty: float) -> float:
    """Penalty for a choice ``distance`` points below the best, scaled by confidence."""
    return (100 - distance) / 100 * max_penalty * confidence_factor


def score_choice(
    player_key: str | None,
    options: Mapping[str, GameStats],
    policy: ChoicePolicy = ChoicePolicy(),
) -> ChoiceOutcome:
    """Score the player's choice against every ranked option of a category."""
    if not player_key:
        return NO_CHOICE
    ranked = rank_options(options, policy)
    if not ranked:
        return NO_CHOICE
    top = ranked[0]

    player: RankedOption | None = None
    rank: int | None = None
    for index, option in enumerate(ranked):
        if option.key == player_key:
            player, rank = option, index + 1
            break

    if player is None:
        raw = options.get(player_key)
        if policy.allow_low_sample and raw is not None and raw.games >= 1:
            player = _option(player_key, raw, policy)
            rank = len(ranked) + 1
        else:
            return ChoiceOutcome(
                penalty=policy.off_meta_penalty,
                reason=ChoiceReason.OFF_META,
                top=top,
                total_options=len(ranked),
            )

    distance = distance_score(player.wilson, top.wilson)
    penalty = choice_penalty(distance, player.confidence, policy.max_penalty)
    reason = ChoiceReason.OPTIMAL if rank is not None and rank <= TOP_RANK_CUTOFF else ChoiceReason.SUBOPTIMAL
    return ChoiceOutcome(
        penalty=penalty,
        reason=reason,
        player=player,
        top=top,
        rank=rank,
        total_options=len(ranked),
    )


# ============================================================================
# Items (position-aware, boots excluded)
# ============================================================================


def window_options(items_by_slot: Mapping[str, ChoiceCounts] | None, position: int) -> dict[str, GameStats]:
    """Non-boot items observed in purchase slots ``position+1 .. position+2``.

    Slots are 1-based and include boots, so the Nth non-boot item usually
    sits in slot N+1 or N+2.
    """
    merged: dict[str, list[int]] = {}
    if not items_by_slot:
        return {}
    for slot in range(position + 1, min(position + 2, MAX_PURCHASE_SLOT) + 1):
        for item_id, stats in items_by_slot.get(str(slot), {}).items():
            try:
                if is_boots(int(item_id)):
                    continue
            except ValueError:
                continue
            acc = merged.setdefault(item_id, [0, 0])
            acc[0] += stats.games
            acc[1] += stats.wins
    return {key: GameStats(games=g, wins=w) for key, (g, w) in merged.items()}


def completed_items_in_order(
    purchase_order: Iterable[int],
    inventory: Iterable[int],
    catalog: ItemCatalog,
) -> list[int]:
    """Distinct completed items, in purchase order, that survived to the end."""
    final = set(inventory)
    seen: set[int] = set()
    ordered = []
    for item_id in purchase_order:
        if item_id in seen or item_id not in final or not catalog.is_completed(item_id):
            continue
        seen.add(item_id)
        ordered.append(item_id)
    return ordered


def score_items(
    purchase_order: Iterable[int],
    inventory: Iterable[int],
    cohort: CoreCohort | None,
    global_items: Mapping[str, ChoiceCounts],
    catalog: ItemCatalog,
    policy: ChoicePolicy = ITEM_POLICY,
) -> tuple[float, list[ItemDetail]]:
    """Average per-item penalty (capped at ``policy.max_penalty``) and the details.

    Core data is used for an item only when that item has at least
    ``policy.min_games`` games in the core's window; otherwise champion-wide.
    """
    order = list(purchase_order)
    if not order:
        return 0.0, []
    non_boots = [i for i in completed_items_in_order(order, inventory, catalog) if not is_boots(i)]
    core_by_slot = cohort.items_by_slot() if cohort is not None else None

    details: list[ItemDetail] = []
    for position, item_id in enumerate(non_boots[:MAX_SCORED_ITEMS]):
        key = str(item_id)
        core_window = window_options(core_by_slot, position)
        in_core = core_window.get(key)
        if in_core is not None and in_core.games >= policy.min_games:
            options = core_window
        else:
            options = window_options(global_items, position)

        outcome = score_choice(key, options, policy)
        top_winrate = outcome.top.winrate if outcome.top else None
        if outcome.player is None:
            details.append(
                ItemDetail(
                    slot=position,
                    item_id=item_id,
                    penalty=outcome.penalty,
                    reason=outcome.reason,
                    top_winrate=top_winrate,
                )
            )
            continue
        details.append(
            ItemDetail(
                slot=position,
                item_id=item_id,
                penalty=outcome.penalty,
                reason=outcome.reason,
                player_winrate=outcome.player.winrate,
                top_winrate=top_winrate,
                games=outcome.player.games,
                is_in_top5=outcome.is_in_top5,
            )
        )

    if not details:
        return 0.0, details
    average = float(np.mean([d.penalty for d in details]))
    return min(policy.max_penalty, average), details


# ============================================================================
# Keystone / spells
# ============================================================================


def _core_or_global(core_counts: ChoiceCounts | None, global_counts: ChoiceCounts) -> tuple[ChoiceCounts, bool]:
    """Core counts when non-empty, else champion-wide. Second value: used fallback."""
    if core_counts:
        return core_counts, False
    return global_counts, True


def score_keystone(
    keystone_id: int,
    cohort: CoreCohort | None,
    global_primary: ChoiceCounts,
    policy: ChoicePolicy = KEYSTONE_POLICY,
) -> tuple[float, bool]:
    # primary counts mix keystones and minor runes; all of them are ranked
    counts, fallback = _core_or_global(cohort.runes.primary if cohort else None, global_primary)
    if not keystone_id:
        return 0.0, fallback
    return score_choice(str(keystone_id), counts, policy).penalty, fallback


def score_spells(
    spell1_id: int,
    spell2_id: int,
    cohort: CoreCohort | None,
    global_spells: ChoiceCounts,
    policy: ChoicePolicy = SPELLS_POLICY,
) -> tuple[float, bool]:
    counts, fallback = _core_or_global(cohort.spells if cohort else None, global_spells)
    if not spell1_id or not spell2_id:
        return 0.0, fallback
    return score_choice(spell_pair_key(spell1_id, spell2_id), counts, policy).penalty, fallback


# ============================================================================
# Skill order (champion-wide only)
# ============================================================================


def score_skill_order(skill_order: str | None, skills: ChoiceCounts) -> float:
    """Win-rate gap from the top skill order, capped at 20.

    Ranking uses orders with 100+ games; the player's own order needs only
    10. Rarer or unknown orders take a flat penalty of 10.
    """
    if not skill_order or not skills:
        return 0.0
    ranked = rank_options(skills, ChoicePolicy(min_games=SKILL_RANK_MIN_GAMES))
    if not ranked:
        return 0.0
    player = skills.get(skill_order)
    if player is None or player.games < SKILL_MIN_PLAYER_GAMES:
        return SKILL_UNKNOWN_PENALTY
    gap = ranked[0].winrate - player.winrate
    if gap <= 0:
        return 0.0
    return min(SKILL_MAX_PENALTY, gap)


# ============================================================================
# Starting items
# ============================================================================


def _half_up(value: int) -> int:
    return (value + 1) // 2


def blend_starting(core_starting: ChoiceCounts | None, global_starting: ChoiceCounts | None) -> dict[str, GameStats]:
    """Normalized starter counts: core at full weight plus champion-wide at half."""
    blended: dict[str, list[int]] = {}
    for key, stats in (global_starting or {}).items():
        acc = blended.setdefault(normalize_starter_key(key), [0, 0])
        acc[0] += _half_up(stats.games)
        acc[1] += _half_up(stats.wins)
    for key, stats in (core_starting or {}).items():
        acc = blended.setdefault(normalize_starter_key(key), [0, 0])
        acc[0] += stats.games
        acc[1] += stats.wins
    # half-up rounding can push wins past games on tiny samples
    return {key: GameStats(games=g, wins=min(w, g)) for key, (g, w) in blended.items()}


def score_starting_items(
    first_buy: Iterable[int],
    cohort: CoreCohort | None,
    global_starting: ChoiceCounts,
    policy: ChoicePolicy = STARTING_POLICY,
) -> tuple[float, StartingItemsDetail | None, bool]:
    """Penalty, detail and whether the score relied on champion-wide data only."""
    items = list(first_buy)
    if not items:
        return 0.0, None, False
    core_starting = cohort.starting if cohort else None
    fallback = not core_starting
    if not core_starting and not global_starting:
        return 0.0, None, True

    player_key = normalize_starter_key(items)
    outcome = score_choice(player_key, blend_starting(core_starting, global_starting), policy)
    if outcome.reason == ChoiceReason.UNKNOWN:
        return 0.0, None, fallback

    item_ids = [int(part) for part in player_key.split(",") if part]
    detail = StartingItemsDetail(
        item_ids=item_ids,
        penalty=outcome.penalty,
        reason=outcome.reason,
        player_winrate=outcome.player.winrate if outcome.player else None,
        top_winrate=outcome.top.winrate if outcome.top else None,
        rank=outcome.rank,
        total_options=outcome.total_options,
    )
    return outcome.penalty, detail, fallback


# ============================================================================
# Core quality
# ============================================================================


def rank_cores(
    cohorts: Mapping[str, CoreCohort],
    champion_winrate: float = 50.0,
    min_games: int = CORE_RANK_MIN_GAMES,
) -> list[RankedOption]:
    """Well-sampled 3-item cores not far below the champion's win rate, best first."""
    policy = ChoicePolicy(min_games=min_games)
    ranked = [
        _option(key, GameStats(games=c.games, wins=c.wins), policy)
        for key, c in cohorts.items()
        if len(parse_core_key(key)) == 3 and c.games >= min_games
    ]
    ranked = [o for o in ranked if o.winrate >= champion_winrate - CORE_WINRATE_TOLERANCE]
    ranked.sort(key=lambda o: (-o.wilson, o.key))
    return ranked


def _core_rank(core_key: str, ranked: list[RankedOption]) -> int:
    for index, option in enumerate(ranked):
        if option.key == core_key:
            return index + 1
    for index, option in enumerate(ranked):
        if core_overlap(core_key, option.key) >= 2:
            return index + 1
    return len(ranked) + 1


def _player_core_games(core_key: str, cohorts: Mapping[str, CoreCohort]) -> tuple[int, int, CoreMatch]:
    """Games and wins behind the player's core, with the match they came from."""
    exact = cohorts.get(core_key)
    if exact is not None and exact.games >= CORE_MIN_PLAYER_GAMES:
        return exact.games, exact.wins, CoreMatch(CoreMatchKind.EXACT, exact, core_key, (core_key,))
    family = match_core(core_key, cohorts, min_exact=CORE_MIN_PLAYER_GAMES, min_family=0)
    if family.cohort is None:
        return 0, 0, NO_MATCH
    games, wins = family.cohort.games, family.cohort.wins
    if exact is not None:
        games += exact.games
        wins += exact.wins
    return games, wins, family


def score_core_quality(
    core_key: str | None,
    cohorts: Mapping[str, CoreCohort],
    champion_winrate: float = 50.0,
) -> CoreBuildDetail:
    """How good the player's core is compared with the best-ranked core.

    At or above the top core's win rate there is no penalty; below it the
    penalty is the win-rate gap, capped at 20. The player's win rate comes
    from the exact cohort when it has 10+ games, otherwise from every cohort
    sharing two items plus the exact one. Fewer than 10 games in total
    takes a flat 10.
    """
    if not core_key or not cohorts:
        return CoreBuildDetail(penalty=0.0, player_core_key=core_key, global_winrate=champion_winrate)
    ranked = rank_cores(cohorts, champion_winrate)
    if not ranked:
        return CoreBuildDetail(penalty=0.0, player_core_key=core_key, global_winrate=champion_winrate)
    best = ranked[0]

    games, wins, match = _player_core_games(core_key, cohorts)
    if games < CORE_MIN_PLAYER_GAMES:
        return CoreBuildDetail(
            penalty=CORE_UNKNOWN_PENALTY,
            top_winrate=best.winrate,
            total_options=len(ranked),
            player_core_key=core_key,
            global_winrate=champion_winrate,
        )

    player_winrate = wins / games * 100
    gap = best.winrate - player_winrate
    return CoreBuildDetail(
        penalty=0.0 if gap <= 0 else min(CORE_MAX_PENALTY, gap),
        player_winrate=player_winrate,
        top_winrate=best.winrate,
        rank=_core_rank(core_key, ranked),
        total_options=len(ranked),
        games=games,
        player_core_key=core_key,
        matched_core_key=match.matched_key,
        match_kind=match.kind,
        global_winrate=champion_winrate,
    )

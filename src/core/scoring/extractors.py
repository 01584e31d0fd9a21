"""Extraction of scoring inputs from Match-V5 match and timeline payloads.

Pure functions over already fetched payloads; fetching them is the
caller's concern. Purchase history is rebuilt with undo handling: an
``ITEM_UNDO`` pops events off the stack until the undone item is reached,
reversing purchases, sells and destroys on the way.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from src.contracts.participant import ParticipantOutcome, ParticipantSample
from src.contracts.riot_api import MatchDTO, MatchTimelineDTO, ParticipantDTO
from src.core.scoring.build_identity import skill_order_abbreviation
from src.core.scoring.errors import InvalidSampleError

logger = logging.getLogger(__name__)

STARTING_GOLD = 1400
FIRST_BUY_WINDOW_MS = 20_000

# Starter-relevant costs; anything not listed counts as free
STARTER_ITEM_COSTS = {
    1001: 300, 1004: 300, 1006: 400, 1011: 350, 1028: 400, 1029: 300, 1031: 300, 1036: 350,
    1037: 1300, 1038: 875, 1042: 400, 1043: 350, 1052: 350, 1053: 350, 1054: 350, 1055: 350,
    1056: 350, 1057: 350, 1058: 350, 2003: 50, 2031: 150, 2033: 0, 2052: 0, 3044: 0,
    3051: 800, 3057: 800, 3058: 800, 3070: 150, 3071: 800, 3076: 800, 3077: 800,
    3082: 800, 3083: 800, 3086: 800, 3089: 850, 3091: 800, 3108: 800, 3113: 800,
    3114: 800, 3115: 800, 3117: 800, 3133: 800, 3134: 800, 3135: 800, 3145: 800,
    3152: 800, 3155: 800, 3156: 800, 3158: 800, 3161: 800, 3165: 800, 3177: 800,
    3179: 800, 3181: 800, 3184: 800, 3190: 800, 3193: 800,
}

_SKILL_SLOTS = {1: "Q", 2: "W", 3: "E", 4: "R"}

_PURCHASED = "ITEM_PURCHASED"
_SOLD = "ITEM_SOLD"
_DESTROYED = "ITEM_DESTROYED"
_UNDO = "ITEM_UNDO"


@dataclass(frozen=True)
class ItemPurchase:
    item_id: int
    timestamp: int


@dataclass(frozen=True)
class TeamTotals:
    kills: int = 0
    damage_to_champions: int = 0


def _as_match(match: MatchDTO | Mapping[str, Any]) -> MatchDTO:
    return match if isinstance(match, MatchDTO) else MatchDTO.model_validate(match)


def _as_timeline(timeline: MatchTimelineDTO | Mapping[str, Any] | None) -> MatchTimelineDTO | None:
    if timeline is None or isinstance(timeline, MatchTimelineDTO):
        return timeline
    return MatchTimelineDTO.model_validate(timeline)


def team_totals(match: MatchDTO) -> dict[int, TeamTotals]:
    """Kills and champion damage summed per team id."""
    totals: dict[int, list[int]] = {}
    for p in match.info.participants:
        acc = totals.setdefault(p.team_id, [0, 0])
        acc[0] += p.kills
        acc[1] += p.total_damage_dealt_to_champions
    return {team: TeamTotals(kills=k, damage_to_champions=d) for team, (k, d) in totals.items()}


def extract_item_purchases(timeline: MatchTimelineDTO | None, participant_id: int) -> list[ItemPurchase]:
    """Purchases that survived undos, minus items later sold, in order."""
    if timeline is None:
        return []

    stack: list[tuple[str, int, int]] = []
    for frame in timeline.info.frames:
        for event in frame.events:
            if event.participant_id != participant_id:
                continue
            if event.type in (_PURCHASED, _SOLD, _DESTROYED) and event.item_id:
                stack.append((event.type, event.item_id, event.timestamp))
            elif event.type == _UNDO:
                target = event.before_id or event.after_id
                if not target:
                    continue
                while stack:
                    _, item_id, _ = stack.pop()
                    if item_id == target:
                        break

    purchases: list[ItemPurchase] = []
    sold: set[int] = set()
    for kind, item_id, timestamp in stack:
        if kind == _PURCHASED:
            purchases.append(ItemPurchase(item_id=item_id, timestamp=timestamp))
        elif kind == _SOLD:
            # a sale cancels the latest unsold purchase of the same item
            for index in range(len(purchases) - 1, -1, -1):
                if purchases[index].item_id == item_id and index not in sold:
                    sold.add(index)
                    break
    return [p for index, p in enumerate(purchases) if index not in sold]


def extract_build_order(timeline: MatchTimelineDTO | None, participant_id: int) -> list[int]:
    return [p.item_id for p in extract_item_purchases(timeline, participant_id)]


def extract_first_buy(timeline: MatchTimelineDTO | None, participant_id: int) -> list[int]:
    """Items bought within 20 s of the first purchase, up to the starting gold."""
    purchases = extract_item_purchases(timeline, participant_id)
    if not purchases:
        return []
    cutoff = purchases[0].timestamp + FIRST_BUY_WINDOW_MS
    items: list[int] = []
    spent = 0
    for purchase in purchases:
        if purchase.timestamp > cutoff:
            break
        cost = STARTER_ITEM_COSTS.get(purchase.item_id, 0)
        if spent + cost > STARTING_GOLD:
            break
        items.append(purchase.item_id)
        spent += cost
    return items


def extract_ability_order(timeline: MatchTimelineDTO | None, participant_id: int) -> str | None:
    """Space-separated level-up sequence such as ``"Q W E Q Q R ..."``."""
    if timeline is None:
        return None
    level_ups = [
        (event.timestamp, event.skill_slot)
        for frame in timeline.info.frames
        for event in frame.events
        if event.type == "SKILL_LEVEL_UP"
        and event.participant_id == participant_id
        and event.skill_slot is not None
        and event.level_up_type == "NORMAL"
    ]
    if not level_ups:
        return None
    level_ups.sort(key=lambda e: e[0])
    return " ".join(_SKILL_SLOTS.get(slot, "?") for _, slot in level_ups)


def _find_participant(match: MatchDTO, participant_id: int | None, puuid: str | None) -> ParticipantDTO:
    for p in match.info.participants:
        if participant_id is not None and p.participant_id == participant_id:
            return p
        if puuid and p.puuid == puuid:
            return p
    raise InvalidSampleError(
        f"Participant {participant_id or puuid} not found in match {match.metadata.match_id or '?'}"
    )


def extract_participant_sample(
    match: MatchDTO | Mapping[str, Any],
    timeline: MatchTimelineDTO | Mapping[str, Any] | None = None,
    *,
    participant_id: int | None = None,
    puuid: str | None = None,
    patch: str | None = None,
    death_quality: float | None = None,
) -> ParticipantSample:
    """Build the scoring input of one participant.

    Without a timeline the purchase order, first buy and skill order stay
    empty, which the engine treats as an unresolvable build.

    Raises:
        InvalidSampleError: If the payload is structurally broken or the
            participant is not part of the match
    """
    if participant_id is None and not puuid:
        raise InvalidSampleError("Either participant_id or puuid is required")
    try:
        match_dto = _as_match(match)
        timeline_dto = _as_timeline(timeline)
        participant = _find_participant(match_dto, participant_id, puuid)
        team = team_totals(match_dto).get(participant.team_id, TeamTotals())
        pid = participant.participant_id
        return ParticipantSample(
            champion_name=participant.champion_name,
            patch=patch or match_dto.info.patch,
            damage_to_champions=participant.total_damage_dealt_to_champions,
            total_damage_dealt=participant.total_damage_dealt,
            healing_on_teammates=participant.total_heals_on_teammates,
            shielding_on_teammates=participant.total_damage_shielded_on_teammates,
            cc_time=participant.time_ccing_others,
            game_duration=match_dto.info.game_duration,
            kills=participant.kills,
            deaths=participant.deaths,
            assists=participant.assists,
            team_total_kills=team.kills,
            team_total_damage=team.damage_to_champions,
            final_items=participant.items,
            keystone_id=participant.keystone_id,
            primary_tree_id=participant.style_id(0),
            secondary_tree_id=participant.style_id(1),
            spell1_id=participant.summoner1_id,
            spell2_id=participant.summoner2_id,
            skill_order=skill_order_abbreviation(extract_ability_order(timeline_dto, pid)),
            purchase_order=tuple(extract_build_order(timeline_dto, pid)),
            first_buy=tuple(extract_first_buy(timeline_dto, pid)),
            death_quality=death_quality,
        )
    except ValidationError as e:
        raise InvalidSampleError(f"Malformed match payload: {e.error_count()} validation errors") from e


def extract_participant_outcome(
    match: MatchDTO | Mapping[str, Any],
    timeline: MatchTimelineDTO | Mapping[str, Any] | None = None,
    *,
    participant_id: int | None = None,
    puuid: str | None = None,
    patch: str | None = None,
) -> ParticipantOutcome:
    """Sample plus result and rune page, the aggregator's input."""
    try:
        match_dto = _as_match(match)
    except ValidationError as e:
        raise InvalidSampleError(f"Malformed match payload: {e.error_count()} validation errors") from e
    sample = extract_participant_sample(
        match_dto, timeline, participant_id=participant_id, puuid=puuid, patch=patch
    )
    participant = _find_participant(match_dto, participant_id, puuid)
    primary, secondary = participant.rune_ids()
    shards = participant.perks.stat_perks if participant.perks else None
    return ParticipantOutcome(
        sample=sample,
        win=participant.win,
        primary_runes=tuple(primary),
        secondary_runes=tuple(secondary),
        stat_shards=(shards.offense, shards.flex, shards.defense) if shards else (0, 0, 0),
    )

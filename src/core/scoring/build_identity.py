"""Build identity: canonical keys for cores, spell pairs, starters and skill orders.

A core key is the sorted, underscore-joined set of the first three completed
items a player bought and kept. Tier-1 boots carry no build signal and are
dropped; finished boots are situational and collapse to one sentinel id.
"""

import logging
from collections.abc import Iterable

from src.core.data.item_catalog import ItemCatalog

logger = logging.getLogger(__name__)

TIER1_BOOTS = 1001
TIER2_BOOTS = frozenset({3006, 3009, 3020, 3047, 3111, 3117, 3158})
ALL_BOOTS = TIER2_BOOTS | {TIER1_BOOTS}
NORMALIZED_BOOTS = 99999

POTIONS = frozenset({2003, 2031, 2033})
NORMALIZED_POTION = 99998

CORE_SIZE = 3
SKILL_MAX_POINTS = 5
_BASIC_SKILLS = ("q", "w", "e")


def normalize_boots(item_id: int) -> int:
    return NORMALIZED_BOOTS if item_id in TIER2_BOOTS else item_id


def is_boots(item_id: int) -> bool:
    return item_id in ALL_BOOTS or item_id == NORMALIZED_BOOTS


def core_items(
    purchase_order: Iterable[int],
    final_items: Iterable[int],
    catalog: ItemCatalog | None = None,
) -> list[int]:
    """First three distinct normalized core items, in purchase order.

    An item qualifies when it is completed and still in the final
    inventory (sold items are not part of the build). The sentinel
    ``NORMALIZED_BOOTS`` stands for any finished boots.
    """
    catalog = catalog or ItemCatalog.default()
    final = {item for item in final_items if item > 0}
    picked: list[int] = []
    for item_id in purchase_order:
        if len(picked) >= CORE_SIZE:
            break
        if item_id <= 0 or item_id == TIER1_BOOTS:
            continue
        if item_id == NORMALIZED_BOOTS:
            normalized = item_id
        elif catalog.is_completed(item_id) and item_id in final:
            normalized = normalize_boots(item_id)
        else:
            continue
        if normalized not in picked:
            picked.append(normalized)
    return picked


def resolve_core_key(
    purchase_order: Iterable[int],
    final_items: Iterable[int] | None = None,
    catalog: ItemCatalog | None = None,
) -> str | None:
    """Canonical core key such as ``"3031_6672_99999"``, or None below three items.

    When ``final_items`` is omitted the purchase order doubles as the
    inventory, which is what re-resolving a parsed key needs.
    """
    order = list(purchase_order)
    items = core_items(order, order if final_items is None else final_items, catalog)
    if len(items) != CORE_SIZE:
        return None
    return "_".join(str(item) for item in sorted(items))


def parse_core_key(core_key: str) -> list[int]:
    """Item ids of a core key; empty when the key is malformed."""
    try:
        return [int(part) for part in core_key.split("_") if part]
    except ValueError:
        return []


def spell_pair_key(spell1: int, spell2: int) -> str:
    """Order-independent summoner spell key, ``min_max``."""
    return f"{min(spell1, spell2)}_{max(spell1, spell2)}"


def normalize_starter_key(items: str | Iterable[int]) -> str:
    """Sorted, comma-joined starting items; every potion becomes ``99998``."""
    if isinstance(items, str):
        ids: list[int] = []
        for part in items.split(","):
            try:
                ids.append(int(part))
            except ValueError:
                continue
    else:
        ids = list(items)
    normalized = sorted(NORMALIZED_POTION if i in POTIONS else i for i in ids)
    return ",".join(str(i) for i in normalized)


def skill_order_abbreviation(ability_order: str | Iterable[str] | None) -> str | None:
    """Skill max order from a level-up sequence, e.g. ``"Q W Q E ..." -> "qwe"``.

    A basic skill is maxed at its fifth point. One maxed skill is not an
    order; with two, the third is inferred.
    """
    if not ability_order:
        return None
    sequence = ability_order.split() if isinstance(ability_order, str) else list(ability_order)
    counts = {"Q": 0, "W": 0, "E": 0, "R": 0}
    maxed: list[str] = []
    for ability in sequence:
        ability = ability.upper()
        if ability not in counts:
            continue
        counts[ability] += 1
        if ability != "R" and counts[ability] == SKILL_MAX_POINTS:
            maxed.append(ability.lower())

    if len(maxed) < 2:
        return None
    if len(maxed) == 2:
        missing = next(s for s in _BASIC_SKILLS if s not in maxed)
        maxed.append(missing)
    return "".join(maxed)

"""Scoring input: one participant of one finished match."""

from pydantic import Field

from src.contracts.common import FrozenContract


class ParticipantSample(FrozenContract):
    """Raw per-game metrics and build choices of a single participant.

    Durations are in seconds. Item ids follow the provider's numbering,
    0 meaning an empty slot. ``purchase_order`` is the chronological list
    of purchased item ids (undos already removed); ``first_buy`` the
    starting items bought before leaving base.
    """

    champion_name: str = Field(..., min_length=1)
    patch: str | None = None

    damage_to_champions: float = Field(0.0, ge=0)
    total_damage_dealt: float = Field(0.0, ge=0)
    healing_on_teammates: float = Field(0.0, ge=0)
    shielding_on_teammates: float = Field(0.0, ge=0)
    cc_time: float = Field(0.0, ge=0, description="Seconds spent crowd-controlling enemies")
    game_duration: float = Field(..., description="Game length in seconds")

    kills: int | None = Field(None, ge=0)
    deaths: int = Field(0, ge=0)
    assists: int | None = Field(None, ge=0)
    team_total_kills: int | None = Field(None, ge=0)
    team_total_damage: float | None = Field(None, ge=0)

    final_items: tuple[int, ...] = Field(default=(), max_length=7, description="item0..item6")
    keystone_id: int = 0
    primary_tree_id: int = 0
    secondary_tree_id: int = 0
    spell1_id: int = 0
    spell2_id: int = 0
    skill_order: str | None = Field(None, description="Skill max order such as 'qwe'")
    purchase_order: tuple[int, ...] = ()
    first_buy: tuple[int, ...] = ()

    death_quality: float | None = Field(None, ge=0, le=100)

    @property
    def game_minutes(self) -> float:
        return self.game_duration / 60

    @property
    def inventory(self) -> tuple[int, ...]:
        """Final item slots 0-5 (trinket excluded), empty slots dropped."""
        return tuple(item for item in self.final_items[:6] if item > 0)


class ParticipantOutcome(FrozenContract):
    """A finished participant as folded into the baselines by the aggregator.

    Adds what scoring never reads: the result and the full rune page.
    """

    sample: ParticipantSample
    win: bool
    primary_runes: tuple[int, ...] = Field(default=(), description="Keystone first, then three primary runes")
    secondary_runes: tuple[int, ...] = ()
    stat_shards: tuple[int, int, int] = Field(default=(0, 0, 0), description="offense, flex, defense")

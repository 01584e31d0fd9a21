"""Pydantic models for the Match-V5 payloads the extractors read.

Only the fields needed to build a ``ParticipantSample`` are modelled;
unknown keys are ignored so provider additions never break parsing.
Based on the Match-V5 match and timeline API specifications.
"""

from pydantic import BaseModel, ConfigDict, Field


class RiotModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# Match-V5 API Models
class MatchMetadata(RiotModel):
    """Metadata for a match."""

    match_id: str = Field("", alias="matchId")
    participants: list[str] = Field(default_factory=list)  # List of PUUIDs


class PerkStyleSelection(RiotModel):
    perk: int


class PerkStyle(RiotModel):
    """One rune tree; ``selections[0]`` of the primary style is the keystone."""

    description: str = ""
    selections: list[PerkStyleSelection] = Field(default_factory=list)
    style: int = 0


class StatPerks(RiotModel):
    offense: int = 0
    flex: int = 0
    defense: int = 0


class Perks(RiotModel):
    """Player perks (runes)."""

    stat_perks: StatPerks = Field(default_factory=StatPerks, alias="statPerks")
    styles: list[PerkStyle] = Field(default_factory=list)


class ParticipantDTO(RiotModel):
    """Participant data from a match."""

    # Identity
    puuid: str = ""
    team_id: int = Field(..., alias="teamId")
    participant_id: int = Field(..., alias="participantId")
    champion_name: str = Field(..., alias="championName")

    # Performance metrics
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    win: bool = False

    # Damage, healing and control
    total_damage_dealt: int = Field(0, alias="totalDamageDealt")
    total_damage_dealt_to_champions: int = Field(0, alias="totalDamageDealtToChampions")
    total_heals_on_teammates: int = Field(0, alias="totalHealsOnTeammates")
    total_damage_shielded_on_teammates: int = Field(0, alias="totalDamageShieldedOnTeammates")
    time_ccing_others: int = Field(0, alias="timeCCingOthers")

    # Items
    item0: int = 0
    item1: int = 0
    item2: int = 0
    item3: int = 0
    item4: int = 0
    item5: int = 0
    item6: int = 0

    # Summoner spells and perks
    summoner1_id: int = Field(0, alias="summoner1Id")
    summoner2_id: int = Field(0, alias="summoner2Id")
    perks: Perks | None = None

    @property
    def items(self) -> tuple[int, ...]:
        return (self.item0, self.item1, self.item2, self.item3, self.item4, self.item5, self.item6)

    @property
    def keystone_id(self) -> int:
        if not self.perks or not self.perks.styles or not self.perks.styles[0].selections:
            return 0
        return self.perks.styles[0].selections[0].perk

    def style_id(self, index: int) -> int:
        if not self.perks or len(self.perks.styles) <= index:
            return 0
        return self.perks.styles[index].style

    def rune_ids(self) -> tuple[list[int], list[int]]:
        """Primary-tree (keystone first) and secondary-tree rune ids."""
        if not self.perks:
            return [], []
        styles = self.perks.styles
        primary = [s.perk for s in styles[0].selections] if styles else []
        secondary = [s.perk for s in styles[1].selections] if len(styles) > 1 else []
        return primary, secondary


class MatchInfoDTO(RiotModel):
    """Match information."""

    game_duration: int = Field(..., alias="gameDuration")  # seconds
    game_version: str = Field("", alias="gameVersion")
    queue_id: int = Field(0, alias="queueId")
    participants: list[ParticipantDTO]

    @property
    def patch(self) -> str | None:
        """``"14.23.640.1234"`` -> ``"14.23"``."""
        parts = self.game_version.split(".")
        if len(parts) < 2 or not parts[0].isdigit() or not parts[1].isdigit():
            return None
        return f"{parts[0]}.{parts[1]}"


class MatchDTO(RiotModel):
    """Complete match data from Match-V5 API."""

    metadata: MatchMetadata = Field(default_factory=MatchMetadata)
    info: MatchInfoDTO


# Timeline API Models
class TimelineEvent(RiotModel):
    """Event in a match timeline; only item and skill fields are kept."""

    timestamp: int = 0
    type: str
    participant_id: int | None = Field(None, alias="participantId")
    item_id: int | None = Field(None, alias="itemId")
    before_id: int | None = Field(None, alias="beforeId")
    after_id: int | None = Field(None, alias="afterId")
    skill_slot: int | None = Field(None, alias="skillSlot")
    level_up_type: str | None = Field(None, alias="levelUpType")


class TimelineFrame(RiotModel):
    """Frame in a match timeline."""

    events: list[TimelineEvent] = Field(default_factory=list)
    timestamp: int = 0


class TimelineInfo(RiotModel):
    frames: list[TimelineFrame] = Field(default_factory=list)


class MatchTimelineDTO(RiotModel):
    """Complete match timeline from Match-V5 Timeline API."""

    metadata: MatchMetadata = Field(default_factory=MatchMetadata)
    info: TimelineInfo = Field(default_factory=TimelineInfo)

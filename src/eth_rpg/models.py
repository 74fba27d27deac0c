"""Character and battle data models.

All models use Pydantic v2 ``BaseModel`` for validation and JSON
serialization.  Character sheets are produced by an external pipeline
(wallet fetch + stat derivation) and are immutable once built; battle
records are immutable once the simulation ends.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class CharacterClassId(str, Enum):
    WARRIOR = "warrior"
    ROGUE = "rogue"
    MERCHANT = "merchant"
    PRIEST = "priest"
    ELDER_WIZARD = "elder_wizard"
    HUNTER = "hunter"
    SUMMONER = "summoner"
    GUARDIAN = "guardian"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class AchievementTier(str, Enum):
    LEGENDARY = "legendary"
    EPIC = "epic"
    RARE = "rare"
    COMMON = "common"


class MatchupAdvantage(str, Enum):
    ADVANTAGED = "advantaged"
    DISADVANTAGED = "disadvantaged"
    NEUTRAL = "neutral"

    def invert(self) -> MatchupAdvantage:
        if self is MatchupAdvantage.ADVANTAGED:
            return MatchupAdvantage.DISADVANTAGED
        if self is MatchupAdvantage.DISADVANTAGED:
            return MatchupAdvantage.ADVANTAGED
        return MatchupAdvantage.NEUTRAL


# ---------------------------------------------------------------------------
# Character sheet
# ---------------------------------------------------------------------------

class CharacterStats(BaseModel):
    """Derived combat stats.  Rejects malformed values at construction.

    ``strength``, ``intelligence`` and ``dexterity`` also accept the short
    wire names ``str``, ``int`` and ``dex``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    level: int = Field(ge=1, le=60)
    hp: int = Field(ge=1)
    mp: int = Field(ge=0)
    strength: int = Field(ge=0, alias="str")
    intelligence: int = Field(ge=0, alias="int")
    dexterity: int = Field(ge=0, alias="dex")
    luck: int = Field(ge=0)
    power: int = Field(ge=0)


class Achievement(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    tier: AchievementTier


class CharacterSheet(BaseModel):
    """A wallet's RPG character, as handed over by the generation pipeline."""

    model_config = ConfigDict(frozen=True)

    address: str
    ens_name: str | None = None
    class_id: CharacterClassId
    stats: CharacterStats
    achievements: tuple[Achievement, ...] = ()

    @property
    def display_name(self) -> str:
        """ENS name if known, else a shortened ``0x1234...abcd`` address."""
        if self.ens_name:
            return self.ens_name
        return f"{self.address[:6]}...{self.address[-4:]}"


class BattleFighter(CharacterSheet):
    """A character sheet that has entered a specific battle."""

    @classmethod
    def from_sheet(cls, sheet: CharacterSheet) -> BattleFighter:
        return cls.model_validate(sheet.model_dump())


# ---------------------------------------------------------------------------
# Battle output
# ---------------------------------------------------------------------------

ActionType = Literal["skill", "basic_attack", "stunned"]


class BattleAction(BaseModel):
    """One entry of the battle transcript.

    Optional effect fields are only set when the effect triggered with a
    positive value.
    """

    model_config = ConfigDict(frozen=True)

    turn: int = Field(ge=1)
    actor_index: Literal[0, 1]
    action_type: ActionType
    skill_name: str | None = None
    damage: int = Field(ge=0)
    is_crit: bool = False
    is_stun: bool = False
    is_dodge: bool = False
    reflected: int | None = Field(default=None, gt=0)
    mp_drained: int | None = Field(default=None, gt=0)
    healed: int | None = Field(default=None, gt=0)
    actor_hp_after: int = Field(ge=0)
    target_hp_after: int = Field(ge=0)
    narrative: str


class BattleMatchup(BaseModel):
    model_config = ConfigDict(frozen=True)

    fighter0_advantage: MatchupAdvantage
    fighter1_advantage: MatchupAdvantage


class BattleResult(BaseModel):
    """Full, replayable outcome of one simulated battle."""

    model_config = ConfigDict(frozen=True)

    fighters: tuple[BattleFighter, BattleFighter]
    winner: Literal[0, 1]
    turns: tuple[BattleAction, ...]
    total_turns: int
    winner_hp_remaining: int
    winner_hp_percent: int
    matchup: BattleMatchup
    nonce: str
    battle_seed: str


class BattleResponse(BaseModel):
    result: BattleResult
    battle_image_url: str
    og_image_url: str
    cached: bool = False

"""Season-scoped ranking data models.

Timestamps are integer epoch milliseconds throughout.
"""

from __future__ import annotations

from typing import Annotated, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field

from eth_rpg.models import AchievementTier, CharacterClassId

LeaderboardType = Literal["power", "battle", "explorer"]
LEADERBOARD_TYPES: tuple[LeaderboardType, ...] = ("power", "battle", "explorer")


# ---------------------------------------------------------------------------
# Season
# ---------------------------------------------------------------------------

class Season(BaseModel):
    """A fixed-duration ranking epoch."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(pattern=r"^s\d+$")
    number: int = Field(ge=1)
    name: str
    started_at: int
    ends_at: int
    is_active: bool = True


# ---------------------------------------------------------------------------
# Player aggregates
# ---------------------------------------------------------------------------

class AchievementCounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    legendary: int = Field(default=0, ge=0)
    epic: int = Field(default=0, ge=0)
    rare: int = Field(default=0, ge=0)
    common: int = Field(default=0, ge=0)

    @classmethod
    def from_tiers(cls, tiers: list[AchievementTier]) -> AchievementCounts:
        counts = {tier.value: 0 for tier in AchievementTier}
        for tier in tiers:
            counts[AchievementTier(tier).value] += 1
        return cls(**counts)

    @property
    def total(self) -> int:
        return self.legendary + self.epic + self.rare + self.common


class PlayerRecord(BaseModel):
    """Per-(season, address) aggregate of battle outcomes.

    Persisted as a flat string hash so wins and losses can be
    incremented atomically in the store.
    """

    address: str
    ens_name: str | None = None
    class_id: CharacterClassId
    power: int = Field(ge=0)
    level: int = Field(ge=1)
    wins: int = Field(default=0, ge=0)
    losses: int = Field(default=0, ge=0)
    achievement_counts: AchievementCounts = Field(default_factory=AchievementCounts)
    last_seen_at: int = 0

    @property
    def total_battles(self) -> int:
        return self.wins + self.losses

    def metadata_hash(self) -> dict[str, str]:
        """Every field except wins/losses, as hash fields."""
        counts = self.achievement_counts
        return {
            "address": self.address,
            "ens_name": self.ens_name or "",
            "class_id": self.class_id.value,
            "power": str(self.power),
            "level": str(self.level),
            "legendary": str(counts.legendary),
            "epic": str(counts.epic),
            "rare": str(counts.rare),
            "common": str(counts.common),
            "last_seen_at": str(self.last_seen_at),
        }

    @classmethod
    def from_hash(cls, fields: Mapping[str, str]) -> PlayerRecord:
        return cls(
            address=fields["address"],
            ens_name=fields.get("ens_name") or None,
            class_id=fields["class_id"],
            power=int(fields["power"]),
            level=int(fields["level"]),
            wins=int(fields.get("wins", "0")),
            losses=int(fields.get("losses", "0")),
            achievement_counts=AchievementCounts(
                legendary=int(fields.get("legendary", "0")),
                epic=int(fields.get("epic", "0")),
                rare=int(fields.get("rare", "0")),
                common=int(fields.get("common", "0")),
            ),
            last_seen_at=int(fields.get("last_seen_at", "0")),
        )


class BattleRecord(BaseModel):
    """One fighter's view of one battle.  Append-only."""

    model_config = ConfigDict(frozen=True)

    season_id: str
    address: str
    opponent_address: str
    won: bool
    power: int
    opponent_power: int
    nonce: str
    recorded_at: int


# ---------------------------------------------------------------------------
# Leaderboards
# ---------------------------------------------------------------------------

class _RankingEntryBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    rank: int = Field(ge=1)
    address: str
    ens_name: str | None = None
    class_id: CharacterClassId
    power: int


class PowerRankingEntry(_RankingEntryBase):
    type: Literal["power"] = "power"
    level: int


class BattleRankingEntry(_RankingEntryBase):
    type: Literal["battle"] = "battle"
    wins: int
    losses: int
    win_rate: int
    rating_score: int


class ExplorerRankingEntry(_RankingEntryBase):
    type: Literal["explorer"] = "explorer"
    achievement_count: int
    explorer_score: int


RankingEntry = Annotated[
    Union[PowerRankingEntry, BattleRankingEntry, ExplorerRankingEntry],
    Field(discriminator="type"),
]


class LeaderboardSnapshot(BaseModel):
    """A point-in-time leaderboard, recomputed on a schedule.

    The same shape is served to readers, with ``entries`` sliced to the
    requested page and ``player_rank`` set when a lookup was asked for.
    """

    season: Season
    type: LeaderboardType
    updated_at: int
    entries: list[RankingEntry] = Field(default_factory=list)
    total_players: int = 0
    player_rank: int | None = None

"""Leaderboard computation.

Pure functions over a season's :class:`PlayerRecord` list.  Every ranking
is sorted by its score descending with address ascending as the
tie-break, capped at :data:`MAX_LEADERBOARD_SIZE`, and ranked densely
from 1.
"""

from __future__ import annotations

from typing import Iterable, Protocol, Sequence

from eth_rpg.models import AchievementTier
from eth_rpg.ranking.models import (
    AchievementCounts,
    BattleRankingEntry,
    ExplorerRankingEntry,
    PlayerRecord,
    PowerRankingEntry,
)

MAX_LEADERBOARD_SIZE = 500
MIN_BATTLES_FOR_RANKING = 5

EXPLORER_WEIGHTS: dict[AchievementTier, int] = {
    AchievementTier.LEGENDARY: 100,
    AchievementTier.EPIC: 40,
    AchievementTier.RARE: 15,
    AchievementTier.COMMON: 5,
}


def _dedupe(players: Iterable[PlayerRecord]) -> list[PlayerRecord]:
    """One record per address (case-insensitive); the last one wins."""
    by_address: dict[str, PlayerRecord] = {}
    for player in players:
        by_address[player.address.lower()] = player
    return list(by_address.values())


# ---------------------------------------------------------------------------
# Power
# ---------------------------------------------------------------------------

def compute_power_ranking(players: Iterable[PlayerRecord]) -> list[PowerRankingEntry]:
    ordered = sorted(_dedupe(players), key=lambda p: (-p.power, p.address))
    return [
        PowerRankingEntry(
            rank=i + 1,
            address=p.address,
            ens_name=p.ens_name,
            class_id=p.class_id,
            power=p.power,
            level=p.level,
        )
        for i, p in enumerate(ordered[:MAX_LEADERBOARD_SIZE])
    ]


# ---------------------------------------------------------------------------
# Battle
# ---------------------------------------------------------------------------

def compute_win_rate(wins: int, losses: int) -> int:
    """Win percentage rounded half-up; 0 with no battles."""
    total = wins + losses
    if total == 0:
        return 0
    return (wins * 200 + total) // (total * 2)


def compute_rating_score(wins: int, losses: int, win_rate: int) -> int:
    return wins * 10 + losses * 2 + win_rate


def compute_battle_ranking(players: Iterable[PlayerRecord]) -> list[BattleRankingEntry]:
    """Rank players with at least :data:`MIN_BATTLES_FOR_RANKING` battles."""
    scored = []
    for p in _dedupe(players):
        if p.total_battles < MIN_BATTLES_FOR_RANKING:
            continue
        win_rate = compute_win_rate(p.wins, p.losses)
        scored.append((compute_rating_score(p.wins, p.losses, win_rate), win_rate, p))

    scored.sort(key=lambda item: (-item[0], item[2].address))
    return [
        BattleRankingEntry(
            rank=i + 1,
            address=p.address,
            ens_name=p.ens_name,
            class_id=p.class_id,
            power=p.power,
            wins=p.wins,
            losses=p.losses,
            win_rate=win_rate,
            rating_score=score,
        )
        for i, (score, win_rate, p) in enumerate(scored[:MAX_LEADERBOARD_SIZE])
    ]


# ---------------------------------------------------------------------------
# Explorer
# ---------------------------------------------------------------------------

def compute_explorer_score(counts: AchievementCounts) -> int:
    return (
        counts.legendary * EXPLORER_WEIGHTS[AchievementTier.LEGENDARY]
        + counts.epic * EXPLORER_WEIGHTS[AchievementTier.EPIC]
        + counts.rare * EXPLORER_WEIGHTS[AchievementTier.RARE]
        + counts.common * EXPLORER_WEIGHTS[AchievementTier.COMMON]
    )


def compute_explorer_ranking(players: Iterable[PlayerRecord]) -> list[ExplorerRankingEntry]:
    """Rank players by weighted achievement score; zero scores are left out."""
    scored = [
        (compute_explorer_score(p.achievement_counts), p)
        for p in _dedupe(players)
    ]
    scored = [(score, p) for score, p in scored if score > 0]
    scored.sort(key=lambda item: (-item[0], item[1].address))
    return [
        ExplorerRankingEntry(
            rank=i + 1,
            address=p.address,
            ens_name=p.ens_name,
            class_id=p.class_id,
            power=p.power,
            achievement_count=p.achievement_counts.total,
            explorer_score=score,
        )
        for i, (score, p) in enumerate(scored[:MAX_LEADERBOARD_SIZE])
    ]


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

class _HasAddress(Protocol):
    @property
    def address(self) -> str: ...


def find_player_rank(entries: Sequence[_HasAddress], address: str) -> int | None:
    """1-based position of *address* in an already ranked list, or ``None``."""
    target = address.lower()
    for i, entry in enumerate(entries):
        if entry.address.lower() == target:
            return i + 1
    return None

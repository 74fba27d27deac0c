"""Feeds finished battles into the season's ranking data.

Recording is fire-and-forget: nothing here may fail or delay the battle
response.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from eth_rpg.models import BattleFighter, BattleResult
from eth_rpg.ranking.models import AchievementCounts, BattleRecord, PlayerRecord
from eth_rpg.ranking.season import now_ms
from eth_rpg.ranking.store import RankingStore
from eth_rpg.resilience import BackgroundTasks

logger = logging.getLogger(__name__)


def build_player_record(fighter: BattleFighter, *, seen_at: int) -> PlayerRecord:
    """Metadata-only record; wins and losses are counted by the store."""
    return PlayerRecord(
        address=fighter.address.lower(),
        ens_name=fighter.ens_name,
        class_id=fighter.class_id,
        power=fighter.stats.power,
        level=fighter.stats.level,
        achievement_counts=AchievementCounts.from_tiers([a.tier for a in fighter.achievements]),
        last_seen_at=seen_at,
    )


def build_battle_record(
    season_id: str,
    fighter: BattleFighter,
    opponent: BattleFighter,
    *,
    won: bool,
    nonce: str,
    recorded_at: int,
) -> BattleRecord:
    return BattleRecord(
        season_id=season_id,
        address=fighter.address.lower(),
        opponent_address=opponent.address.lower(),
        won=won,
        power=fighter.stats.power,
        opponent_power=opponent.stats.power,
        nonce=nonce,
        recorded_at=recorded_at,
    )


class RankingRecorder:
    def __init__(
        self,
        store: RankingStore,
        *,
        tasks: BackgroundTasks | None = None,
        clock_ms: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._tasks = tasks or BackgroundTasks()
        self._clock_ms = clock_ms

    async def record_battle(
        self,
        fighter0: BattleFighter,
        fighter1: BattleFighter,
        result: BattleResult,
    ) -> None:
        """Update both player records and append both battle records.

        The four writes run concurrently and fail independently.  Does
        nothing without an active season.
        """
        try:
            season = await self._store.get_current_season()
            if season is None or not season.is_active:
                logger.debug("No active season; battle %s not recorded", result.nonce)
                return

            now = self._clock_ms()
            won0 = result.winner == 0
            outcomes = await asyncio.gather(
                self._store.record_player_result(
                    season.id, build_player_record(fighter0, seen_at=now), won0,
                ),
                self._store.record_player_result(
                    season.id, build_player_record(fighter1, seen_at=now), not won0,
                ),
                self._store.record_battle_outcome(build_battle_record(
                    season.id, fighter0, fighter1,
                    won=won0, nonce=result.nonce, recorded_at=now,
                )),
                self._store.record_battle_outcome(build_battle_record(
                    season.id, fighter1, fighter0,
                    won=not won0, nonce=result.nonce, recorded_at=now,
                )),
                return_exceptions=True,
            )
            for outcome in outcomes:
                if isinstance(outcome, Exception):
                    logger.warning("Ranking write for battle %s failed: %s", result.nonce, outcome)
        except Exception as exc:
            logger.warning("Recording battle %s for ranking failed: %s", result.nonce, exc)

    def schedule(self, result: BattleResult) -> asyncio.Task:
        """Record *result* in the background without awaiting it."""
        fighter0, fighter1 = result.fighters
        return self._tasks.spawn(
            self.record_battle(fighter0, fighter1, result),
            name=f"record-battle-{result.nonce}",
        )

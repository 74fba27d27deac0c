"""Durable persistence for seasons, player records, battles and snapshots.

Key layout::

    ranking:current_season                      -> season id
    ranking:season:{season_id}                  -> Season JSON
    ranking:player:{season_id}:{address}        -> PlayerRecord hash
    ranking:player_index:{season_id}            -> set of addresses
    ranking:battles:{season_id}:{address}       -> list of BattleRecord JSON (newest first)
    ranking:leaderboard:{season_id}:{type}      -> LeaderboardSnapshot JSON

Ranking is best-effort.  Every operation returns an empty/absent value
when no store is configured, and logs and swallows store failures so the
battle path is never broken by it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from pydantic import ValidationError

from eth_rpg.kv import KVStore
from eth_rpg.ranking.models import (
    BattleRecord,
    LeaderboardSnapshot,
    LeaderboardType,
    PlayerRecord,
    Season,
)
from eth_rpg.resilience import with_retry, with_timeout

logger = logging.getLogger(__name__)

T = TypeVar("T")

CURRENT_SEASON_KEY = "ranking:current_season"
MAX_BATTLES_PER_PLAYER = 200


def season_key(season_id: str) -> str:
    return f"ranking:season:{season_id}"


def player_key(season_id: str, address: str) -> str:
    return f"ranking:player:{season_id}:{address.lower()}"


def player_index_key(season_id: str) -> str:
    return f"ranking:player_index:{season_id}"


def battle_list_key(season_id: str, address: str) -> str:
    return f"ranking:battles:{season_id}:{address.lower()}"


def leaderboard_key(season_id: str, type: LeaderboardType) -> str:
    return f"ranking:leaderboard:{season_id}:{type}"


class RankingStore:
    """Ranking persistence over a :class:`KVStore`.

    Parameters
    ----------
    kv:
        Durable store.  ``None`` turns every operation into a no-op.
    timeout_seconds:
        Deadline per store round trip.
    max_retries:
        Retries for idempotent operations.  Increments and list appends
        are attempted once.
    """

    def __init__(
        self,
        kv: KVStore | None,
        *,
        timeout_seconds: float = 2.0,
        max_retries: int = 2,
    ) -> None:
        self._kv = kv
        self._timeout = timeout_seconds
        self._max_retries = max_retries

    @property
    def configured(self) -> bool:
        return self._kv is not None

    async def _run(
        self,
        op: str,
        fn: Callable[[KVStore], Awaitable[T]],
        default: T,
        *,
        retry: bool = True,
    ) -> T:
        if self._kv is None:
            return default
        kv = self._kv
        try:
            return await with_retry(
                lambda: with_timeout(fn(kv), self._timeout),
                max_retries=self._max_retries if retry else 0,
            )
        except Exception as exc:
            logger.warning("Ranking store %s failed: %s", op, exc)
            return default

    # ------------------------------------------------------------------
    # Seasons
    # ------------------------------------------------------------------

    async def get_current_season(self) -> Season | None:
        async def op(kv: KVStore) -> Season | None:
            season_id = await kv.get(CURRENT_SEASON_KEY)
            if not season_id:
                return None
            raw = await kv.get(season_key(season_id))
            return Season.model_validate_json(raw) if raw else None

        return await self._run("get_current_season", op, None)

    async def get_season(self, season_id: str) -> Season | None:
        async def op(kv: KVStore) -> Season | None:
            raw = await kv.get(season_key(season_id))
            return Season.model_validate_json(raw) if raw else None

        return await self._run("get_season", op, None)

    async def create_season(self, season: Season) -> None:
        """Persist *season* and make it current (last writer wins)."""
        async def op(kv: KVStore) -> None:
            await kv.set(season_key(season.id), season.model_dump_json())
            await kv.set(CURRENT_SEASON_KEY, season.id)

        await self._run("create_season", op, None)

    async def update_season(self, season: Season) -> None:
        async def op(kv: KVStore) -> None:
            await kv.set(season_key(season.id), season.model_dump_json())

        await self._run("update_season", op, None)

    # ------------------------------------------------------------------
    # Player records
    # ------------------------------------------------------------------

    async def upsert_player_record(self, season_id: str, record: PlayerRecord) -> None:
        """Overwrite a full record, wins and losses included."""
        address = record.address.lower()

        async def op(kv: KVStore) -> None:
            fields = record.metadata_hash()
            fields["address"] = address
            fields["wins"] = str(record.wins)
            fields["losses"] = str(record.losses)
            await kv.hset(player_key(season_id, address), fields)
            await kv.sadd(player_index_key(season_id), address)

        await self._run("upsert_player_record", op, None)

    async def record_player_result(self, season_id: str, base: PlayerRecord, won: bool) -> None:
        """Refresh metadata from *base* and add one win or loss atomically."""
        address = base.address.lower()
        key = player_key(season_id, address)

        async def write_metadata(kv: KVStore) -> None:
            fields = base.metadata_hash()
            fields["address"] = address
            await kv.hset(key, fields)
            await kv.sadd(player_index_key(season_id), address)

        async def increment(kv: KVStore) -> None:
            await kv.hincrby(key, "wins" if won else "losses", 1)
            # Keep both counters present on a first battle.
            await kv.hincrby(key, "losses" if won else "wins", 0)

        await self._run("record_player_metadata", write_metadata, None)
        await self._run("record_player_result", increment, None, retry=False)

    async def get_player_record(self, season_id: str, address: str) -> PlayerRecord | None:
        async def op(kv: KVStore) -> PlayerRecord | None:
            fields = await kv.hgetall(player_key(season_id, address))
            return PlayerRecord.from_hash(fields) if fields else None

        return await self._run("get_player_record", op, None)

    async def get_all_player_addresses(self, season_id: str) -> list[str]:
        async def op(kv: KVStore) -> list[str]:
            return sorted(await kv.smembers(player_index_key(season_id)))

        return await self._run("get_all_player_addresses", op, [])

    async def get_all_player_records(self, season_id: str) -> list[PlayerRecord]:
        """Every record in the season index.  Unreadable records are skipped."""
        async def op(kv: KVStore) -> list[PlayerRecord]:
            addresses = sorted(await kv.smembers(player_index_key(season_id)))
            hashes = await asyncio.gather(
                *(kv.hgetall(player_key(season_id, address)) for address in addresses)
            )
            records = []
            for address, fields in zip(addresses, hashes):
                if not fields:
                    continue
                try:
                    records.append(PlayerRecord.from_hash(fields))
                except (KeyError, ValueError, ValidationError) as exc:
                    logger.warning("Skipping unreadable player record %s: %s", address, exc)
            return records

        return await self._run("get_all_player_records", op, [])

    # ------------------------------------------------------------------
    # Battle records
    # ------------------------------------------------------------------

    async def record_battle_outcome(self, record: BattleRecord) -> None:
        key = battle_list_key(record.season_id, record.address)

        async def op(kv: KVStore) -> None:
            await kv.lpush(key, record.model_dump_json())
            await kv.ltrim(key, 0, MAX_BATTLES_PER_PLAYER - 1)

        await self._run("record_battle_outcome", op, None, retry=False)

    async def get_battle_records(self, season_id: str, address: str) -> list[BattleRecord]:
        """Most recent battles first, at most :data:`MAX_BATTLES_PER_PLAYER`."""
        async def op(kv: KVStore) -> list[BattleRecord]:
            raw = await kv.lrange(battle_list_key(season_id, address), 0, MAX_BATTLES_PER_PLAYER - 1)
            records = []
            for item in raw:
                try:
                    records.append(BattleRecord.model_validate_json(item))
                except ValidationError as exc:
                    logger.warning("Skipping malformed battle record for %s: %s", address, exc)
            return records

        return await self._run("get_battle_records", op, [])

    # ------------------------------------------------------------------
    # Leaderboard snapshots
    # ------------------------------------------------------------------

    async def set_leaderboard_snapshot(self, snapshot: LeaderboardSnapshot) -> None:
        key = leaderboard_key(snapshot.season.id, snapshot.type)

        async def op(kv: KVStore) -> None:
            await kv.set(key, snapshot.model_dump_json())

        await self._run("set_leaderboard_snapshot", op, None)

    async def get_leaderboard_snapshot(
        self,
        season_id: str,
        type: LeaderboardType,
    ) -> LeaderboardSnapshot | None:
        async def op(kv: KVStore) -> LeaderboardSnapshot | None:
            raw = await kv.get(leaderboard_key(season_id, type))
            return LeaderboardSnapshot.model_validate_json(raw) if raw else None

        return await self._run("get_leaderboard_snapshot", op, None)

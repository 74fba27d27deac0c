"""Tests for ranking persistence."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

from eth_rpg.kv import InMemoryKVStore
from eth_rpg.ranking.engine import compute_power_ranking
from eth_rpg.ranking.models import BattleRecord, LeaderboardSnapshot
from eth_rpg.ranking.season import create_new_season
from eth_rpg.ranking.store import MAX_BATTLES_PER_PLAYER, RankingStore, player_key

NOW = 1_700_000_000_000


def _battle(i: int, address: str = "0xaaa") -> BattleRecord:
    return BattleRecord(
        season_id="s1", address=address, opponent_address="0xbbb", won=i % 2 == 0,
        power=100, opponent_power=200, nonce=f"n-{i}", recorded_at=NOW + i,
    )


class TestSeasons:
    def test_create_and_read_current(self):
        store = RankingStore(InMemoryKVStore())
        season = create_new_season(now=NOW)

        async def scenario():
            await store.create_season(season)
            return await store.get_current_season()

        assert asyncio.run(scenario()) == season

    def test_update_season(self):
        store = RankingStore(InMemoryKVStore())
        season = create_new_season(now=NOW)

        async def scenario():
            await store.create_season(season)
            await store.update_season(season.model_copy(update={"is_active": False}))
            return await store.get_season("s1")

        assert asyncio.run(scenario()).is_active is False

    def test_no_current_season(self):
        assert asyncio.run(RankingStore(InMemoryKVStore()).get_current_season()) is None


class TestPlayerRecords:
    def test_record_result_counts_atomically(self, make_player):
        store = RankingStore(InMemoryKVStore())
        base = make_player("0xAAA", power=700)

        async def scenario():
            await store.record_player_result("s1", base, True)
            await store.record_player_result("s1", base, True)
            await store.record_player_result("s1", base.model_copy(update={"power": 900}), False)
            return await store.get_player_record("s1", "0xaaa")

        record = asyncio.run(scenario())
        assert (record.wins, record.losses) == (2, 1)
        assert record.power == 900
        assert record.address == "0xaaa"

    def test_first_result_sets_both_counters(self, make_player):
        kv = InMemoryKVStore()
        store = RankingStore(kv)

        async def scenario():
            await store.record_player_result("s1", make_player("0xaaa"), False)
            return await kv.hgetall(player_key("s1", "0xaaa"))

        fields = asyncio.run(scenario())
        assert fields["wins"] == "0"
        assert fields["losses"] == "1"

    def test_records_are_season_scoped(self, make_player):
        store = RankingStore(InMemoryKVStore())

        async def scenario():
            await store.upsert_player_record("s1", make_player("0xaaa", wins=3))
            await store.upsert_player_record("s2", make_player("0xbbb"))
            return (
                await store.get_all_player_records("s1"),
                await store.get_all_player_addresses("s2"),
            )

        s1_records, s2_addresses = asyncio.run(scenario())
        assert [(r.address, r.wins) for r in s1_records] == [("0xaaa", 3)]
        assert s2_addresses == ["0xbbb"]

    def test_roundtrip_keeps_achievements_and_ens(self, make_player):
        store = RankingStore(InMemoryKVStore())
        player = make_player("0xaaa", ens_name="a.eth", counts={"epic": 2, "common": 1})

        async def scenario():
            await store.upsert_player_record("s1", player)
            return await store.get_player_record("s1", "0xaaa")

        assert asyncio.run(scenario()) == player


class TestBattleRecords:
    def test_newest_first_and_capped(self):
        store = RankingStore(InMemoryKVStore())

        async def scenario():
            for i in range(MAX_BATTLES_PER_PLAYER + 5):
                await store.record_battle_outcome(_battle(i))
            return await store.get_battle_records("s1", "0xAAA")

        records = asyncio.run(scenario())
        assert len(records) == MAX_BATTLES_PER_PLAYER
        assert records[0].nonce == f"n-{MAX_BATTLES_PER_PLAYER + 4}"
        assert records[-1].nonce == "n-5"


class TestSnapshots:
    def test_roundtrip(self, make_player):
        store = RankingStore(InMemoryKVStore())
        snapshot = LeaderboardSnapshot(
            season=create_new_season(now=NOW),
            type="power",
            updated_at=NOW,
            entries=compute_power_ranking([make_player("0xaaa")]),
            total_players=1,
        )

        async def scenario():
            await store.set_leaderboard_snapshot(snapshot)
            return (
                await store.get_leaderboard_snapshot("s1", "power"),
                await store.get_leaderboard_snapshot("s1", "battle"),
            )

        power, battle = asyncio.run(scenario())
        assert power == snapshot
        assert battle is None


class TestDegradedStore:
    def test_unconfigured_store_is_a_no_op(self, make_player):
        store = RankingStore(None)
        assert not store.configured

        async def scenario():
            await store.create_season(create_new_season(now=NOW))
            await store.record_player_result("s1", make_player("0xaaa"), True)
            await store.record_battle_outcome(_battle(0))
            return (
                await store.get_current_season(),
                await store.get_all_player_records("s1"),
                await store.get_battle_records("s1", "0xaaa"),
                await store.get_leaderboard_snapshot("s1", "power"),
            )

        assert asyncio.run(scenario()) == (None, [], [], None)

    def test_store_errors_are_swallowed(self, make_player):
        kv = AsyncMock()
        for name in ("get", "set", "hset", "hincrby", "sadd", "smembers", "lpush", "lrange"):
            getattr(kv, name).side_effect = ConnectionError("down")
        store = RankingStore(kv, max_retries=0)

        async def scenario():
            await store.create_season(create_new_season(now=NOW))
            await store.record_player_result("s1", make_player("0xaaa"), True)
            await store.record_battle_outcome(_battle(0))
            return (
                await store.get_current_season(),
                await store.get_all_player_records("s1"),
                await store.get_battle_records("s1", "0xaaa"),
            )

        assert asyncio.run(scenario()) == (None, [], [])

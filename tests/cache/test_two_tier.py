"""Tests for the two-tier cache."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from eth_rpg.battle.simulator import simulate_battle
from eth_rpg.cache.caches import (
    BATTLE_CACHE_SCHEMA_VERSION,
    CHARACTER_CACHE_SCHEMA_VERSION,
    battle_cache_key,
    create_battle_cache,
    create_character_cache,
)
from eth_rpg.cache.two_tier import DEFAULT_TTL_SECONDS, TwoTierCache
from eth_rpg.kv import InMemoryKVStore
from eth_rpg.models import BattleResponse, CharacterSheet
from eth_rpg.resilience import BackgroundTasks

ADDRESS = "0x" + "ab" * 20


def _make_cache(clock, **kwargs) -> TwoTierCache[CharacterSheet]:
    kwargs.setdefault("tasks", BackgroundTasks())
    return TwoTierCache("character", CharacterSheet, clock=clock, **kwargs)


# ---------------------------------------------------------------------------
# L1 only
# ---------------------------------------------------------------------------

class TestL1:
    def test_set_then_get(self, clock, make_sheet):
        cache = _make_cache(clock)
        sheet = make_sheet(ADDRESS)

        async def scenario():
            await cache.set(ADDRESS, sheet)
            return await cache.get(ADDRESS)

        assert asyncio.run(scenario()) == sheet

    def test_keys_are_case_insensitive(self, clock, make_sheet):
        cache = _make_cache(clock)

        async def scenario():
            await cache.set(ADDRESS.upper(), make_sheet(ADDRESS))
            return await cache.get(ADDRESS.lower())

        assert asyncio.run(scenario()) is not None

    def test_miss(self, clock):
        assert asyncio.run(_make_cache(clock).get(ADDRESS)) is None

    def test_expired_entry_is_removed(self, clock, make_sheet):
        cache = _make_cache(clock)

        async def scenario():
            await cache.set(ADDRESS, make_sheet(ADDRESS))
            clock.advance(DEFAULT_TTL_SECONDS + 1)
            return await cache.get(ADDRESS)

        assert asyncio.run(scenario()) is None
        assert len(cache) == 0

    def test_entry_valid_until_ttl(self, clock, make_sheet):
        cache = _make_cache(clock)

        async def scenario():
            await cache.set(ADDRESS, make_sheet(ADDRESS))
            clock.advance(DEFAULT_TTL_SECONDS)
            return await cache.get(ADDRESS)

        assert asyncio.run(scenario()) is not None

    def test_schema_version_bump_invalidates(self, clock, make_sheet):
        cache = _make_cache(clock, schema_version=2)

        async def scenario():
            await cache.set(ADDRESS, make_sheet(ADDRESS))
            cache.schema_version = 3
            return await cache.get(ADDRESS)

        assert asyncio.run(scenario()) is None

    def test_eviction_bound(self, clock, make_sheet):
        cache = _make_cache(clock, max_size=20, eviction_fraction=0.25)

        async def scenario():
            for i in range(60):
                await cache.set(f"key-{i}", make_sheet(ADDRESS))
                clock.advance(1)
                assert len(cache) <= 20

        asyncio.run(scenario())

    def test_evicts_oldest_batch(self, clock, make_sheet):
        cache = _make_cache(clock, max_size=20, eviction_fraction=0.25)

        async def scenario():
            for i in range(21):
                await cache.set(f"key-{i}", make_sheet(ADDRESS))
                clock.advance(1)
            return [await cache.get(f"key-{i}") for i in range(21)]

        found = asyncio.run(scenario())
        assert found[:5] == [None] * 5
        assert all(entry is not None for entry in found[5:])
        assert len(cache) == 16

    def test_overwrite_does_not_evict(self, clock, make_sheet):
        cache = _make_cache(clock, max_size=2)

        async def scenario():
            await cache.set("a", make_sheet(ADDRESS))
            await cache.set("b", make_sheet(ADDRESS))
            await cache.set("b", make_sheet(ADDRESS, power=5))

        asyncio.run(scenario())
        assert len(cache) == 2

    def test_stats(self, clock, make_sheet):
        cache = _make_cache(clock)
        assert cache.stats().hit_rate == 0.0

        async def scenario():
            await cache.set(ADDRESS, make_sheet(ADDRESS))
            await cache.get(ADDRESS)
            await cache.get("0xmissing")

        asyncio.run(scenario())
        stats = cache.stats()
        assert stats.size == 1
        assert stats.hit_rate == 0.5

    def test_clear(self, clock, make_sheet):
        cache = _make_cache(clock)
        asyncio.run(cache.set(ADDRESS, make_sheet(ADDRESS)))
        cache.clear()
        assert len(cache) == 0
        assert cache.stats().hit_rate == 0.0

    def test_rejects_bad_size(self, clock):
        with pytest.raises(ValueError):
            _make_cache(clock, max_size=0)


# ---------------------------------------------------------------------------
# L2
# ---------------------------------------------------------------------------

class TestL2:
    def test_promotes_from_shared_store(self, clock, make_sheet):
        kv = InMemoryKVStore(clock=clock)
        writer = _make_cache(clock, kv=kv)
        reader = _make_cache(clock, kv=kv)
        sheet = make_sheet(ADDRESS, ens_name="vitalik.eth")

        async def scenario():
            await writer.set(ADDRESS, sheet)
            await writer._tasks.drain()
            return await reader.get(ADDRESS)

        assert asyncio.run(scenario()) == sheet
        assert len(reader) == 1
        assert reader.stats().hit_rate == 1.0

    def test_l2_entry_has_ttl(self, clock, make_sheet):
        kv = InMemoryKVStore(clock=clock)
        cache = _make_cache(clock, kv=kv)

        async def scenario():
            await cache.set(ADDRESS, make_sheet(ADDRESS))
            await cache._tasks.drain()
            return await kv.ttl(f"character:{ADDRESS}")

        assert asyncio.run(scenario()) == DEFAULT_TTL_SECONDS

    def test_l2_schema_mismatch_is_a_miss(self, clock, make_sheet):
        kv = InMemoryKVStore(clock=clock)
        old = _make_cache(clock, kv=kv, schema_version=1)
        new = _make_cache(clock, kv=kv, schema_version=2)

        async def scenario():
            await old.set(ADDRESS, make_sheet(ADDRESS))
            await old._tasks.drain()
            return await new.get(ADDRESS)

        assert asyncio.run(scenario()) is None

    def test_unreadable_l2_entry_is_a_miss(self, clock):
        kv = InMemoryKVStore(clock=clock)
        cache = _make_cache(clock, kv=kv)

        async def scenario():
            await kv.set(f"character:{ADDRESS}", "not json")
            return await cache.get(ADDRESS)

        assert asyncio.run(scenario()) is None

    def test_store_failures_are_swallowed(self, clock, make_sheet):
        kv = AsyncMock()
        kv.get.side_effect = ConnectionError("down")
        kv.set.side_effect = ConnectionError("down")
        cache = _make_cache(clock, kv=kv, max_retries=0)

        async def scenario():
            await cache.set(ADDRESS, make_sheet(ADDRESS))
            await cache._tasks.drain()
            cache.clear()
            return await cache.get(ADDRESS)

        assert asyncio.run(scenario()) is None
        kv.set.assert_awaited()
        kv.get.assert_awaited()


# ---------------------------------------------------------------------------
# Concrete caches
# ---------------------------------------------------------------------------

class TestConcreteCaches:
    def test_character_cache(self):
        cache = create_character_cache()
        assert cache.name == "character"
        assert cache.schema_version == CHARACTER_CACHE_SCHEMA_VERSION

    def test_battle_key_keeps_nonce_case(self):
        assert battle_cache_key("0xAA", "0xBB", "Nonce-1") == "0xaa:0xbb:Nonce-1"

    def test_battle_cache_distinguishes_nonce_case(self, make_sheet):
        cache = create_battle_cache()
        assert cache.schema_version == BATTLE_CACHE_SCHEMA_VERSION
        f0, f1 = make_sheet("0x" + "a" * 40), make_sheet("0x" + "b" * 40)
        response = BattleResponse(
            result=simulate_battle(f0, f1, "ABC"),
            battle_image_url="http://x/a.png",
            og_image_url="http://x/a.png",
        )

        async def scenario():
            await cache.set(battle_cache_key(f0.address, f1.address, "ABC"), response)
            upper = await cache.get(battle_cache_key(f0.address.upper(), f1.address, "ABC"))
            lower = await cache.get(battle_cache_key(f0.address, f1.address, "abc"))
            return upper, lower

        upper, lower = asyncio.run(scenario())
        assert upper == response
        assert lower is None

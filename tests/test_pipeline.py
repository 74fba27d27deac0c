"""Tests for the battle pipeline."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from eth_rpg.cache.caches import battle_cache_key, create_battle_cache, create_character_cache
from eth_rpg.cache.rate_limit import RateLimiter
from eth_rpg.errors import EmptyWalletError, ErrorCode, InvalidInputError, RateLimitedError
from eth_rpg.models import CharacterSheet
from eth_rpg.pipeline import (
    BattlePipeline,
    CachedCharacterSource,
    is_valid_input,
    is_valid_nonce,
)

ADDRESS_A = "0x" + "a" * 40
ADDRESS_B = "0x" + "b" * 40
ADDRESS_C = "0x" + "c" * 40


class FakeSource:
    """Character source backed by a dict, counting lookups."""

    def __init__(self, sheets: dict[str, CharacterSheet]) -> None:
        self.sheets = sheets
        self.calls: list[str] = []

    async def get_character(self, address: str) -> CharacterSheet:
        self.calls.append(address)
        try:
            return self.sheets[address.lower()]
        except KeyError:
            raise EmptyWalletError(address) from None


@pytest.fixture
def source(make_sheet) -> FakeSource:
    return FakeSource({
        ADDRESS_A: make_sheet(ADDRESS_A, "warrior", strength=150),
        ADDRESS_B: make_sheet(ADDRESS_B, "rogue"),
        "vitalik.eth": make_sheet(ADDRESS_C, "elder_wizard", ens_name="vitalik.eth"),
        "alias.eth": make_sheet(ADDRESS_A, "warrior", strength=150),
    })


def _pipeline(source, **kwargs) -> BattlePipeline:
    return BattlePipeline(
        source,
        create_battle_cache(),
        site_url="https://example.test/",
        **kwargs,
    )


class TestInputValidation:
    @pytest.mark.parametrize("value", [ADDRESS_A, "0x" + "AbC1" * 10, "vitalik.eth", "a.b-c.eth"])
    def test_valid_inputs(self, value):
        assert is_valid_input(value)

    @pytest.mark.parametrize("value", [
        "", "0x123", "0x" + "g" * 40, "vitalik", ".eth", "-bad.eth", "x" * 253 + ".eth",
    ])
    def test_invalid_inputs(self, value):
        assert not is_valid_input(value)

    @pytest.mark.parametrize("nonce,ok", [
        ("abc-123", True), ("A" * 64, True), ("A" * 65, False), ("a b", False), ("", False),
    ])
    def test_nonce(self, nonce, ok):
        assert is_valid_nonce(nonce) is ok

    def test_normalizes(self):
        a, b, nonce = BattlePipeline.validate(f"  {ADDRESS_A.upper()} ", "Vitalik.ETH", " n-1 ")
        assert (a, b, nonce) == (ADDRESS_A, "vitalik.eth", "n-1")

    def test_blank_nonce_is_absent(self):
        assert BattlePipeline.validate(ADDRESS_A, ADDRESS_B, "   ")[2] is None

    def test_invalid_first_address(self):
        with pytest.raises(InvalidInputError, match="first") as exc_info:
            BattlePipeline.validate("nope", ADDRESS_B, None)
        assert exc_info.value.code is ErrorCode.INVALID_ADDRESS

    def test_invalid_second_address(self):
        with pytest.raises(InvalidInputError, match="second"):
            BattlePipeline.validate(ADDRESS_A, "nope", None)

    def test_same_address_ignores_case(self):
        with pytest.raises(InvalidInputError) as exc_info:
            BattlePipeline.validate(ADDRESS_A, ADDRESS_A.upper().replace("0X", "0x"), None)
        assert exc_info.value.code is ErrorCode.SAME_ADDRESS

    def test_invalid_nonce(self):
        with pytest.raises(InvalidInputError) as exc_info:
            BattlePipeline.validate(ADDRESS_A, ADDRESS_B, "bad nonce!")
        assert exc_info.value.code is ErrorCode.INVALID_NONCE


class TestExecute:
    def test_runs_battle(self, source):
        pipeline = _pipeline(source, nonce_factory=lambda: "fixed-nonce")
        response = asyncio.run(pipeline.execute(ADDRESS_A, ADDRESS_B))
        assert not response.cached
        assert response.result.nonce == "fixed-nonce"
        assert response.battle_image_url == (
            f"https://example.test/api/og/battle/{ADDRESS_A}/{ADDRESS_B}?n=fixed-nonce"
        )
        assert response.og_image_url == response.battle_image_url

    def test_nonce_makes_battle_reproducible(self, source):
        first = asyncio.run(_pipeline(source).execute(ADDRESS_A, ADDRESS_B, "same"))
        second = asyncio.run(_pipeline(source).execute(ADDRESS_A, ADDRESS_B, "same"))
        assert first.result == second.result

    def test_replays_cached_battle(self, source):
        pipeline = _pipeline(source)

        async def scenario():
            first = await pipeline.execute(ADDRESS_A, ADDRESS_B, "replay-1")
            calls = len(source.calls)
            second = await pipeline.execute(ADDRESS_A.upper().replace("0X", "0x"), ADDRESS_B, "replay-1")
            return first, second, calls

        first, second, calls = asyncio.run(scenario())
        assert second.cached
        assert second.result == first.result
        assert len(source.calls) == calls

    def test_nonce_case_is_a_different_battle(self, source):
        pipeline = _pipeline(source)

        async def scenario():
            await pipeline.execute(ADDRESS_A, ADDRESS_B, "Case")
            return await pipeline.execute(ADDRESS_A, ADDRESS_B, "case")

        assert not asyncio.run(scenario()).cached

    def test_caches_under_resolved_addresses(self, source):
        cache = create_battle_cache()
        pipeline = BattlePipeline(source, cache)

        async def scenario():
            await pipeline.execute("vitalik.eth", ADDRESS_B, "ens-1")
            return (
                await cache.get(battle_cache_key("vitalik.eth", ADDRESS_B, "ens-1")),
                await cache.get(battle_cache_key(ADDRESS_C, ADDRESS_B, "ens-1")),
            )

        by_name, by_address = asyncio.run(scenario())
        assert by_name is not None and by_address is not None

    def test_ens_resolving_to_same_wallet(self, source):
        with pytest.raises(InvalidInputError) as exc_info:
            asyncio.run(_pipeline(source).execute("alias.eth", ADDRESS_A))
        assert exc_info.value.code is ErrorCode.SAME_ADDRESS

    def test_empty_wallet_propagates(self, source):
        with pytest.raises(EmptyWalletError):
            asyncio.run(_pipeline(source).execute(ADDRESS_A, "0x" + "d" * 40))

    def test_invalid_input_skips_lookup(self, source):
        with pytest.raises(InvalidInputError):
            asyncio.run(_pipeline(source).execute(ADDRESS_A, "bogus"))
        assert source.calls == []

    def test_rate_limited(self, source, clock):
        limiter = RateLimiter(max_requests=1, clock=clock)
        pipeline = _pipeline(source, rate_limiter=limiter)

        async def scenario():
            await pipeline.execute(ADDRESS_A, ADDRESS_B, client_ip="1.2.3.4")
            await pipeline.execute(ADDRESS_A, ADDRESS_B, client_ip="1.2.3.4")

        with pytest.raises(RateLimitedError):
            asyncio.run(scenario())

    def test_no_client_ip_skips_rate_limit(self, source, clock):
        limiter = RateLimiter(max_requests=1, clock=clock)
        pipeline = _pipeline(source, rate_limiter=limiter)

        async def scenario():
            await pipeline.execute(ADDRESS_A, ADDRESS_B)
            await pipeline.execute(ADDRESS_A, ADDRESS_B)

        asyncio.run(scenario())
        assert limiter.tracked_clients == 0

    def test_schedules_recording(self, source):
        recorder = MagicMock()
        response = asyncio.run(_pipeline(source, recorder=recorder).execute(ADDRESS_A, ADDRESS_B))
        recorder.schedule.assert_called_once_with(response.result)

    def test_cached_replay_is_not_recorded_again(self, source):
        recorder = MagicMock()
        pipeline = _pipeline(source, recorder=recorder)

        async def scenario():
            await pipeline.execute(ADDRESS_A, ADDRESS_B, "once")
            await pipeline.execute(ADDRESS_A, ADDRESS_B, "once")

        asyncio.run(scenario())
        assert recorder.schedule.call_count == 1


class TestCachedCharacterSource:
    def test_generates_once(self, source):
        characters = CachedCharacterSource(source, create_character_cache())

        async def scenario():
            first = await characters.get_character(ADDRESS_A.upper().replace("0X", "0x"))
            second = await characters.get_character(ADDRESS_A)
            return first, second

        first, second = asyncio.run(scenario())
        assert first == second
        assert len(source.calls) == 1

    def test_caches_ens_under_address(self, source):
        cache = create_character_cache()
        characters = CachedCharacterSource(source, cache)
        asyncio.run(characters.get_character("vitalik.eth"))
        assert len(cache) == 2
        asyncio.run(characters.get_character(ADDRESS_C))
        assert source.calls == ["vitalik.eth"]

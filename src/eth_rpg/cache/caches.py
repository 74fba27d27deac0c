"""The two concrete caches: generated characters and battle responses."""

from __future__ import annotations

from eth_rpg.cache.two_tier import DEFAULT_TTL_SECONDS, TwoTierCache
from eth_rpg.kv import KVStore
from eth_rpg.models import BattleResponse, CharacterSheet
from eth_rpg.resilience import BackgroundTasks

# Bump whenever the cached payload shape changes.
CHARACTER_CACHE_SCHEMA_VERSION = 2
BATTLE_CACHE_SCHEMA_VERSION = 1

CHARACTER_CACHE_SIZE = 10_000
BATTLE_CACHE_SIZE = 5_000


def character_cache_key(address: str) -> str:
    return address.lower()


def battle_cache_key(address1: str, address2: str, nonce: str) -> str:
    """``addr1:addr2:nonce`` with lower-cased addresses.

    The nonce keeps its case: it feeds the battle seed verbatim, so
    ``"Abc"`` and ``"abc"`` are different battles.
    """
    return f"{address1.lower()}:{address2.lower()}:{nonce}"


def _keep_case(key: str) -> str:
    return key


def create_character_cache(
    kv: KVStore | None = None,
    *,
    tasks: BackgroundTasks | None = None,
    max_size: int = CHARACTER_CACHE_SIZE,
    timeout_seconds: float = 2.0,
    max_retries: int = 2,
) -> TwoTierCache[CharacterSheet]:
    return TwoTierCache(
        "character",
        CharacterSheet,
        kv=kv,
        tasks=tasks,
        ttl_seconds=DEFAULT_TTL_SECONDS,
        max_size=max_size,
        schema_version=CHARACTER_CACHE_SCHEMA_VERSION,
        timeout_seconds=timeout_seconds,
        max_retries=max_retries,
    )


def create_battle_cache(
    kv: KVStore | None = None,
    *,
    tasks: BackgroundTasks | None = None,
    max_size: int = BATTLE_CACHE_SIZE,
    timeout_seconds: float = 2.0,
    max_retries: int = 2,
) -> TwoTierCache[BattleResponse]:
    # Keys come pre-normalized from battle_cache_key.
    return TwoTierCache(
        "battle",
        BattleResponse,
        kv=kv,
        tasks=tasks,
        ttl_seconds=DEFAULT_TTL_SECONDS,
        max_size=max_size,
        schema_version=BATTLE_CACHE_SCHEMA_VERSION,
        normalize=_keep_case,
        timeout_seconds=timeout_seconds,
        max_retries=max_retries,
    )

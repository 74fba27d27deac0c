"""Two-tier caching and request throttling."""

from eth_rpg.cache.caches import (
    battle_cache_key,
    character_cache_key,
    create_battle_cache,
    create_character_cache,
)
from eth_rpg.cache.rate_limit import RateLimiter, RateLimitResult
from eth_rpg.cache.two_tier import CacheStats, TwoTierCache

__all__ = [
    "CacheStats",
    "RateLimitResult",
    "RateLimiter",
    "TwoTierCache",
    "battle_cache_key",
    "character_cache_key",
    "create_battle_cache",
    "create_character_cache",
]

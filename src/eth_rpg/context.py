"""Process-wide service wiring.

:meth:`AppServices.from_settings` builds every long-lived object once;
request handlers receive the instance explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from eth_rpg.cache.caches import create_battle_cache, create_character_cache
from eth_rpg.cache.rate_limit import RateLimiter
from eth_rpg.cache.two_tier import TwoTierCache
from eth_rpg.config import Settings
from eth_rpg.kv import KVStore, RedisKVStore
from eth_rpg.models import BattleResponse, CharacterSheet
from eth_rpg.pipeline import BattlePipeline, CachedCharacterSource, CharacterSource
from eth_rpg.ranking.recorder import RankingRecorder
from eth_rpg.ranking.service import RankingService
from eth_rpg.ranking.store import RankingStore
from eth_rpg.resilience import BackgroundTasks

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    settings: Settings
    kv: KVStore | None
    tasks: BackgroundTasks
    character_cache: TwoTierCache[CharacterSheet]
    battle_cache: TwoTierCache[BattleResponse]
    rate_limiter: RateLimiter
    ranking_store: RankingStore
    recorder: RankingRecorder
    ranking: RankingService

    @classmethod
    def from_settings(cls, settings: Settings, *, kv: KVStore | None = None) -> AppServices:
        """Wire services from *settings*.

        *kv* overrides the store built from ``settings.redis_url``.
        """
        if kv is None and settings.redis_url:
            kv = RedisKVStore.from_url(settings.redis_url)
        if kv is None:
            logger.info("No durable store configured; running with in-process state only")

        tasks = BackgroundTasks()
        store_opts = {
            "timeout_seconds": settings.store_timeout_seconds,
            "max_retries": settings.store_max_retries,
        }
        ranking_store = RankingStore(kv, **store_opts)
        return cls(
            settings=settings,
            kv=kv,
            tasks=tasks,
            character_cache=create_character_cache(
                kv, tasks=tasks, max_size=settings.character_cache_size, **store_opts,
            ),
            battle_cache=create_battle_cache(
                kv, tasks=tasks, max_size=settings.battle_cache_size, **store_opts,
            ),
            rate_limiter=RateLimiter(kv, timeout_seconds=settings.store_timeout_seconds),
            ranking_store=ranking_store,
            recorder=RankingRecorder(ranking_store, tasks=tasks),
            ranking=RankingService(ranking_store, cron_secret=settings.cron_secret),
        )

    def battle_pipeline(self, source: CharacterSource) -> BattlePipeline:
        """A pipeline whose characters come from *source* via the character cache."""
        return BattlePipeline(
            CachedCharacterSource(source, self.character_cache),
            self.battle_cache,
            recorder=self.recorder,
            rate_limiter=self.rate_limiter,
            site_url=self.settings.site_url,
        )

    def health(self) -> dict[str, Any]:
        character = self.character_cache.stats()
        battle = self.battle_cache.stats()
        return {
            "store_configured": self.kv is not None,
            "cache": {
                "character": {"size": character.size, "hit_rate": character.hit_rate},
                "battle": {"size": battle.size, "hit_rate": battle.hit_rate},
            },
            "background_tasks": self.tasks.pending,
        }

    async def aclose(self) -> None:
        """Finish background work, then close the store connection."""
        await self.tasks.drain()
        if self.kv is not None:
            await self.kv.aclose()

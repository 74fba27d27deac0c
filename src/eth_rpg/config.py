"""Runtime configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

DEFAULT_SITE_URL = "http://localhost:3000"


@dataclass(slots=True)
class Settings:
    """Process-wide settings.

    Attributes
    ----------
    redis_url:
        Connection URL for the durable store.  ``None`` leaves the store
        unconfigured: caches run L1-only, the rate limiter uses its
        in-process fallback, and ranking operations become no-ops.
    cron_secret:
        Shared secret the periodic refresh trigger must present as a
        bearer token.  ``None`` rejects every refresh request.
    site_url:
        Base URL used to build battle image links.
    store_timeout_seconds:
        Deadline applied to every durable-store round trip.
    store_max_retries:
        Retries (after the first attempt) for non-timeout store failures.
    """

    redis_url: str | None = None
    cron_secret: str | None = None
    site_url: str = DEFAULT_SITE_URL
    store_timeout_seconds: float = 2.0
    store_max_retries: int = 2
    character_cache_size: int = 10_000
    battle_cache_size: int = 5_000

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        return cls(
            redis_url=env.get("REDIS_URL") or None,
            cron_secret=env.get("CRON_SECRET") or None,
            site_url=(env.get("SITE_URL") or DEFAULT_SITE_URL).rstrip("/"),
            store_timeout_seconds=float(env.get("STORE_TIMEOUT_SECONDS", "2.0")),
            store_max_retries=int(env.get("STORE_MAX_RETRIES", "2")),
            character_cache_size=int(env.get("CHARACTER_CACHE_SIZE", "10000")),
            battle_cache_size=int(env.get("BATTLE_CACHE_SIZE", "5000")),
        )

    @property
    def store_configured(self) -> bool:
        return bool(self.redis_url)

"""Generic two-tier cache.

L1 is a bounded in-process dict; L2 is a shared durable :class:`KVStore`.
L1 is authoritative for the current process.  L2 writes are
fire-and-forget and their failures are logged, never raised; L2 reads
that fail degrade to a miss.

Entries carry the schema version they were written with.  Bumping
``schema_version`` invalidates every existing entry without touching L2
(old L2 entries age out through their TTL).
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from eth_rpg.kv import KVStore
from eth_rpg.resilience import BackgroundTasks, with_retry, with_timeout

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_EVICTION_FRACTION = 0.1


@dataclass(frozen=True)
class CacheEntry(Generic[M]):
    data: M
    timestamp: float
    schema_version: int


@dataclass(frozen=True)
class CacheStats:
    size: int
    hit_rate: float
    """hits / (hits + misses) since construction; 0.0 before any lookup."""


class TwoTierCache(Generic[M]):
    """In-process L1 in front of an optional durable L2.

    Parameters
    ----------
    name:
        Namespace for L2 keys (``"{name}:{key}"``) and log messages.
    model:
        Pydantic model the cached payloads are (de)serialized as.
    kv:
        Durable store.  ``None`` runs the cache L1-only.
    tasks:
        Owner of the fire-and-forget L2 writes.
    ttl_seconds:
        Lifetime of an entry in both tiers.
    max_size:
        L1 capacity.  The map never exceeds it.
    schema_version:
        Payload shape version.  Entries written under another version
        are treated as absent.
    eviction_fraction:
        Share of ``max_size`` evicted (oldest first) when L1 is full.
    normalize:
        Applied to every key before lookup and storage.
    clock:
        Current time in seconds.
    """

    def __init__(
        self,
        name: str,
        model: type[M],
        *,
        kv: KVStore | None = None,
        tasks: BackgroundTasks | None = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_size: int = 10_000,
        schema_version: int = 1,
        eviction_fraction: float = DEFAULT_EVICTION_FRACTION,
        normalize: Callable[[str], str] = str.lower,
        clock: Callable[[], float] = time.time,
        timeout_seconds: float = 2.0,
        max_retries: int = 2,
    ) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        if not 0 < eviction_fraction <= 1:
            raise ValueError(f"eviction_fraction must be in (0, 1], got {eviction_fraction}")
        self.name = name
        self.model = model
        self.schema_version = schema_version
        self._kv = kv
        self._tasks = tasks or BackgroundTasks()
        self._ttl = ttl_seconds
        self._max_size = max_size
        self._eviction_batch = max(1, int(max_size * eviction_fraction))
        self._normalize = normalize
        self._clock = clock
        self._timeout = timeout_seconds
        self._max_retries = max_retries
        self._entries: dict[str, CacheEntry[M]] = {}
        self._hits = 0
        self._misses = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get(self, key: str) -> M | None:
        key = self._normalize(key)
        entry = self._entries.get(key)
        if entry is not None:
            if self._is_valid(entry):
                self._hits += 1
                return entry.data
            del self._entries[key]

        entry = await self._read_l2(key)
        if entry is not None and self._is_valid(entry):
            self._store_l1(key, entry)
            self._hits += 1
            logger.debug("%s cache: promoted %s from L2", self.name, key)
            return entry.data

        self._misses += 1
        return None

    async def set(self, key: str, value: M) -> None:
        key = self._normalize(key)
        entry = CacheEntry(data=value, timestamp=self._clock(), schema_version=self.schema_version)
        self._store_l1(key, entry)
        if self._kv is not None:
            self._tasks.spawn(self._write_l2(self._kv, key, entry), name=f"{self.name}-l2-set")

    def stats(self) -> CacheStats:
        total = self._hits + self._misses
        return CacheStats(
            size=len(self._entries),
            hit_rate=self._hits / total if total else 0.0,
        )

    def clear(self) -> None:
        """Drop every L1 entry and reset the hit/miss counters."""
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # L1
    # ------------------------------------------------------------------

    def _is_valid(self, entry: CacheEntry[M]) -> bool:
        if entry.schema_version != self.schema_version:
            return False
        return self._clock() - entry.timestamp <= self._ttl

    def _store_l1(self, key: str, entry: CacheEntry[M]) -> None:
        if key not in self._entries and len(self._entries) >= self._max_size:
            self._evict_oldest()
        self._entries[key] = entry

    def _evict_oldest(self) -> None:
        oldest = sorted(self._entries, key=lambda k: self._entries[k].timestamp)
        for key in oldest[: self._eviction_batch]:
            del self._entries[key]
        logger.debug(
            "%s cache: evicted %d entries", self.name, min(len(oldest), self._eviction_batch),
        )

    # ------------------------------------------------------------------
    # L2
    # ------------------------------------------------------------------

    def _l2_key(self, key: str) -> str:
        return f"{self.name}:{key}"

    async def _read_l2(self, key: str) -> CacheEntry[M] | None:
        if self._kv is None:
            return None
        kv = self._kv
        l2_key = self._l2_key(key)
        try:
            raw = await with_retry(
                lambda: with_timeout(kv.get(l2_key), self._timeout),
                max_retries=self._max_retries,
            )
        except Exception as exc:
            logger.warning("%s cache: L2 read failed for %s: %s", self.name, key, exc)
            return None
        if raw is None:
            return None
        try:
            payload = json.loads(raw)
            return CacheEntry(
                data=self.model.model_validate(payload["data"]),
                timestamp=float(payload["timestamp"]),
                schema_version=int(payload["schema_version"]),
            )
        except (ValueError, KeyError, TypeError, ValidationError) as exc:
            logger.warning("%s cache: discarding unreadable L2 entry %s: %s", self.name, key, exc)
            return None

    async def _write_l2(self, kv: KVStore, key: str, entry: CacheEntry[M]) -> None:
        raw = json.dumps({
            "data": entry.data.model_dump(mode="json", by_alias=True),
            "timestamp": entry.timestamp,
            "schema_version": entry.schema_version,
        })
        l2_key = self._l2_key(key)
        try:
            await with_retry(
                lambda: with_timeout(kv.set(l2_key, raw, ex=self._ttl), self._timeout),
                max_retries=self._max_retries,
            )
        except Exception as exc:
            logger.warning("%s cache: L2 write failed for %s: %s", self.name, key, exc)

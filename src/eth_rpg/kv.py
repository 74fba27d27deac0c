"""Durable key-value store abstraction.

The cache, rate limiter and ranking store only need a narrow slice of a
Redis-like API, expressed here as the :class:`KVStore` protocol.  Values
are always ``str``; callers own serialization (pydantic JSON).

Two backends:

- :class:`RedisKVStore` adapts ``redis.asyncio`` for production.
- :class:`InMemoryKVStore` keeps everything in the current process with
  TTL support.  Used for local development and the test suite.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping, Protocol

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class KVStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ex: int | None = None) -> None: ...

    async def incr(self, key: str) -> int: ...

    async def expire(self, key: str, seconds: int) -> None: ...

    async def ttl(self, key: str) -> int:
        """Seconds until *key* expires; ``-1`` without expiry, ``-2`` if missing."""
        ...

    async def sadd(self, key: str, *members: str) -> None: ...

    async def smembers(self, key: str) -> set[str]: ...

    async def lpush(self, key: str, value: str) -> None: ...

    async def ltrim(self, key: str, start: int, stop: int) -> None: ...

    async def lrange(self, key: str, start: int, stop: int) -> list[str]: ...

    async def hset(self, key: str, mapping: Mapping[str, str]) -> None: ...

    async def hincrby(self, key: str, field: str, amount: int = 1) -> int: ...

    async def hgetall(self, key: str) -> dict[str, str]: ...

    async def aclose(self) -> None: ...


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------

class RedisKVStore:
    """:class:`KVStore` backed by a ``redis.asyncio`` client."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisKVStore:
        return cls(redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> str | None:
        return await self._client.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        await self._client.set(key, value, ex=ex)

    async def incr(self, key: str) -> int:
        return int(await self._client.incr(key))

    async def expire(self, key: str, seconds: int) -> None:
        await self._client.expire(key, seconds)

    async def ttl(self, key: str) -> int:
        return int(await self._client.ttl(key))

    async def sadd(self, key: str, *members: str) -> None:
        if members:
            await self._client.sadd(key, *members)

    async def smembers(self, key: str) -> set[str]:
        return set(await self._client.smembers(key))

    async def lpush(self, key: str, value: str) -> None:
        await self._client.lpush(key, value)

    async def ltrim(self, key: str, start: int, stop: int) -> None:
        await self._client.ltrim(key, start, stop)

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        return list(await self._client.lrange(key, start, stop))

    async def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        await self._client.hset(key, mapping=dict(mapping))

    async def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        return int(await self._client.hincrby(key, field, amount))

    async def hgetall(self, key: str) -> dict[str, str]:
        return dict(await self._client.hgetall(key))

    async def aclose(self) -> None:
        await self._client.aclose()

    def __repr__(self) -> str:
        return f"RedisKVStore({self._client!r})"


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------

class InMemoryKVStore:
    """Process-local :class:`KVStore` with Redis-like semantics.

    Parameters
    ----------
    clock:
        Returns the current time in seconds.  Injected so tests can
        advance time without sleeping.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._data: dict[str, Any] = {}
        self._expires_at: dict[str, float] = {}

    # -- expiry --------------------------------------------------------------

    def _purge_if_expired(self, key: str) -> None:
        deadline = self._expires_at.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._data.pop(key, None)
            self._expires_at.pop(key, None)

    def _lookup(self, key: str, kind: type, default: Callable[[], Any] | None = None) -> Any:
        self._purge_if_expired(key)
        value = self._data.get(key)
        if value is None:
            if default is None:
                return None
            value = default()
            self._data[key] = value
        if not isinstance(value, kind):
            raise TypeError(f"WRONGTYPE operation against key {key!r}")
        return value

    # -- strings -------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        return self._lookup(key, str)

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        self._data[key] = value
        if ex is not None:
            self._expires_at[key] = self._clock() + ex
        else:
            self._expires_at.pop(key, None)

    async def incr(self, key: str) -> int:
        current = self._lookup(key, str)
        value = int(current or 0) + 1
        self._data[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> None:
        self._purge_if_expired(key)
        if key in self._data:
            self._expires_at[key] = self._clock() + seconds

    async def ttl(self, key: str) -> int:
        self._purge_if_expired(key)
        if key not in self._data:
            return -2
        deadline = self._expires_at.get(key)
        if deadline is None:
            return -1
        return max(0, int(round(deadline - self._clock())))

    # -- sets ----------------------------------------------------------------

    async def sadd(self, key: str, *members: str) -> None:
        self._lookup(key, set, set).update(members)

    async def smembers(self, key: str) -> set[str]:
        return set(self._lookup(key, set) or ())

    # -- lists ---------------------------------------------------------------

    async def lpush(self, key: str, value: str) -> None:
        self._lookup(key, list, list).insert(0, value)

    async def ltrim(self, key: str, start: int, stop: int) -> None:
        items = self._lookup(key, list)
        if items is None:
            return
        end = None if stop == -1 else stop + 1
        self._data[key] = items[start:end]

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        items = self._lookup(key, list) or []
        end = None if stop == -1 else stop + 1
        return list(items[start:end])

    # -- hashes --------------------------------------------------------------

    async def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        self._lookup(key, dict, dict).update(mapping)

    async def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        fields = self._lookup(key, dict, dict)
        value = int(fields.get(field, "0")) + amount
        fields[field] = str(value)
        return value

    async def hgetall(self, key: str) -> dict[str, str]:
        return dict(self._lookup(key, dict) or {})

    async def aclose(self) -> None:
        return None

    def __len__(self) -> int:
        return len(self._data)

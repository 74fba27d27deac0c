"""Per-IP fixed-window request throttle.

The primary path counts requests in the durable store
(``INCR ratelimit:<ip>`` + ``EXPIRE`` on the first hit of a window), so
every process shares one counter.  When the store is unconfigured or
failing, an in-process counter with the same limits takes over.  The two
paths can report different ``remaining`` values when the store flaps
mid-window; both enforce the same maximum per window.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from eth_rpg.kv import KVStore
from eth_rpg.resilience import with_timeout

logger = logging.getLogger(__name__)

RATE_LIMIT_MAX = 5
RATE_LIMIT_WINDOW_SECONDS = 60
STALE_WINDOW_FACTOR = 2


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float
    """Epoch seconds at which the current window ends."""


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """Shared-store rate limiter with an in-process fallback.

    Parameters
    ----------
    kv:
        Durable store.  ``None`` always uses the in-process counter.
    max_requests:
        Requests allowed per window.
    window_seconds:
        Window length.
    clock:
        Current time in seconds.
    """

    def __init__(
        self,
        kv: KVStore | None = None,
        *,
        max_requests: int = RATE_LIMIT_MAX,
        window_seconds: int = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
        timeout_seconds: float = 2.0,
    ) -> None:
        self._kv = kv
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._timeout = timeout_seconds
        self._windows: dict[str, _Window] = {}
        self._last_sweep = clock()

    async def check(self, client_ip: str) -> RateLimitResult:
        """Count one request from *client_ip* and report whether it may proceed."""
        if self._kv is not None:
            try:
                return await with_timeout(self._check_store(self._kv, client_ip), self._timeout)
            except Exception as exc:
                logger.warning("Rate limit store unavailable, using in-process counter: %s", exc)
        return self._check_local(client_ip)

    # ------------------------------------------------------------------
    # Durable store
    # ------------------------------------------------------------------

    async def _check_store(self, kv: KVStore, client_ip: str) -> RateLimitResult:
        # Not retried: INCR is not idempotent.
        key = f"ratelimit:{client_ip}"
        count = await kv.incr(key)
        if count == 1:
            await kv.expire(key, self.window_seconds)
        ttl = await kv.ttl(key)
        if ttl < 0:
            # Expiry lost between INCR and EXPIRE; start a fresh window.
            await kv.expire(key, self.window_seconds)
            ttl = self.window_seconds
        return RateLimitResult(
            allowed=count <= self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_at=self._clock() + ttl,
        )

    # ------------------------------------------------------------------
    # In-process fallback
    # ------------------------------------------------------------------

    def _check_local(self, client_ip: str) -> RateLimitResult:
        now = self._clock()
        self._sweep(now)

        window = self._windows.get(client_ip)
        if window is None or now >= window.reset_at:
            window = _Window(count=1, reset_at=now + self.window_seconds)
            self._windows[client_ip] = window
            return RateLimitResult(True, self.max_requests - 1, window.reset_at)

        if window.count >= self.max_requests:
            return RateLimitResult(False, 0, window.reset_at)

        window.count += 1
        return RateLimitResult(True, self.max_requests - window.count, window.reset_at)

    def _sweep(self, now: float) -> None:
        """Drop windows that ended more than two window lengths ago."""
        stale_after = self.window_seconds * STALE_WINDOW_FACTOR
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        stale = [ip for ip, w in self._windows.items() if now - w.reset_at > stale_after]
        for ip in stale:
            del self._windows[ip]
        if stale:
            logger.debug("Swept %d stale rate limit windows", len(stale))

    @property
    def tracked_clients(self) -> int:
        """Number of IPs held by the in-process counter."""
        return len(self._windows)

"""Timeout, retry and fire-and-forget helpers for store I/O.

Store calls are wrapped as ``with_retry(lambda: with_timeout(...))``.
Timeouts are never retried; other failures get a small number of retries
with exponential backoff and jitter.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Coroutine, TypeVar

from eth_rpg.errors import OperationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 2
DEFAULT_BASE_DELAY = 0.5


async def with_timeout(awaitable: Awaitable[T], seconds: float) -> T:
    """Await *awaitable*, raising :class:`OperationTimeoutError` after *seconds*."""
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as exc:
        raise OperationTimeoutError(seconds) from exc


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    rand: Callable[[], float] = random.random,
) -> T:
    """Call *fn* until it succeeds or *max_retries* retries are exhausted.

    The delay before retry ``n`` (0-based) is
    ``base_delay * 2**n * (0.5 + rand() * 0.5)``.  The last error is
    re-raised.  :class:`OperationTimeoutError` propagates immediately.
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except OperationTimeoutError:
            raise
        except Exception as exc:
            if attempt >= max_retries:
                raise
            delay = base_delay * (2 ** attempt) * (0.5 + rand() * 0.5)
            logger.debug(
                "Attempt %d failed (%s), retrying in %.3fs", attempt + 1, exc, delay,
            )
            await sleep(delay)
            attempt += 1


class BackgroundTasks:
    """Owns fire-and-forget tasks spawned off the request path.

    Callers never await the spawned work.  Failures are logged, not
    propagated.  A strong reference is kept until each task finishes so
    the event loop cannot garbage-collect it mid-flight.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Background task %s failed: %s", task.get_name(), exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every spawned task (including ones spawned while waiting)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

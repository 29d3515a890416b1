"""In-memory cache-aside helper for the upstream API and RPC calls.

Entries expire after a per-call TTL. Concurrent callers asking for the same
key while a fetch is outstanding await that fetch instead of starting a new
one.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry(Generic[T]):
    value: T
    expires_at: float


class AsyncTTLCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, CacheEntry[Any]] = {}
        self._pending: Dict[str, asyncio.Future] = {}

    async def get_or_fetch(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        ttl: float,
        refresh: bool = False,
    ) -> T:
        """Return the cached value for ``key`` or await ``fetcher`` to produce it.

        Args:
            key: Cache key.
            fetcher: Zero-argument coroutine function producing the value.
            ttl: Lifetime of a freshly fetched value, in seconds.
            refresh: Skip the cached value and fetch again.

        Returns:
            The cached or freshly fetched value.

        Raises:
            Whatever ``fetcher`` raises; every caller waiting on the same
            in-flight fetch receives the same exception.
        """
        cached = self._entries.get(key)
        if not refresh and cached is not None and cached.expires_at > self._clock():
            return cached.value

        inflight = self._pending.get(key)
        if inflight is not None:
            return await asyncio.shield(inflight)

        # The fetch runs in its own task so cancelling any one caller never
        # cancels it for the others
        task = asyncio.ensure_future(fetcher())
        self._pending[key] = task

        def _settle(done: asyncio.Future) -> None:
            if self._pending.get(key) is done:
                self._pending.pop(key)
            if done.cancelled():
                return
            # Also marks the exception retrieved so it is not reported at GC
            if done.exception() is not None:
                return
            self._entries[key] = CacheEntry(
                value=done.result(), expires_at=self._clock() + ttl
            )
            logger.debug("Cached %s for %ss", key, ttl)

        task.add_done_callback(_settle)
        return await asyncio.shield(task)

    def get(self, key: str) -> Optional[Any]:
        cached = self._entries.get(key)
        if cached is None or cached.expires_at <= self._clock():
            return None
        return cached.value

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

"""
Small in-memory caches owned by one executor instance.

Each cache carries its own ``asyncio.Lock`` so concurrent callers that all
find the cache stale trigger a single refresh.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

from ..config.settings import DEFAULT_TOKEN_DECIMALS

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]

__all__ = ["Clock", "CacheEntry", "TTLCache", "TokenInfoCache"]


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value and the instant it stops being valid."""
    value: T
    fetched_at: float
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


class TTLCache(Generic[T]):
    """Single-slot cache; entries are replaced wholesale, never patched."""

    def __init__(self, ttl: float, clock: Clock = time.time, name: str = "cache"):
        self.ttl = ttl
        self.clock = clock
        self.name = name
        self._entry: CacheEntry[T] | None = None
        self._lock = asyncio.Lock()

    @property
    def entry(self) -> CacheEntry[T] | None:
        return self._entry

    def get(self) -> T | None:
        """Cached value if still valid, else None."""
        entry = self._entry
        if entry is not None and entry.is_valid(self.clock()):
            return entry.value
        return None

    def set(self, value: T) -> CacheEntry[T]:
        now = self.clock()
        self._entry = CacheEntry(value=value, fetched_at=now, expires_at=now + self.ttl)
        return self._entry

    def clear(self) -> None:
        self._entry = None
        logger.debug("%s cleared", self.name)

    async def get_or_refresh(
        self,
        fetch: Callable[[], Awaitable[T]],
        force: bool = False,
    ) -> T:
        """Serve from cache or run ``fetch`` once under the lock."""
        if not force:
            cached = self.get()
            if cached is not None:
                return cached
        async with self._lock:
            if not force:
                cached = self.get()
                if cached is not None:
                    return cached
            value = await fetch()
            self.set(value)
            return value


class TokenInfoCache:
    """
    Token decimals with no TTL, only an initialized flag.

    Until :meth:`update` runs, readers get ``DEFAULT_TOKEN_DECIMALS``.
    """

    def __init__(self, default_decimals: int = DEFAULT_TOKEN_DECIMALS):
        self.default_decimals = default_decimals
        self._decimals = default_decimals
        self._multiplier = 10 ** default_decimals
        self._initialized = False
        self._lock = asyncio.Lock()

    @property
    def decimals(self) -> int:
        return self._decimals

    @property
    def multiplier(self) -> int:
        return self._multiplier

    @property
    def initialized(self) -> bool:
        return self._initialized

    def update(self, decimals: int) -> None:
        if decimals < 0:
            raise ValueError(f"decimals cannot be negative: {decimals}")
        self._decimals = decimals
        self._multiplier = 10 ** decimals
        self._initialized = True

    async def get_or_refresh(self, fetch: Callable[[], Awaitable[int]], force: bool = False) -> int:
        """
        Cached decimals, or the result of running ``fetch`` once under the lock.

        A failing ``fetch`` propagates and leaves the cache uninitialized.
        """
        if self._initialized and not force:
            return self._decimals
        async with self._lock:
            if self._initialized and not force:
                return self._decimals
            self.update(await fetch())
            return self._decimals

    def clear(self) -> None:
        self._decimals = self.default_decimals
        self._multiplier = 10 ** self.default_decimals
        self._initialized = False

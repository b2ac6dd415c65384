"""In-memory TTL caching utilities.

The changelog keeps exactly one cache slot per tracked repository, addressed
by ``changelog_cache_key``. Routes depend on the ``CachePort`` protocol
rather than on a module-level cache, so tests can inject a fake.

Note: Cache is per-worker/replica, not shared across instances.
Suitable for data that can tolerate short-term staleness; webhook
invalidation only reaches the worker that received the delivery.
"""

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

from cachetools import TLRUCache

from core import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_SIZE = 16

CHANGELOG_CACHE_VERSION = "v1"


def changelog_cache_key(repo_path: str) -> str:
    """Stable key of the single cache slot for ``repo_path``."""
    return f"changelog:{CHANGELOG_CACHE_VERSION}:{repo_path}"


class CachePort(Protocol):
    """Minimal cache capability the changelog depends on."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl: float) -> None: ...

    def delete(self, key: str) -> None: ...


@dataclass(frozen=True)
class CacheEntry:
    """A stored value together with its lifetime in seconds."""

    value: Any
    ttl: float


def _entry_expiry(_key: str, entry: CacheEntry, now: float) -> float:
    return now + entry.ttl


class InMemoryCache:
    """Process-local ``CachePort`` backed by a cachetools TLRU cache.

    Each entry carries its own TTL, so ``set`` honours the ttl it is given.
    """

    def __init__(
        self,
        maxsize: int = DEFAULT_MAX_SIZE,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: TLRUCache[str, CacheEntry] = TLRUCache(
            maxsize=maxsize, ttu=_entry_expiry, timer=timer
        )

    def get(self, key: str) -> Any | None:
        entry = self._cache.get(key)
        return entry.value if entry is not None else None

    def set(self, key: str, value: Any, ttl: float) -> None:
        self._cache[key] = CacheEntry(value=value, ttl=ttl)

    def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        """For testing."""
        self._cache.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def stats(self) -> dict[str, int]:
        return {"current_size": len(self._cache), "max_size": int(self._cache.maxsize)}


async def read_or_populate(
    cache: CachePort,
    key: str,
    ttl: float,
    producer: Callable[[], Awaitable[T]],
) -> T:
    """Return the cached value for ``key``, populating it from ``producer`` on a miss.

    If ``producer`` raises, nothing is stored and the exception propagates, so
    the next request retries instead of serving a cached failure. Concurrent
    misses may each call ``producer``; the last completed write wins. Cache
    reads and writes are synchronous, so a half-written entry is never seen.
    """
    cached = cache.get(key)
    if cached is not None:
        logger.debug("cache.hit", key=key)
        return cached

    logger.debug("cache.miss", key=key)
    value = await producer()
    cache.set(key, value, ttl)
    return value

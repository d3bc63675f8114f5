"""In-memory TTL cache used in front of the storage backend.

Bounded, per-entry TTL, first-in-first-out eviction. Values may be ``None``
to record that an entity is known not to exist; absence of an entry is
signalled with the ``MISSING`` sentinel instead.
"""

from __future__ import annotations

import enum
import logging
import re
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _Missing(enum.Enum):
    MISSING = enum.auto()

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing.MISSING

KeyPredicate = Callable[[str], bool] | re.Pattern[str]


def now_ms() -> float:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time() * 1000


@dataclass
class CacheItem(Generic[T]):
    """Container for cached values with expiration metadata."""

    value: T
    expires_at: float


class SimpleTTLCache(Generic[T]):
    """Thread-safe, in-memory TTL cache with FIFO eviction.

    Attributes:
        max_entries: Hard ceiling on stored items, enforced regardless of TTL.
        name: Label used in log events and stats.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        *,
        name: str = "cache",
        clock: Callable[[], float] = now_ms,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self._max_entries = max_entries
        self._name = name
        self._clock = clock
        self._store: OrderedDict[str, CacheItem[T]] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"SimpleTTLCache(name={self._name!r}, max_entries={self._max_entries}, "
            f"size={len(self._store)}, hits={self._hits}, misses={self._misses}, "
            f"evictions={self._evictions})"
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            item = self._store.get(key)  # type: ignore[arg-type]
            return item is not None and not self._is_expired(item)

    def get(self, key: str) -> T | _Missing:
        """Retrieve a cached value if it exists and is not expired.

        Args:
            key: Cache key.

        Returns:
            The cached value (possibly ``None`` for a negative entry), or
            ``MISSING`` when nothing usable is stored.
        """

        with self._lock:
            item = self._store.get(key)
            if item is None:
                self._misses += 1
                logger.debug(
                    "cache.miss",
                    extra={"cache": self._name, "cache_key": key, "reason": "not_found"},
                )
                return MISSING

            if self._is_expired(item):
                del self._store[key]
                self._expirations += 1
                self._misses += 1
                logger.debug(
                    "cache.miss",
                    extra={"cache": self._name, "cache_key": key, "reason": "expired"},
                )
                return MISSING

            self._hits += 1
            logger.debug("cache.hit", extra={"cache": self._name, "cache_key": key})
            return item.value

    def set(self, key: str, value: T, ttl_ms: float) -> None:
        """Store a value with its own TTL, evicting the oldest entry if full.

        Args:
            key: Cache key.
            value: Value to store; ``None`` records a known-absent entity.
            ttl_ms: Time-to-live in milliseconds. Non-positive values are ignored.
        """

        if ttl_ms <= 0:
            logger.debug(
                "cache.set_skipped",
                extra={"cache": self._name, "cache_key": key, "ttl_ms": ttl_ms},
            )
            return

        with self._lock:
            if key in self._store:
                # Re-insertion moves the key to the tail of the FIFO order.
                del self._store[key]
            elif len(self._store) >= self._max_entries:
                evicted_key, _ = self._store.popitem(last=False)
                self._evictions += 1
                logger.debug(
                    "cache.evicted",
                    extra={"cache": self._name, "cache_key": evicted_key},
                )

            self._store[key] = CacheItem(value=value, expires_at=self._clock() + ttl_ms)

            logger.debug(
                "cache.set",
                extra={
                    "cache": self._name,
                    "cache_key": key,
                    "size": len(self._store),
                    "ttl_ms": ttl_ms,
                },
            )

    def delete(self, key: str) -> None:
        """Remove a single entry; missing keys are ignored."""

        with self._lock:
            self._store.pop(key, None)

    def invalidate_pattern(self, predicate: KeyPredicate) -> int:
        """Remove every entry whose key matches ``predicate``.

        Args:
            predicate: Callable taking the key, or a compiled regex matched
                with ``search``.

        Returns:
            Number of entries removed.
        """

        matches = predicate.search if isinstance(predicate, re.Pattern) else predicate

        with self._lock:
            doomed: list[str] = []
            for key in self._store:
                try:
                    if matches(key):
                        doomed.append(key)
                except Exception:
                    logger.warning(
                        "cache.invalidate_predicate_failed",
                        extra={"cache": self._name, "cache_key": key},
                        exc_info=True,
                    )
            for key in doomed:
                del self._store[key]

        if doomed:
            logger.debug(
                "cache.invalidated",
                extra={"cache": self._name, "removed": len(doomed)},
            )
        return len(doomed)

    def clear(self) -> None:
        """Remove all cached entries and reset counters."""

        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0
            self._expirations = 0

    def stats(self) -> dict[str, int | str]:
        """Return lightweight cache metrics without exposing values."""

        with self._lock:
            return {
                "name": self._name,
                "max_entries": self._max_entries,
                "entries": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "expirations": self._expirations,
            }

    def _is_expired(self, item: CacheItem[T]) -> bool:
        return self._clock() > item.expires_at

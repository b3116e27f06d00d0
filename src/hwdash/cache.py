"""Time-windowed memoization for slow telemetry lookups."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

T = TypeVar("T")


def monotonic_ms() -> float:
    """Milliseconds from a monotonic clock."""
    return time.monotonic() * 1000.0


@dataclass(slots=True, frozen=True)
class CacheEntry:
    """A cached value and the clock reading when it was captured."""

    value: Any
    captured_at_ms: float


class ExpensiveCallCache:
    """
    One entry per category, each with its own staleness clock.

    Entries expire on their own; there is no invalidation API.
    Not thread safe: only the poll driver thread uses it.
    """

    def __init__(self, clock: Callable[[], float] = monotonic_ms) -> None:
        """
        Initialize the cache.

        Args:
            clock: Callable returning the current time in milliseconds.
        """
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get_or_refresh(self, category: str, ttl_ms: float, fetch: Callable[[], T]) -> T:
        """
        Return the cached value for ``category`` or refresh it.

        A value is fresh while ``now - captured_at < ttl_ms``. When ``fetch``
        raises, nothing is stored and the exception propagates.
        """
        now = self._clock()
        entry = self._entries.get(category)
        if entry is not None and now - entry.captured_at_ms < ttl_ms:
            return entry.value

        value = fetch()
        self._entries[category] = CacheEntry(value=value, captured_at_ms=now)
        return value

    def entry(self, category: str) -> CacheEntry | None:
        """Get the raw entry for a category, if any."""
        return self._entries.get(category)

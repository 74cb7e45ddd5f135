"""Normalization cache for cumulative series.

Maps a series key to the last raw observation so that COUNTER and DERIVE
values can be turned into per-second rates. Unbounded by default; a
capacity and an idle age can be set to bound memory in long-running
deployments.
"""

import logging
import time
from collections import OrderedDict
from collections.abc import Callable

from metricrelay.core.models import CacheEntry

LOG = logging.getLogger(__name__)


class NormalizationCache:
    """Last-seen (timestamp, raw value) per series key.

    Entries are kept in least-recently-updated order. When max_entries is
    set, storing a new key beyond capacity evicts the entry that has gone
    longest without an update.

    Args:
        max_entries: Capacity bound, None for unbounded.
        max_idle_ms: Time since an entry was last stored, measured on
            clock, after which evict_idle() drops it. None keeps entries
            forever. Sample timestamps play no part in idle eviction.
        clock: Monotonic clock in seconds, replaceable in tests.
    """

    def __init__(
        self,
        max_entries: int | None = None,
        max_idle_ms: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be positive")
        if max_idle_ms is not None and max_idle_ms < 0:
            raise ValueError("max_idle_ms must not be negative")
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._max_entries = max_entries
        self._max_idle_ms = max_idle_ms
        self._clock = clock
        self._seen: dict[str, float] = {}

    @property
    def max_idle_ms(self) -> int | None:
        return self._max_idle_ms

    def get(self, key: str) -> CacheEntry | None:
        """Return the entry for key without changing its recency."""
        return self._entries.get(key)

    def put(self, key: str, entry: CacheEntry) -> None:
        """Store entry for key, evicting the stalest entry if over capacity."""
        self._entries[key] = entry
        self._entries.move_to_end(key)
        self._seen[key] = self._clock()
        if self._max_entries is not None and len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            del self._seen[evicted]
            LOG.debug("cache full, evicted %s", evicted)

    def swap(self, key: str, entry: CacheEntry) -> CacheEntry | None:
        """Store entry for key and return the entry it replaced.

        The read and the write happen in one call so that a series never
        loses an update between them.
        """
        previous = self._entries.get(key)
        self.put(key, entry)
        return previous

    def evict_idle(self) -> int:
        """Drop entries not stored for more than max_idle_ms.

        Returns:
            Number of entries dropped (always 0 when no idle age is set).
        """
        if self._max_idle_ms is None:
            return 0
        cutoff = self._clock() - self._max_idle_ms / 1000
        stale = [k for k, seen in self._seen.items() if seen < cutoff]
        for key in stale:
            del self._entries[key]
            del self._seen[key]
        if stale:
            LOG.debug("evicted %d idle series", len(stale))
        return len(stale)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

"""In-memory read-through cache for security lookups.

Sits strictly in front of the repository: the store is correct
without it, and every write clears it so lookups always reflect the
latest upsert.
"""

import time
from collections import OrderedDict
from collections.abc import Hashable

from tickisinator.security_master.schemas import Security


class LookupCache:
    """TTL cache with least-recently-used eviction.

    Only positive results are cached; a miss always goes to the store.
    A ttl_seconds of 0 disables caching entirely.
    """

    def __init__(self, ttl_seconds: float = 300, max_entries: int = 10_000) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._entries: OrderedDict[Hashable, tuple[float, Security]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: Hashable) -> Security | None:
        """Return the cached security for key, or None if absent or expired."""
        if not self.enabled:
            return None

        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        cached_at, security = entry
        if time.monotonic() - cached_at >= self._ttl:
            del self._entries[key]
            self.misses += 1
            return None

        self._entries.move_to_end(key)
        self.hits += 1
        return security

    def put(self, key: Hashable, security: Security) -> None:
        """Cache a security, evicting the least recently used beyond capacity."""
        if not self.enabled:
            return

        self._entries[key] = (time.monotonic(), security)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

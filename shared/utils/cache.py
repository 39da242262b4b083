"""
TTL cache — small in-process cache with explicit lifetime.

Collectors receive an instance through their constructor instead of
reaching for a module-level dict, so tests can swap the clock or share one
cache between collectors.
"""
import time
from typing import Any, Callable, Hashable

_MISSING = object()


class TTLCache:
    def __init__(self, ttl: float = 60.0, max_entries: int = 1024, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[Hashable, tuple[Any, float]] = {}

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._entries.get(key, _MISSING)
        if entry is _MISSING:
            return default
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return default
        return value

    def set(self, key: Hashable, value: Any, ttl: float | None = None):
        if len(self._entries) >= self.max_entries and key not in self._entries:
            self._evict()
        self._entries[key] = (value, self._clock() + (self.ttl if ttl is None else ttl))

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self):
        self._entries.clear()

    def _evict(self):
        now = self._clock()
        expired = [k for k, (_, exp) in self._entries.items() if now >= exp]
        for k in expired:
            del self._entries[k]
        # Still full: drop the entry closest to expiry
        if len(self._entries) >= self.max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][1])
            del self._entries[oldest]

"""
Process-local TTL cache for dashboard widgets.

Entries carry their own TTL; expired entries are dropped lazily on `get`
or in bulk via `cleanup`. Staleness within the TTL is accepted.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from app.core.config import get_settings

settings = get_settings()


@dataclass
class CacheEntry:
    data: Any
    timestamp: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl


class TTLCache:
    def __init__(self, default_ttl: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            del self._entries[key]
            return None
        return entry.data

    def set(self, key: str, data: Any, ttl: Optional[float] = None) -> None:
        self._entries[key] = CacheEntry(
            data=data,
            timestamp=self._clock(),
            ttl=self.default_ttl if ttl is None else ttl,
        )

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def invalidate_pattern(self, pattern: str) -> int:
        """Drop every key matching the regex. Returns the number removed."""
        regex = re.compile(pattern)
        keys = [k for k in self._entries if regex.search(k)]
        for k in keys:
            del self._entries[k]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Remove all expired entries. Returns the number removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.expired(now)]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def stats(self) -> dict:
        return {"size": len(self._entries), "keys": sorted(self._entries)}

    def __len__(self) -> int:
        return len(self._entries)


dashboard_cache = TTLCache(default_ttl=settings.cache_ttl_seconds)


def invalidate_dashboard() -> None:
    """Drop cached dashboard widgets after feedback/task mutations."""
    dashboard_cache.invalidate_pattern(r"^dashboard:")

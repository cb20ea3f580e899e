"""Query cache -- per-key memo of backend reads with TTL expiry.

Keys are tuples whose first element is the read's name, e.g.
("forumPosts", True). Invalidation works by name, dropping every key that
starts with it.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

logger = logging.getLogger(__name__)

QueryKey = tuple[Any, ...]

MISSING = object()


class QueryCache:
    """In-memory cache of read results.

    Usage:
        cache = QueryCache(ttl_seconds=300)
        cache.set(("portfolio",), portfolio)
        cache.get(("portfolio",))          # -> portfolio, or MISSING
        cache.invalidate("portfolio")
    """

    def __init__(self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[QueryKey, tuple[float, Any]] = {}
        self._generations: dict[str, int] = {}

    def get(self, key: QueryKey) -> Any:
        """Cached value for `key`, or MISSING when absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return MISSING
        stored_at, value = entry
        if self._ttl > 0 and self._clock() - stored_at >= self._ttl:
            del self._entries[key]
            return MISSING
        return value

    def set(self, key: QueryKey, value: Any) -> None:
        self._purge_expired()
        self._entries[key] = (self._clock(), value)

    def generation(self, name: str) -> int:
        """Counter bumped every time `name` is invalidated.

        A reader compares it before and after a fetch; a change means a write
        landed in between and the fetched value must not be stored.
        """
        return self._generations.get(name, 0)

    def _purge_expired(self) -> None:
        if self._ttl <= 0:
            return
        now = self._clock()
        expired = [key for key, (stored_at, _) in self._entries.items() if now - stored_at >= self._ttl]
        for key in expired:
            del self._entries[key]

    def invalidate(self, *names: str) -> list[QueryKey]:
        """Drop every key whose name is in `names`; return the dropped keys."""
        wanted = set(names)
        for name in wanted:
            self._generations[name] = self._generations.get(name, 0) + 1
        dropped = [key for key in self._entries if key and key[0] in wanted]
        for key in dropped:
            del self._entries[key]
        if dropped:
            logger.debug("Invalidated %d cached queries: %s", len(dropped), sorted(wanted))
        return dropped

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not MISSING  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._entries)

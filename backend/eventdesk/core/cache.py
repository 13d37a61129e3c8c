"""
Summary cache.

Read-through cache for computed revenue summaries, with one explicit
invalidation contract:

    after any ledger mutation for guest G, the entry ("guest", G) and every
    ("portfolio", ...) entry are stale and are dropped.

Entries carry a TTL and the cache is LRU-bounded. An entry that was dropped
for TTL reasons is still kept as a "last known good" value so a read that hits
a store error can serve it flagged as stale; invalidation removes it for good.

Each guest and the portfolio as a whole carry a generation that
invalidation bumps. A read captures the generation before it loads and
stores its result with set_if_current, which drops the write when an
invalidation landed in between.

Usage:
    from eventdesk.core.cache import summary_cache, guest_key, portfolio_key

    hit = summary_cache.get(guest_key("VIP001"))
    totals = summary_cache.get(portfolio_key("stats", guest_type="vip"))
    generation = summary_cache.generation(guest_key("VIP001"))
    summary = ...  # load + compute
    summary_cache.set_if_current(guest_key("VIP001"), summary, generation)
    summary_cache.invalidate_guest("VIP001")
"""
from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Iterable, Optional, Tuple

from eventdesk.core.config import settings

logger = logging.getLogger(__name__)

GUEST = "guest"
PORTFOLIO = "portfolio"

CacheKey = Tuple[str, Hashable]


def guest_key(guest_id: str) -> CacheKey:
    return (GUEST, guest_id)


def portfolio_key(
    view: str,
    guest_type: Optional[str] = None,
    roles: Iterable[str] | None = None,
    search: Optional[str] = None,
) -> CacheKey:
    """Normalized filter key: role order and search case do not matter."""
    return (
        PORTFOLIO,
        (
            view,
            guest_type or "",
            tuple(sorted(set(roles or ()))),
            (search or "").strip().lower(),
        ),
    )


@dataclass
class CacheEntry:
    value: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.time()) > self.expires_at


class SummaryCache:
    """
    Thread-safe TTL + LRU cache.

    Args:
        max_entries: entries kept before least-recently-used eviction
        ttl_seconds: freshness window for an entry
    """

    def __init__(self, max_entries: int = 2000, ttl_seconds: int = 300):
        self._max_entries = max_entries
        self._ttl = ttl_seconds
        self._lock = threading.RLock()
        self._entries: OrderedDict[CacheKey, CacheEntry] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._invalidations = 0
        self._guest_generations: Dict[str, int] = {}
        self._portfolio_generation = 0
        self._dropped_writes = 0

    def _generation_of(self, key: CacheKey) -> int:
        if key[0] == PORTFOLIO:
            return self._portfolio_generation
        return self._guest_generations.get(key[1], 0)

    def generation(self, key: CacheKey) -> int:
        """Capture before loading; hand back to set_if_current."""
        with self._lock:
            return self._generation_of(key)

    def get(self, key: CacheKey) -> Optional[Any]:
        """Fresh value or None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.is_expired():
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    def get_stale(self, key: CacheKey) -> Optional[Any]:
        """Last known value regardless of TTL (None once invalidated)."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.value if entry is not None else None

    def _store(self, key: CacheKey, value: Any) -> None:
        now = time.time()
        self._entries[key] = CacheEntry(value=value, created_at=now, expires_at=now + self._ttl)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def set(self, key: CacheKey, value: Any) -> None:
        with self._lock:
            self._store(key, value)

    def set_if_current(self, key: CacheKey, value: Any, generation: int) -> bool:
        """
        Store value only if no invalidation touched key since `generation` was
        captured. Returns False when the write was dropped.
        """
        with self._lock:
            if self._generation_of(key) != generation:
                self._dropped_writes += 1
                logger.debug("Summary cache dropped outdated write key=%s", key)
                return False
            self._store(key, value)
            return True

    def invalidate_guest(self, guest_id: str) -> int:
        """Drop the guest's summary and every portfolio entry. Returns entries removed."""
        with self._lock:
            stale = [k for k in self._entries if k == guest_key(guest_id) or k[0] == PORTFOLIO]
            for k in stale:
                del self._entries[k]
            self._guest_generations[guest_id] = self._guest_generations.get(guest_id, 0) + 1
            self._portfolio_generation += 1
            self._invalidations += 1
        logger.debug("Summary cache invalidated guest=%s removed=%d", guest_id, len(stale))
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "invalidations": self._invalidations,
                "dropped_writes": self._dropped_writes,
            }


summary_cache = SummaryCache(
    max_entries=settings.SUMMARY_CACHE_MAX_ENTRIES,
    ttl_seconds=settings.SUMMARY_CACHE_TTL_SECONDS,
)

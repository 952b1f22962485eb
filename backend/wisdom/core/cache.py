"""
In-memory TTL/LRU cache shared by the news, enrichment and analysis layers.

The store is a single bounded map ordered by recency (least recently used
first). Every entry carries its own expiry, so short-lived news pages and
long-lived AI results can live side by side. Entries are tagged with a
CacheType so hit/miss analytics can be reported per payload kind.

All operations are synchronous and never yield to the event loop, so the
periodic cleanup task and request handlers can share one instance without
locking.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from wisdom.models import CacheAnalytics, CacheEntry, CacheType, EnrichmentResult, JsonDict

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def format_rate(hits: int, total: int) -> str:
    """
    Format a hit ratio as a percentage string.

    Args:
        hits: Number of hits
        total: Number of lookups (0 yields "0.00%")

    Returns:
        Percentage with two decimals, e.g. "66.67%"
    """
    if total <= 0:
        return "0.00%"
    return f"{hits / total * 100:.2f}%"


class CacheStore:
    """Bounded key/value store with per-entry TTL and LRU eviction."""

    def __init__(self, max_items: int = 500, clock: Clock = time.time):
        if max_items < 1:
            raise ValueError("max_items must be at least 1")
        self.max_items = max_items
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self.analytics = CacheAnalytics(last_cleanup=clock())
        self._cleanup_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def now(self) -> float:
        return self._clock()

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def get(self, key: str, type: CacheType = CacheType.GENERIC, default: Any = None) -> Any:
        """
        Look up a live entry.

        Args:
            key: Cache key
            type: Payload kind, used for analytics only
            default: Returned when the key is unknown or expired

        Returns:
            The cached value, or ``default``
        """
        now = self._clock()
        self.analytics.total_queries += 1
        entry = self._entries.get(key)

        # Expired entries stay in place until the sweep, but read as absent
        if entry is None or entry.is_expired(now):
            self._record(type, hit=False)
            return default

        entry.last_accessed = now
        self._entries.move_to_end(key)
        self._record(type, hit=True)
        return entry.data

    def set(self, key: str, value: Any, ttl: float, type: CacheType = CacheType.GENERIC) -> None:
        """
        Store ``value`` under ``key`` for ``ttl`` seconds.

        A new key inserted into a full store first evicts the least recently
        used entry. Overwriting an existing key replaces value, expiry and
        timestamps and makes it the most recently used.
        """
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        now = self._clock()
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_items:
            self._evict_lru()

        self._entries[key] = CacheEntry(
            key=key,
            data=value,
            created_at=now,
            expires_at=now + ttl,
            last_accessed=now,
            type=type,
        )

    def delete(self, key: str) -> bool:
        if key not in self._entries:
            return False
        del self._entries[key]
        logger.info("Cache item deleted: %s", key)
        return True

    def clear(self) -> int:
        previous_size = len(self._entries)
        self._entries.clear()
        logger.info("Cache cleared: %d items removed", previous_size)
        return previous_size

    def cleanup_expired(self) -> int:
        """Physically remove expired entries and return how many were dropped."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]

        self.analytics.last_cleanup = now
        self.analytics.expirations += len(expired)
        return len(expired)

    def recency_order(self) -> List[str]:
        """Keys from least to most recently used."""
        return list(self._entries.keys())

    def _evict_lru(self) -> None:
        oldest_key, _ = self._entries.popitem(last=False)
        logger.debug("Cache evicted LRU key: %s", oldest_key)

    def _record(self, type: CacheType, hit: bool) -> None:
        a = self.analytics
        if hit:
            a.hits += 1
            if type is CacheType.AI:
                a.ai_hits += 1
            elif type is CacheType.NEWS_API:
                a.news_api_hits += 1
        else:
            a.misses += 1
            if type is CacheType.AI:
                a.ai_misses += 1
            elif type is CacheType.NEWS_API:
                a.news_api_misses += 1

    # ------------------------------------------------------------------
    # Typed accessors
    # ------------------------------------------------------------------

    def get_news_page(self, key: str) -> Optional[JsonDict]:
        value = self.get(key, CacheType.NEWS_API)
        return value if isinstance(value, dict) else None

    def set_news_page(self, key: str, payload: JsonDict, ttl: float) -> None:
        self.set(key, payload, ttl, CacheType.NEWS_API)

    def get_enrichment(self, key: str) -> Optional[EnrichmentResult]:
        value = self.get(key, CacheType.AI)
        return value if isinstance(value, EnrichmentResult) else None

    def set_enrichment(self, key: str, result: EnrichmentResult, ttl: float) -> None:
        self.set(key, result, ttl, CacheType.AI)

    def get_topic_analysis(self, key: str) -> Optional[JsonDict]:
        value = self.get(key, CacheType.GENERIC)
        return value if isinstance(value, dict) else None

    def set_topic_analysis(self, key: str, payload: JsonDict, ttl: float) -> None:
        self.set(key, payload, ttl, CacheType.GENERIC)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        a = self.analytics
        return {
            "size": len(self._entries),
            "maxItems": self.max_items,
            "hitRate": format_rate(a.hits, a.total_queries),
            "hits": a.hits,
            "misses": a.misses,
            "expirations": a.expirations,
            "totalQueries": a.total_queries,
            "aiHitRate": format_rate(a.ai_hits, a.ai_hits + a.ai_misses),
            "newsApiHitRate": format_rate(a.news_api_hits, a.news_api_hits + a.news_api_misses),
            "lastCleanup": datetime.fromtimestamp(a.last_cleanup, tz=timezone.utc).isoformat(),
        }

    # ------------------------------------------------------------------
    # Background sweep
    # ------------------------------------------------------------------

    def start_cleanup(self, interval_seconds: float) -> asyncio.Task:
        """Schedule the periodic expiry sweep on the running event loop."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._cleanup_loop(interval_seconds))
        return self._cleanup_task

    async def stop_cleanup(self) -> None:
        task, self._cleanup_task = self._cleanup_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _cleanup_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            removed = self.cleanup_expired()
            logger.info("Cache cleanup: removed %d expired items", removed)


__all__ = ["CacheStore", "format_rate"]

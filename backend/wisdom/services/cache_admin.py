"""
Cache statistics, health hints and guarded clearing for operators.
"""
from __future__ import annotations

import hmac
import logging
from typing import Any, Dict, Optional

from wisdom.core.cache import CacheStore
from wisdom.schemas import CacheClearResponse, CacheHealth, CacheStatsResponse
from wisdom.utils import now_utc

logger = logging.getLogger(__name__)

GOOD_HIT_RATE = 70.0
MODERATE_HIT_RATE = 40.0
LOW_AI_HIT_RATE = 60.0
SIZE_WARNING_RATIO = 0.8


def parse_rate(rate: str) -> float:
    """Turn a "66.67%" string back into a number."""
    try:
        return float(str(rate).rstrip("%"))
    except ValueError:
        return 0.0


def evaluate_cache_health(stats: Dict[str, Any]) -> CacheHealth:
    """
    Grade the cache and suggest tuning actions.

    Args:
        stats: Output of CacheStore.get_stats()

    Returns:
        CacheHealth with status good/moderate/poor and recommendations
    """
    hit_rate = parse_rate(stats.get("hitRate", "0"))
    ai_hit_rate = parse_rate(stats.get("aiHitRate", "0"))

    if hit_rate > GOOD_HIT_RATE:
        status = "good"
    elif hit_rate > MODERATE_HIT_RATE:
        status = "moderate"
    else:
        status = "poor"

    recommendations = []
    if hit_rate < MODERATE_HIT_RATE:
        recommendations.append("Consider increasing cache TTL values")
    if stats.get("size", 0) > SIZE_WARNING_RATIO * stats.get("maxItems", 0):
        recommendations.append("Cache size approaching limit, consider cleanup")
    if ai_hit_rate < LOW_AI_HIT_RATE:
        recommendations.append("AI cache hit rate is low, consider optimizing AI caching")

    return CacheHealth(status=status, recommendations=recommendations)


def is_admin(provided_key: Optional[str], admin_key: str) -> bool:
    """Constant-time key check; an unset admin key never matches."""
    if not admin_key or not provided_key:
        return False
    return hmac.compare_digest(provided_key.encode("utf-8"), admin_key.encode("utf-8"))


class CacheAdminService:
    def __init__(self, cache: CacheStore, admin_key: str):
        self._cache = cache
        self._admin_key = admin_key

    def report(self) -> CacheStatsResponse:
        stats = self._cache.get_stats()
        return CacheStatsResponse(
            stats=stats,
            cache_health=evaluate_cache_health(stats),
            timestamp=now_utc().isoformat(),
        )

    def authorized(self, provided_key: Optional[str]) -> bool:
        return is_admin(provided_key, self._admin_key)

    def clear(self) -> CacheClearResponse:
        previous = self._cache.get_stats()
        removed = self._cache.clear()
        logger.warning("Cache cleared by admin request (%d items)", removed)
        return CacheClearResponse(message="Cache cleared successfully", previous_stats=previous)

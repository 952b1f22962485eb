"""
Cache key derivation and freshness-based TTL policy.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable, Optional

from wisdom.config import (
    NEWS_TTL_EXTENDED,
    NEWS_TTL_LONG,
    NEWS_TTL_MEDIUM,
    NEWS_TTL_SHORT,
    SNIPPET_TO_ARTICLE_RATIO,
    WORDS_PER_MINUTE,
)
from wisdom.models import Freshness
from wisdom.utils import normalize_text, now_utc

# Upper bounds (exclusive) of the freshness bands, in hours
VERY_RECENT_HOURS = 6
RECENT_HOURS = 24
NEW_HOURS = 72


def news_cache_key(query: str, page: int, page_size: int) -> str:
    """
    Build the cache key for one page of news search results.

    Args:
        query: Provider search query (whitespace and case are normalized)
        page: 1-based page number
        page_size: Articles per page

    Returns:
        Deterministic key string
    """
    return f"news_api:{normalize_text(query).lower()}:page{page}:size{page_size}"


def article_cache_key(url: Optional[str], title: Optional[str]) -> str:
    """Key for an article's AI enrichment: its URL, or its title when URL is missing."""
    return f"article:{url or title or ''}"


def topic_analysis_cache_key(topic: Optional[str], article_ids: Iterable[str]) -> str:
    ids = "-".join(sorted(str(i) for i in article_ids))
    return f"topic_analysis:{topic or 'general'}:{ids}"


def hours_since(published_at: datetime, now: Optional[datetime] = None) -> int:
    """Whole hours elapsed since publication, floored and never negative."""
    now = now or now_utc()
    elapsed = (now - published_at).total_seconds() / 3600.0
    return max(0, math.floor(elapsed))


def get_cache_ttl(hours_since_publication: float) -> int:
    """
    Pick the TTL band for content of the given age.

    Boundaries belong to the next band: exactly 6h is medium, 24h long, 72h extended.

    Returns:
        TTL in seconds
    """
    if hours_since_publication < VERY_RECENT_HOURS:
        return NEWS_TTL_SHORT
    if hours_since_publication < RECENT_HOURS:
        return NEWS_TTL_MEDIUM
    if hours_since_publication < NEW_HOURS:
        return NEWS_TTL_LONG
    return NEWS_TTL_EXTENDED


def page_cache_ttl(hours: Iterable[float]) -> int:
    """TTL for a page of articles: the freshest article governs, empty pages count as fresh."""
    return get_cache_ttl(min(hours, default=0))


def freshness_for(hours_since_publication: float) -> Freshness:
    if hours_since_publication < VERY_RECENT_HOURS:
        return Freshness.VERY_RECENT
    if hours_since_publication < RECENT_HOURS:
        return Freshness.RECENT
    if hours_since_publication < NEW_HOURS:
        return Freshness.NEW
    return Freshness.OLDER


def estimate_read_time(snippet: str) -> int:
    """
    Estimate full-article reading time from a truncated snippet.

    Providers return only the first part of an article, so the snippet's
    word count is scaled up before dividing by reading speed.

    Returns:
        Minutes, at least 1
    """
    words = len(snippet.split()) if snippet else 0
    estimated_words = words * SNIPPET_TO_ARTICLE_RATIO
    return max(1, math.ceil(estimated_words / WORDS_PER_MINUTE))

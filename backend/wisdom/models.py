"""
File: wisdom/models.py
Internal data structures shared by the cache, enrichment and streaming layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


JsonDict = Dict[str, Any]


class CacheType(str, Enum):
    """Discriminator for what a cache entry holds."""

    GENERIC = "generic"
    AI = "ai"
    NEWS_API = "newsApi"


class Freshness(str, Enum):
    VERY_RECENT = "very-recent"  # < 6h
    RECENT = "recent"            # < 24h
    NEW = "new"                  # < 72h
    OLDER = "older"


class StreamPhase(str, Enum):
    THINKING = "THINKING"
    CONTENT_START = "CONTENT_START"
    REAL_CONTENT = "REAL_CONTENT"
    CONTENT_COMPLETE = "CONTENT_COMPLETE"


@dataclass
class CacheEntry:
    """A single cached value. Timestamps are epoch seconds."""

    key: str
    data: Any
    created_at: float
    expires_at: float
    last_accessed: float
    type: CacheType = CacheType.GENERIC

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass
class CacheAnalytics:
    """Process-wide cache counters; only a restart resets them."""

    hits: int = 0
    misses: int = 0
    expirations: int = 0
    ai_hits: int = 0
    ai_misses: int = 0
    news_api_hits: int = 0
    news_api_misses: int = 0
    total_queries: int = 0
    last_cleanup: float = 0.0


@dataclass
class Sentiment:
    score: float = 0.5
    label: str = "Neutral"


@dataclass
class EnrichmentResult:
    """AI-derived signals for one article, cached by article URL."""

    entities: List[str] = field(default_factory=list)
    sentiment: Sentiment = field(default_factory=Sentiment)
    hours_since_publication: Optional[int] = None
    created_at: Optional[float] = None


@dataclass
class StreamSession:
    """Per-connection state of a detail summary stream. Never persisted."""

    url: str
    title: str
    summary: str
    phase: StreamPhase = StreamPhase.THINKING
    accumulated_text: str = ""
    chunks_sent: int = 0
    used_fallback: bool = False


__all__ = [
    "CacheAnalytics",
    "CacheEntry",
    "CacheType",
    "EnrichmentResult",
    "Freshness",
    "JsonDict",
    "Sentiment",
    "StreamPhase",
    "StreamSession",
]

"""
News listing: cache lookup, upstream fetch, per-article enrichment and
adaptive-TTL caching of the assembled page.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from wisdom.config import resolve_search_query
from wisdom.core.cache import CacheStore
from wisdom.core.classifier import classify
from wisdom.core.policy import (
    estimate_read_time,
    freshness_for,
    hours_since,
    news_cache_key,
    page_cache_ttl,
)
from wisdom.models import EnrichmentResult, JsonDict
from wisdom.schemas import ArticleRecord, NewsResponse, Pagination
from wisdom.services.enrichment import ArticleInput, EnrichmentService
from wisdom.sources.common import clean_text, make_article_id, parse_utc_datetime
from wisdom.sources.newsapi import NewsFetcher
from wisdom.utils import extract_domain_from_url, now_utc

logger = logging.getLogger(__name__)


@dataclass
class RawArticle:
    """Provider article with the fields derived before enrichment."""

    index: int
    raw: JsonDict
    published_at: datetime
    hours_since_publication: int

    @property
    def title(self) -> str:
        return clean_text(self.raw.get("title")) or "No Title Provided"

    @property
    def snippet(self) -> str:
        return clean_text(self.raw.get("description") or self.raw.get("content"))

    @property
    def url(self) -> Optional[str]:
        return self.raw.get("url") or None

    def to_input(self) -> ArticleInput:
        return ArticleInput(
            url=self.url,
            title=self.raw.get("title") or "",
            snippet=self.snippet,
            hours_since_publication=self.hours_since_publication,
        )


def prepare_articles(articles: List[JsonDict], now: Optional[datetime] = None) -> List[RawArticle]:
    now = now or now_utc()
    prepared = []
    for index, raw in enumerate(articles):
        published_at = parse_utc_datetime(raw.get("publishedAt"))
        prepared.append(
            RawArticle(
                index=index,
                raw=raw,
                published_at=published_at,
                hours_since_publication=hours_since(published_at, now),
            )
        )
    return prepared


def resolve_source_name(raw: JsonDict) -> str:
    """Provider source name, else the URL's domain, else "Unknown Source"."""
    source = raw.get("source") or {}
    name = clean_text(source.get("name")) if isinstance(source, dict) else ""
    return name or extract_domain_from_url(raw.get("url")) or "Unknown Source"


def build_article_record(article: RawArticle, enrichment: EnrichmentResult) -> ArticleRecord:
    """
    Assemble the listing record for one article.

    Args:
        article: Provider article with derived timing fields
        enrichment: Entities and sentiment for the article

    Returns:
        ArticleRecord ready for serialization
    """
    raw = article.raw
    source = raw.get("source") if isinstance(raw.get("source"), dict) else {}
    snippet = article.snippet

    return ArticleRecord(
        id=make_article_id(source.get("id"), article.published_at, article.index),
        title=article.title,
        summary=snippet or "No summary available.",
        category=classify(raw.get("title"), snippet),
        publication_date=raw.get("publishedAt") or article.published_at.isoformat(),
        source_name=resolve_source_name(raw),
        url=article.url,
        image_url=raw.get("urlToImage"),
        read_time=estimate_read_time(snippet),
        freshness=freshness_for(article.hours_since_publication).value,
        hours_since_publication=article.hours_since_publication,
        entities=list(enrichment.entities),
        sentiment_score=enrichment.sentiment.score,
        sentiment_label=enrichment.sentiment.label,
        ai_summary=None,
        keywords=[],
    )


def build_pagination(page: int, page_size: int, total_results: Optional[int], count: int) -> Pagination:
    total = total_results or count
    return Pagination(
        current_page=page,
        page_size=page_size,
        total_results=total,
        total_pages=math.ceil(total / page_size) if total_results else 1,
    )


class NewsService:
    """Serves enriched, cached pages of AI news."""

    def __init__(self, cache: CacheStore, fetcher: NewsFetcher, enrichment: EnrichmentService):
        self._cache = cache
        self._fetcher = fetcher
        self._enrichment = enrichment

    async def get_news(self, topic: str, page: int, page_size: int) -> JsonDict:
        """
        Return one page of enriched articles for a topic.

        Args:
            topic: UI topic; unknown topics use the general query
            page: 1-based page number
            page_size: Articles per page

        Returns:
            Response payload with camelCase keys

        Raises:
            ConfigurationError: News provider key missing
            NewsProviderError: News provider failed
        """
        query = resolve_search_query(topic)
        cache_key = news_cache_key(query, page, page_size)

        cached = self._cache.get_news_page(cache_key)
        if cached is not None:
            logger.info('NewsAPI Cache HIT for query: "%s" page %d', query, page)
            return {**cached, "topic": topic, "cacheStats": self._cache.get_stats()}

        logger.info('NewsAPI Cache MISS for query: "%s" page %d', query, page)
        result = await self._fetcher.search(query, page, page_size)

        articles = prepare_articles(result.articles)
        enrichments = await self._enrichment.enrich_many([a.to_input() for a in articles])
        records = [build_article_record(a, e) for a, e in zip(articles, enrichments)]

        response = NewsResponse(
            articles=records,
            pagination=build_pagination(page, page_size, result.total_results, len(records)),
            topic=topic,
            cache_stats=self._cache.get_stats(),
        )
        payload = response.model_dump(by_alias=True, mode="json")

        if records:
            ttl = page_cache_ttl(r.hours_since_publication for r in records)
            self._cache.set_news_page(cache_key, payload, ttl)
            logger.info("Cached %d articles for %ds", len(records), ttl)

        return payload

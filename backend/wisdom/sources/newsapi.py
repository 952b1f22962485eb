"""
NewsAPI.org search fetcher.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

import httpx

from wisdom.errors import ConfigurationError, NewsProviderError
from wisdom.models import JsonDict

logger = logging.getLogger(__name__)


@dataclass
class NewsSearchResult:
    """One page of raw provider articles plus the provider's total count."""

    articles: List[JsonDict] = field(default_factory=list)
    total_results: Optional[int] = None


class NewsFetcher(Protocol):
    async def search(self, query: str, page: int, page_size: int) -> NewsSearchResult: ...


class NewsApiFetcher:
    """Fetches news articles from the NewsAPI ``everything`` endpoint."""

    DEFAULT_URL = "https://newsapi.org/v2/everything"

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_URL,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    async def search(self, query: str, page: int, page_size: int) -> NewsSearchResult:
        """
        Search recent English-language articles.

        Args:
            query: Keyword query, e.g. "artificial intelligence"
            page: 1-based page number
            page_size: Articles per page

        Returns:
            NewsSearchResult in provider order (newest first)

        Raises:
            ConfigurationError: If no API key is configured
            NewsProviderError: On transport errors or non-2xx responses
        """
        if not self.api_key:
            raise ConfigurationError("NEWS_API_KEY is not set")

        params = {
            "q": query,
            "language": "en",
            "sortBy": "publishedAt",
            "page": page,
            "pageSize": page_size,
            "apiKey": self.api_key,
        }

        logger.info('Fetching from NewsAPI: q="%s" page=%d size=%d', query, page, page_size)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.get(self.base_url, params=params)
        except httpx.HTTPError as e:
            raise NewsProviderError(f"NewsAPI request failed: {type(e).__name__}: {e}") from e

        if r.status_code >= 400:
            try:
                message = r.json().get("message") or "Unknown error"
            except ValueError:
                message = r.text[:200] or "Unknown error"
            raise NewsProviderError(
                f"NewsAPI request failed ({r.status_code}): {message}",
                upstream_status=r.status_code,
            )

        data = r.json()
        articles = data.get("articles") or []
        logger.info("Retrieved %d articles from NewsAPI", len(articles))
        return NewsSearchResult(articles=articles, total_results=data.get("totalResults"))

"""
AI enrichment pipeline: entity extraction and sentiment per article.

Results are cached by article URL for a week, independently of the news
page that contained the article, since the analysis of a published text
does not change.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from wisdom.config import AI_ENRICHMENT_TTL, MIN_ENRICHMENT_TEXT_LENGTH
from wisdom.core.cache import CacheStore
from wisdom.core.policy import article_cache_key
from wisdom.models import EnrichmentResult, Sentiment
from wisdom.services.llm import TextGenerator
from wisdom.utils import clamp_to_unit_range, extract_json_array, extract_json_object

logger = logging.getLogger(__name__)

SENTIMENT_LABELS = ("Positive", "Negative", "Neutral")

ENTITY_PROMPT = """
Extract the main entities (people, organizations, technologies, key concepts) from the following text.
Return ONLY a JSON array of strings with no explanation, commentary, or other text.
Example response format: ["OpenAI", "Microsoft", "GPT-4", "Artificial Intelligence"]

Input Text:
"{text}"
"""

SENTIMENT_PROMPT = """
Analyze the sentiment of the following text. Provide:
1. A sentiment score from 0.0 (extremely negative) to 1.0 (extremely positive), where 0.5 is neutral
2. A sentiment label: "Positive", "Negative", or "Neutral"

Return ONLY a JSON object with these properties and no other text.
Example: {{"score": 0.8, "label": "Positive"}}

Input Text:
"{text}"
"""


@dataclass
class ArticleInput:
    """What the pipeline needs to know about one article."""

    url: Optional[str]
    title: str
    snippet: str
    hours_since_publication: Optional[int] = None

    @property
    def cache_key(self) -> str:
        return article_cache_key(self.url, self.title)

    @property
    def prompt_text(self) -> str:
        return f"Title: {self.title}\nSnippet: {self.snippet}"


def parse_entities(raw: Optional[str]) -> List[str]:
    """
    Parse the entity list out of a model answer.

    Args:
        raw: Model output, possibly with prose around the JSON array

    Returns:
        Entity strings in answer order; [] when nothing usable was found
    """
    data = extract_json_array(raw)
    if data is None:
        return []
    return [str(item).strip() for item in data if isinstance(item, (str, int, float)) and str(item).strip()]


def parse_sentiment(raw: Optional[str]) -> Sentiment:
    """
    Parse a {"score", "label"} object out of a model answer.

    The label is taken as given by the model (normalized to title case);
    the score is clamped to [0, 1]. Missing or malformed fields fall back
    to the neutral defaults individually.
    """
    data = extract_json_object(raw)
    if data is None:
        return Sentiment()

    score = data.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        score = 0.5

    label = data.get("label")
    label = label.strip().capitalize() if isinstance(label, str) else ""
    if label not in SENTIMENT_LABELS:
        label = "Neutral"

    return Sentiment(score=clamp_to_unit_range(float(score)), label=label)


class EnrichmentService:
    """Cache-first entity/sentiment enrichment backed by a text generator."""

    def __init__(
        self,
        cache: CacheStore,
        llm: Optional[TextGenerator],
        ttl: float = AI_ENRICHMENT_TTL,
        min_text_length: int = MIN_ENRICHMENT_TEXT_LENGTH,
    ):
        self._cache = cache
        self._llm = llm
        self._ttl = ttl
        self._min_text_length = min_text_length
        self._degraded_logged = False

    @property
    def available(self) -> bool:
        return self._llm is not None

    async def extract_entities(self, text: str) -> List[str]:
        entities, _ = await self._extract_entities(text)
        return entities

    async def analyze_sentiment(self, text: str) -> Sentiment:
        sentiment, _ = await self._analyze_sentiment(text)
        return sentiment

    async def _extract_entities(self, text: str) -> Tuple[List[str], bool]:
        if self._llm is None:
            return [], False
        try:
            raw = await self._llm.complete(ENTITY_PROMPT.format(text=text))
        except Exception as e:
            logger.warning("Entity extraction API error: %s: %s", type(e).__name__, e)
            return [], False
        return parse_entities(raw), True

    async def _analyze_sentiment(self, text: str) -> Tuple[Sentiment, bool]:
        if self._llm is None:
            return Sentiment(), False
        try:
            raw = await self._llm.complete(SENTIMENT_PROMPT.format(text=text))
        except Exception as e:
            logger.warning("Sentiment analysis API error: %s: %s", type(e).__name__, e)
            return Sentiment(), False
        return parse_sentiment(raw), True

    async def enrich(self, article: ArticleInput) -> EnrichmentResult:
        """
        Enrich one article, reusing a cached result when present.

        Args:
            article: Article identity and text

        Returns:
            EnrichmentResult; neutral defaults when the provider is missing,
            the text is too short, or the calls fail
        """
        key = article.cache_key
        cached = self._cache.get_enrichment(key)
        if cached is not None:
            logger.debug('AI Cache HIT for "%s"', article.title)
            return cached

        if self._llm is None:
            if not self._degraded_logged:
                logger.warning("No AI provider configured, skipping AI enrichment.")
                self._degraded_logged = True
            return EnrichmentResult(hours_since_publication=article.hours_since_publication)

        logger.debug('AI Cache MISS for "%s". Calling AI...', article.title)
        text = article.prompt_text
        result = EnrichmentResult(
            hours_since_publication=article.hours_since_publication,
            created_at=self._cache.now(),
        )

        provider_ok = True
        if len(text) > self._min_text_length:
            (entities, entities_ok), (sentiment, sentiment_ok) = await asyncio.gather(
                self._extract_entities(text),
                self._analyze_sentiment(text),
            )
            result.entities = entities
            result.sentiment = sentiment
            provider_ok = entities_ok and sentiment_ok

        # Transient provider failures are not pinned in the cache for a week
        if provider_ok:
            self._cache.set_enrichment(key, result, self._ttl)
        return result

    async def enrich_many(self, articles: Sequence[ArticleInput]) -> List[EnrichmentResult]:
        """
        Enrich all articles concurrently.

        Output order matches input order. An unexpected failure for one
        article yields defaults for that article only.
        """
        outcomes = await asyncio.gather(
            *(self.enrich(article) for article in articles),
            return_exceptions=True,
        )

        results: List[EnrichmentResult] = []
        for article, outcome in zip(articles, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                logger.error('Enrichment failed for "%s": %s', article.title, outcome)
                outcome = EnrichmentResult(hours_since_publication=article.hours_since_publication)
            results.append(outcome)
        return results

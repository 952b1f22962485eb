"""
Cross-article topic analysis.

Synthesizes several articles on one topic into a single summary with
trends, contradictions, shared entities and an overall sentiment.
"""
from __future__ import annotations

import json
import logging
from typing import List, Optional

from wisdom.config import DEFAULT_TOPIC, TOPIC_ANALYSIS_TTL
from wisdom.core.cache import CacheStore
from wisdom.core.policy import topic_analysis_cache_key
from wisdom.errors import InvalidRequestError, ProviderUnavailableError, WisdomError
from wisdom.models import JsonDict
from wisdom.schemas import TopicAnalysisMeta, TopicAnalysisResponse, TopicArticle
from wisdom.services.llm import TextGenerator
from wisdom.utils import extract_json_object, now_utc

logger = logging.getLogger(__name__)

MIN_ARTICLES = 2

# How the prompt names the subject when the caller gives no topic
UNSPECIFIED_TOPIC_LABEL = "AI technology"

ANALYSIS_PROMPT = """
Analyze these {count} articles about "{topic}" and provide:

1. A synthesized summary (2-3 paragraphs) that combines key information from all articles
2. Main trends or patterns observed across articles
3. Any notable disagreements or contradictions between sources
4. Key entities/organizations mentioned across multiple articles
5. Overall sentiment analysis of the topic based on all articles

Return your analysis as a JSON object with these fields:
{{
  "synthesizedSummary": "...",
  "trends": ["trend1", "trend2"],
  "contradictions": ["contradiction1", "contradiction2"],
  "keyEntities": ["entity1", "entity2"],
  "overallSentiment": "positive/negative/neutral",
  "confidenceScore": 0.85
}}

Here are the articles:
{articles}
"""


class AnalysisParseError(WisdomError):
    status_code = 500
    error = "AI response did not contain valid JSON"


def unique_sources(articles: List[TopicArticle]) -> List[str]:
    """Source names in first-seen order, without duplicates or blanks."""
    seen = []
    for article in articles:
        name = article.source_name
        if name and name not in seen:
            seen.append(name)
    return seen


class TopicAnalysisService:
    def __init__(self, cache: CacheStore, llm: Optional[TextGenerator], ttl: float = TOPIC_ANALYSIS_TTL):
        self._cache = cache
        self._llm = llm
        self._ttl = ttl

    async def analyze(self, articles: List[TopicArticle], topic: Optional[str]) -> JsonDict:
        """
        Analyze a set of articles as one topic.

        Raises:
            InvalidRequestError: Fewer than two articles
            ProviderUnavailableError: No AI provider configured
            AnalysisParseError: The model answer held no JSON object
        """
        if len(articles) < MIN_ARTICLES:
            raise InvalidRequestError(
                "At least 2 articles are required for cross-article analysis",
                error="At least 2 articles are required for cross-article analysis",
            )
        if self._llm is None:
            raise ProviderUnavailableError("AI model not available")

        prompt_topic = topic or UNSPECIFIED_TOPIC_LABEL
        topic = topic or DEFAULT_TOPIC
        cache_key = topic_analysis_cache_key(topic, (a.id for a in articles))
        cached = self._cache.get_topic_analysis(cache_key)
        if cached is not None:
            logger.info("Cache HIT for topic analysis: %s", topic)
            return cached

        logger.info("Generating cross-article analysis for topic: %s", topic)
        article_data = [
            {
                "title": a.title,
                "summary": a.summary or a.description,
                "date": a.publication_date,
                "source": a.source_name,
                "entities": a.entities,
                "sentiment": a.sentiment_label or "neutral",
            }
            for a in articles
        ]
        prompt = ANALYSIS_PROMPT.format(
            count=len(articles),
            topic=prompt_topic,
            articles=json.dumps(article_data, indent=2),
        )

        raw = await self._llm.complete(prompt)
        analysis = extract_json_object(raw)
        if analysis is None:
            raise AnalysisParseError("Failed to parse AI analysis")

        response = TopicAnalysisResponse(
            analysis=analysis,
            meta=TopicAnalysisMeta(
                article_count=len(articles),
                topic=topic,
                generated_at=now_utc().isoformat(),
                sources=unique_sources(articles),
            ),
        )
        payload = response.model_dump(by_alias=True)
        self._cache.set_topic_analysis(cache_key, payload, self._ttl)
        return payload

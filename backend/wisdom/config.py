"""
Application configuration with environment variable support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Dict, List

from pydantic_settings import BaseSettings, SettingsConfigDict


MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR

# News page TTL bands (seconds), chosen by the freshest article on the page
NEWS_TTL_SHORT: int = 10 * MINUTE      # < 6 hours old
NEWS_TTL_MEDIUM: int = 1 * HOUR        # < 24 hours old
NEWS_TTL_LONG: int = 6 * HOUR          # < 72 hours old
NEWS_TTL_EXTENDED: int = 24 * HOUR     # older

# Entity/sentiment results never change for a published text
AI_ENRICHMENT_TTL: int = 7 * DAY
TOPIC_ANALYSIS_TTL: int = 1 * DAY

# Enrichment input shorter than this is not worth a provider call
MIN_ENRICHMENT_TEXT_LENGTH: int = 30

# Read-time estimation
WORDS_PER_MINUTE: int = 200
SNIPPET_TO_ARTICLE_RATIO: int = 3

# Search queries sent to the news provider per UI topic
TOPIC_QUERIES: Dict[str, str] = {
    "general": "artificial intelligence",
    "llm": "large language models OR chatgpt OR claude OR gemini",
    "robotics": "AI robotics OR autonomous robots",
    "ml": "machine learning OR deep learning",
    "business": "AI business applications OR AI startups",
    "ethics": "AI ethics OR responsible AI",
}
DEFAULT_TOPIC = "general"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Upstream providers
    NEWS_API_KEY: str = ""
    NEWS_API_URL: str = "https://newsapi.org/v2/everything"
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    HTTP_TIMEOUT_SECONDS: float = 15.0

    # Administration
    ADMIN_API_KEY: str = ""

    # Cache
    CACHE_MAX_ITEMS: int = 500
    CACHE_CLEANUP_INTERVAL_SECONDS: float = float(HOUR)

    # News listing
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Streaming summary pacing
    THINKING_DELAY_SECONDS: float = 0.15
    CLEAR_DELAY_SECONDS: float = 0.1

    # CORS
    CORS_ALLOW_ORIGINS: List[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def resolve_search_query(topic: str | None) -> str:
    """Map a UI topic to the provider search query, defaulting to 'general'."""
    return TOPIC_QUERIES.get((topic or DEFAULT_TOPIC).strip().lower(), TOPIC_QUERIES[DEFAULT_TOPIC])

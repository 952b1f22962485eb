from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import pytest

from wisdom.config import Settings
from wisdom.core.cache import CacheStore
from wisdom.main import create_app
from wisdom.sources.newsapi import NewsSearchResult


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def default_responder(prompt: str) -> str:
    if "Extract the main entities" in prompt:
        return 'Sure, here they are:\n["OpenAI", "GPT-4"]'
    if "Analyze the sentiment" in prompt:
        return '```json\n{"score": 0.8, "label": "Positive"}\n```'
    return (
        '{"synthesizedSummary": "Labs keep shipping.", "trends": ["agents"], '
        '"contradictions": [], "keyEntities": ["OpenAI"], '
        '"overallSentiment": "positive", "confidenceScore": 0.9}'
    )


class FakeLLM:
    """Stands in for LLMProvider; records every prompt it receives."""

    def __init__(
        self,
        responder: Callable[[str], str] = default_responder,
        chunks: Optional[List[str]] = None,
        stream_error: Optional[Exception] = None,
        error: Optional[Exception] = None,
    ):
        self.responder = responder
        self.chunks = chunks if chunks is not None else ["Hello", " world", "!"]
        self.stream_error = stream_error
        self.error = error
        self.prompts: List[str] = []
        self.stream_prompts: List[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.responder(prompt)

    async def stream(self, prompt: str):
        self.stream_prompts.append(prompt)
        for chunk in self.chunks:
            yield chunk
        if self.stream_error is not None:
            raise self.stream_error


class FakeFetcher:
    def __init__(self, articles=None, total_results=None, error: Optional[Exception] = None):
        self.articles = articles if articles is not None else []
        self.total_results = total_results
        self.error = error
        self.calls = []

    async def search(self, query: str, page: int, page_size: int) -> NewsSearchResult:
        self.calls.append((query, page, page_size))
        if self.error is not None:
            raise self.error
        return NewsSearchResult(articles=list(self.articles), total_results=self.total_results)


def make_article(index: int, hours_ago: float = 1, **overrides) -> dict:
    published = datetime.now(timezone.utc) - timedelta(hours=hours_ago)
    article = {
        "source": {"id": "the-verge", "name": "The Verge"},
        "title": f"OpenAI researchers publish paper number {index}",
        "description": "A new study on machine learning benchmarks from the lab was released today.",
        "content": None,
        "publishedAt": published.strftime("%Y-%m-%dT%H:%M:%SZ"),
        "url": f"https://www.theverge.com/ai/{index}",
        "urlToImage": f"https://cdn.example.com/{index}.jpg",
    }
    article.update(overrides)
    return article


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def cache(clock):
    return CacheStore(max_items=50, clock=clock)


@pytest.fixture()
def settings():
    return Settings(
        _env_file=None,
        NEWS_API_KEY="test-news-key",
        OPENAI_API_KEY="",
        ADMIN_API_KEY="s3cret",
        THINKING_DELAY_SECONDS=0,
        CLEAR_DELAY_SECONDS=0,
    )


@pytest.fixture()
def fake_llm():
    return FakeLLM()


@pytest.fixture()
def fetcher():
    return FakeFetcher(articles=[make_article(i) for i in range(3)], total_results=3)


@pytest.fixture()
def build_app(settings, cache):
    def _build(fetcher=None, llm=None, **overrides):
        app_settings = settings.model_copy(update=overrides) if overrides else settings
        if fetcher is None:
            fetcher = FakeFetcher()
        return create_app(settings=app_settings, fetcher=fetcher, llm=llm, cache=cache)

    return _build

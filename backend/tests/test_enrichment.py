import asyncio

import pytest

from wisdom.config import AI_ENRICHMENT_TTL
from wisdom.models import Sentiment
from wisdom.services.enrichment import ArticleInput, EnrichmentService, parse_entities, parse_sentiment

from conftest import FakeLLM


def article(n: int = 1, url: str = None, title: str = None) -> ArticleInput:
    return ArticleInput(
        url=url if url is not None else f"https://example.com/{n}",
        title=title or f"OpenAI ships model {n}",
        snippet="The new model improves reasoning on several benchmarks.",
        hours_since_publication=2,
    )


def test_parse_entities_tolerates_prose():
    assert parse_entities('Here you go: ["OpenAI", "GPT-4"] hope it helps') == ["OpenAI", "GPT-4"]
    assert parse_entities("no json at all") == []
    assert parse_entities("[not valid json]") == []
    assert parse_entities(None) == []
    assert parse_entities('["A", {"nested": 1}, "", "B"]') == ["A", "B"]


def test_parse_sentiment_defaults_and_clamping():
    assert parse_sentiment('Result: {"score": 0.2, "label": "Negative"}') == Sentiment(0.2, "Negative")
    assert parse_sentiment('{"score": 1.7, "label": "positive"}') == Sentiment(1.0, "Positive")
    assert parse_sentiment('{"score": "high", "label": "Ecstatic"}') == Sentiment(0.5, "Neutral")
    assert parse_sentiment("garbage") == Sentiment(0.5, "Neutral")


@pytest.mark.asyncio
async def test_enrich_calls_provider_and_caches(cache, clock):
    llm = FakeLLM()
    service = EnrichmentService(cache, llm)

    result = await service.enrich(article())

    assert result.entities == ["OpenAI", "GPT-4"]
    assert result.sentiment == Sentiment(0.8, "Positive")
    assert len(llm.prompts) == 2
    entry_key = "article:https://example.com/1"
    assert cache.get_enrichment(entry_key) is result

    # cached for a week, independent of news TTLs
    clock.advance(AI_ENRICHMENT_TTL + 1)
    assert cache.get_enrichment(entry_key) is None


@pytest.mark.asyncio
async def test_enrich_is_idempotent_with_warm_cache(cache):
    llm = FakeLLM()
    service = EnrichmentService(cache, llm)

    first = await service.enrich(article())
    second = await service.enrich(article())

    assert first.entities == second.entities
    assert first.sentiment == second.sentiment
    assert len(llm.prompts) == 2


@pytest.mark.asyncio
async def test_cache_key_falls_back_to_title(cache):
    llm = FakeLLM()
    service = EnrichmentService(cache, llm)

    await service.enrich(article(url="", title="Untethered AI story about research"))

    assert "article:Untethered AI story about research" in cache


@pytest.mark.asyncio
async def test_short_text_skips_provider(cache):
    llm = FakeLLM()
    service = EnrichmentService(cache, llm)

    result = await service.enrich(ArticleInput(url="https://x.com/a", title="Hi", snippet=""))

    assert llm.prompts == []
    assert result.entities == []
    assert result.sentiment == Sentiment()


@pytest.mark.asyncio
async def test_no_provider_returns_defaults_without_caching(cache):
    service = EnrichmentService(cache, None)

    results = await service.enrich_many([article(1), article(2)])

    assert [r.sentiment.label for r in results] == ["Neutral", "Neutral"]
    assert all(r.entities == [] for r in results)
    assert len(cache) == 0
    assert service.available is False


@pytest.mark.asyncio
async def test_provider_errors_degrade_and_are_not_cached(cache):
    llm = FakeLLM(error=RuntimeError("quota exceeded"))
    service = EnrichmentService(cache, llm)

    result = await service.enrich(article())

    assert result.entities == []
    assert result.sentiment == Sentiment(0.5, "Neutral")
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_one_failing_article_does_not_affect_siblings(cache):
    def responder(prompt):
        if "Broken" in prompt:
            raise ConnectionError("provider unreachable")
        return FakeLLM().responder(prompt)

    service = EnrichmentService(cache, FakeLLM(responder=responder))
    inputs = [article(1), article(2, title="Broken story about OpenAI models"), article(3)]

    results = await service.enrich_many(inputs)

    assert [r.sentiment.label for r in results] == ["Positive", "Neutral", "Positive"]
    assert results[1].entities == []


@pytest.mark.asyncio
async def test_enrich_many_preserves_input_order(cache):
    class SlowFirstLLM(FakeLLM):
        async def complete(self, prompt):
            # earlier articles finish later
            for n, delay in (("model 1", 0.03), ("model 2", 0.02), ("model 3", 0.0)):
                if n in prompt:
                    await asyncio.sleep(delay)
            name = prompt.split("OpenAI ships ")[1].split("\n")[0]
            return f'["{name}"]'

    service = EnrichmentService(cache, SlowFirstLLM())

    results = await service.enrich_many([article(1), article(2), article(3)])

    assert [r.entities for r in results] == [["model 1"], ["model 2"], ["model 3"]]

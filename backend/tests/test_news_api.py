import pytest
from fastapi.testclient import TestClient

from wisdom.core.cache import CacheStore
from wisdom.core.classifier import TECH_RESEARCH
from wisdom.errors import NewsProviderError
from wisdom.main import build_services, positive_int_or_default
from wisdom.models import EnrichmentResult
from wisdom.services.news import build_article_record, build_pagination, prepare_articles
from wisdom.sources.newsapi import NewsApiFetcher

from conftest import FakeFetcher, FakeLLM, make_article


def test_empty_injected_cache_is_used(settings):
    store = CacheStore(max_items=7)
    fetcher = FakeFetcher()

    services = build_services(settings, fetcher=fetcher, llm=FakeLLM(), cache=store)

    assert len(store) == 0
    assert services.cache is store
    assert services.news._cache is store
    assert services.news._fetcher is fetcher
    assert services.cache.get_stats()["maxItems"] == 7


def test_health(build_app):
    client = TestClient(build_app())
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_news_page_is_enriched_and_classified(build_app, fetcher):
    llm = FakeLLM()
    client = TestClient(build_app(fetcher=fetcher, llm=llm))

    resp = client.get("/api/news", params={"topic": "general", "page": 1})

    assert resp.status_code == 200
    body = resp.json()
    assert len(body["articles"]) == 3
    first = body["articles"][0]
    assert first["id"].startswith("the-verge-") and first["id"].endswith("-0")
    assert first["sourceName"] == "The Verge"
    assert first["entities"] == ["OpenAI", "GPT-4"]
    assert first["sentimentLabel"] == "Positive"
    assert first["sentimentScore"] == 0.8
    assert first["category"] == TECH_RESEARCH
    assert first["freshness"] == "very-recent"
    assert first["readTime"] == 1
    assert body["pagination"] == {"currentPage": 1, "pageSize": 20, "totalResults": 3, "totalPages": 1}
    assert body["topic"] == "general"
    assert "hitRate" in body["cacheStats"]
    # two enrichment prompts per article
    assert len(llm.prompts) == 6
    assert fetcher.calls == [("artificial intelligence", 1, 20)]


def test_repeated_request_is_served_from_cache(build_app, fetcher, cache):
    llm = FakeLLM()
    client = TestClient(build_app(fetcher=fetcher, llm=llm))

    first = client.get("/api/news", params={"topic": "general"}).json()
    hits_before = cache.analytics.news_api_hits
    second = client.get("/api/news", params={"topic": "general"}).json()

    assert len(fetcher.calls) == 1
    assert len(llm.prompts) == 6
    assert cache.analytics.news_api_hits == hits_before + 1
    assert second["articles"] == first["articles"]
    assert second["cacheStats"]["hits"] == first["cacheStats"]["hits"] + 1


def test_topic_and_page_size_map_to_provider_query(build_app, fetcher):
    client = TestClient(build_app(fetcher=fetcher, llm=FakeLLM()))

    client.get("/api/news", params={"topic": "llm", "page": 2, "pageSize": 500})

    query, page, size = fetcher.calls[0]
    assert query.startswith("large language models")
    assert page == 2
    assert size == 100


def test_provider_error_returns_500_with_cache_stats(build_app):
    fetcher = FakeFetcher(error=NewsProviderError("NewsAPI request failed (429): rate limited", upstream_status=429))
    client = TestClient(build_app(fetcher=fetcher, llm=FakeLLM()))

    resp = client.get("/api/news")

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Failed to fetch or process news data."
    assert "rate limited" in body["details"]
    assert body["cacheStats"]["size"] == 0


def test_missing_news_key_returns_500(build_app):
    client = TestClient(build_app(fetcher=NewsApiFetcher(api_key=""), llm=FakeLLM()))

    resp = client.get("/api/news")

    assert resp.status_code == 500
    assert resp.json()["error"] == "API key not configured."


def test_unexpected_error_returns_500(build_app):
    client = TestClient(build_app(fetcher=FakeFetcher(error=KeyError("articles")), llm=FakeLLM()))

    resp = client.get("/api/news")

    assert resp.status_code == 500
    assert resp.json()["error"] == "Failed to fetch or process news data."


def test_empty_upstream_page_is_not_cached(build_app, cache):
    fetcher = FakeFetcher(articles=[], total_results=0)
    client = TestClient(build_app(fetcher=fetcher, llm=FakeLLM()))

    body = client.get("/api/news").json()
    client.get("/api/news")

    assert body["articles"] == []
    assert body["pagination"]["totalPages"] == 1
    assert len(fetcher.calls) == 2
    assert len(cache) == 0


def test_news_without_ai_provider_uses_neutral_defaults(build_app, fetcher):
    client = TestClient(build_app(fetcher=fetcher, llm=None))

    body = client.get("/api/news").json()

    assert {a["sentimentLabel"] for a in body["articles"]} == {"Neutral"}
    assert all(a["entities"] == [] for a in body["articles"])


def test_lifespan_starts_and_stops_cleanup(build_app, cache):
    with TestClient(build_app()) as client:
        assert client.get("/health").status_code == 200
        assert cache._cleanup_task is not None
    assert cache._cleanup_task is None


def test_build_article_record_falls_back_to_domain():
    raw = make_article(4, source={"id": None, "name": ""}, url="https://blog.example.co.uk/post", description=None)
    [article] = prepare_articles([raw])

    record = build_article_record(article, EnrichmentResult())

    assert record.source_name == "example.co.uk"
    assert record.id.startswith("src-")
    assert record.summary == "No summary available."
    assert record.sentiment_label == "Neutral"


def test_pagination_rounds_up():
    assert build_pagination(1, 20, 41, 20).total_pages == 3
    assert build_pagination(1, 20, None, 7).total_pages == 1


@pytest.mark.parametrize(
    "params",
    [
        {"page": "0"},
        {"page": "abc"},
        {"page": "-2", "pageSize": "zero"},
        {"topic": "", "pageSize": "0"},
        {"topic": "   "},
    ],
)
def test_unusable_query_values_fall_back_to_defaults(build_app, fetcher, params):
    client = TestClient(build_app(fetcher=fetcher, llm=FakeLLM()))

    resp = client.get("/api/news", params=params)

    assert resp.status_code == 200
    assert resp.json()["topic"] == "general"
    assert fetcher.calls == [("artificial intelligence", 1, 20)]


def test_positive_int_or_default():
    assert positive_int_or_default("3", 1) == 3
    assert positive_int_or_default(" 7 ", 1) == 7
    assert positive_int_or_default(None, 20) == 20
    assert positive_int_or_default("0", 1) == 1
    assert positive_int_or_default("2.5", 1) == 1

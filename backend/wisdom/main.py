"""
Main FastAPI application and routing layer.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from wisdom.config import DEFAULT_TOPIC, Settings, get_settings
from wisdom.core.cache import CacheStore
from wisdom.errors import InvalidRequestError, ProviderUnavailableError, WisdomError
from wisdom.models import StreamSession
from wisdom.schemas import (
    CacheClearResponse,
    CacheStatsResponse,
    ErrorResponse,
    NewsResponse,
    TopicAnalysisRequest,
    TopicAnalysisResponse,
)
from wisdom.services.cache_admin import CacheAdminService
from wisdom.services.enrichment import EnrichmentService
from wisdom.services.llm import TextGenerator, build_llm_provider
from wisdom.services.news import NewsService
from wisdom.services.summary_stream import (
    SSE_HEADERS,
    SummaryStreamer,
    missing_stream_params,
    single_event_stream,
    sse_stream,
)
from wisdom.services.topic_analysis import TopicAnalysisService
from wisdom.sources.newsapi import NewsApiFetcher, NewsFetcher
from wisdom.utils import now_utc

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=settings.LOG_FORMAT)
    logging.getLogger("wisdom").setLevel(level)

    # Quiet down noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@dataclass
class Services:
    """Everything request handlers need, built once per process."""

    settings: Settings
    cache: CacheStore
    llm: Optional[TextGenerator]
    news: NewsService
    enrichment: EnrichmentService
    streamer: Optional[SummaryStreamer]
    topic_analysis: TopicAnalysisService
    admin: CacheAdminService


def build_services(
    settings: Settings,
    fetcher: Optional[NewsFetcher] = None,
    llm: Optional[TextGenerator] = None,
    cache: Optional[CacheStore] = None,
) -> Services:
    if cache is None:
        cache = CacheStore(max_items=settings.CACHE_MAX_ITEMS)
    if llm is None:
        llm = build_llm_provider(settings)
    if fetcher is None:
        fetcher = NewsApiFetcher(
            api_key=settings.NEWS_API_KEY,
            base_url=settings.NEWS_API_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )

    enrichment = EnrichmentService(cache, llm)
    streamer = None
    if llm is not None:
        streamer = SummaryStreamer(
            llm,
            thinking_delay=settings.THINKING_DELAY_SECONDS,
            clear_delay=settings.CLEAR_DELAY_SECONDS,
        )

    return Services(
        settings=settings,
        cache=cache,
        llm=llm,
        news=NewsService(cache, fetcher, enrichment),
        enrichment=enrichment,
        streamer=streamer,
        topic_analysis=TopicAnalysisService(cache, llm),
        admin=CacheAdminService(cache, settings.ADMIN_API_KEY),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def positive_int_or_default(value: Optional[str], default: int) -> int:
    """Parse a query value as a positive int, else return ``default``."""
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


def create_app(
    settings: Optional[Settings] = None,
    fetcher: Optional[NewsFetcher] = None,
    llm: Optional[TextGenerator] = None,
    cache: Optional[CacheStore] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Configuration (defaults to environment settings)
        fetcher: News provider client (defaults to NewsAPI)
        llm: Text generator (defaults to OpenAI when a key is configured)
        cache: Cache store (defaults to a new in-memory store)

    Returns:
        Configured FastAPI app; the cache sweep runs for the app's lifetime
    """
    settings = settings or get_settings()
    configure_logging(settings)
    services = build_services(settings, fetcher=fetcher, llm=llm, cache=cache)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        services.cache.start_cleanup(settings.CACHE_CLEANUP_INTERVAL_SECONDS)
        logger.info("Multi-tier cache initialized (max %d items)", services.cache.max_items)
        try:
            yield
        finally:
            await services.cache.stop_cleanup()
            logger.info("Cache cleanup task stopped")

    app = FastAPI(
        title="Synthetic Wisdom API",
        version="0.1.0",
        description="AI news listing with cached enrichment and streamed summaries",
        lifespan=lifespan,
    )
    app.state.services = services

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(WisdomError)
    async def wisdom_error_handler(request: Request, exc: WisdomError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        messages = [
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
            for err in exc.errors()
        ]
        error = InvalidRequestError("; ".join(messages) or "Malformed request")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "ok",
            "as_of": now_utc().isoformat(),
            "service": "synthetic-wisdom-api",
        }

    @app.get("/api/news", response_model=NewsResponse, responses={500: {"model": ErrorResponse, "description": "Upstream failure"}})
    async def get_news(
        request: Request,
        topic: Optional[str] = Query(None, description="UI topic, e.g. llm"),
        page: Optional[str] = Query(None, description="1-based page number"),
        page_size: Optional[str] = Query(None, alias="pageSize", description="Articles per page"),
    ):
        """
        List enriched AI news articles for a topic.

        Missing or unusable values fall back to the defaults instead of
        failing the request.

        Args:
            topic: Topic id mapped to a provider search query
            page: Page number
            page_size: Articles per page (capped at MAX_PAGE_SIZE)

        Returns:
            Articles, pagination metadata and current cache statistics
        """
        services = get_services(request)
        topic = (topic or "").strip() or DEFAULT_TOPIC
        page_number = positive_int_or_default(page, 1)
        size = min(positive_int_or_default(page_size, settings.DEFAULT_PAGE_SIZE), settings.MAX_PAGE_SIZE)

        try:
            payload = await services.news.get_news(topic, page_number, size)
        except WisdomError as e:
            logger.error("News request failed: %s", e)
            return JSONResponse(
                status_code=e.status_code,
                content={**e.to_dict(), "cacheStats": services.cache.get_stats()},
            )
        except Exception as e:
            logger.exception("Error in news handler")
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Failed to fetch or process news data.",
                    "details": str(e),
                    "cacheStats": services.cache.get_stats(),
                },
            )
        return JSONResponse(content=payload)

    @app.get("/api/details", responses={200: {"content": {"text/event-stream": {}}}})
    async def stream_details(
        request: Request,
        url: Optional[str] = Query(None),
        title: Optional[str] = Query(None),
        summary: Optional[str] = Query(None),
    ) -> StreamingResponse:
        """
        Stream an AI-written detailed summary of one article as SSE.

        Each message is ``data: <json>`` with chunk/phase/action/done fields.
        """
        services = get_services(request)

        if missing_stream_params(url, title, summary):
            return StreamingResponse(
                single_event_stream({
                    "error": "Missing required article data.",
                    "details": "URL, title, or summary is missing",
                }),
                status_code=400,
                media_type="text/event-stream",
            )

        if services.streamer is None:
            logger.error("Details stream requested but no AI provider is configured")
            unavailable = ProviderUnavailableError("Model initialization failed")
            return StreamingResponse(
                single_event_stream(unavailable.to_dict()),
                status_code=unavailable.status_code,
                media_type="text/event-stream",
            )

        logger.info('Details STREAM request for "%s"', title)
        session = StreamSession(url=url, title=title, summary=summary)
        return StreamingResponse(
            sse_stream(services.streamer, session),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    @app.get("/api/cache-stats", response_model=CacheStatsResponse)
    async def cache_stats(request: Request):
        """Cache statistics with a health grade and tuning hints."""
        report = get_services(request).admin.report()
        return JSONResponse(content=report.model_dump(by_alias=True))

    @app.delete("/api/cache-stats", response_model=CacheClearResponse, responses={403: {"model": ErrorResponse, "description": "Bad admin key"}})
    async def clear_cache(
        request: Request,
        x_admin_key: Optional[str] = Header(None, alias="x-admin-key"),
        key: Optional[str] = Query(None),
    ):
        """Clear the whole cache. Requires the admin key as header or query."""
        admin = get_services(request).admin
        if not admin.authorized(x_admin_key or key):
            logger.warning("Rejected cache clear with invalid admin key")
            return JSONResponse(
                status_code=403,
                content={"error": "Forbidden", "details": "Invalid or missing admin key"},
            )
        return JSONResponse(content=admin.clear().model_dump(by_alias=True))

    @app.post(
        "/api/topic-analysis",
        response_model=TopicAnalysisResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    )
    async def topic_analysis(request: Request, body: TopicAnalysisRequest):
        """Synthesize several articles into one cross-article analysis."""
        services = get_services(request)
        try:
            payload = await services.topic_analysis.analyze(body.articles, body.topic)
        except WisdomError:
            raise
        except Exception as e:
            logger.exception("Error in topic analysis")
            return JSONResponse(
                status_code=500,
                content={"error": "Failed to generate topic analysis", "details": str(e)},
            )
        return JSONResponse(content=payload)

    return app


app = create_app()


if __name__ == "__main__":
    # For development
    import uvicorn
    uvicorn.run("wisdom.main:app", host="0.0.0.0", port=8000, reload=True)

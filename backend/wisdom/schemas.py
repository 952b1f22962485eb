# wisdom/schemas.py
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ArticleRecord(CamelModel):
    id: str
    title: str
    summary: str
    category: Optional[str] = None                  # None means uncategorized
    publication_date: str
    source_name: str
    url: Optional[str] = None
    image_url: Optional[str] = None
    read_time: int                                  # minutes
    freshness: Literal["very-recent", "recent", "new", "older"]
    hours_since_publication: int
    entities: List[str] = Field(default_factory=list)
    sentiment_score: float = Field(default=0.5, ge=0.0, le=1.0)
    sentiment_label: Literal["Positive", "Negative", "Neutral"] = "Neutral"
    ai_summary: Optional[str] = None                # filled later by the detail stream
    keywords: List[str] = Field(default_factory=list)


class Pagination(CamelModel):
    current_page: int
    page_size: int
    total_results: int
    total_pages: int


class NewsResponse(CamelModel):
    articles: List[ArticleRecord]
    pagination: Pagination
    topic: str
    cache_stats: Dict[str, Any]


class ErrorResponse(BaseModel):
    error: str
    details: str = ""


class CacheHealth(BaseModel):
    status: Literal["good", "moderate", "poor"]
    recommendations: List[str] = Field(default_factory=list)


class CacheStatsResponse(CamelModel):
    stats: Dict[str, Any]
    cache_health: CacheHealth
    timestamp: str


class CacheClearResponse(CamelModel):
    message: str
    previous_stats: Dict[str, Any]


class StreamEvent(BaseModel):
    """One server-sent event payload of the detail summary stream."""

    chunk: Optional[str] = None
    phase: Optional[Literal["THINKING", "CONTENT_START", "REAL_CONTENT", "CONTENT_COMPLETE"]] = None
    action: Optional[Literal["CLEAR_ALL_CONTENT"]] = None
    done: Optional[bool] = None
    error: Optional[str] = None
    details: Optional[str] = None


class TopicArticle(CamelModel):
    id: str
    title: str = ""
    summary: Optional[str] = None
    description: Optional[str] = None
    publication_date: Optional[str] = None
    source_name: Optional[str] = None
    entities: List[str] = Field(default_factory=list)
    sentiment_label: Optional[str] = None


class TopicAnalysisRequest(BaseModel):
    articles: List[TopicArticle] = Field(default_factory=list)
    topic: Optional[str] = None


class TopicAnalysisMeta(CamelModel):
    article_count: int
    topic: str
    generated_at: str
    sources: List[str]


class TopicAnalysisResponse(BaseModel):
    analysis: Dict[str, Any]
    meta: TopicAnalysisMeta

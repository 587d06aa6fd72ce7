"""
FastAPI application for the feed aggregator.

Endpoints:
- GET /: API info
- GET /health: State store health
- GET /articles: Stored articles (optionally in shuffled display order)
- POST /refresh: Run the aggregation pipeline
- POST /articles/{article_id}/toggle-read: Flip read state
- GET /stats: Article and read counts, last fetch time
- GET /sources: Configured feed sources
- GET /admin/graph: Mermaid diagram of the pipeline

Usage:
    # Run with uvicorn
    uvicorn wouldreads.api:app --reload

    # Or use the main.py entrypoint
    python -m wouldreads.main serve
"""

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Annotated

import structlog
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from wouldreads.config import DEFAULT_SOURCES, get_settings
from wouldreads.errors import AggregationError
from wouldreads.service import ArticleService
from wouldreads.store import LAST_FETCH_KEY, get_repository

logger = structlog.get_logger()


# ========================================
# SERVICE WIRING
# ========================================

_service: ArticleService | None = None


def get_service() -> ArticleService:
    """Return the process-wide ArticleService (override in tests via dependency_overrides)."""
    global _service

    if _service is None:
        _service = ArticleService(get_repository())

    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Closes the database pool on shutdown when PostgreSQL is in use.
    """
    logger.info("Starting API server")
    yield

    logger.info("Shutting down API server")
    if get_settings().uses_database:
        from wouldreads.store.connection import close_db_pool

        await close_db_pool()


app = FastAPI(
    title="wouldreads",
    description="Article recommendations from tech and culture news feeds",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# ========================================
# PYDANTIC MODELS
# ========================================


class ArticleModel(BaseModel):
    """A single aggregated article."""

    id: str = Field(description="Stable article identifier")
    title: str = Field(description="Article title")
    description: str = Field(description="Plain-text description, at most 200 chars plus ellipsis")
    link: str = Field(description="Article URL (may be empty)")
    source: str = Field(description="Name of the feed source")
    published_at: datetime = Field(description="Publication date")
    is_read: bool = Field(description="Whether the reader marked it read")


class ArticlesResponse(BaseModel):
    """Response containing articles."""

    articles: list[ArticleModel] = Field(description="Articles in display order")
    count: int = Field(description="Number of articles returned")


class SourceFailure(BaseModel):
    """A source that could not be collected during a refresh."""

    source: str
    error_type: str
    error_message: str


class RefreshResponse(BaseModel):
    """Response after running the pipeline."""

    articles: list[ArticleModel] = Field(description="The new canonical list")
    count: int = Field(description="Number of articles")
    failed_sources: list[SourceFailure] = Field(description="Sources that failed this run")


class StatsResponse(BaseModel):
    """Counts shown next to the article list."""

    total: int = Field(description="Number of stored articles")
    read: int = Field(description="Number of stored articles marked read")
    last_fetch: datetime | None = Field(description="Time of the last successful refresh")


class SourceModel(BaseModel):
    """A configured feed source."""

    name: str
    feed_url: str
    homepage: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Overall health status: healthy or unhealthy")
    state_store: bool = Field(description="State store reachable")
    timestamp: datetime = Field(description="Current server time")


class GraphResponse(BaseModel):
    """Response containing the graph visualization."""

    mermaid: str = Field(description="Mermaid diagram string")
    nodes: list[str] = Field(description="List of node names")


ServiceDep = Annotated[ArticleService, Depends(get_service)]


# ========================================
# ENDPOINTS
# ========================================


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic API info."""
    return {
        "name": "wouldreads API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(service: ServiceDep):
    """Check that the state store can be read."""
    try:
        await service.repository.load(LAST_FETCH_KEY)
        store_healthy = True
    except Exception as e:
        logger.error("State store health check failed", error=str(e))
        store_healthy = False

    return HealthResponse(
        status="healthy" if store_healthy else "unhealthy",
        state_store=store_healthy,
        timestamp=datetime.now(UTC),
    )


@app.get("/articles", response_model=ArticlesResponse, tags=["Articles"])
async def get_articles(
    service: ServiceDep,
    shuffle: Annotated[bool, Query(description="Return a source-balanced random order")] = False,
):
    """
    Get the stored articles.

    Ranked newest first, or in a fresh source-balanced random order when
    shuffle=true.
    """
    articles = await service.get_articles()
    if shuffle:
        articles = await service.shuffle(articles)

    return ArticlesResponse(
        articles=[ArticleModel(**article) for article in articles],
        count=len(articles),
    )


@app.post("/refresh", response_model=RefreshResponse, tags=["Articles"])
async def refresh(service: ServiceDep):
    """
    Run the aggregation pipeline and replace the stored articles.

    Individual failing sources are reported in failed_sources. If the run
    itself fails, the previous articles are kept and 502 is returned.
    """
    try:
        articles = await service.refresh()
    except AggregationError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return RefreshResponse(
        articles=[ArticleModel(**article) for article in articles],
        count=len(articles),
        failed_sources=[
            SourceFailure(
                source=error["source"],
                error_type=error["error_type"],
                error_message=error["error_message"],
            )
            for error in service.last_errors
        ],
    )


@app.post("/articles/{article_id}/toggle-read", response_model=ArticleModel, tags=["Articles"])
async def toggle_article_read(article_id: str, service: ServiceDep):
    """
    Flip the read state of one article.

    Raises:
        404: If no stored article has this ID
    """
    known_ids = {article["id"] for article in await service.get_articles()}
    if article_id not in known_ids:
        raise HTTPException(status_code=404, detail="Article not found")

    articles = await service.toggle_read(article_id)
    article = next(article for article in articles if article["id"] == article_id)
    return ArticleModel(**article)


@app.get("/stats", response_model=StatsResponse, tags=["Articles"])
async def get_stats(service: ServiceDep):
    """Get article and read counts plus the last refresh time."""
    return StatsResponse(**await service.summary())


@app.get("/sources", response_model=list[SourceModel], tags=["Articles"])
async def get_sources():
    """Get the configured feed sources, in aggregation order."""
    return [SourceModel(**source.model_dump()) for source in DEFAULT_SOURCES]


@app.get("/admin/graph", response_model=GraphResponse, tags=["Admin"])
async def get_graph_diagram(service: ServiceDep):
    """Get a Mermaid diagram of the LangGraph pipeline."""
    try:
        drawable = service.graph.get_graph()
        return GraphResponse(
            mermaid=drawable.draw_mermaid(),
            nodes=list(drawable.nodes.keys()),
        )

    except Exception as e:
        logger.error("Failed to generate graph diagram", error=str(e))
        raise HTTPException(status_code=500, detail=f"Graph generation error: {str(e)}")

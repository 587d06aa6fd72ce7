"""
ArticleService - The operations the UI layer calls.

    refresh()                run the pipeline, replace the stored articles
    toggle_read(article_id)  flip one article's read state everywhere
    shuffle(articles)        a fresh source-balanced display order

The service owns no global state: it is handed a StateRepository and
optionally a compiled graph (tests pass a mock graph or custom sources).

Usage:
    from wouldreads.service import ArticleService
    from wouldreads.store import get_repository

    service = ArticleService(get_repository())
    articles = await service.refresh()
    articles = await service.toggle_read(articles[0]["id"])
"""

import random

import structlog

from wouldreads.config import SourceConfig
from wouldreads.display import shuffle_articles
from wouldreads.errors import AggregationError
from wouldreads.graph.nodes.read_state import merge_read_state, toggle_read
from wouldreads.graph.orchestrator import create_graph, run_pipeline
from wouldreads.graph.state import Article, CollectionError
from wouldreads.store import (
    ARTICLES_KEY,
    LAST_FETCH_KEY,
    READ_ARTICLES_KEY,
    StateRepository,
    normalize_articles,
    serialize_article,
)

logger = structlog.get_logger()


class ArticleService:
    """Boundary between the aggregation pipeline and whatever displays it."""

    def __init__(
        self,
        repository: StateRepository,
        graph=None,
        sources: list[SourceConfig] | None = None,
        rng: random.Random | None = None,
    ):
        self.repository = repository
        self._graph = graph
        self._sources = sources
        self._rng = rng
        self.is_loading = False
        self.last_errors: list[CollectionError] = []

    @property
    def graph(self):
        """The compiled pipeline, created on first use and bound to this repository."""
        if self._graph is None:
            self._graph = create_graph(sources=self._sources, repository=self.repository)
        return self._graph

    async def get_articles(self) -> list[Article]:
        """Return the stored canonical article list, with is_read taken from the read set."""
        stored = await self.repository.load(ARTICLES_KEY)
        return merge_read_state(normalize_articles(stored), await self.get_read_ids())

    async def get_read_ids(self) -> set[str]:
        return set(await self.repository.load(READ_ARTICLES_KEY))

    async def refresh(self) -> list[Article]:
        """
        Run the full pipeline and return the new canonical list.

        Per-source failures are absorbed by the pipeline and only show up in
        `last_errors`. Any other failure is raised as AggregationError after
        logging; stored articles, read state and last-fetch are untouched,
        and is_loading is cleared either way.

        Raises:
            AggregationError: If the pipeline itself failed
        """
        self.is_loading = True
        try:
            read_ids = await self.get_read_ids()
            result = await run_pipeline(self.graph, read_ids=read_ids)
        except Exception as e:
            logger.error("Failed to load articles", error=str(e), error_type=type(e).__name__)
            raise AggregationError("Failed to load articles. Please try again.") from e
        finally:
            self.is_loading = False

        self.last_errors = result["collection_errors"]
        logger.info("Loaded articles", article_count=len(result["articles"]))
        return result["articles"]

    async def ensure_articles(self) -> list[Article]:
        """Return the stored articles, refreshing first if there are none yet."""
        articles = await self.get_articles()
        if articles:
            return articles
        return await self.refresh()

    async def toggle_read(self, article_id: str) -> list[Article]:
        """
        Flip the read state of one article.

        The read set is saved first (it is the source of truth), then the
        stored article list is re-merged against it so held views agree.

        Returns:
            The stored articles with updated is_read flags
        """
        read_ids = toggle_read(await self.get_read_ids(), article_id)
        await self.repository.save(READ_ARTICLES_KEY, sorted(read_ids))

        articles = merge_read_state(await self.get_articles(), read_ids)
        await self.repository.save(ARTICLES_KEY, [serialize_article(a) for a in articles])

        logger.info("Toggled read state", article_id=article_id, is_read=article_id in read_ids)
        return articles

    async def shuffle(self, articles: list[Article] | None = None) -> list[Article]:
        """Return a source-balanced random order of the given or stored articles."""
        if articles is None:
            articles = await self.get_articles()
        return shuffle_articles(articles, rng=self._rng)

    async def summary(self) -> dict:
        """Counts shown next to the article list."""
        articles = await self.get_articles()
        return {
            "total": len(articles),
            "read": sum(1 for article in articles if article["is_read"]),
            "last_fetch": await self.repository.load(LAST_FETCH_KEY) or None,
        }

"""
Collector Node - Fetches and parses every configured feed concurrently.

This node:
1. Starts one fetch+parse task per source, sharing one httpx client
2. Bounds each task with a deadline so a hung source becomes a normal failure
3. Waits for every task to settle (no task cancels its siblings)
4. Concatenates results in source order, then feed order
5. Records failures as CollectionErrors (logs them, doesn't fail the pipeline)

LangGraph Integration:
- Input: AggregatorState with run_date
- Output: {"raw_articles": [...], "collection_errors": [...]}

Configuration:
- Sources are configured in wouldreads.config.DEFAULT_SOURCES
- Can be overridden by passing sources (useful for testing)
"""

import asyncio
from datetime import UTC, datetime

import httpx
import structlog

from wouldreads.config import DEFAULT_SOURCES, Settings, SourceConfig, get_settings
from wouldreads.errors import FeedFetchError
from wouldreads.graph.nodes.feed_fetcher import fetch_feed
from wouldreads.graph.nodes.feed_parser import parse_feed
from wouldreads.graph.state import AggregatorState, Article, CollectionError

logger = structlog.get_logger()


def _collection_error(source: SourceConfig, error: BaseException) -> CollectionError:
    return CollectionError(
        source=source.name,
        feed_url=source.feed_url,
        error_type=type(error).__name__,
        error_message=str(error) or type(error).__name__,
        timestamp=datetime.now(UTC),
    )


async def collect_source(
    client: httpx.AsyncClient,
    source: SourceConfig,
    settings: Settings,
    retrieved_at: datetime,
) -> tuple[list[Article], list[CollectionError]]:
    """
    Fetch and parse a single source.

    Never raises: any failure (transport, relay payload, deadline, or an
    unexpected bug) is logged and reported as a CollectionError, and the
    source contributes no articles.

    Args:
        client: Shared httpx client (for connection pooling)
        source: SourceConfig with name and feed_url
        settings: Supplies proxy_url, fetch_timeout and description length
        retrieved_at: Fallback publish time for undated items

    Returns:
        Tuple of (articles, errors) - errors are non-fatal
    """
    log = logger.bind(feed_name=source.name, feed_url=source.feed_url)

    async def fetch_and_parse() -> list[Article]:
        content = await fetch_feed(
            client,
            source,
            proxy_url=settings.proxy_url or None,
            timeout=settings.fetch_timeout,
        )
        # Parsed in a worker thread so the deadline also covers parsing
        return await asyncio.to_thread(
            parse_feed,
            content,
            source.name,
            retrieved_at=retrieved_at,
            description_max_length=settings.description_max_length,
        )

    try:
        log.info("Fetching feed")
        articles = await asyncio.wait_for(fetch_and_parse(), timeout=settings.fetch_timeout)

    except FeedFetchError as e:
        log.error("Feed fetch failed", error=e.message)
        return [], [_collection_error(source, e)]

    except TimeoutError as e:
        log.error("Feed timed out", timeout=settings.fetch_timeout)
        error = _collection_error(source, e)
        error["error_message"] = f"No response within {settings.fetch_timeout}s"
        return [], [error]

    except Exception as e:
        log.exception("Unexpected error processing feed")
        return [], [_collection_error(source, e)]

    log.info("Feed processed", article_count=len(articles))
    return articles, []


async def collect_sources(
    state: AggregatorState,
    sources: list[SourceConfig] | None = None,
    settings: Settings | None = None,
) -> dict:
    """
    LangGraph node: Collect articles from all configured sources.

    Fetches all sources concurrently using asyncio.gather(). Every per-source
    task handles its own errors, so gather always waits for all of them.

    Args:
        state: Current graph state with run_date
        sources: Optional list of sources (defaults to DEFAULT_SOURCES)
        settings: Optional settings (defaults to get_settings())

    Returns:
        Partial state update with raw_articles and collection_errors
    """
    sources_to_collect = sources if sources is not None else DEFAULT_SOURCES
    settings = settings or get_settings()
    run_date = state.get("run_date") or datetime.now(UTC)

    logger.info(
        "Starting feed collection",
        source_count=len(sources_to_collect),
        proxied=bool(settings.proxy_url),
        fetch_timeout=settings.fetch_timeout,
    )

    all_articles: list[Article] = []
    all_errors: list[CollectionError] = []

    async with httpx.AsyncClient(
        headers={"User-Agent": settings.user_agent},
        follow_redirects=True,
    ) as client:
        tasks = [
            collect_source(client, source, settings, run_date) for source in sources_to_collect
        ]
        results = await asyncio.gather(*tasks)

    # gather preserves task order, so this is source order then feed order
    for articles, errors in results:
        all_articles.extend(articles)
        all_errors.extend(errors)

    logger.info(
        "Feed collection complete",
        total_articles=len(all_articles),
        failed_sources=len(all_errors),
    )

    return {
        "raw_articles": all_articles,
        "collection_errors": all_errors,
    }


def create_collector_node(
    sources: list[SourceConfig] | None = None,
    settings: Settings | None = None,
):
    """
    Factory function to create a collector node bound to specific sources.

    Usage:
        builder.add_node("fetch_sources", create_collector_node(custom_sources))

    Args:
        sources: Custom sources to use. Defaults to DEFAULT_SOURCES if None.
        settings: Custom settings. Defaults to get_settings() at run time.

    Returns:
        An async function compatible with LangGraph nodes.
    """

    async def node(state: AggregatorState) -> dict:
        return await collect_sources(state, sources=sources, settings=settings)

    return node

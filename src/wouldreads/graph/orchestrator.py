"""
LangGraph Orchestrator - Wires all nodes into the aggregation pipeline.

Pipeline Flow:
    START
      ↓
    fetch_sources      (one concurrent task per source, wait for all)
      ↓
    deduplicate        (first occurrence wins)
      ↓
    rank               (newest first, top 50)
      ↓
    merge_read_state   (overlay persisted read ids)
      ↓
    persist            (articles + last-fetch)
      ↓
    END

Per-source and per-item failures are absorbed inside fetch_sources. Anything
that escapes a node is a genuine pipeline fault: ainvoke raises, persist never
runs, and stored state is left untouched.

Usage:
    from wouldreads.graph.orchestrator import run_aggregator

    result = await run_aggregator()

    # Or manually
    from wouldreads.graph.orchestrator import create_graph, run_pipeline
    graph = create_graph(sources=my_sources, repository=my_repository)
    result = await run_pipeline(graph, read_ids={"abc123"})
"""

import uuid
from collections.abc import Iterable
from datetime import UTC, datetime

import structlog
from langgraph.graph import END, START, StateGraph

from wouldreads.config import Settings, SourceConfig, get_settings
from wouldreads.graph.nodes import (
    create_collector_node,
    create_persist_node,
    create_rank_node,
    deduplicate,
    merge_read_state_node,
)
from wouldreads.graph.state import AggregationResult, AggregatorState
from wouldreads.store import READ_ARTICLES_KEY, StateRepository, get_repository

logger = structlog.get_logger()


def create_graph(
    sources: list[SourceConfig] | None = None,
    repository: StateRepository | None = None,
    settings: Settings | None = None,
) -> StateGraph:
    """
    Create and compile the aggregator graph.

    Args:
        sources: Sources to aggregate (defaults to DEFAULT_SOURCES)
        repository: Where persist writes (defaults to get_repository() at run time)
        settings: Settings for fetching and ranking (defaults to get_settings())

    Returns:
        Compiled StateGraph ready for execution
    """
    settings = settings or get_settings()

    logger.info("Creating aggregator graph")

    builder = StateGraph(AggregatorState)

    builder.add_node("fetch_sources", create_collector_node(sources, settings))
    builder.add_node("deduplicate", deduplicate)
    builder.add_node("rank", create_rank_node(limit=settings.max_articles))
    builder.add_node("merge_read_state", merge_read_state_node)
    builder.add_node("persist", create_persist_node(repository))

    builder.add_edge(START, "fetch_sources")
    builder.add_edge("fetch_sources", "deduplicate")
    builder.add_edge("deduplicate", "rank")
    builder.add_edge("rank", "merge_read_state")
    builder.add_edge("merge_read_state", "persist")
    builder.add_edge("persist", END)

    graph = builder.compile()

    logger.info("Graph compiled successfully")
    return graph


async def run_pipeline(
    graph: StateGraph,
    read_ids: Iterable[str] = (),
    run_id: str | None = None,
) -> AggregationResult:
    """
    Execute the aggregation pipeline.

    Args:
        graph: Compiled StateGraph from create_graph()
        read_ids: Persisted read state to overlay on the fresh articles
        run_id: Optional unique ID for this run (auto-generated if None)

    Returns:
        The aggregated articles and any per-source collection errors

    Raises:
        Exception: Whatever a node raised; nothing has been persisted then
    """
    if run_id is None:
        timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
        unique_suffix = uuid.uuid4().hex[:8]
        run_id = f"run_{timestamp}_{unique_suffix}"

    run_date = datetime.now(UTC)
    read_set = set(read_ids)

    logger.info(
        "Starting pipeline run",
        run_id=run_id,
        run_date=run_date.isoformat(),
        read_count=len(read_set),
    )

    initial_state: AggregatorState = {
        "run_id": run_id,
        "run_date": run_date,
        "read_ids": read_set,
    }

    final_state = await graph.ainvoke(initial_state)

    result = AggregationResult(
        run_id=run_id,
        articles=final_state.get("articles", []),
        collection_errors=final_state.get("collection_errors", []),
        fetched_at=final_state.get("fetched_at"),
    )

    logger.info(
        "Pipeline run complete",
        run_id=run_id,
        article_count=len(result["articles"]),
        failed_sources=len(result["collection_errors"]),
    )

    return result


# ========================================
# CONVENIENCE API
# ========================================

# Cache the default compiled graph (expensive to create repeatedly)
_cached_graph: StateGraph | None = None


def get_graph() -> StateGraph:
    """
    Get or create the default compiled graph (cached).

    The default graph uses DEFAULT_SOURCES and persists through
    get_repository() at run time.
    """
    global _cached_graph

    if _cached_graph is None:
        _cached_graph = create_graph()

    return _cached_graph


async def run_aggregator(repository: StateRepository | None = None) -> AggregationResult:
    """
    High-level function to run the full pipeline.

    Loads the read state from the repository, runs the graph and returns the
    result. The graph itself persists the new articles to the same repository.
    Without a repository the cached default graph is used.

    Example:
        result = await run_aggregator()
        for article in result["articles"]:
            print(article["title"])
    """
    if repository is None:
        repository = get_repository()
        graph = get_graph()
    else:
        graph = create_graph(repository=repository)

    read_ids = await repository.load(READ_ARTICLES_KEY)
    return await run_pipeline(graph, read_ids=read_ids)

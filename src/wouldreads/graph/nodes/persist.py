"""
Persist Node - Saves the aggregated articles and the fetch time.

This node:
1. Writes the completion time to the "last-fetch" slot
2. Re-reads the "read-articles" slot and re-applies it to the articles, so a
   toggle that landed while the sources were being fetched is kept
3. Replaces the "articles" slot with the new canonical list

It is the last node of the graph, so if any earlier node fails nothing is
written and the previous articles and read state stay as they were. The
articles slot is written last: if any write here fails, the previous list
stays. The read-articles slot is never written here.

LangGraph Integration:
- Input: AggregatorState with articles
- Output: {"articles": [...], "fetched_at": datetime, "persisted": True}
"""

from datetime import UTC, datetime

import structlog

from wouldreads.graph.nodes.read_state import merge_read_state
from wouldreads.graph.state import AggregatorState
from wouldreads.store import (
    ARTICLES_KEY,
    LAST_FETCH_KEY,
    READ_ARTICLES_KEY,
    StateRepository,
    get_repository,
    serialize_article,
)

logger = structlog.get_logger()


async def persist_articles(state: AggregatorState, repository: StateRepository) -> dict:
    """
    Write the run's articles and completion time to the repository.

    Args:
        state: Current graph state with articles
        repository: Where the slots live

    Returns:
        Partial state update with the stored articles, fetched_at and persisted
    """
    articles = state.get("articles", [])
    run_id = state.get("run_id", "unknown")
    fetched_at = datetime.now(UTC)

    logger.info("Starting persistence", article_count=len(articles), run_id=run_id)

    await repository.save(LAST_FETCH_KEY, fetched_at.isoformat())

    # Read state may have changed since the run started
    read_ids = await repository.load(READ_ARTICLES_KEY)
    articles = merge_read_state(articles, read_ids)

    await repository.save(ARTICLES_KEY, [serialize_article(article) for article in articles])

    logger.info(
        "Persistence complete",
        article_count=len(articles),
        fetched_at=fetched_at.isoformat(),
        run_id=run_id,
    )

    return {"articles": articles, "fetched_at": fetched_at, "persisted": True}


def create_persist_node(repository: StateRepository | None = None):
    """
    Factory function to create a persist node bound to a repository.

    Args:
        repository: Target repository. Defaults to get_repository() at run time.

    Returns:
        An async function compatible with LangGraph nodes.
    """

    async def persist(state: AggregatorState) -> dict:
        return await persist_articles(state, repository or get_repository())

    return persist

"""
Read State - Overlays the persisted set of read ids onto articles.

The read set is the durable source of truth. Article.is_read is only ever a
projection of it, recomputed after every aggregation and every toggle.

LangGraph Integration:
- Input: AggregatorState with ranked_articles and read_ids
- Output: {"articles": [...]}
"""

from collections.abc import Iterable

import structlog

from wouldreads.graph.state import AggregatorState, Article

logger = structlog.get_logger()


def merge_read_state(articles: list[Article], read_ids: Iterable[str]) -> list[Article]:
    """
    Return copies of `articles` with is_read set from `read_ids`.

    No article is added, dropped or reordered; the inputs are not mutated.
    """
    read_set = set(read_ids)
    return [Article(**{**article, "is_read": article["id"] in read_set}) for article in articles]


def toggle_read(read_ids: Iterable[str], article_id: str) -> set[str]:
    """Return a new read set with `article_id` added if absent, removed if present."""
    updated = set(read_ids)
    if article_id in updated:
        updated.discard(article_id)
    else:
        updated.add(article_id)
    return updated


async def merge_read_state_node(state: AggregatorState) -> dict:
    """
    LangGraph node: Apply the read state captured at the start of the run.

    Args:
        state: Current graph state with ranked_articles and read_ids

    Returns:
        Partial state update with articles
    """
    ranked = state.get("ranked_articles", [])
    read_ids = state.get("read_ids") or set()

    articles = merge_read_state(ranked, read_ids)

    logger.info(
        "Read state merged",
        article_count=len(articles),
        read_count=sum(1 for article in articles if article["is_read"]),
    )

    return {"articles": articles}

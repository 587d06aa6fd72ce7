"""
Rank Node - Orders articles newest first and keeps the top N.

The sort is stable, so articles with the same published_at keep their
deduplicated order. Output length is min(limit, input length).

LangGraph Integration:
- Input: AggregatorState with deduplicated_articles
- Output: {"ranked_articles": [...]}
"""

import structlog

from wouldreads.graph.state import AggregatorState, Article

logger = structlog.get_logger()

DEFAULT_LIMIT = 50


def rank_articles(articles: list[Article], limit: int = DEFAULT_LIMIT) -> list[Article]:
    """Sort by published_at descending (stable) and truncate to `limit`."""
    ranked = sorted(articles, key=lambda article: article["published_at"], reverse=True)
    return ranked[:limit]


def create_rank_node(limit: int = DEFAULT_LIMIT):
    """Factory function to create a rank node with a custom limit."""

    async def rank(state: AggregatorState) -> dict:
        articles = state.get("deduplicated_articles", [])
        ranked = rank_articles(articles, limit=limit)

        logger.info(
            "Ranking complete",
            input_count=len(articles),
            output_count=len(ranked),
            limit=limit,
        )

        return {"ranked_articles": ranked}

    return rank

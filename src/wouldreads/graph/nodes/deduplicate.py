"""
Deduplicate Node - Removes the same story reported by several sources.

Two articles are duplicates when either:
1. Their titles match after trimming and lowercasing, or
2. Both have a link and the links are identical

Tie-break: the first occurrence wins. Input order is source order, then feed
order, so an earlier source's copy is kept even when a later source carries a
fresher one. An article is dropped if it matches ANY earlier article, including
one that was itself dropped.

LangGraph Integration:
- Input: AggregatorState with raw_articles from the collector
- Output: {"deduplicated_articles": [...]}
"""

import structlog

from wouldreads.graph.state import AggregatorState, Article

logger = structlog.get_logger()


def normalize_title(title: str) -> str:
    """Title form used for duplicate comparison."""
    return title.strip().lower()


def deduplicate_articles(articles: list[Article]) -> list[Article]:
    """
    Drop every article that matches an earlier one by title or link.

    Idempotent: running it on its own output returns the same list.

    Args:
        articles: Articles in concatenation order

    Returns:
        The surviving articles, original order preserved
    """
    seen_titles: set[str] = set()
    seen_links: set[str] = set()
    unique: list[Article] = []

    for article in articles:
        title_key = normalize_title(article["title"])
        link = article["link"]

        is_duplicate = title_key in seen_titles or (bool(link) and link in seen_links)

        seen_titles.add(title_key)
        if link:
            seen_links.add(link)

        if not is_duplicate:
            unique.append(article)

    return unique


async def deduplicate(state: AggregatorState) -> dict:
    """
    LangGraph node: Deduplicate collected articles.

    Args:
        state: Current graph state with raw_articles

    Returns:
        Partial state update with deduplicated_articles
    """
    raw_articles = state.get("raw_articles", [])

    logger.info("Starting deduplication", article_count=len(raw_articles))

    if not raw_articles:
        logger.warning("No articles to deduplicate")
        return {"deduplicated_articles": []}

    deduplicated = deduplicate_articles(raw_articles)

    logger.info(
        "Deduplication complete",
        input_count=len(raw_articles),
        output_count=len(deduplicated),
        duplicates_dropped=len(raw_articles) - len(deduplicated),
    )

    return {"deduplicated_articles": deduplicated}

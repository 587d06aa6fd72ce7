"""
Presentation helpers: the source-balanced shuffle and relative timestamps.

Neither is part of the fetch path. The shuffle is recomputed whenever the
reader asks for a fresh order and its result is never persisted.
"""

import random
from datetime import UTC, datetime

from wouldreads.graph.state import Article

GUARANTEED_PER_SOURCE = 2


def shuffle_articles(
    articles: list[Article],
    rng: random.Random | None = None,
    per_source: int = GUARANTEED_PER_SOURCE,
) -> list[Article]:
    """
    Randomize articles while guaranteeing every source shows up.

    1. Group articles by source, keeping per-source order.
    2. Draw min(per_source, group size) articles from each group without
       replacement; these are guaranteed a place.
    3. Shuffle everything that was not drawn.
    4. Concatenate guaranteed + remainder and shuffle the whole list again.

    The output is always a permutation of the input: same length, nothing
    dropped or repeated. Step 4 mixes everything, so the guarantee is about
    membership, not position.

    Args:
        articles: Articles to reorder (not mutated)
        rng: Random source; pass a seeded random.Random for repeatable tests
        per_source: How many articles per source are drawn in step 2

    Returns:
        A new, randomly ordered list
    """
    if not articles:
        return []

    rng = rng or random.Random()

    # Work with positions so equal or id-less articles are still told apart
    groups: dict[str, list[int]] = {}
    for index, article in enumerate(articles):
        groups.setdefault(article["source"], []).append(index)

    guaranteed: list[int] = []
    for indices in groups.values():
        guaranteed.extend(rng.sample(indices, min(per_source, len(indices))))

    chosen = set(guaranteed)
    remainder = [index for index in range(len(articles)) if index not in chosen]
    rng.shuffle(remainder)

    order = guaranteed + remainder
    rng.shuffle(order)

    return [articles[index] for index in order]


def format_time_ago(published_at: datetime, now: datetime | None = None) -> str:
    """
    Describe how long ago an article was published.

    >>> format_time_ago(datetime(2026, 1, 1, 9, tzinfo=UTC), now=datetime(2026, 1, 1, 12, tzinfo=UTC))
    '3h ago'
    """
    now = now or datetime.now(UTC)
    hours = int((now - published_at).total_seconds() // 3600)

    if hours < 1:
        return "Just now"
    if hours < 24:
        return f"{hours}h ago"

    days = hours // 24
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days}d ago"

    return f"{published_at:%b} {published_at.day}, {published_at.year}"

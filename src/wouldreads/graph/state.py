"""
LangGraph state schemas for the feed aggregator.

This module defines:
1. Article - A normalized story parsed from a feed item
2. CollectionError - Errors during collection (non-fatal)
3. AggregatorState - The main graph state passed between nodes
4. AggregationResult - What a pipeline run hands back to callers
"""

import operator
from datetime import datetime
from typing import Annotated, TypedDict


class Article(TypedDict):
    """
    A single story as shown to the reader.

    Created by the feed parser for each feed item. The whole list is replaced
    on every aggregation run; only is_read carries over, by id lookup against
    the persisted read state.
    """

    id: str  # Stable digest of (source, link) or (source, title)
    title: str
    description: str  # Plain text, at most 200 chars plus "..."
    link: str  # May be empty
    source: str  # SourceConfig.name
    published_at: datetime  # Always timezone-aware
    is_read: bool


class CollectionError(TypedDict):
    """
    Non-fatal error during collection.

    One failing source never affects the others: its contribution becomes an
    empty list and the failure is recorded here for reporting.
    """

    source: str  # Which source failed
    feed_url: str
    error_type: str  # Exception class name
    error_message: str  # Human-readable message
    timestamp: datetime


class AggregatorState(TypedDict, total=False):
    """
    Main state for the aggregator graph.

    This state flows through all nodes:
    START -> fetch_sources -> deduplicate -> rank -> merge_read_state -> persist -> END

    Key patterns:
    1. `total=False` means all fields are optional (nodes return partial updates)
    2. `Annotated[list, operator.add]` concatenates outputs instead of overwriting
    3. Input fields (run_id, run_date, read_ids) are set once at the start
    """

    # === Input (set at pipeline start) ===
    run_id: str
    run_date: datetime  # Also the fallback publish time for undated items
    read_ids: set[str]  # Persisted read state at the start of the run

    # === Collection ===
    raw_articles: Annotated[list[Article], operator.add]
    collection_errors: Annotated[list[CollectionError], operator.add]

    # === Processing (sequential nodes) ===
    deduplicated_articles: list[Article]
    ranked_articles: list[Article]
    articles: list[Article]  # Ranked with read state applied

    # === Output ===
    fetched_at: datetime  # Written to the last-fetch slot
    persisted: bool


class AggregationResult(TypedDict):
    """The outcome of one aggregation run."""

    run_id: str
    articles: list[Article]
    collection_errors: list[CollectionError]
    fetched_at: datetime | None

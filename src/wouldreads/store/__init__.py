"""State storage for the feed aggregator."""

from wouldreads.store.repository import (
    ARTICLES_KEY,
    LAST_FETCH_KEY,
    READ_ARTICLES_KEY,
    SLOT_DEFAULTS,
    InMemoryStateRepository,
    JsonFileStateRepository,
    StateRepository,
    get_repository,
    normalize_article,
    normalize_articles,
    serialize_article,
)

__all__ = [
    "ARTICLES_KEY",
    "LAST_FETCH_KEY",
    "READ_ARTICLES_KEY",
    "SLOT_DEFAULTS",
    "InMemoryStateRepository",
    "JsonFileStateRepository",
    "StateRepository",
    "get_repository",
    "normalize_article",
    "normalize_articles",
    "serialize_article",
]

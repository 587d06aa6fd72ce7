"""
Key/value state repository.

The app keeps three named slots:

    articles        -> list of serialized Articles     (default [])
    read-articles   -> list of read article ids        (default [])
    last-fetch      -> ISO-8601 time of last success   (default "")

Every implementation stores JSON-compatible values and writes one slot
atomically: a reader sees either the old or the new value, never a mix.

Usage:
    from wouldreads.store import get_repository

    repository = get_repository()
    read_ids = await repository.load(READ_ARTICLES_KEY)
    await repository.save(READ_ARTICLES_KEY, sorted(read_ids))
"""

import copy
import json
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from wouldreads.config import Settings, get_settings

if TYPE_CHECKING:
    from wouldreads.graph.state import Article

logger = structlog.get_logger()

ARTICLES_KEY = "articles"
READ_ARTICLES_KEY = "read-articles"
LAST_FETCH_KEY = "last-fetch"

SLOT_DEFAULTS: dict[str, Any] = {
    ARTICLES_KEY: [],
    READ_ARTICLES_KEY: [],
    LAST_FETCH_KEY: "",
}


def default_for(key: str) -> Any:
    """Return a fresh copy of the documented default for a slot (None if unknown)."""
    return copy.deepcopy(SLOT_DEFAULTS.get(key))


class StateRepository(Protocol):
    """Storage contract for the named state slots."""

    async def load(self, key: str) -> Any:
        """Return the stored value, or the slot default when nothing is stored."""
        ...

    async def save(self, key: str, value: Any) -> None:
        """Replace the stored value of a slot."""
        ...


class InMemoryStateRepository:
    """Process-local repository, used by tests and throwaway sessions."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._slots: dict[str, Any] = copy.deepcopy(initial or {})

    async def load(self, key: str) -> Any:
        if key not in self._slots:
            return default_for(key)
        return copy.deepcopy(self._slots[key])

    async def save(self, key: str, value: Any) -> None:
        self._slots[key] = copy.deepcopy(value)


class JsonFileStateRepository:
    """
    One JSON file per slot inside `state_dir`.

    Writes go to a temporary file in the same directory which is then moved
    over the slot file with os.replace, so a slot is never half written.
    """

    def __init__(self, state_dir: Path | str):
        self.state_dir = Path(state_dir)

    def _path(self, key: str) -> Path:
        return self.state_dir / f"{key}.json"

    async def load(self, key: str) -> Any:
        path = self._path(key)
        if not path.exists():
            return default_for(key)

        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Corrupt state slot, using default", key=key, path=str(path))
            return default_for(key)

    async def save(self, key: str, value: Any) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(key)

        fd, tmp_name = tempfile.mkstemp(dir=self.state_dir, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                json.dump(value, tmp)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def get_repository(settings: Settings | None = None) -> StateRepository:
    """
    Pick the repository for the current configuration.

    PostgreSQL when WOULDREADS_DATABASE_URL is set, JSON files otherwise.
    """
    settings = settings or get_settings()

    if settings.uses_database:
        from wouldreads.store.postgres import PostgresStateRepository

        return PostgresStateRepository()

    return JsonFileStateRepository(settings.state_dir)


# ========================================
# ARTICLE (DE)SERIALIZATION
# Slots hold JSON, so published_at travels as an ISO string
# ========================================


def serialize_article(article: "Article") -> dict:
    """Convert an Article into a JSON-compatible dict."""
    return {**article, "published_at": article["published_at"].isoformat()}


def normalize_article(data: dict) -> "Article":
    """
    Turn a stored article back into an Article.

    Ensures published_at is an aware datetime whatever form it was stored in
    (ISO string, epoch seconds, or already a datetime).
    """
    published_at = data.get("published_at")

    if isinstance(published_at, str):
        published_at = datetime.fromisoformat(published_at)
    elif isinstance(published_at, int | float):
        published_at = datetime.fromtimestamp(published_at, tz=UTC)
    elif not isinstance(published_at, datetime):
        raise ValueError(f"Article {data.get('id')!r} has no usable published_at")

    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=UTC)

    return {
        "id": data["id"],
        "title": data.get("title", ""),
        "description": data.get("description", ""),
        "link": data.get("link", ""),
        "source": data.get("source", ""),
        "published_at": published_at,
        "is_read": bool(data.get("is_read", False)),
    }


def normalize_articles(items: list[dict]) -> list["Article"]:
    """
    Normalize every stored article, see normalize_article.

    A record that cannot be normalized is logged and skipped, the same way a
    corrupt slot falls back to its default.
    """
    articles = []
    for index, item in enumerate(items):
        try:
            articles.append(normalize_article(item))
        except (AttributeError, KeyError, ValueError) as e:
            logger.warning("Skipping unusable stored article", item_index=index, error=str(e))
    return articles

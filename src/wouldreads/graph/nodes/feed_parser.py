"""
Feed Parser - Turns a raw RSS document into Article records.

Each Article field is read through an ordered fallback chain (first non-empty
value wins):

    title         title -> "Untitled"
    description   description/summary -> content:encoded -> "No description available"
    link          link -> guid -> ""
    published_at  pubDate -> alternate date (dc:date / updated) -> retrieval time

Descriptions are reduced to plain text: tags removed, entity references
replaced by a space, trimmed, then cut to 200 characters with "..." appended
when something was cut.

Errors never escape: a broken item is skipped, a broken document yields [].
"""

import hashlib
import re
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

import feedparser
import structlog

from wouldreads.graph.state import Article

logger = structlog.get_logger()

UNTITLED = "Untitled"
NO_DESCRIPTION = "No description available"
ELLIPSIS = "..."
DEFAULT_DESCRIPTION_LENGTH = 200

_TAG_RE = re.compile(r"<[^>]*>")
_ENTITY_RE = re.compile(r"&[^;]+;")


def _first_text(entry: Any, *fields: str) -> str:
    """Return the first non-blank string value among the given entry fields."""
    for field in fields:
        value = entry.get(field)
        if isinstance(value, str) and value.strip():
            return value
    return ""


def _first_content_value(entry: Any) -> str:
    """Return the first non-blank value of the content list (content:encoded)."""
    for content_obj in entry.get("content") or []:
        value = content_obj.get("value")
        if isinstance(value, str) and value.strip():
            return value
    return ""


def clean_description(text: str, max_length: int = DEFAULT_DESCRIPTION_LENGTH) -> str:
    """
    Reduce an HTML fragment to a short plain-text description.

    >>> clean_description("<p>Hello &amp; welcome</p>")
    'Hello   welcome'
    """
    cleaned = _TAG_RE.sub("", text)
    cleaned = _ENTITY_RE.sub(" ", cleaned)
    cleaned = cleaned.strip()

    if len(cleaned) > max_length:
        return cleaned[:max_length] + ELLIPSIS
    return cleaned


def generate_article_id(source: str, link: str, title: str) -> str:
    """
    Generate a stable ID for an article.

    Uses the link when there is one, otherwise the normalized title. The
    source name is always part of the key, and the retrieval time never is,
    so re-fetching the same story yields the same ID and read state sticks.
    """
    key = link.strip() or title.strip().lower()
    return hashlib.sha256(f"{source}\n{key}".encode()).hexdigest()[:32]


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_published_date(entry: Any, fallback: datetime) -> datetime:
    """
    Extract the publication date of a feed entry.

    feedparser exposes RSS pubDate as published/published_parsed and the
    alternate date elements (dc:date, updated) as updated/updated_parsed.
    Pre-parsed tuples are tried first, then the raw strings.

    Returns a UTC datetime, or `fallback` when nothing parses.
    """
    for field in ["published_parsed", "updated_parsed"]:
        if parsed := entry.get(field):
            try:
                return datetime(*parsed[:6], tzinfo=UTC)
            except (TypeError, ValueError):
                continue

    for field in ["published", "updated"]:
        if date_str := entry.get(field):
            try:
                return _to_utc(parsedate_to_datetime(date_str))
            except (TypeError, ValueError):
                continue

    return fallback


def entry_to_article(
    entry: Any,
    source_name: str,
    retrieved_at: datetime,
    description_max_length: int = DEFAULT_DESCRIPTION_LENGTH,
) -> Article:
    """Convert one feedparser entry into an Article (is_read starts False)."""
    title = (_first_text(entry, "title") or UNTITLED).strip()

    description = (
        _first_text(entry, "description", "summary")
        or _first_content_value(entry)
        or NO_DESCRIPTION
    )

    link = _first_text(entry, "link", "guid", "id").strip()

    return Article(
        id=generate_article_id(source_name, link, title),
        title=title,
        description=clean_description(description, description_max_length),
        link=link,
        source=source_name,
        published_at=parse_published_date(entry, retrieved_at),
        is_read=False,
    )


def parse_feed(
    content: str,
    source_name: str,
    retrieved_at: datetime | None = None,
    description_max_length: int = DEFAULT_DESCRIPTION_LENGTH,
) -> list[Article]:
    """
    Parse a feed document into Articles, in feed order.

    Args:
        content: The raw feed document (RSS 2.0 shaped XML)
        source_name: Name of the source the document came from
        retrieved_at: Fallback publish time for undated items (defaults to now)
        description_max_length: Truncation limit for descriptions

    Returns:
        List of articles; empty if the document cannot be parsed at all
    """
    retrieved_at = retrieved_at or datetime.now(UTC)
    log = logger.bind(feed_name=source_name)

    try:
        feed = feedparser.parse(content)
    except Exception:
        log.exception("Feed could not be parsed")
        return []

    if feed.bozo and not feed.entries:
        log.warning("Feed has no readable items", error=str(feed.get("bozo_exception")))
        return []

    if feed.bozo:
        # feedparser sets 'bozo' for malformed feeds but often recovers the items
        log.warning("Feed has parse errors", error=str(feed.get("bozo_exception")))

    articles: list[Article] = []
    for index, entry in enumerate(feed.entries):
        try:
            articles.append(
                entry_to_article(entry, source_name, retrieved_at, description_max_length)
            )
        except Exception:
            log.exception("Skipping unparseable feed item", item_index=index)

    log.debug("Feed parsed", item_count=len(articles))
    return articles

"""
Feed Fetcher - Retrieves the raw feed body for one source.

Two transports are supported:
- Direct: GET the feed URL and return the response text.
- Relay: GET {proxy_url}{quoted feed URL}. The relay answers with JSON that
  carries the original feed body under "contents"; a response without it
  counts as a failure for that source.

Every failure is raised as FeedFetchError so the collector can turn it into a
CollectionError without caring which transport was used.
"""

from urllib.parse import quote

import httpx
import structlog

from wouldreads.config import SourceConfig
from wouldreads.errors import FeedFetchError

logger = structlog.get_logger()


def build_request_url(feed_url: str, proxy_url: str | None = None) -> str:
    """Return the URL to request, routed through the relay when one is configured."""
    if not proxy_url:
        return feed_url
    return f"{proxy_url}{quote(feed_url, safe='')}"


def unwrap_relay_payload(response: httpx.Response, source_name: str) -> str:
    """
    Extract the feed body from a relay response.

    Raises:
        FeedFetchError: If the body is not JSON or has no usable contents field
    """
    try:
        data = response.json()
    except ValueError as e:
        raise FeedFetchError(source_name, "Relay response is not valid JSON") from e

    contents = data.get("contents") if isinstance(data, dict) else None
    if not contents:
        raise FeedFetchError(source_name, "No content received")

    return contents


async def fetch_feed(
    client: httpx.AsyncClient,
    source: SourceConfig,
    *,
    proxy_url: str | None = None,
    timeout: float | None = None,
) -> str:
    """
    Fetch the raw feed content for a single source.

    Args:
        client: Shared httpx client (for connection pooling)
        source: SourceConfig with name and feed_url
        proxy_url: Optional relay prefix; see module docstring
        timeout: Optional per-request timeout in seconds

    Returns:
        The feed document as text

    Raises:
        FeedFetchError: On transport errors, non-2xx status or a bad relay payload
    """
    url = build_request_url(source.feed_url, proxy_url)
    log = logger.bind(feed_name=source.name, request_url=url)

    log.debug("Requesting feed")

    try:
        response = await client.get(url, timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise FeedFetchError(
            source.name,
            f"HTTP {e.response.status_code}: {e.response.reason_phrase}",
        ) from e
    except httpx.RequestError as e:
        raise FeedFetchError(source.name, f"{type(e).__name__}: {e}") from e

    if proxy_url:
        return unwrap_relay_payload(response, source.name)

    return response.text

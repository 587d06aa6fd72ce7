"""
Exception types for the wouldreads pipeline.

Only AggregationError ever reaches callers of ArticleService. FeedFetchError
is raised by the fetcher and always recovered inside the collector, where it
becomes a CollectionError record.
"""


class WouldreadsError(Exception):
    """Base class for all wouldreads errors."""


class FeedFetchError(WouldreadsError):
    """A single source could not be retrieved (network error, bad status, bad relay payload)."""

    def __init__(self, source_name: str, message: str):
        super().__init__(f"{source_name}: {message}")
        self.source_name = source_name
        self.message = message


class AggregationError(WouldreadsError):
    """The aggregation run itself failed; previously stored data is left untouched."""

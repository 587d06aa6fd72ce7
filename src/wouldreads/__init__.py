"""wouldreads - a deduplicated, read-aware reading list built from news feeds."""

__version__ = "1.0.0"

"""
Configuration management using pydantic-settings.

Environment variables are loaded from:
1. .env file (if present)
2. System environment variables (override .env)

All variables use the WOULDREADS_ prefix, e.g. WOULDREADS_FETCH_TIMEOUT=5.

Usage:
    from wouldreads.config import get_settings
    settings = get_settings()
    print(settings.fetch_timeout)
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SourceConfig(BaseModel):
    """Configuration for a single feed source."""

    model_config = ConfigDict(frozen=True)

    name: str
    feed_url: str
    homepage: str = ""


# Sources are fetched and deduplicated in this order
DEFAULT_SOURCES: list[SourceConfig] = [
    SourceConfig(
        name="The New Yorker",
        feed_url="https://www.newyorker.com/feed/rss",
        homepage="https://www.newyorker.com/",
    ),
    SourceConfig(
        name="Stratechery",
        feed_url="https://stratechery.com/feed/",
        homepage="https://stratechery.com/",
    ),
    SourceConfig(
        name="Sherwood News",
        feed_url="https://sherwood.news/rss/",
        homepage="https://sherwood.news/",
    ),
    SourceConfig(
        name="The New York Times",
        feed_url="https://rss.nytimes.com/services/xml/rss/nyt/Technology.xml",
        homepage="https://www.nytimes.com/",
    ),
    SourceConfig(
        name="Hacker News",
        feed_url="https://hnrss.org/frontpage",
        homepage="https://news.ycombinator.com/",
    ),
    SourceConfig(
        name="Semafor",
        feed_url="https://www.semafor.com/rss",
        homepage="https://www.semafor.com/",
    ),
]

# Relay that wraps the feed body as {"contents": "..."}; opt in via WOULDREADS_PROXY_URL
ALLORIGINS_PROXY_URL = "https://api.allorigins.win/get?url="


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="WOULDREADS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    proxy_url: str = Field(
        default="",
        description="Cross-origin relay prefix; empty means feeds are fetched directly",
    )

    fetch_timeout: float = Field(
        default=15.0,
        gt=0,
        description="Deadline in seconds for fetching and parsing a single source",
    )

    max_articles: int = Field(
        default=50,
        ge=1,
        description="Maximum number of articles kept after ranking",
    )

    description_max_length: int = Field(
        default=200,
        ge=1,
        description="Descriptions longer than this are truncated with an ellipsis",
    )

    state_dir: Path = Field(
        default=Path.home() / ".wouldreads",
        description="Directory holding the JSON state slots",
    )

    database_url: str | None = Field(
        default=None,
        description="PostgreSQL connection string; when set, state slots are stored there",
    )

    user_agent: str = Field(
        default="wouldreads/1.0",
        description="User-Agent header sent with feed requests",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    @property
    def uses_database(self) -> bool:
        """Check if state should live in PostgreSQL rather than on disk."""
        return bool(self.database_url)


def get_settings() -> Settings:
    """Get settings instance. Use this for lazy loading in tests."""
    return Settings()

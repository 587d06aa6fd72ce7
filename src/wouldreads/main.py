"""
Main entry point for wouldreads.

Commands:
    python -m wouldreads.main list                 # Show stored articles (loads them if none)
    python -m wouldreads.main list --shuffle       # Source-balanced random order
    python -m wouldreads.main refresh              # Fetch all feeds now
    python -m wouldreads.main toggle-read <id>     # Mark read / unread
    python -m wouldreads.main serve --port 8000    # Start the API server
    python -m wouldreads.main setup-db             # Create the PostgreSQL table

How This Works:
- The CLI uses argparse for argument parsing
- Each command maps to an async function run with asyncio.run()
- structlog provides structured logging throughout
"""

from dotenv import load_dotenv

load_dotenv()

import argparse
import asyncio
import logging
import sys

import structlog
import uvicorn

from wouldreads.config import get_settings
from wouldreads.display import format_time_ago
from wouldreads.errors import AggregationError
from wouldreads.graph.state import Article
from wouldreads.service import ArticleService
from wouldreads.store import get_repository

logger = structlog.get_logger()


def configure_logging(level: str = "INFO") -> None:
    """Route structlog through stdlib logging with a console renderer."""
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def print_articles(articles: list[Article], limit: int | None = None) -> None:
    """Print one line per article: read marker, age, source, title."""
    shown = articles[:limit] if limit else articles

    for article in shown:
        marker = "x" if article["is_read"] else " "
        age = format_time_ago(article["published_at"])
        print(f"[{marker}] {age:>12}  {article['source']:<20} {article['title']}")
        print(f"{'':>17}  {article['id']}  {article['link']}")

    read_count = sum(1 for article in articles if article["is_read"])
    print(f"\n{len(articles)} articles • {read_count} read")


# ========================================
# COMMAND FUNCTIONS
# ========================================


async def run_server(host: str = "127.0.0.1", port: int = 8000, reload: bool = False):
    """Start the FastAPI server (endpoints live in wouldreads/api.py)."""
    logger.info("Starting API server", host=host, port=port, reload=reload)

    config = uvicorn.Config(
        "wouldreads.api:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )
    server = uvicorn.Server(config)
    await server.serve()


async def refresh_articles(service: ArticleService) -> int:
    """Run the pipeline once and print the outcome. Returns an exit code."""
    try:
        articles = await service.refresh()
    except AggregationError as e:
        print(f"\n{e}")
        return 1

    print(f"Loaded {len(articles)} articles")
    for error in service.last_errors:
        print(f"  ! {error['source']}: {error['error_message']}")
    return 0


async def list_articles(service: ArticleService, shuffle: bool = False, limit: int | None = None) -> int:
    """Print stored articles, loading them first when nothing is stored yet."""
    try:
        articles = await service.ensure_articles()
    except AggregationError as e:
        print(f"\n{e}")
        return 1

    if not articles:
        print("No articles loaded. Run 'refresh' to load the latest articles.")
        return 0

    if shuffle:
        articles = await service.shuffle(articles)

    print_articles(articles, limit=limit)

    summary = await service.summary()
    if summary["last_fetch"]:
        print(f"Updated {summary['last_fetch']}")
    return 0


async def toggle_article(service: ArticleService, article_id: str) -> int:
    """Flip one article's read state."""
    articles = await service.toggle_read(article_id)
    match = next((article for article in articles if article["id"] == article_id), None)

    if match is None:
        print(f"Read state toggled for {article_id} (not in the current list)")
    else:
        state = "read" if match["is_read"] else "unread"
        print(f"Marked as {state}: {match['title']}")
    return 0


async def setup_database() -> int:
    """Create the PostgreSQL state table."""
    from wouldreads.store.connection import close_db_pool
    from wouldreads.store.setup_db import get_table_stats, setup_database

    try:
        await setup_database()
        stats = await get_table_stats()
        print(f"Database ready: app_state has {stats['app_state']} slots")
        return 0

    except Exception as e:
        logger.error("Database setup failed", error=str(e))
        print(f"\nDatabase setup failed: {e}")
        print("\nMake sure PostgreSQL is running and WOULDREADS_DATABASE_URL is correct.")
        return 1

    finally:
        await close_db_pool()


async def run_command(args: argparse.Namespace) -> int:
    """Dispatch a parsed command to its handler."""
    if args.command == "setup-db":
        return await setup_database()

    settings = get_settings()
    service = ArticleService(get_repository(settings))

    try:
        if args.command == "refresh":
            return await refresh_articles(service)
        if args.command == "toggle-read":
            return await toggle_article(service, args.article_id)
        return await list_articles(service, shuffle=args.shuffle, limit=args.limit)
    finally:
        if settings.uses_database:
            from wouldreads.store.connection import close_db_pool

            await close_db_pool()


# ========================================
# CLI ENTRY POINT
# ========================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="wouldreads - articles from tech and culture news feeds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m wouldreads.main list --shuffle      # Mixed order, every source represented
  python -m wouldreads.main refresh             # Fetch all feeds
  python -m wouldreads.main toggle-read <id>    # Mark read / unread
  python -m wouldreads.main serve --port 8080   # Start API server
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    list_parser = subparsers.add_parser("list", help="Show stored articles")
    list_parser.add_argument(
        "--shuffle",
        action="store_true",
        help="Show a source-balanced random order",
    )
    list_parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Show at most this many articles",
    )

    subparsers.add_parser("refresh", help="Fetch all feeds and replace stored articles")

    toggle_parser = subparsers.add_parser("toggle-read", help="Flip an article's read state")
    toggle_parser.add_argument("article_id", help="ID shown by the list command")

    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on")
    serve_parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )

    subparsers.add_parser("setup-db", help="Create the PostgreSQL state table")

    return parser


def main():
    """Main entry point with CLI argument parsing. Defaults to 'list'."""
    parser = build_parser()
    args = parser.parse_args()

    # Default to 'list' if no command specified
    if args.command is None:
        args.command = "list"
        args.shuffle = False
        args.limit = None

    try:
        settings = get_settings()
    except Exception as e:
        print(f"\nConfiguration Error: {e}")
        print("\nCheck the WOULDREADS_* variables in your environment or .env file.")
        sys.exit(1)

    configure_logging(settings.log_level)

    if args.command == "serve":
        asyncio.run(run_server(host=args.host, port=args.port, reload=args.reload))
        return

    sys.exit(asyncio.run(run_command(args)))


if __name__ == "__main__":
    main()

"""
Tests for the graph orchestrator.

Key testing strategies:
1. Test graph creation and compilation
2. Test run_pipeline against a mock graph (initial state, run ID generation)
3. Test the full pipeline end to end with mocked HTTP and an in-memory store
4. Test that a failing node leaves stored state untouched
"""

import importlib
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from wouldreads.config import Settings, SourceConfig
from wouldreads.graph.nodes.feed_parser import generate_article_id
from wouldreads.graph.orchestrator import (
    create_graph,
    get_graph,
    run_aggregator,
    run_pipeline,
)
from wouldreads.store import (
    ARTICLES_KEY,
    LAST_FETCH_KEY,
    READ_ARTICLES_KEY,
    InMemoryStateRepository,
    normalize_articles,
)


def make_feed(*items: tuple[str, str, str]) -> str:
    """Build an RSS document from (title, link, pubDate) tuples."""
    body = "".join(
        f"<item><title>{title}</title><link>{link}</link><pubDate>{date}</pubDate></item>"
        for title, link, date in items
    )
    return f'<?xml version="1.0"?><rss version="2.0"><channel><title>F</title>{body}</channel></rss>'


@pytest.fixture
def sources():
    return [
        SourceConfig(name="Alpha", feed_url="https://alpha.example.com/rss"),
        SourceConfig(name="Beta", feed_url="https://beta.example.com/rss"),
        SourceConfig(name="Gamma", feed_url="https://gamma.example.com/rss"),
    ]


@pytest.fixture
def settings():
    return Settings(proxy_url="", fetch_timeout=5.0, max_articles=50)


@pytest.fixture
def feeds(httpx_mock, sources):
    """Alpha and Beta answer (sharing one story), Gamma is down."""
    httpx_mock.add_response(
        url=sources[0].feed_url,
        text=make_feed(
            ("Shared Story", "https://alpha.example.com/shared", "Tue, 10 Dec 2024 09:00:00 GMT"),
            ("Alpha Only", "https://alpha.example.com/only", "Wed, 11 Dec 2024 09:00:00 GMT"),
        ),
    )
    httpx_mock.add_response(
        url=sources[1].feed_url,
        text=make_feed(
            ("shared story ", "https://beta.example.com/shared", "Thu, 12 Dec 2024 09:00:00 GMT"),
            ("Beta Only", "https://beta.example.com/only", "Fri, 13 Dec 2024 09:00:00 GMT"),
        ),
    )
    httpx_mock.add_response(url=sources[2].feed_url, status_code=503)


class TestCreateGraph:
    """Tests for the create_graph function."""

    def test_creates_valid_graph(self):
        """Should create a compilable graph."""
        graph = create_graph(repository=InMemoryStateRepository())
        assert graph is not None

    def test_graph_has_all_nodes(self):
        """Graph should contain every pipeline stage."""
        graph = create_graph(repository=InMemoryStateRepository())

        nodes = set(graph.get_graph().nodes)

        assert {"fetch_sources", "deduplicate", "rank", "merge_read_state", "persist"} <= nodes


class TestGetGraph:
    """Tests for the cached get_graph function."""

    def test_returns_same_graph(self):
        """Should return the same cached graph instance."""
        import wouldreads.graph.orchestrator as orchestrator

        orchestrator._cached_graph = None

        graph1 = get_graph()
        graph2 = get_graph()

        assert graph1 is graph2
        orchestrator._cached_graph = None


class TestRunPipeline:
    """Tests for the run_pipeline function."""

    @pytest.fixture
    def mock_graph(self):
        graph = MagicMock()
        graph.ainvoke = AsyncMock(
            return_value={
                "articles": [{"id": "a"}],
                "collection_errors": [{"source": "Gamma"}],
                "fetched_at": None,
            }
        )
        return graph

    async def test_returns_result(self, mock_graph):
        result = await run_pipeline(mock_graph, run_id="test-123")

        assert result["run_id"] == "test-123"
        assert result["articles"] == [{"id": "a"}]
        assert result["collection_errors"] == [{"source": "Gamma"}]

    async def test_passes_initial_state(self, mock_graph):
        """Read ids reach the graph as a set alongside run_id and run_date."""
        await run_pipeline(mock_graph, read_ids=["x", "y", "x"], run_id="test-123")

        call_args = mock_graph.ainvoke.call_args[0][0]
        assert call_args["run_id"] == "test-123"
        assert call_args["read_ids"] == {"x", "y"}
        assert call_args["run_date"].tzinfo is not None

    async def test_generates_run_id_if_not_provided(self, mock_graph):
        await run_pipeline(mock_graph)

        call_args = mock_graph.ainvoke.call_args[0][0]
        assert call_args["run_id"].startswith("run_")

    async def test_handles_empty_final_state(self, mock_graph):
        mock_graph.ainvoke = AsyncMock(return_value={})

        result = await run_pipeline(mock_graph)

        assert result["articles"] == []
        assert result["collection_errors"] == []

    async def test_graph_errors_propagate(self, mock_graph):
        mock_graph.ainvoke = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            await run_pipeline(mock_graph)


class TestRunAggregator:
    """Tests for the high-level run_aggregator function."""

    @pytest.fixture
    def mock_graph(self):
        graph = MagicMock()
        graph.ainvoke = AsyncMock(return_value={"articles": [], "collection_errors": []})
        return graph

    async def test_loads_read_state_from_repository(self, mock_graph):
        import wouldreads.graph.orchestrator as orchestrator

        repository = InMemoryStateRepository({READ_ARTICLES_KEY: ["a", "b"]})

        with patch.object(orchestrator, "create_graph", return_value=mock_graph) as factory:
            await run_aggregator(repository)

        factory.assert_called_once_with(repository=repository)
        assert mock_graph.ainvoke.call_args[0][0]["read_ids"] == {"a", "b"}

    async def test_uses_cached_graph_by_default(self, mock_graph):
        import wouldreads.graph.orchestrator as orchestrator

        with (
            patch.object(orchestrator, "get_graph", return_value=mock_graph),
            patch.object(orchestrator, "get_repository", return_value=InMemoryStateRepository()),
        ):
            await run_aggregator()

        mock_graph.ainvoke.assert_called_once()


class TestEndToEnd:
    """
    The whole pipeline with real nodes.

    HTTP is mocked with pytest-httpx and state lives in memory, so nothing
    touches the network or the filesystem.
    """

    async def test_full_pipeline(self, feeds, sources, settings):
        alpha_only = generate_article_id("Alpha", "https://alpha.example.com/only", "Alpha Only")
        repository = InMemoryStateRepository({READ_ARTICLES_KEY: [alpha_only]})
        graph = create_graph(sources=sources, repository=repository, settings=settings)

        result = await run_pipeline(graph, read_ids=await repository.load(READ_ARTICLES_KEY))

        # Beta's copy of the shared story is dropped even though it is newer
        titles = [a["title"] for a in result["articles"]]
        assert titles == ["Beta Only", "Alpha Only", "Shared Story"]
        assert [a["source"] for a in result["articles"]] == ["Beta", "Alpha", "Alpha"]
        assert [a["is_read"] for a in result["articles"]] == [False, True, False]

        assert [e["source"] for e in result["collection_errors"]] == ["Gamma"]
        assert result["fetched_at"] is not None

        stored = normalize_articles(await repository.load(ARTICLES_KEY))
        assert stored == result["articles"]
        assert await repository.load(LAST_FETCH_KEY) == result["fetched_at"].isoformat()
        assert await repository.load(READ_ARTICLES_KEY) == [alpha_only]

    async def test_all_sources_failing_yields_empty_list(self, httpx_mock, sources, settings):
        for source in sources:
            httpx_mock.add_response(url=source.feed_url, status_code=500)
        repository = InMemoryStateRepository()
        graph = create_graph(sources=sources, repository=repository, settings=settings)

        result = await run_pipeline(graph)

        assert result["articles"] == []
        assert len(result["collection_errors"]) == 3
        assert await repository.load(ARTICLES_KEY) == []
        assert await repository.load(LAST_FETCH_KEY) != ""

    async def test_failing_stage_leaves_state_untouched(self, feeds, sources, settings):
        """A fault after collection aborts the run before anything is written."""
        previous = {
            ARTICLES_KEY: [{"id": "old", "published_at": "2024-01-01T00:00:00+00:00"}],
            READ_ARTICLES_KEY: ["old"],
            LAST_FETCH_KEY: "2024-01-01T00:00:00+00:00",
        }
        repository = InMemoryStateRepository(previous)
        graph = create_graph(sources=sources, repository=repository, settings=settings)
        dedup_module = importlib.import_module("wouldreads.graph.nodes.deduplicate")

        with (
            patch.object(dedup_module, "deduplicate_articles", side_effect=RuntimeError("boom")),
            pytest.raises(RuntimeError),
        ):
            await run_pipeline(graph)

        for key, value in previous.items():
            assert await repository.load(key) == value

"""
Tests for the deduplicate node.

Key testing strategies:
1. Title and link matching rules
2. First-occurrence tie-break (not recency)
3. Idempotence
4. Edge cases (empty input, empty links)
"""

import random
from datetime import UTC, datetime, timedelta

from wouldreads.graph.nodes.deduplicate import deduplicate, deduplicate_articles
from wouldreads.graph.state import Article


def make_article(
    id: str = "abc123",
    title: str = "Test Article",
    link: str = "https://example.com/article",
    source: str = "Test Source",
    published_at: datetime | None = None,
) -> Article:
    """Helper to create test Articles."""
    return Article(
        id=id,
        title=title,
        description="Test description",
        link=link,
        source=source,
        published_at=published_at or datetime(2024, 12, 23, 10, 0, 0, tzinfo=UTC),
        is_read=False,
    )


class TestDeduplicateArticles:
    """Tests for the deduplicate_articles function."""

    def test_unique_articles_unchanged(self):
        articles = [
            make_article(id="1", title="One", link="https://a.com/1"),
            make_article(id="2", title="Two", link="https://a.com/2"),
        ]
        assert deduplicate_articles(articles) == articles

    def test_same_title_case_and_whitespace_insensitive(self):
        articles = [
            make_article(id="1", title="Big News", link="https://a.com/1"),
            make_article(id="2", title="  big news ", link="https://b.com/2"),
        ]
        assert [a["id"] for a in deduplicate_articles(articles)] == ["1"]

    def test_same_link_different_title(self):
        articles = [
            make_article(id="1", title="Original headline", link="https://a.com/story"),
            make_article(id="2", title="Rewritten headline", link="https://a.com/story"),
        ]
        assert [a["id"] for a in deduplicate_articles(articles)] == ["1"]

    def test_empty_links_never_match(self):
        """Two articles without links are only duplicates if their titles match."""
        articles = [
            make_article(id="1", title="One", link=""),
            make_article(id="2", title="Two", link=""),
        ]
        assert len(deduplicate_articles(articles)) == 2

    def test_first_occurrence_wins_over_fresher(self):
        """The earlier article is kept even when the later copy is more recent."""
        older_first = make_article(
            id="early",
            title="Shared Story",
            link="https://a.com/x",
            source="Source A",
            published_at=datetime(2024, 12, 1, tzinfo=UTC),
        )
        fresher_later = make_article(
            id="late",
            title="shared story",
            link="https://b.com/y",
            source="Source B",
            published_at=datetime(2024, 12, 20, tzinfo=UTC),
        )

        result = deduplicate_articles([older_first, fresher_later])

        assert result == [older_first]

    def test_match_against_dropped_article(self):
        """An article matching a dropped one is dropped too."""
        kept = make_article(id="1", title="First", link="https://a.com/shared")
        dropped = make_article(id="2", title="Second", link="https://a.com/shared")
        matches_dropped = make_article(id="3", title="second", link="https://c.com/3")

        result = deduplicate_articles([kept, dropped, matches_dropped])

        assert [a["id"] for a in result] == ["1"]

    def test_preserves_order(self):
        articles = [
            make_article(id=str(i), title=f"Story {i}", link=f"https://a.com/{i}")
            for i in [3, 1, 2]
        ]
        assert [a["id"] for a in deduplicate_articles(articles)] == ["3", "1", "2"]

    def test_empty_input(self):
        assert deduplicate_articles([]) == []

    def test_idempotent(self):
        """Deduplicating twice gives the same result as once."""
        rng = random.Random(7)
        base = datetime(2024, 12, 1, tzinfo=UTC)
        titles = ["Alpha", "alpha ", "Beta", "Gamma", "BETA", "Delta"]
        links = ["", "https://a.com/1", "https://a.com/2", "https://a.com/1", ""]

        for _ in range(50):
            articles = [
                make_article(
                    id=str(i),
                    title=rng.choice(titles),
                    link=rng.choice(links),
                    published_at=base + timedelta(hours=rng.randint(0, 100)),
                )
                for i in range(rng.randint(0, 12))
            ]
            once = deduplicate_articles(articles)
            assert deduplicate_articles(once) == once


class TestDeduplicateNode:
    """Tests for the full deduplicate node."""

    async def test_empty_input(self):
        result = await deduplicate({"raw_articles": []})
        assert result == {"deduplicated_articles": []}

    async def test_missing_input(self):
        result = await deduplicate({})
        assert result == {"deduplicated_articles": []}

    async def test_node_output(self):
        state = {
            "raw_articles": [
                make_article(id="1", title="Breaking", link="https://a.com/1", source="A"),
                make_article(id="2", title="Breaking", link="https://b.com/1", source="B"),
                make_article(id="3", title="Other", link="https://b.com/2", source="B"),
            ]
        }

        result = await deduplicate(state)

        assert [a["id"] for a in result["deduplicated_articles"]] == ["1", "3"]

"""
Tests for the display helpers.

The shuffle is random, so its guarantees are checked across many seeds
rather than against one fixed order.
"""

import random
from collections import Counter
from datetime import UTC, datetime, timedelta

import pytest

from wouldreads.display import format_time_ago, shuffle_articles
from wouldreads.graph.state import Article


def make_article(id: str, source: str) -> Article:
    return Article(
        id=id,
        title=f"Story {id}",
        description="",
        link=f"https://example.com/{id}",
        source=source,
        published_at=datetime(2024, 12, 23, tzinfo=UTC),
        is_read=False,
    )


def make_articles(counts: dict[str, int]) -> list[Article]:
    return [
        make_article(f"{source}-{i}", source)
        for source, count in counts.items()
        for i in range(count)
    ]


class TestShuffleArticles:
    """Tests for the source-balanced shuffle."""

    @pytest.mark.parametrize("seed", range(25))
    def test_five_and_one(self, seed):
        """Source A (5) and B (1), C absent: both represented, length 6."""
        articles = make_articles({"A": 5, "B": 1})

        shuffled = shuffle_articles(articles, rng=random.Random(seed))
        counts = Counter(a["source"] for a in shuffled)

        assert len(shuffled) == 6
        assert counts["A"] >= 2
        assert counts["B"] == 1
        assert "C" not in counts

    @pytest.mark.parametrize("seed", range(25))
    def test_is_permutation(self, seed):
        """Nothing dropped, nothing repeated."""
        articles = make_articles({"A": 7, "B": 3, "C": 2, "D": 1})

        shuffled = shuffle_articles(articles, rng=random.Random(seed))

        assert sorted(a["id"] for a in shuffled) == sorted(a["id"] for a in articles)

    def test_empty(self):
        assert shuffle_articles([]) == []

    def test_single_article(self):
        articles = make_articles({"A": 1})
        assert shuffle_articles(articles) == articles

    def test_does_not_mutate_input(self):
        articles = make_articles({"A": 4, "B": 4})
        snapshot = list(articles)

        shuffle_articles(articles, rng=random.Random(1))

        assert articles == snapshot

    def test_same_seed_same_order(self):
        articles = make_articles({"A": 5, "B": 5})

        first = shuffle_articles(articles, rng=random.Random(42))
        second = shuffle_articles(articles, rng=random.Random(42))

        assert first == second

    def test_actually_reorders(self):
        """Across many seeds more than one order is produced."""
        articles = make_articles({"A": 5, "B": 5})

        orders = {
            tuple(a["id"] for a in shuffle_articles(articles, rng=random.Random(seed)))
            for seed in range(20)
        }

        assert len(orders) > 1

    def test_duplicate_ids_kept(self):
        """Articles are tracked by position, so even repeated IDs survive."""
        articles = [make_article("same", "A"), make_article("same", "A"), make_article("x", "B")]

        shuffled = shuffle_articles(articles, rng=random.Random(3))

        assert len(shuffled) == 3

    def test_every_position_reachable(self):
        """Each article can land anywhere in the final order."""
        articles = make_articles({"A": 3, "B": 1})
        positions = {a["id"]: set() for a in articles}

        for seed in range(200):
            for position, article in enumerate(
                shuffle_articles(articles, rng=random.Random(seed))
            ):
                positions[article["id"]].add(position)

        assert all(seen == {0, 1, 2, 3} for seen in positions.values())


class TestFormatTimeAgo:
    """Tests for relative timestamps."""

    NOW = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)

    @pytest.mark.parametrize(
        ("delta", "expected"),
        [
            (timedelta(minutes=5), "Just now"),
            (timedelta(minutes=59), "Just now"),
            (timedelta(hours=1), "1h ago"),
            (timedelta(hours=23, minutes=59), "23h ago"),
            (timedelta(hours=24), "Yesterday"),
            (timedelta(hours=47), "Yesterday"),
            (timedelta(days=3), "3d ago"),
            (timedelta(days=6, hours=23), "6d ago"),
        ],
    )
    def test_relative(self, delta, expected):
        assert format_time_ago(self.NOW - delta, now=self.NOW) == expected

    def test_older_than_a_week_shows_date(self):
        assert format_time_ago(datetime(2024, 12, 25, tzinfo=UTC), now=self.NOW) == "Dec 25, 2024"

    def test_future_date_is_just_now(self):
        assert format_time_ago(self.NOW + timedelta(hours=3), now=self.NOW) == "Just now"

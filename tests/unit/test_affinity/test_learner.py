"""Tests for topic affinity learning."""

from collections.abc import Generator, Sequence

import pytest

from curator.affinity.learner import (
    AffinityLearner,
    affinity_step,
    parse_interaction_type,
)
from curator.affinity.recommendations import recommend_topics
from curator.store.errors import ArticleNotFoundError
from curator.store.models import InteractionType, LinkedTopic, NewArticle, TopicLink
from curator.store.store import DiscoveryStore
from tests.helpers.time import FIXED_NOW


@pytest.fixture
def store() -> Generator[DiscoveryStore]:
    """Create an in-memory discovery store."""
    with DiscoveryStore(":memory:", run_id="test-affinity") as store:
        yield store


@pytest.fixture
def learner(store: DiscoveryStore) -> AffinityLearner:
    """Create a learner backed by the store."""
    return AffinityLearner(store, store, store)


def _article(store: DiscoveryStore, url: str, topics: list[TopicLink]) -> int:
    interest = store.add_interest("news", FIXED_NOW)
    write = store.save_curation_batch(
        [NewArticle(url=url, title="Story", interest_id=interest.id)], [], FIXED_NOW
    )
    article_id = write.saved[0].id
    if topics:
        store.save_article_topics({article_id: topics}, FIXED_NOW)
    return article_id


class _SnapshotTopics:
    """Topic reader frozen at one earlier read."""

    def __init__(self, snapshot: dict[int, list[LinkedTopic]]) -> None:
        self.snapshot = snapshot

    def get_linked_topics(
        self, article_ids: Sequence[int]
    ) -> dict[int, list[LinkedTopic]]:
        return {i: list(self.snapshot.get(i, [])) for i in article_ids}


class TestParseInteractionType:
    """Tests for parse_interaction_type function."""

    def test_accepts_known_values(self) -> None:
        """Test case and whitespace are normalized."""
        assert parse_interaction_type(" Like ") == InteractionType.LIKE
        assert parse_interaction_type(InteractionType.CLICK) == InteractionType.CLICK

    def test_unknown_value_rejected(self) -> None:
        """Test an unknown type raises ValueError listing allowed values."""
        with pytest.raises(ValueError, match="click, like, dislike"):
            parse_interaction_type("share")


class TestAffinityStep:
    """Tests for affinity_step function."""

    def test_full_relevance_step(self) -> None:
        """Test a like on a central topic moves it by the learning rate."""
        topic = LinkedTopic(topic_id=1, name="Rust", relevance=1.0)
        update = affinity_step(topic, weight=1.0)
        assert update.topic_id == 1
        assert update.delta == pytest.approx(0.1)

    def test_step_scaled_by_relevance(self) -> None:
        """Test loosely related topics move less."""
        topic = LinkedTopic(
            topic_id=1,
            name="Rust",
            relevance=0.5,
            affinity_score=0.3,
            interaction_count=4,
        )
        assert affinity_step(topic, weight=-1.0).delta == pytest.approx(-0.05)

    def test_step_ignores_current_score(self) -> None:
        """Test the step depends only on weight and relevance."""
        fresh = LinkedTopic(topic_id=1, name="Rust", relevance=1.0)
        seasoned = LinkedTopic(
            topic_id=1, name="Rust", relevance=1.0, affinity_score=1.95
        )
        assert affinity_step(fresh, 1.0) == affinity_step(seasoned, 1.0)


class TestAffinityLearner:
    """Tests for AffinityLearner."""

    def test_like_updates_every_topic(
        self, store: DiscoveryStore, learner: AffinityLearner
    ) -> None:
        """Test a like raises affinity for all linked topics."""
        article_id = _article(
            store,
            "https://a.com/1",
            [
                TopicLink(name="Rust", relevance=1.0),
                TopicLink(name="Compilers", relevance=0.5),
            ],
        )

        updated = learner.record_interaction(article_id, "like", FIXED_NOW)

        assert updated == 2
        scores = {a.topic_name: a.affinity_score for a in learner.list_affinities()}
        assert scores["Rust"] == pytest.approx(0.1)
        assert scores["Compilers"] == pytest.approx(0.05)

    def test_repeated_likes_converge_to_ceiling(
        self, store: DiscoveryStore, learner: AffinityLearner
    ) -> None:
        """Test many likes saturate at the maximum affinity."""
        article_id = _article(
            store, "https://a.com/1", [TopicLink(name="Rust", relevance=1.0)]
        )

        for _ in range(30):
            learner.record_interaction(article_id, InteractionType.LIKE, FIXED_NOW)

        (affinity,) = learner.list_affinities()
        assert affinity.affinity_score == 2.0
        assert affinity.interaction_count == 30

    def test_click_and_dislike_weights(
        self, store: DiscoveryStore, learner: AffinityLearner
    ) -> None:
        """Test clicks nudge up and dislikes push down."""
        article_id = _article(
            store, "https://a.com/1", [TopicLink(name="Rust", relevance=1.0)]
        )

        learner.record_interaction(article_id, "click", FIXED_NOW)
        learner.record_interaction(article_id, "dislike", FIXED_NOW)

        (affinity,) = learner.list_affinities()
        assert affinity.affinity_score == pytest.approx(0.02 - 0.1)

    def test_interleaved_feedback_not_lost(self, store: DiscoveryStore) -> None:
        """Test two commands that read the same state both take effect."""
        article_id = _article(
            store, "https://a.com/1", [TopicLink(name="Rust", relevance=1.0)]
        )
        snapshot = store.get_linked_topics([article_id])
        stale = _SnapshotTopics(snapshot)
        first = AffinityLearner(store, stale, store)
        second = AffinityLearner(store, stale, store)

        first.record_interaction(article_id, "like", FIXED_NOW)
        second.record_interaction(article_id, "like", FIXED_NOW)

        (affinity,) = store.list_affinities()
        assert affinity.affinity_score == pytest.approx(0.2)
        assert affinity.interaction_count == 2

    def test_article_without_topics_still_logged(
        self, store: DiscoveryStore, learner: AffinityLearner
    ) -> None:
        """Test feedback on an untagged article records only the interaction."""
        article_id = _article(store, "https://a.com/1", [])

        assert learner.record_interaction(article_id, "like", FIXED_NOW) == 0
        assert len(store.list_interactions(article_id)) == 1
        assert learner.list_affinities() == []

    def test_unknown_article(self, learner: AffinityLearner) -> None:
        """Test feedback on a missing article raises."""
        with pytest.raises(ArticleNotFoundError):
            learner.record_interaction(999, "like", FIXED_NOW)

    def test_unknown_type_writes_nothing(
        self, store: DiscoveryStore, learner: AffinityLearner
    ) -> None:
        """Test an invalid type is rejected before anything is stored."""
        article_id = _article(
            store, "https://a.com/1", [TopicLink(name="Rust", relevance=1.0)]
        )

        with pytest.raises(ValueError, match="Unknown interaction type"):
            learner.record_interaction(article_id, "share", FIXED_NOW)

        assert store.list_interactions() == []


class TestRecommendTopics:
    """Tests for recommend_topics function."""

    def test_requires_affinity_and_interactions(
        self, store: DiscoveryStore, learner: AffinityLearner
    ) -> None:
        """Test only well-liked, often-seen topics are suggested."""
        article_id = _article(
            store,
            "https://a.com/1",
            [
                TopicLink(name="Fusion", relevance=1.0),
                TopicLink(name="Tokamak", relevance=0.2),
            ],
        )
        for _ in range(6):
            learner.record_interaction(article_id, "like", FIXED_NOW)

        recommended = recommend_topics(store)

        # Fusion reaches 0.6, Tokamak only 0.12
        assert [r.topic_name for r in recommended] == ["Fusion"]

    def test_too_few_interactions(
        self, store: DiscoveryStore, learner: AffinityLearner
    ) -> None:
        """Test a strongly liked topic with too few interactions is not suggested."""
        article_id = _article(
            store, "https://a.com/1", [TopicLink(name="Fusion", relevance=1.0)]
        )
        learner.record_interaction(article_id, "like", FIXED_NOW)

        assert recommend_topics(store, min_affinity=0.05) == []

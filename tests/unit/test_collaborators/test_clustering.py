"""Tests for story clustering and its fallback."""

import json

import pytest

from curator.collaborators.clustering import (
    FALLBACK_CLUSTER_ID,
    LlmClusterer,
    assign_clusters,
    cluster_articles,
)
from curator.collaborators.errors import ClusteringError
from curator.collaborators.models import Cluster
from curator.llm.errors import LlmApiError
from curator.store.models import Article
from tests.helpers.stubs import ScriptedLlmClient, StubClusterer
from tests.helpers.time import FIXED_NOW


def _article(article_id: int) -> Article:
    return Article(
        id=article_id,
        url=f"https://news.example.com/{article_id}",
        title=f"Story {article_id}",
        fetched_at=FIXED_NOW,
    )


def _answer(*clusters: dict[str, object]) -> str:
    return json.dumps({"clusters": list(clusters)})


class TestLlmClusterer:
    """Tests for LlmClusterer."""

    def test_parses_clusters(self) -> None:
        """Test a well-formed answer becomes clusters with clamped scores."""
        client = ScriptedLlmClient(
            [
                "```json\n"
                + _answer(
                    {
                        "cluster_id": "fusion",
                        "topic": "Fusion energy",
                        "articles": [
                            {
                                "url": "https://news.example.com/1",
                                "significance_score": 0.9,
                            },
                            {
                                "url": "https://news.example.com/2",
                                "significance_score": 7,
                            },
                        ],
                    }
                )
                + "\n```"
            ]
        )

        (cluster,) = LlmClusterer(client).cluster([_article(1), _article(2)])

        assert cluster.cluster_id == "fusion"
        assert [m.significance for m in cluster.members] == [0.9, 1.0]
        assert "https://news.example.com/1" in client.prompts[0]

    def test_missing_cluster_id_numbered(self) -> None:
        """Test clusters without an id get a positional one."""
        client = ScriptedLlmClient(
            [_answer({"articles": [{"url": "https://news.example.com/1"}]})]
        )

        (cluster,) = LlmClusterer(client).cluster([_article(1)])

        assert cluster.cluster_id == "cluster-1"
        assert cluster.members[0].significance == 0.5

    def test_api_failure(self) -> None:
        """Test an API error becomes a ClusteringError."""
        client = ScriptedLlmClient([LlmApiError("quota exceeded", status_code=429)])

        with pytest.raises(ClusteringError, match="quota exceeded"):
            LlmClusterer(client).cluster([_article(1)])

    def test_answer_without_clusters(self) -> None:
        """Test an object without a clusters list is rejected."""
        client = ScriptedLlmClient(['{"groups": []}'])

        with pytest.raises(ClusteringError, match="no 'clusters' list"):
            LlmClusterer(client).cluster([_article(1)])

    def test_no_articles_no_call(self) -> None:
        """Test clustering nothing makes no request."""
        client = ScriptedLlmClient([])
        assert LlmClusterer(client).cluster([]) == []
        assert client.prompts == []


class TestAssignClusters:
    """Tests for assign_clusters function."""

    def test_first_cluster_wins_and_missing_get_own(self) -> None:
        """Test duplicates keep their first cluster and leftovers are isolated."""
        clusters = [
            Cluster.model_validate(
                {
                    "cluster_id": "a",
                    "members": [
                        {"url": "https://news.example.com/1", "significance": 0.8}
                    ],
                }
            ),
            Cluster.model_validate(
                {
                    "cluster_id": "b",
                    "members": [
                        {"url": "https://news.example.com/1", "significance": 0.1}
                    ],
                }
            ),
        ]

        clustered = assign_clusters([_article(1), _article(2)], clusters)

        assert [(c.cluster_id, c.significance) for c in clustered] == [
            ("a", 0.8),
            ("unclustered-1", 0.5),
        ]


class TestClusterArticles:
    """Tests for cluster_articles function."""

    def test_uses_clusterer(self) -> None:
        """Test clusterer output is applied."""
        outcome = cluster_articles([_article(1), _article(2)], StubClusterer(0.7))

        assert not outcome.used_fallback
        assert outcome.clusters_found == 1
        assert {c.significance for c in outcome.clustered} == {0.7}

    def test_falls_back_on_failure(self) -> None:
        """Test a failing clusterer yields one synthetic cluster."""
        clusterer = LlmClusterer(ScriptedLlmClient(["not json at all"]))

        outcome = cluster_articles([_article(1), _article(2)], clusterer)

        assert outcome.used_fallback
        assert outcome.clusters_found == 1
        assert {c.cluster_id for c in outcome.clustered} == {FALLBACK_CLUSTER_ID}
        assert {c.significance for c in outcome.clustered} == {0.5}

    def test_falls_back_on_unexpected_error(self) -> None:
        """Test an error outside the clustering types still falls back."""
        clusterer = LlmClusterer(ScriptedLlmClient([KeyError("candidates")]))

        outcome = cluster_articles([_article(1), _article(2)], clusterer)

        assert outcome.used_fallback
        assert {c.cluster_id for c in outcome.clustered} == {FALLBACK_CLUSTER_ID}

    def test_no_clusterer_uses_fallback(self) -> None:
        """Test a missing clusterer selects the fallback directly."""
        outcome = cluster_articles([_article(1)], None)
        assert outcome.used_fallback

    def test_empty_input(self) -> None:
        """Test no articles gives an empty outcome."""
        assert cluster_articles([], StubClusterer()).clustered == []

"""Story clustering with significance scores, plus its fallback."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

import structlog
from pydantic import ValidationError

from curator.collaborators.errors import ClusteringError
from curator.collaborators.models import Cluster, ClusterMember
from curator.collaborators.prompts import (
    CLUSTERING_SYSTEM_INSTRUCTION,
    build_clustering_prompt,
)
from curator.llm.errors import LlmApiError, LlmProcessingError
from curator.llm.json_utils import parse_json_object
from curator.llm.protocols import LlmClient
from curator.ranker.models import ClusteredArticle
from curator.store.models import Article


logger = structlog.get_logger()

DEFAULT_SIGNIFICANCE = 0.5
FALLBACK_CLUSTER_ID = "all"
UNCLUSTERED_PREFIX = "unclustered-"


class ArticleClusterer(Protocol):
    """Groups articles into stories and rates their significance."""

    def cluster(self, articles: Sequence[Article]) -> list[Cluster]:
        """Cluster articles.

        Raises:
            ClusteringError: If no usable clustering is produced.
        """
        ...


@dataclass(frozen=True)
class ClusteringOutcome:
    """Cluster assignment for every input article.

    Attributes:
        clustered: One entry per input article, in input order.
        clusters_found: Distinct cluster ids assigned.
        used_fallback: True when the clusterer failed and one synthetic
            cluster was used.
    """

    clustered: list[ClusteredArticle] = field(default_factory=list)
    clusters_found: int = 0
    used_fallback: bool = False


class LlmClusterer:
    """Clusters articles with one LLM call returning JSON."""

    def __init__(self, client: LlmClient) -> None:
        self._client = client
        self._log = logger.bind(component="clustering", subcomponent="llm")

    def cluster(self, articles: Sequence[Article]) -> list[Cluster]:
        """Ask the model for clusters.

        Raises:
            ClusteringError: On API failure or an unparseable answer.
        """
        if not articles:
            return []

        try:
            text = self._client.generate_content(
                build_clustering_prompt(articles),
                system_instruction=CLUSTERING_SYSTEM_INSTRUCTION,
            )
            payload = parse_json_object(text)
        except (LlmApiError, LlmProcessingError) as e:
            msg = f"Clustering request failed: {e}"
            raise ClusteringError(msg) from e

        raw_clusters = payload.get("clusters")
        if not isinstance(raw_clusters, list):
            msg = "Clustering answer has no 'clusters' list"
            raise ClusteringError(msg)

        clusters: list[Cluster] = []
        for index, raw in enumerate(raw_clusters):
            if not isinstance(raw, dict):
                continue
            try:
                members = [
                    ClusterMember(
                        url=str(member.get("url", "")).strip(),
                        significance=member.get("significance_score"),
                    )
                    for member in raw.get("articles") or []
                    if isinstance(member, dict) and member.get("url")
                ]
                cluster_id = str(raw.get("cluster_id") or f"cluster-{index + 1}")
                clusters.append(
                    Cluster(
                        cluster_id=cluster_id,
                        topic=str(raw.get("topic") or ""),
                        members=members,
                    )
                )
            except (ValidationError, TypeError, ValueError) as e:
                self._log.warning("cluster_entry_invalid", index=index, error=str(e))

        if not clusters:
            msg = "Clustering answer contained no valid clusters"
            raise ClusteringError(msg)
        return clusters


def assign_clusters(
    articles: Sequence[Article], clusters: Sequence[Cluster]
) -> list[ClusteredArticle]:
    """Map clusterer output back onto the input articles.

    Matching is by URL; the first cluster naming a URL wins. Articles the
    clusterer left out get a cluster of their own with default significance.

    Args:
        articles: Articles that were clustered.
        clusters: Clusterer output.

    Returns:
        One clustered article per input article, in input order.
    """
    by_url: dict[str, tuple[str, float]] = {}
    for cluster in clusters:
        for member in cluster.members:
            by_url.setdefault(member.url, (cluster.cluster_id, member.significance))

    clustered = []
    for index, article in enumerate(articles):
        cluster_id, significance = by_url.get(
            article.url, (f"{UNCLUSTERED_PREFIX}{index}", DEFAULT_SIGNIFICANCE)
        )
        clustered.append(
            ClusteredArticle(
                article=article, cluster_id=cluster_id, significance=significance
            )
        )
    return clustered


def fallback_clusters(articles: Sequence[Article]) -> list[ClusteredArticle]:
    """One synthetic cluster with default significance for every article."""
    return [
        ClusteredArticle(
            article=article,
            cluster_id=FALLBACK_CLUSTER_ID,
            significance=DEFAULT_SIGNIFICANCE,
        )
        for article in articles
    ]


def cluster_articles(
    articles: Sequence[Article],
    clusterer: ArticleClusterer | None,
    run_id: str = "",
) -> ClusteringOutcome:
    """Cluster articles, falling back to one synthetic cluster on failure.

    Args:
        articles: Newly saved articles.
        clusterer: Clusterer to use; None selects the fallback directly.
        run_id: Run identifier for logging.

    Returns:
        Cluster assignment for every article.
    """
    log = logger.bind(component="clustering", run_id=run_id)
    if not articles:
        return ClusteringOutcome()

    clustered: list[ClusteredArticle] | None = None
    if clusterer is not None:
        try:
            clustered = assign_clusters(articles, clusterer.cluster(articles))
        except Exception as e:  # noqa: BLE001
            log.warning(
                "clustering_fallback",
                error=str(e),
                error_type=type(e).__name__,
                articles=len(articles),
            )

    used_fallback = clustered is None
    if clustered is None:
        clustered = fallback_clusters(articles)

    outcome = ClusteringOutcome(
        clustered=clustered,
        clusters_found=len({c.cluster_id for c in clustered}),
        used_fallback=used_fallback,
    )
    log.info(
        "clustering_complete",
        articles=len(articles),
        clusters_found=outcome.clusters_found,
        used_fallback=used_fallback,
    )
    return outcome

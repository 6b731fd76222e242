"""Data models for the article ranker."""

from dataclasses import dataclass, field

from curator.store.models import Article


@dataclass(frozen=True)
class ScoreComponents:
    """Breakdown of an article's interest score.

    Attributes:
        significance: Content significance from clustering, in [0, 1].
        personalization: Relevance-weighted mean topic affinity.
        interest: Final blended score used for ordering.
        personalized: False when no learned affinity applied to the article.
    """

    significance: float
    personalization: float
    interest: float
    personalized: bool

    def to_dict(self) -> dict[str, float | bool]:
        """Convert to dictionary for logging."""
        return {
            "significance": self.significance,
            "personalization": self.personalization,
            "interest": self.interest,
            "personalized": self.personalized,
        }


@dataclass(frozen=True)
class ClusteredArticle:
    """A stored article with its clustering assignment.

    Attributes:
        article: The stored article.
        cluster_id: Cluster the article belongs to.
        significance: Significance from the clusterer, None when unknown.
    """

    article: Article
    cluster_id: str
    significance: float | None = None


@dataclass(frozen=True)
class RankedArticle:
    """An article after scoring, carrying the persisted scores."""

    article: Article
    cluster_id: str
    components: ScoreComponents

    @property
    def interest_score(self) -> float:
        """Final interest score."""
        return self.components.interest


@dataclass(frozen=True)
class RankingResult:
    """Output of a ranking pass.

    Attributes:
        ranked: Articles ordered by interest score, highest first.
        skipped_article_ids: Input articles that no longer exist in the store.
    """

    ranked: list[RankedArticle] = field(default_factory=list)
    skipped_article_ids: list[int] = field(default_factory=list)

    @property
    def ranked_count(self) -> int:
        """Number of ranked articles."""
        return len(self.ranked)

"""Interest score computation.

The interest score blends two signals:

- significance: how important the story is, as judged by the clusterer
- personalization: how much the user likes the story's topics

Articles with no learned topic affinity fall back to a discounted
significance so that unpersonalized articles never outrank an equally
significant, liked one.
"""

from collections.abc import Sequence

from curator.config.schemas import RankingConfig
from curator.ranker.models import ScoreComponents
from curator.store.models import LinkedTopic


def personalization_score(topics: Sequence[LinkedTopic]) -> float | None:
    """Relevance-weighted mean affinity over an article's topics.

    Topics without an affinity row contribute zero affinity but still
    weigh in through their relevance.

    Returns:
        The score, or None when no linked topic has a learned affinity.
    """
    if not any(t.affinity_score is not None for t in topics):
        return None

    total_relevance = sum(t.relevance for t in topics)
    if total_relevance == 0:
        return 0.0

    weighted = sum((t.affinity_score or 0.0) * t.relevance for t in topics)
    return weighted / total_relevance


def score_article(
    significance: float | None,
    topics: Sequence[LinkedTopic],
    config: RankingConfig,
) -> ScoreComponents:
    """Compute an article's score components.

    Args:
        significance: Clusterer significance, None for the default.
        topics: Linked topics with current affinities.
        config: Blend weights.

    Returns:
        The score breakdown.
    """
    sig = config.default_significance if significance is None else significance
    sig = min(max(sig, 0.0), 1.0)

    personalization = personalization_score(topics)
    if personalization is None:
        return ScoreComponents(
            significance=sig,
            personalization=0.0,
            interest=sig * config.unpersonalized_significance_weight,
            personalized=False,
        )

    interest = (
        personalization * config.personalization_weight
        + sig * config.significance_weight
    )
    return ScoreComponents(
        significance=sig,
        personalization=personalization,
        interest=interest,
        personalized=True,
    )

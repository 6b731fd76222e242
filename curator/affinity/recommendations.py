"""Topic recommendations derived from learned affinities."""

import structlog

from curator.affinity.constants import (
    RECOMMENDATION_LIMIT,
    RECOMMENDATION_MIN_AFFINITY,
    RECOMMENDATION_MIN_INTERACTIONS,
)
from curator.store.models import TopicAffinity
from curator.store.repositories import AffinityRepository


logger = structlog.get_logger()


def recommend_topics(
    affinities: AffinityRepository,
    min_affinity: float = RECOMMENDATION_MIN_AFFINITY,
    min_interactions: int = RECOMMENDATION_MIN_INTERACTIONS,
    limit: int = RECOMMENDATION_LIMIT,
) -> list[TopicAffinity]:
    """Suggest topics the user keeps liking but does not follow yet.

    Args:
        affinities: Affinity repository.
        min_affinity: Affinity must be strictly above this.
        min_interactions: Minimum number of interactions on the topic.
        limit: Maximum suggestions.

    Returns:
        Topics ordered by affinity, strongest first.
    """
    recommendations = affinities.recommend_topics(min_affinity, min_interactions, limit)
    logger.info(
        "topic_recommendations",
        component="affinity",
        count=len(recommendations),
        topics=[r.topic_name for r in recommendations],
    )
    return recommendations

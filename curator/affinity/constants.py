"""Affinity learning constants."""

from typing import Final

from curator.store.models import InteractionType


INTERACTION_WEIGHTS: Final[dict[InteractionType, float]] = {
    InteractionType.LIKE: 1.0,
    InteractionType.DISLIKE: -1.0,
    InteractionType.CLICK: 0.2,
}

LEARNING_RATE: Final[float] = 0.1

# Recommendation thresholds
RECOMMENDATION_MIN_AFFINITY: Final[float] = 0.5
RECOMMENDATION_MIN_INTERACTIONS: Final[int] = 3
RECOMMENDATION_LIMIT: Final[int] = 5

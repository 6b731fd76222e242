"""Topic affinity learning and recommendations."""

from curator.affinity.learner import (
    AffinityLearner,
    affinity_step,
    parse_interaction_type,
)
from curator.affinity.recommendations import recommend_topics


__all__ = [
    "AffinityLearner",
    "affinity_step",
    "parse_interaction_type",
    "recommend_topics",
]

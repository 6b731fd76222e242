"""Article deduplication and discovery statistics."""

from curator.curation.curator import CurationStore
from curator.curation.discovery import incremental_mean, next_discovery_stats
from curator.curation.models import CandidateArticle, CurationResult


__all__ = [
    "CandidateArticle",
    "CurationResult",
    "CurationStore",
    "incremental_mean",
    "next_discovery_stats",
]

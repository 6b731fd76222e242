"""Prioritized, polite fetching of full article content."""

from curator.fetch.config import FetchConfig
from curator.fetch.extractor import extract_content
from curator.fetch.fetcher import ArticleFetcher
from curator.fetch.metrics import FetchMetrics
from curator.fetch.models import (
    ExtractedContent,
    FetchBatchResult,
    FetchCandidate,
    FetchFailureReason,
    FetchOutcome,
)
from curator.fetch.prioritizer import FetchPrioritizer, select_candidates
from curator.fetch.robots import RobotsRules
from curator.fetch.session import FetchSession


__all__ = [
    "ArticleFetcher",
    "ExtractedContent",
    "FetchBatchResult",
    "FetchCandidate",
    "FetchConfig",
    "FetchFailureReason",
    "FetchMetrics",
    "FetchOutcome",
    "FetchPrioritizer",
    "FetchSession",
    "RobotsRules",
    "extract_content",
    "select_candidates",
]

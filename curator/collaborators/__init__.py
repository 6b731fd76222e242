"""External collaborators: news search and the LLM-backed stages."""

from curator.collaborators.clustering import (
    ArticleClusterer,
    ClusteringOutcome,
    LlmClusterer,
    assign_clusters,
    cluster_articles,
    fallback_clusters,
)
from curator.collaborators.errors import (
    ClusteringError,
    CollaboratorError,
    SearchError,
    SummarizationError,
    TopicExtractionError,
)
from curator.collaborators.models import (
    BriefingSummary,
    Citation,
    Cluster,
    ClusterMember,
    MainStory,
    QuickBite,
    SearchBatch,
    SearchResult,
    SummaryImage,
)
from curator.collaborators.rate_limiter import TokenBucketRateLimiter
from curator.collaborators.search import (
    BraveSearchClient,
    SearchCollector,
    SearchProvider,
    parse_relative_age,
)
from curator.collaborators.summarizer import (
    LlmSummarizer,
    Summarizer,
    SummaryOutcome,
    TemplateSummarizer,
    summarize_briefing,
)
from curator.collaborators.topics import (
    KeywordTopicExtractor,
    LlmTopicExtractor,
    TopicExtractionOutcome,
    TopicExtractor,
    extract_topics,
)


__all__ = [
    "ArticleClusterer",
    "BraveSearchClient",
    "BriefingSummary",
    "Citation",
    "Cluster",
    "ClusterMember",
    "ClusteringError",
    "ClusteringOutcome",
    "CollaboratorError",
    "KeywordTopicExtractor",
    "LlmClusterer",
    "LlmSummarizer",
    "LlmTopicExtractor",
    "MainStory",
    "QuickBite",
    "SearchBatch",
    "SearchCollector",
    "SearchError",
    "SearchProvider",
    "SearchResult",
    "SummarizationError",
    "Summarizer",
    "SummaryImage",
    "SummaryOutcome",
    "TemplateSummarizer",
    "TokenBucketRateLimiter",
    "TopicExtractionError",
    "TopicExtractionOutcome",
    "TopicExtractor",
    "assign_clusters",
    "cluster_articles",
    "extract_topics",
    "fallback_clusters",
    "parse_relative_age",
    "summarize_briefing",
]

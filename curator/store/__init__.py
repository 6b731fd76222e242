"""SQLite discovery store for interests, articles, topics and briefings."""

from curator.store.errors import (
    ArticleNotFoundError,
    BriefingNotFoundError,
    InterestNotFoundError,
    MigrationError,
    RunNotFoundError,
    StoreConnectionError,
    StoreError,
)
from curator.store.metrics import StoreMetrics
from curator.store.models import (
    AFFINITY_MAX,
    AFFINITY_MIN,
    AffinityUpdate,
    Article,
    ArticleScore,
    Briefing,
    Category,
    CurationWrite,
    DiscoveryUpdate,
    Interaction,
    InteractionType,
    Interest,
    LinkedTopic,
    NewArticle,
    RunCounts,
    RunStatus,
    Topic,
    TopicAffinity,
    TopicLink,
    WorkflowRun,
)
from curator.store.store import DiscoveryStore
from curator.store.url import canonicalize_url


__all__ = [
    "AFFINITY_MAX",
    "AFFINITY_MIN",
    "AffinityUpdate",
    "Article",
    "ArticleNotFoundError",
    "ArticleScore",
    "Briefing",
    "BriefingNotFoundError",
    "Category",
    "CurationWrite",
    "DiscoveryStore",
    "DiscoveryUpdate",
    "Interaction",
    "InteractionType",
    "Interest",
    "InterestNotFoundError",
    "LinkedTopic",
    "MigrationError",
    "NewArticle",
    "RunCounts",
    "RunNotFoundError",
    "RunStatus",
    "StoreConnectionError",
    "StoreError",
    "StoreMetrics",
    "Topic",
    "TopicAffinity",
    "TopicLink",
    "WorkflowRun",
    "canonicalize_url",
]

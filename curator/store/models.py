"""Data models for the discovery store."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import Field, field_validator

from curator.data_model import StrictBaseModel


AFFINITY_MIN = -2.0
AFFINITY_MAX = 2.0


class InteractionType(str, Enum):
    """User feedback event on an article."""

    CLICK = "click"
    LIKE = "like"
    DISLIKE = "dislike"


class RunStatus(str, Enum):
    """Lifecycle status of a recorded pipeline run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class Interest(StrictBaseModel):
    """A user interest plus its discovery statistics.

    ``avg_discovery_interval_seconds`` is the running mean of the gaps
    between discoveries, over ``discovery_count`` samples.
    """

    id: int
    name: Annotated[str, Field(min_length=1)]
    created_at: datetime
    last_new_article_at: datetime | None = None
    discovery_count: Annotated[int, Field(ge=0)] = 0
    avg_discovery_interval_seconds: Annotated[float, Field(ge=0.0)] = 0.0
    last_search_attempt_at: datetime | None = None


class Category(StrictBaseModel):
    """A user-defined grouping of interests."""

    id: int
    name: Annotated[str, Field(min_length=1)]
    created_at: datetime
    interest_names: list[str] = Field(default_factory=list)


class NewArticle(StrictBaseModel):
    """An article accepted by curation, awaiting insertion.

    Attributes:
        url: Canonical URL (dedup key).
        interest_id: Interest whose search produced the article.
    """

    url: Annotated[str, Field(min_length=1)]
    title: str
    description: str | None = None
    source: str | None = None
    published_at: datetime | None = None
    thumbnail_url: str | None = None
    interest_id: int


class Article(StrictBaseModel):
    """A stored article. Scoring fields are filled by later stages."""

    id: int
    url: Annotated[str, Field(min_length=1)]
    title: str
    description: str | None = None
    source: str | None = None
    published_at: datetime | None = None
    thumbnail_url: str | None = None
    fetched_at: datetime
    cluster_id: str | None = None
    significance_score: float | None = None
    personalization_score: float | None = None
    interest_score: float | None = None


class DiscoveryUpdate(StrictBaseModel):
    """New discovery statistics for one interest."""

    interest_id: int
    last_new_article_at: datetime
    discovery_count: Annotated[int, Field(ge=1)]
    avg_discovery_interval_seconds: Annotated[float, Field(ge=0.0)]


class CurationWrite(StrictBaseModel):
    """Outcome of a committed curation batch.

    Attributes:
        saved: Inserted articles with their assigned ids.
        updated_interest_ids: Interests whose statistics were updated.
        failed_interest_ids: Interests whose statistics update was rolled back.
    """

    saved: list[Article]
    updated_interest_ids: list[int] = Field(default_factory=list)
    failed_interest_ids: list[int] = Field(default_factory=list)


class ArticleScore(StrictBaseModel):
    """Scores written onto an article row by the ranker."""

    article_id: int
    cluster_id: str | None = None
    significance_score: Annotated[float, Field(ge=0.0, le=1.0)]
    personalization_score: float
    interest_score: float


class Topic(StrictBaseModel):
    """A named topic, created lazily by extraction."""

    id: int
    name: Annotated[str, Field(min_length=1)]
    created_at: datetime


class TopicLink(StrictBaseModel):
    """A topic to attach to an article, with relevance clamped to [0, 1]."""

    name: Annotated[str, Field(min_length=1)]
    relevance: Annotated[float, Field(ge=0.0, le=1.0)]

    @field_validator("relevance", mode="before")
    @classmethod
    def clamp_relevance(cls, v: Any) -> float:
        """Clamp collaborator-supplied relevance into [0, 1]."""
        return min(max(float(v), 0.0), 1.0)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, v: Any) -> str:
        """Collapse whitespace in topic names."""
        return " ".join(str(v).split())


class LinkedTopic(StrictBaseModel):
    """A topic linked to an article, with the user's current affinity.

    ``affinity_score`` and ``interaction_count`` are None when no affinity
    row exists for the topic yet.
    """

    topic_id: int
    name: str
    relevance: Annotated[float, Field(ge=0.0, le=1.0)]
    affinity_score: float | None = None
    interaction_count: int | None = None


class TopicAffinity(StrictBaseModel):
    """Learned preference for a topic."""

    topic_id: int
    topic_name: str
    affinity_score: Annotated[float, Field(ge=AFFINITY_MIN, le=AFFINITY_MAX)]
    interaction_count: Annotated[int, Field(ge=0)]
    last_updated: datetime


class AffinityUpdate(StrictBaseModel):
    """One feedback step for a topic.

    The store adds ``delta`` to the current score, clamps the sum into
    [AFFINITY_MIN, AFFINITY_MAX] and bumps the interaction count, all in
    the same statement.
    """

    topic_id: int
    delta: float


class Interaction(StrictBaseModel):
    """An append-only feedback event."""

    id: int
    article_id: int
    interaction_type: InteractionType
    created_at: datetime


class Briefing(StrictBaseModel):
    """A saved briefing.

    Attributes:
        topics: Topic names covered by the briefing.
        articles: Article snapshots as stored in ``articles_json``.
        summary: Summary document, attached after fetch and summarize.
    """

    id: int
    title: str
    created_at: datetime
    topics: list[str] = Field(default_factory=list)
    articles: list[dict[str, Any]] = Field(default_factory=list)
    summary: dict[str, Any] | None = None


class RunCounts(StrictBaseModel):
    """Counters recorded on a workflow run."""

    scheduled_count: int = 0
    search_results_count: int = 0
    new_articles_saved: int = 0
    duplicates_filtered: int = 0
    ranked_count: int = 0
    scraping_success_count: int = 0


class WorkflowRun(StrictBaseModel):
    """A recorded pipeline run."""

    run_id: str
    started_at: datetime
    finished_at: datetime | None = None
    status: RunStatus = RunStatus.RUNNING
    counts: RunCounts = Field(default_factory=RunCounts)
    error_message: str | None = None
    duration_ms: float | None = None

"""Repository protocols injected into pipeline components.

Each component depends only on the narrow slice of persistence it needs.
``DiscoveryStore`` implements all of them.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol

from curator.store.models import (
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
    TopicAffinity,
    TopicLink,
    WorkflowRun,
)


class InterestRepository(Protocol):
    """Interests, their categories and scheduling stamps."""

    def add_interest(self, name: str, now: datetime) -> Interest: ...

    def remove_interest(self, name: str) -> None: ...

    def list_interests(self) -> list[Interest]: ...

    def get_interests(self, interest_ids: Sequence[int]) -> dict[int, Interest]: ...

    def mark_search_attempts(
        self, interest_ids: Sequence[int], now: datetime
    ) -> int: ...

    def reset_search_attempts(self) -> int: ...

    def add_category(self, name: str, now: datetime) -> Category: ...

    def assign_category(
        self, interest_name: str, category_name: str, now: datetime
    ) -> Category: ...

    def list_categories(self) -> list[Category]: ...


class ArticleRepository(Protocol):
    """Articles and the curation batch write."""

    def existing_urls(self, urls: Sequence[str]) -> set[str]: ...

    def save_curation_batch(
        self,
        articles: Sequence[NewArticle],
        discovery_updates: Sequence[DiscoveryUpdate],
        now: datetime,
    ) -> CurationWrite: ...

    def get_article(self, article_id: int) -> Article | None: ...

    def get_articles(self, article_ids: Sequence[int]) -> dict[int, Article]: ...

    def save_article_scores(self, scores: Sequence[ArticleScore]) -> int: ...


class TopicRepository(Protocol):
    """Topics and article-topic links."""

    def save_article_topics(
        self, links: dict[int, list[TopicLink]], now: datetime
    ) -> int: ...

    def get_linked_topics(
        self, article_ids: Sequence[int]
    ) -> dict[int, list[LinkedTopic]]: ...


class AffinityRepository(Protocol):
    """Topic affinities and the interaction log."""

    def record_interaction(
        self,
        article_id: int,
        interaction_type: InteractionType,
        updates: Sequence[AffinityUpdate],
        now: datetime,
    ) -> Interaction: ...

    def list_affinities(self) -> list[TopicAffinity]: ...

    def recommend_topics(
        self, min_affinity: float, min_interactions: int, limit: int
    ) -> list[TopicAffinity]: ...


class BriefingRepository(Protocol):
    """Briefings, their ordered articles and attached summaries."""

    def save_briefing(
        self,
        title: str,
        topics: Sequence[str],
        articles: Sequence[Article],
        now: datetime,
    ) -> Briefing: ...

    def attach_summary(self, briefing_id: int, summary: dict[str, Any]) -> None: ...

    def get_briefing(self, briefing_id: int) -> Briefing | None: ...

    def get_briefing_articles(self, briefing_id: int) -> list[Article]: ...

    def list_briefings(self, limit: int = 30) -> list[Briefing]: ...

    def prune_briefings(self, keep: int) -> int: ...


class RunRepository(Protocol):
    """Workflow run records."""

    def begin_run(self, run_id: str, now: datetime) -> WorkflowRun: ...

    def end_run(
        self,
        run_id: str,
        status: RunStatus,
        counts: RunCounts,
        now: datetime,
        error_message: str | None = None,
    ) -> WorkflowRun: ...

    def get_run(self, run_id: str) -> WorkflowRun | None: ...

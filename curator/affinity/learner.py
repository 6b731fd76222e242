"""Per-topic affinity learning from user feedback."""

from datetime import datetime

import structlog

from curator.affinity.constants import INTERACTION_WEIGHTS, LEARNING_RATE
from curator.store.errors import ArticleNotFoundError
from curator.store.models import (
    AffinityUpdate,
    InteractionType,
    LinkedTopic,
    TopicAffinity,
)
from curator.store.repositories import (
    AffinityRepository,
    ArticleRepository,
    TopicRepository,
)


logger = structlog.get_logger()


def parse_interaction_type(value: InteractionType | str) -> InteractionType:
    """Coerce a raw interaction type.

    Raises:
        ValueError: If the value is not a known interaction type.
    """
    if isinstance(value, InteractionType):
        return value
    try:
        return InteractionType(value.strip().lower())
    except ValueError:
        allowed = ", ".join(t.value for t in InteractionType)
        msg = f"Unknown interaction type {value!r}; expected one of: {allowed}"
        raise ValueError(msg) from None


def affinity_step(
    topic: LinkedTopic, weight: float, rate: float = LEARNING_RATE
) -> AffinityUpdate:
    """Affinity change caused by one feedback event on a topic.

    The step is scaled by the topic's relevance to the article, so loosely
    related topics move less than central ones. The store applies it to
    the current score (zero for a topic without a row) and clamps.
    """
    return AffinityUpdate(
        topic_id=topic.topic_id, delta=rate * weight * topic.relevance
    )


class AffinityLearner:
    """Turns click/like/dislike events into topic affinity updates."""

    def __init__(
        self,
        articles: ArticleRepository,
        topics: TopicRepository,
        affinities: AffinityRepository,
        learning_rate: float = LEARNING_RATE,
    ) -> None:
        self._articles = articles
        self._topics = topics
        self._affinities = affinities
        self._learning_rate = learning_rate
        self._log = logger.bind(component="affinity")

    def record_interaction(
        self,
        article_id: int,
        interaction_type: InteractionType | str,
        now: datetime,
    ) -> int:
        """Record a feedback event and update every linked topic.

        The interaction row and all affinity updates are written in one
        transaction. An article without topics still logs the interaction.

        Args:
            article_id: Article the user interacted with.
            interaction_type: ``click``, ``like`` or ``dislike``.
            now: Event time.

        Returns:
            Number of topics whose affinity was updated.

        Raises:
            ValueError: If the interaction type is unknown.
            ArticleNotFoundError: If the article does not exist.
        """
        kind = parse_interaction_type(interaction_type)
        if self._articles.get_article(article_id) is None:
            raise ArticleNotFoundError(article_id)

        weight = INTERACTION_WEIGHTS[kind]
        linked = self._topics.get_linked_topics([article_id])[article_id]
        updates = [affinity_step(t, weight, self._learning_rate) for t in linked]

        self._affinities.record_interaction(article_id, kind, updates, now)

        if not updates:
            self._log.info(
                "interaction_without_topics",
                article_id=article_id,
                interaction_type=kind.value,
            )
            return 0

        self._log.info(
            "affinity_updated",
            article_id=article_id,
            interaction_type=kind.value,
            topics_updated=len(updates),
        )
        return len(updates)

    def list_affinities(self) -> list[TopicAffinity]:
        """All learned affinities, strongest first."""
        return self._affinities.list_affinities()

"""Topic extraction for articles, with a keyword-frequency fallback."""

import re
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

import structlog
from pydantic import ValidationError

from curator.collaborators.errors import TopicExtractionError
from curator.collaborators.prompts import TOPICS_SYSTEM_INSTRUCTION, build_topics_prompt
from curator.llm.errors import LlmApiError, LlmProcessingError
from curator.llm.json_utils import parse_json_array
from curator.llm.protocols import LlmClient
from curator.store.models import Article, TopicLink


logger = structlog.get_logger()

MIN_TOPICS = 2
MAX_TOPICS = 4
TITLE_WEIGHT = 2

_WORD_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9+'-]*")

STOPWORDS = frozenset(
    """
    a about above after again against all also am an and any are as at be
    because been before being below between both but by can could did do does
    doing down during each few for from further had has have having he her here
    hers him his how i if in into is it its itself just more most my new news
    no nor not now of off on once only or other our out over own report
    reports said same says she should so some such than that the their them
    then there these they this those through to too under until up very was
    we were what when where which while who whom why will with would year
    years you your week today yesterday
    """.split()
)


class TopicExtractor(Protocol):
    """Extracts weighted topics from an article's metadata."""

    def extract(
        self, title: str, description: str | None, source: str | None
    ) -> list[TopicLink]:
        """Extract 2 to 4 topics.

        Raises:
            TopicExtractionError: If no usable topics are produced.
        """
        ...


@dataclass(frozen=True)
class TopicExtractionOutcome:
    """Topics extracted for a batch of articles.

    Attributes:
        links: Topics per article id.
        fallback_article_ids: Articles whose topics came from the fallback.
    """

    links: dict[int, list[TopicLink]] = field(default_factory=dict)
    fallback_article_ids: list[int] = field(default_factory=list)

    @property
    def topics_extracted_count(self) -> int:
        """Total article-topic links."""
        return sum(len(topics) for topics in self.links.values())


def dedupe_topics(
    topics: Sequence[TopicLink], limit: int = MAX_TOPICS
) -> list[TopicLink]:
    """Drop case-insensitive duplicate names, keeping the most relevant."""
    best: dict[str, TopicLink] = {}
    for topic in topics:
        key = topic.name.lower()
        if key not in best or topic.relevance > best[key].relevance:
            best[key] = topic
    ordered = sorted(best.values(), key=lambda t: -t.relevance)
    return ordered[:limit]


class LlmTopicExtractor:
    """Extracts topics with one LLM call per article."""

    def __init__(self, client: LlmClient) -> None:
        self._client = client
        self._log = logger.bind(component="topics", subcomponent="llm")

    def extract(
        self, title: str, description: str | None, source: str | None
    ) -> list[TopicLink]:
        """Ask the model for topics.

        Raises:
            TopicExtractionError: On API failure or an unusable answer.
        """
        try:
            text = self._client.generate_content(
                build_topics_prompt(title, description, source),
                system_instruction=TOPICS_SYSTEM_INSTRUCTION,
            )
            entries = parse_json_array(text)
        except (LlmApiError, LlmProcessingError) as e:
            msg = f"Topic extraction failed: {e}"
            raise TopicExtractionError(msg) from e

        topics: list[TopicLink] = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            try:
                topics.append(
                    TopicLink(
                        name=entry.get("name", ""), relevance=entry.get("relevance")
                    )
                )
            except (ValidationError, TypeError, ValueError):
                self._log.debug("topic_entry_invalid", entry=str(entry)[:200])

        topics = dedupe_topics(topics)
        if not topics:
            msg = "Topic extraction answer contained no valid topics"
            raise TopicExtractionError(msg)
        return topics


class KeywordTopicExtractor:
    """Deterministic topics from keyword frequency.

    Title words count double. Relevance is the keyword's count relative to
    the most frequent keyword. Ties keep first-appearance order.
    """

    def __init__(self, max_topics: int = MAX_TOPICS) -> None:
        self._max_topics = max_topics

    def extract(
        self, title: str, description: str | None, source: str | None
    ) -> list[TopicLink]:
        """Extract the most frequent keywords as topics.

        Raises:
            TopicExtractionError: If the text has no usable keywords.
        """
        source_words = {w.lower() for w in _WORD_PATTERN.findall(source or "")}
        counts: Counter[str] = Counter()
        first_seen: dict[str, int] = {}

        weighted = [(title, TITLE_WEIGHT), (description or "", 1)]
        for text, weight in weighted:
            for word in _WORD_PATTERN.findall(text):
                key = word.lower().strip("'-")
                if len(key) < 3 or key in STOPWORDS or key in source_words:
                    continue
                counts[key] += weight
                first_seen.setdefault(key, len(first_seen))

        if not counts:
            msg = "No keywords found"
            raise TopicExtractionError(msg)

        ranked = sorted(counts, key=lambda k: (-counts[k], first_seen[k]))
        top_count = counts[ranked[0]]
        return [
            TopicLink(
                name=keyword.title(),
                relevance=round(counts[keyword] / top_count, 3),
            )
            for keyword in ranked[: self._max_topics]
        ]


def extract_topics(
    articles: Sequence[Article],
    extractor: TopicExtractor | None,
    fallback: TopicExtractor | None = None,
    run_id: str = "",
) -> TopicExtractionOutcome:
    """Extract topics for every article.

    A failure for one article falls back to keyword extraction for that
    article only. Articles with no usable topics at all get no links.

    Args:
        articles: Articles to tag.
        extractor: Primary extractor; None selects the fallback directly.
        fallback: Fallback extractor; keyword frequency when None.
        run_id: Run identifier for logging.

    Returns:
        Topic links per article.
    """
    log = logger.bind(component="topics", run_id=run_id)
    fallback = fallback or KeywordTopicExtractor()
    links: dict[int, list[TopicLink]] = {}
    fallback_ids: list[int] = []

    for article in articles:
        topics: list[TopicLink] = []
        if extractor is not None:
            try:
                topics = extractor.extract(
                    article.title, article.description, article.source
                )
            except Exception as e:  # noqa: BLE001
                log.warning(
                    "topic_extraction_fallback",
                    article_id=article.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        if not topics:
            fallback_ids.append(article.id)
            try:
                topics = fallback.extract(
                    article.title, article.description, article.source
                )
            except TopicExtractionError as e:
                log.warning(
                    "topic_extraction_empty", article_id=article.id, error=str(e)
                )
                continue

        links[article.id] = topics

    outcome = TopicExtractionOutcome(links=links, fallback_article_ids=fallback_ids)
    log.info(
        "topic_extraction_complete",
        articles=len(articles),
        topics_extracted_count=outcome.topics_extracted_count,
        fallback_count=len(fallback_ids),
    )
    return outcome

"""Briefing summaries from fetched article content.

The LLM summarizer writes main stories, quick bites and a title from the
fetched article text. When nothing was fetched, or the model fails, the
template summarizer builds a summary from article titles and descriptions.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

import structlog

from curator.collaborators.errors import SummarizationError
from curator.collaborators.models import (
    BriefingSummary,
    Citation,
    MainStory,
    QuickBite,
    SummaryImage,
)
from curator.collaborators.prompts import (
    SUMMARY_SYSTEM_INSTRUCTION,
    build_main_stories_prompt,
    build_quick_bites_prompt,
    build_title_prompt,
)
from curator.fetch.models import FetchOutcome
from curator.llm.errors import LlmApiError, LlmProcessingError
from curator.llm.json_utils import parse_json_array, parse_json_object
from curator.llm.protocols import LlmClient
from curator.store.models import Article
from curator.store.url import url_hostname


logger = structlog.get_logger()

MAX_IMAGES = 5
TEMPLATE_MAIN_STORIES = 3
DEFAULT_KEY_TAKEAWAY = (
    "This story provides important updates in your areas of interest."
)
TEMPLATE_SUBTITLE = "The stories that matter to you, curated just for you."
TEMPLATE_MISSING_SUMMARY = (
    "Full content not available, but this story caught our attention "
    "in your areas of interest."
)
TEMPLATE_MISSING_BITE = "Another story worth your attention."
DEFAULT_SUBTITLE = "Top stories curated for your interests"


class Summarizer(Protocol):
    """Writes a briefing summary."""

    def summarize(
        self,
        fetched: Sequence[FetchOutcome],
        articles: Sequence[Article],
        topics: Sequence[str],
        now: datetime,
    ) -> BriefingSummary:
        """Summarize a briefing.

        Args:
            fetched: Fetch outcomes in priority order.
            articles: Briefing articles in ranked order.
            topics: Topic names covered by the briefing.
            now: Generation time.

        Raises:
            SummarizationError: If no summary can be produced.
        """
        ...


@dataclass(frozen=True)
class SummaryOutcome:
    """A summary and whether the template fallback produced it."""

    summary: BriefingSummary
    used_fallback: bool


def source_name(url: str) -> str:
    """Short source label from a URL (``www.nytimes.com`` gives ``nytimes``)."""
    host = url_hostname(url)
    return host.split(".")[0] if host else "Unknown Source"


def extract_images(
    articles: Sequence[Article], limit: int = MAX_IMAGES
) -> list[SummaryImage]:
    """Images from article thumbnails, in article order."""
    images = [
        SummaryImage(url=a.thumbnail_url, caption=a.title, source_url=a.url)
        for a in articles
        if a.thumbnail_url
    ]
    return images[:limit]


def build_citations(articles: Sequence[Article]) -> list[Citation]:
    """One citation per article."""
    return [
        Citation(url=a.url, title=a.title, source=source_name(a.url)) for a in articles
    ]


def _display_date(now: datetime) -> str:
    return f"{now:%A, %B} {now.day}"


class TemplateSummarizer:
    """Deterministic summary built from titles and descriptions."""

    def summarize(
        self,
        fetched: Sequence[FetchOutcome],
        articles: Sequence[Article],
        topics: Sequence[str],
        now: datetime,
    ) -> BriefingSummary:
        """Build a summary: first three articles lead, the rest are quick bites."""
        main_stories = [
            MainStory(
                headline=a.title,
                summary=a.description or TEMPLATE_MISSING_SUMMARY,
                key_takeaway=DEFAULT_KEY_TAKEAWAY,
                citations=[a.url],
            )
            for a in articles[:TEMPLATE_MAIN_STORIES]
        ]
        quick_bites = [
            QuickBite(
                headline=a.title,
                one_line_summary=a.description or TEMPLATE_MISSING_BITE,
                citation=a.url,
            )
            for a in articles[TEMPLATE_MAIN_STORIES:]
        ]
        return BriefingSummary(
            title=f"Your {_display_date(now)} Briefing",
            subtitle=TEMPLATE_SUBTITLE,
            main_stories=main_stories,
            quick_bites=quick_bites,
            images=extract_images(articles),
            citations=build_citations(articles),
            generated_at=now,
        )


@dataclass(frozen=True)
class _SourceText:
    title: str
    url: str
    text: str

    def as_tuple(self) -> tuple[str, str, str]:
        return self.title, self.url, self.text


class LlmSummarizer:
    """Summarizes fetched article text with the LLM.

    Main stories must succeed; quick bites and the title fall back to
    simple text on their own.
    """

    def __init__(self, client: LlmClient, max_main_stories: int = 4) -> None:
        """Initialize the summarizer.

        Args:
            client: LLM client.
            max_main_stories: Fetched articles written up as main stories.
        """
        self._client = client
        self._max_main_stories = max_main_stories
        self._log = logger.bind(component="summarizer", subcomponent="llm")

    def summarize(
        self,
        fetched: Sequence[FetchOutcome],
        articles: Sequence[Article],
        topics: Sequence[str],
        now: datetime,
    ) -> BriefingSummary:
        """Summarize successfully fetched articles.

        Raises:
            SummarizationError: If nothing was fetched or main stories fail.
        """
        titles = {a.id: a.title for a in articles}
        sources = [
            _SourceText(
                title=(o.content.title or titles.get(o.article_id) or o.url),
                url=o.url,
                text=o.content.text,
            )
            for o in fetched
            if o.content is not None and o.content.text
        ]
        if not sources:
            msg = "No fetched article content to summarize"
            raise SummarizationError(msg)

        main_sources = sources[: self._max_main_stories]
        main_stories = self._main_stories(main_sources, topics)
        quick_bites = self._quick_bites(sources[self._max_main_stories :])
        title, subtitle = self._title(topics, [s.headline for s in main_stories], now)

        return BriefingSummary(
            title=title,
            subtitle=subtitle,
            main_stories=main_stories,
            quick_bites=quick_bites,
            images=extract_images(articles),
            citations=build_citations(articles),
            generated_at=now,
        )

    def _generate_array(self, prompt: str) -> list[Any]:
        text = self._client.generate_content(
            prompt, system_instruction=SUMMARY_SYSTEM_INSTRUCTION
        )
        return parse_json_array(text)

    def _main_stories(
        self, sources: Sequence[_SourceText], topics: Sequence[str]
    ) -> list[MainStory]:
        try:
            entries = self._generate_array(
                build_main_stories_prompt([s.as_tuple() for s in sources], topics)
            )
        except (LlmApiError, LlmProcessingError) as e:
            msg = f"Main story generation failed: {e}"
            raise SummarizationError(msg) from e

        stories = []
        for index, source in enumerate(sources):
            entry = entries[index] if index < len(entries) else None
            if isinstance(entry, dict) and entry.get("summary"):
                takeaway = entry.get("key_takeaway") or DEFAULT_KEY_TAKEAWAY
                story = MainStory(
                    headline=str(entry.get("headline") or source.title),
                    summary=str(entry["summary"]),
                    key_takeaway=str(takeaway),
                    citations=[source.url],
                )
            else:
                story = MainStory(
                    headline=source.title,
                    summary=f"{source.text[:200]}...",
                    key_takeaway=DEFAULT_KEY_TAKEAWAY,
                    citations=[source.url],
                )
            stories.append(story)
        return stories

    def _quick_bites(self, sources: Sequence[_SourceText]) -> list[QuickBite]:
        if not sources:
            return []
        try:
            entries = self._generate_array(
                build_quick_bites_prompt([s.as_tuple() for s in sources])
            )
        except (LlmApiError, LlmProcessingError) as e:
            self._log.warning("quick_bites_fallback", error=str(e))
            entries = []

        bites = []
        for index, source in enumerate(sources):
            entry = entries[index] if index < len(entries) else None
            if isinstance(entry, dict) and entry.get("one_line_summary"):
                bites.append(
                    QuickBite(
                        headline=str(entry.get("headline") or source.title),
                        one_line_summary=str(entry["one_line_summary"]),
                        citation=source.url,
                    )
                )
            else:
                bites.append(
                    QuickBite(
                        headline=source.title,
                        one_line_summary=f"{source.text[:100]}...",
                        citation=source.url,
                    )
                )
        return bites

    def _title(
        self, topics: Sequence[str], headlines: Sequence[str], now: datetime
    ) -> tuple[str, str]:
        try:
            text = self._client.generate_content(
                build_title_prompt(topics, headlines),
                system_instruction=SUMMARY_SYSTEM_INSTRUCTION,
            )
            payload = parse_json_object(text)
        except (LlmApiError, LlmProcessingError) as e:
            self._log.warning("title_fallback", error=str(e))
            return f"Your Daily Briefing - {_display_date(now)}", DEFAULT_SUBTITLE

        title = str(payload.get("title") or "Your Daily Briefing")
        subtitle = str(payload.get("subtitle") or DEFAULT_SUBTITLE)
        return title, subtitle


def summarize_briefing(
    fetched: Sequence[FetchOutcome],
    articles: Sequence[Article],
    topics: Sequence[str],
    now: datetime,
    summarizer: Summarizer | None,
    run_id: str = "",
) -> SummaryOutcome:
    """Summarize a briefing, falling back to the template on failure.

    Args:
        fetched: Fetch outcomes in priority order.
        articles: Briefing articles in ranked order.
        topics: Topic names covered by the briefing.
        now: Generation time.
        summarizer: Primary summarizer; None selects the template directly.
        run_id: Run identifier for logging.

    Returns:
        The summary and whether the template produced it.
    """
    log = logger.bind(component="summarizer", run_id=run_id)
    has_content = any(o.success for o in fetched)

    if summarizer is not None and has_content:
        try:
            summary = summarizer.summarize(fetched, articles, topics, now)
        except Exception as e:  # noqa: BLE001
            log.warning(
                "summary_fallback", error=str(e), error_type=type(e).__name__
            )
        else:
            log.info(
                "summary_generated",
                main_stories=len(summary.main_stories),
                quick_bites=len(summary.quick_bites),
                used_fallback=False,
            )
            return SummaryOutcome(summary=summary, used_fallback=False)

    summary = TemplateSummarizer().summarize(fetched, articles, topics, now)
    log.info(
        "summary_generated",
        main_stories=len(summary.main_stories),
        quick_bites=len(summary.quick_bites),
        used_fallback=True,
        had_content=has_content,
    )
    return SummaryOutcome(summary=summary, used_fallback=True)

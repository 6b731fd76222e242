"""Tests for briefing summaries."""

import json

from curator.collaborators.summarizer import (
    DEFAULT_KEY_TAKEAWAY,
    TEMPLATE_MISSING_SUMMARY,
    TEMPLATE_SUBTITLE,
    LlmSummarizer,
    TemplateSummarizer,
    build_citations,
    extract_images,
    source_name,
    summarize_briefing,
)
from curator.fetch.models import ExtractedContent, FetchFailureReason, FetchOutcome
from curator.llm.errors import LlmApiError
from curator.store.models import Article
from tests.helpers.stubs import ScriptedLlmClient
from tests.helpers.time import FIXED_NOW


def _article(article_id: int, **overrides: object) -> Article:
    data: dict[str, object] = {
        "id": article_id,
        "url": f"https://www.example.com/{article_id}",
        "title": f"Story {article_id}",
        "description": f"About story {article_id}",
        "fetched_at": FIXED_NOW,
    }
    data.update(overrides)
    return Article.model_validate(data)


def _fetched(article_id: int, text: str = "Full article text. " * 30) -> FetchOutcome:
    return FetchOutcome(
        article_id=article_id,
        url=f"https://www.example.com/{article_id}",
        cluster_id="c",
        content=ExtractedContent(title=f"Fetched {article_id}", text=text),
    )


def _failed(article_id: int) -> FetchOutcome:
    return FetchOutcome(
        article_id=article_id,
        url=f"https://www.example.com/{article_id}",
        cluster_id="c",
        reason=FetchFailureReason.TIMEOUT,
    )


class TestHelpers:
    """Tests for citation and image helpers."""

    def test_source_name(self) -> None:
        """Test the first hostname label is the source."""
        assert source_name("https://www.nytimes.com/a") == "nytimes"
        assert source_name("not a url") == "Unknown Source"

    def test_images_from_thumbnails(self) -> None:
        """Test only articles with thumbnails contribute images, up to five."""
        articles = [
            _article(i, thumbnail_url=f"https://img.example/{i}.jpg") for i in range(7)
        ]
        articles.append(_article(99))

        images = extract_images(articles)

        assert len(images) == 5
        assert images[0].caption == "Story 0"
        assert images[0].source_url == "https://www.example.com/0"

    def test_citations(self) -> None:
        """Test one citation per article."""
        citations = build_citations([_article(1), _article(2)])
        assert [c.source for c in citations] == ["example", "example"]


class TestTemplateSummarizer:
    """Tests for TemplateSummarizer."""

    def test_layout(self) -> None:
        """Test three main stories lead and the rest become quick bites."""
        articles = [_article(i) for i in range(1, 6)]
        articles[1] = _article(2, description=None)

        summary = TemplateSummarizer().summarize([], articles, ["AI"], FIXED_NOW)

        assert summary.title == "Your Tuesday, March 12 Briefing"
        assert summary.subtitle == TEMPLATE_SUBTITLE
        assert [s.headline for s in summary.main_stories] == [
            "Story 1",
            "Story 2",
            "Story 3",
        ]
        assert summary.main_stories[1].summary == TEMPLATE_MISSING_SUMMARY
        assert summary.main_stories[0].key_takeaway == DEFAULT_KEY_TAKEAWAY
        assert [b.citation for b in summary.quick_bites] == [
            "https://www.example.com/4",
            "https://www.example.com/5",
        ]
        assert len(summary.citations) == 5
        assert summary.generated_at == FIXED_NOW


class TestLlmSummarizer:
    """Tests for LlmSummarizer."""

    def test_full_summary(self) -> None:
        """Test main stories, quick bites and title come from the model."""
        client = ScriptedLlmClient(
            [
                json.dumps(
                    [
                        {
                            "headline": "Lead",
                            "summary": "Lead summary.",
                            "key_takeaway": "Watch this.",
                        }
                    ]
                ),
                json.dumps([{"headline": "Bite", "one_line_summary": "Short."}]),
                '{"title": "Morning Edition", "subtitle": "Two stories"}',
            ]
        )
        summarizer = LlmSummarizer(client, max_main_stories=1)

        summary = summarizer.summarize(
            [_fetched(1), _fetched(2)], [_article(1), _article(2)], ["AI"], FIXED_NOW
        )

        assert summary.title == "Morning Edition"
        assert summary.main_stories[0].summary == "Lead summary."
        assert summary.main_stories[0].citations == ["https://www.example.com/1"]
        assert summary.quick_bites[0].one_line_summary == "Short."
        assert len(client.prompts) == 3

    def test_partial_answers_fall_back_per_item(self) -> None:
        """Test missing entries and failed side calls use simple text."""
        client = ScriptedLlmClient(
            [
                "[]",
                LlmApiError("quick bites down"),
                LlmApiError("title down"),
            ]
        )
        summarizer = LlmSummarizer(client, max_main_stories=1)

        summary = summarizer.summarize(
            [_fetched(1, "A" * 300), _fetched(2, "B" * 300)],
            [_article(1), _article(2)],
            [],
            FIXED_NOW,
        )

        assert summary.main_stories[0].headline == "Fetched 1"
        assert summary.main_stories[0].summary == "A" * 200 + "..."
        assert summary.quick_bites[0].one_line_summary == "B" * 100 + "..."
        assert summary.title == "Your Daily Briefing - Tuesday, March 12"

    def test_only_successful_fetches_used(self) -> None:
        """Test failed fetches are not summarized."""
        client = ScriptedLlmClient(
            [
                json.dumps([{"summary": "Only one.", "headline": "One"}]),
                '{"title": "T", "subtitle": "S"}',
            ]
        )

        summary = LlmSummarizer(client).summarize(
            [_failed(1), _fetched(2)], [_article(1), _article(2)], [], FIXED_NOW
        )

        assert len(summary.main_stories) == 1
        assert summary.main_stories[0].citations == ["https://www.example.com/2"]
        assert summary.quick_bites == []


class TestSummarizeBriefing:
    """Tests for summarize_briefing function."""

    def test_nothing_fetched_uses_template(self) -> None:
        """Test the template is used when no content was fetched."""
        client = ScriptedLlmClient([])

        outcome = summarize_briefing(
            [_failed(1)], [_article(1)], [], FIXED_NOW, LlmSummarizer(client)
        )

        assert outcome.used_fallback
        assert client.prompts == []
        assert outcome.summary.main_stories[0].headline == "Story 1"

    def test_main_story_failure_uses_template(self) -> None:
        """Test a failed main-stories call falls back to the template."""
        client = ScriptedLlmClient([LlmApiError("down")])

        outcome = summarize_briefing(
            [_fetched(1)], [_article(1)], [], FIXED_NOW, LlmSummarizer(client)
        )

        assert outcome.used_fallback
        assert outcome.summary.subtitle == TEMPLATE_SUBTITLE

    def test_unexpected_error_uses_template(self) -> None:
        """Test an error outside the LLM error types still falls back."""
        client = ScriptedLlmClient([AttributeError("'list' object has no 'get'")])

        outcome = summarize_briefing(
            [_fetched(1)], [_article(1)], [], FIXED_NOW, LlmSummarizer(client)
        )

        assert outcome.used_fallback
        assert outcome.summary.subtitle == TEMPLATE_SUBTITLE

    def test_llm_summary_used(self) -> None:
        """Test a successful summarizer result is returned as is."""
        client = ScriptedLlmClient(
            ['[{"summary": "Done."}]', '{"title": "T", "subtitle": "S"}']
        )

        outcome = summarize_briefing(
            [_fetched(1)], [_article(1)], [], FIXED_NOW, LlmSummarizer(client)
        )

        assert not outcome.used_fallback
        assert outcome.summary.title == "T"

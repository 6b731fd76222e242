"""Prompt templates for the LLM-backed collaborators."""

from collections.abc import Sequence

from curator.store.models import Article


CLUSTERING_SYSTEM_INSTRUCTION = (
    "You are a news analysis expert. Group articles about the same story or "
    "theme into clusters and rate how significant each article's news is.\n\n"
    "News significance criteria:\n"
    "- 1.0: Major breaking news, significant policy changes, major corporate "
    "announcements\n"
    "- 0.8: Important developments, notable market movements, significant "
    "tech releases\n"
    "- 0.6: Moderate news, industry updates, minor policy changes\n"
    "- 0.4: Routine announcements, minor updates, niche industry news\n"
    "- 0.2: Opinion pieces, very niche content\n"
    "- 0.0: Irrelevant or spam content\n\n"
    "Respond ONLY with a JSON object, no markdown fences or extra text."
)

_CLUSTERING_TEMPLATE = """## Articles
{articles_section}

## Output Format
Return a JSON object:
{{"clusters": [
  {{"cluster_id": "short-slug", "topic": "Cluster theme",
    "articles": [{{"url": "<article url>", "significance_score": 0.8}}]}}
]}}

Every article URL must appear in exactly one cluster. Copy URLs exactly."""

TOPICS_SYSTEM_INSTRUCTION = (
    "You are a topic extraction expert. Topics should be specific, "
    "descriptive and useful for learning a reader's preferences. "
    "Respond ONLY with a JSON array, no markdown fences or extra text."
)

_TOPICS_TEMPLATE = """Extract 2-4 topics that best describe this article.

Title: {title}
Description: {description}
Source: {source}

Return a JSON array:
[{{"name": "Topic Name", "relevance": 0.9}}]

Relevance is a number from 0 to 1 for how central the topic is."""

SUMMARY_SYSTEM_INSTRUCTION = (
    "You write a daily news briefing in a conversational, witty but "
    "professional tone. Address the reader as 'you' and make complex "
    "topics accessible. Respond ONLY with JSON, no markdown fences."
)

_MAIN_STORIES_TEMPLATE = """Topics of interest: {topics}

## Articles
{articles_section}

For each article write a main story with:
1. "headline": a catchy headline (not just the original title)
2. "summary": a 2-3 sentence summary of the key points
3. "key_takeaway": one sentence explaining why this matters

Return a JSON array with one object per article, in the same order."""

_QUICK_BITES_TEMPLATE = """## Articles
{articles_section}

For each article write a quick bite with:
1. "headline": a punchy headline
2. "one_line_summary": a single sentence capturing the essence

Return a JSON array with one object per article, in the same order."""

_TITLE_TEMPLATE = """Topics covered: {topics}
Main story headlines: {headlines}

Create a catchy "title" capturing the day's theme and a witty "subtitle"
that previews the briefing.

Return a JSON object: {{"title": "...", "subtitle": "..."}}"""


def build_clustering_prompt(articles: Sequence[Article]) -> str:
    """Build the clustering prompt for a batch of articles."""
    lines = []
    for index, article in enumerate(articles, start=1):
        published = article.published_at.isoformat() if article.published_at else ""
        lines.append(
            f"{index}. Title: {article.title}\n"
            f"   URL: {article.url}\n"
            f"   Description: {article.description or ''}\n"
            f"   Source: {article.source or ''}\n"
            f"   Published: {published}"
        )
    return _CLUSTERING_TEMPLATE.format(articles_section="\n".join(lines))


def build_topics_prompt(title: str, description: str | None, source: str | None) -> str:
    """Build the topic extraction prompt for one article."""
    return _TOPICS_TEMPLATE.format(
        title=title,
        description=description or "",
        source=source or "",
    )


def _content_section(items: Sequence[tuple[str, str, str]], max_chars: int) -> str:
    return "\n\n".join(
        f"Article {index}:\nTitle: {title}\nURL: {url}\nContent: {text[:max_chars]}"
        for index, (title, url, text) in enumerate(items, start=1)
    )


def build_main_stories_prompt(
    items: Sequence[tuple[str, str, str]], topics: Sequence[str]
) -> str:
    """Build the main stories prompt from (title, url, text) triples."""
    return _MAIN_STORIES_TEMPLATE.format(
        topics=", ".join(topics) or "general news",
        articles_section=_content_section(items, 1000),
    )


def build_quick_bites_prompt(items: Sequence[tuple[str, str, str]]) -> str:
    """Build the quick bites prompt from (title, url, text) triples."""
    return _QUICK_BITES_TEMPLATE.format(articles_section=_content_section(items, 500))


def build_title_prompt(topics: Sequence[str], headlines: Sequence[str]) -> str:
    """Build the title and subtitle prompt."""
    return _TITLE_TEMPLATE.format(
        topics=", ".join(topics) or "general news",
        headlines=", ".join(headlines),
    )

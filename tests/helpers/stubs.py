"""Scripted collaborator stubs for tests."""

from collections.abc import Callable, Sequence

from curator.collaborators.errors import SearchError
from curator.collaborators.models import Cluster, SearchResult
from curator.llm.errors import LlmApiError
from curator.store.models import Article


class StubSearchProvider:
    """Returns canned results per query; unknown queries return nothing."""

    def __init__(
        self,
        results: dict[str, list[SearchResult]] | None = None,
        failing: set[str] | None = None,
    ) -> None:
        self.results = results or {}
        self.failing = failing or set()
        self.queries: list[str] = []

    def search(self, query: str, freshness: str, limit: int) -> list[SearchResult]:
        self.queries.append(query)
        if query in self.failing:
            msg = f"stub failure for {query}"
            raise SearchError(msg, query=query)
        return self.results.get(query, [])[:limit]


class ScriptedLlmClient:
    """LLM client returning scripted answers in call order.

    An ``Exception`` instance in the script is raised instead of returned.
    A callable receives the prompt and returns the answer.
    """

    def __init__(
        self, answers: Sequence[str | Exception | Callable[[str], str]]
    ) -> None:
        self.answers = list(answers)
        self.prompts: list[str] = []

    def generate_content(
        self, prompt: str, system_instruction: str | None = None
    ) -> str:
        self.prompts.append(prompt)
        if not self.answers:
            msg = "script exhausted"
            raise LlmApiError(msg)
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(prompt)
        return answer


class StubClusterer:
    """Puts every article in one cluster with a fixed significance."""

    def __init__(self, significance: float = 0.7, cluster_id: str = "story") -> None:
        self.significance = significance
        self.cluster_id = cluster_id

    def cluster(self, articles: Sequence[Article]) -> list[Cluster]:
        return [
            Cluster.model_validate(
                {
                    "cluster_id": self.cluster_id,
                    "topic": "stub",
                    "members": [
                        {"url": a.url, "significance": self.significance}
                        for a in articles
                    ],
                }
            )
        ]


def make_result(url: str, title: str = "Headline", **overrides: object) -> SearchResult:
    """Build a search result with sensible defaults."""
    data: dict[str, object] = {
        "title": title,
        "url": url,
        "description": f"Description of {title}",
        "source": "example.com",
    }
    data.update(overrides)
    return SearchResult.model_validate(data)

"""News search: the Brave Search client and the per-interest collector."""

import re
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from http import HTTPStatus
from typing import Any, Protocol

import httpx
import structlog

from curator.collaborators.errors import SearchError
from curator.collaborators.models import SearchBatch, SearchResult
from curator.collaborators.rate_limiter import TokenBucketRateLimiter
from curator.config.schemas import SearchConfig
from curator.curation.models import CandidateArticle
from curator.store.models import Interest
from curator.store.url import url_hostname


logger = structlog.get_logger()

BRAVE_NEWS_SEARCH_URL = "https://api.search.brave.com/res/v1/news/search"

_AGE_PATTERN = re.compile(r"(\d+)\s*(minute|hour|day|week)s?\b", re.IGNORECASE)
_AGE_UNITS = {
    "minute": timedelta(minutes=1),
    "hour": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
}


class SearchProvider(Protocol):
    """A news search backend."""

    def search(self, query: str, freshness: str, limit: int) -> list[SearchResult]:
        """Search recent news.

        Args:
            query: Interest name used as the query.
            freshness: Provider freshness window (e.g. ``pd`` for past day).
            limit: Maximum results.

        Returns:
            Search hits, possibly empty.

        Raises:
            SearchError: If the request fails.
        """
        ...


def parse_relative_age(age: str | None, now: datetime) -> datetime | None:
    """Convert a relative age like ``2 hours ago`` into a timestamp.

    Args:
        age: Relative age string from the provider.
        now: Reference time.

    Returns:
        Approximate publication time, or None when the age is not understood.
    """
    if not age:
        return None
    match = _AGE_PATTERN.search(age)
    if match is None:
        return None
    amount = int(match.group(1))
    unit = _AGE_UNITS[match.group(2).lower()]
    return now - unit * amount


def _parse_page_age(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class BraveSearchClient:
    """Brave News Search API client.

    API documentation: https://api-dashboard.search.brave.com/app/documentation
    """

    def __init__(
        self,
        api_key: str,
        config: SearchConfig | None = None,
        transport: httpx.BaseTransport | None = None,
        now_fn: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Brave subscription token.
            config: Search settings. Defaults apply when None.
            transport: Optional httpx transport (tests use MockTransport).
            now_fn: Clock used to resolve relative ages.
        """
        self._config = config or SearchConfig()
        self._now_fn = now_fn
        self._client = httpx.Client(
            transport=transport,
            timeout=self._config.timeout_seconds,
            headers={
                "Accept": "application/json",
                "Accept-Encoding": "gzip",
                "X-Subscription-Token": api_key,
            },
        )
        self._log = logger.bind(component="search", provider="brave")

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self) -> "BraveSearchClient":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def search(self, query: str, freshness: str, limit: int) -> list[SearchResult]:
        """Search recent news for a query.

        Raises:
            SearchError: On network failure, non-200 status or a malformed body.
        """
        params = {
            "q": query,
            "count": str(limit),
            "freshness": freshness,
            "text_decorations": "false",
            "search_lang": self._config.search_lang,
            "country": self._config.country,
        }
        try:
            response = self._client.get(BRAVE_NEWS_SEARCH_URL, params=params)
        except httpx.HTTPError as e:
            msg = f"Brave Search request failed: {e}"
            raise SearchError(msg, query=query) from e

        if response.status_code != HTTPStatus.OK:
            msg = f"Brave Search API error: {response.status_code}"
            raise SearchError(msg, query=query, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            msg = f"Brave Search returned invalid JSON: {e}"
            raise SearchError(msg, query=query, status_code=response.status_code) from e

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            return []

        now = self._now_fn()
        hits = [raw for raw in results[:limit] if isinstance(raw, dict)]
        self._log.debug("brave_search_results", query=query, results=len(hits))
        return [self._to_result(raw, now) for raw in hits]

    @staticmethod
    def _to_result(raw: dict[str, Any], now: datetime) -> SearchResult:
        url = raw.get("url") or ""
        meta_url = raw.get("meta_url") or {}
        thumbnail = raw.get("thumbnail") or {}
        published_at = _parse_page_age(raw.get("page_age")) or parse_relative_age(
            raw.get("age"), now
        )
        return SearchResult(
            title=raw.get("title") or "No title",
            url=url,
            description=raw.get("description") or "",
            source=meta_url.get("hostname") or url_hostname(url) or "Unknown source",
            published_at=published_at,
            thumbnail_url=thumbnail.get("src"),
        )


class SearchCollector:
    """Runs one search per due interest at a bounded request rate.

    A failed search is recorded for its interest and the remaining
    interests are still searched.
    """

    def __init__(
        self,
        provider: SearchProvider,
        config: SearchConfig | None = None,
        rate_limiter: TokenBucketRateLimiter | None = None,
        run_id: str = "",
    ) -> None:
        """Initialize the collector.

        Args:
            provider: Search backend.
            config: Search settings. Defaults apply when None.
            rate_limiter: Optional limiter for dependency injection.
            run_id: Run identifier for logging.
        """
        self._provider = provider
        self._config = config or SearchConfig()
        self._rate_limiter = rate_limiter or TokenBucketRateLimiter(
            max_qps=self._config.max_qps
        )
        self._log = logger.bind(component="search", run_id=run_id)

    def collect(self, interests: Sequence[Interest]) -> SearchBatch:
        """Search news for each interest.

        Args:
            interests: Interests due for a search.

        Returns:
            Candidates attributed to their interest, plus per-interest errors.
        """
        candidates: list[CandidateArticle] = []
        errors: list[str] = []

        for interest in interests:
            self._rate_limiter.acquire()
            try:
                results = self._provider.search(
                    interest.name,
                    self._config.freshness,
                    self._config.results_per_interest,
                )
            except Exception as e:  # noqa: BLE001
                message = f'Failed to search for "{interest.name}": {e}'
                errors.append(message)
                self._log.warning(
                    "search_failed",
                    interest_id=interest.id,
                    interest=interest.name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            candidates.extend(
                CandidateArticle(
                    interest_id=interest.id,
                    title=result.title,
                    url=result.url,
                    description=result.description,
                    source=result.source,
                    published_at=result.published_at,
                    thumbnail_url=result.thumbnail_url,
                )
                for result in results
            )
            self._log.info(
                "search_complete",
                interest_id=interest.id,
                interest=interest.name,
                results=len(results),
            )

        batch = SearchBatch(
            candidates=candidates, errors=errors, searched_count=len(interests)
        )
        self._log.info(
            "search_batch_complete",
            interests=len(interests),
            results_count=batch.results_count,
            error_count=len(errors),
            rate_limited=self._rate_limiter.rate_limited_count,
        )
        return batch

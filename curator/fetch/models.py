"""Data models for the article fetch layer."""

from enum import Enum

from pydantic import Field

from curator.data_model import StrictBaseModel


class FetchFailureReason(str, Enum):
    """Classification of article fetch failures.

    - SKIPPED: Domain reached its failure limit; no request was made
    - ROBOTS_DISALLOWED: robots.txt forbids the path for us
    - TIMEOUT: Request or per-article deadline expired
    - NETWORK_ERROR: Connection, TLS or protocol failure
    - HTTP_ERROR: Non-2xx response status
    - TOO_LARGE: Response exceeded the size limit
    - UNSUPPORTED_CONTENT: Response was not HTML
    - INVALID_URL: URL has no fetchable host
    - BATCH_TIMEOUT: Batch ceiling passed before the fetch started
    """

    SKIPPED = "skipped"
    ROBOTS_DISALLOWED = "robots_disallowed"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    HTTP_ERROR = "http_error"
    TOO_LARGE = "too_large"
    UNSUPPORTED_CONTENT = "unsupported_content"
    INVALID_URL = "invalid_url"
    BATCH_TIMEOUT = "batch_timeout"


# Reasons that count against a domain's failure budget
DOMAIN_FAILURE_REASONS: frozenset[FetchFailureReason] = frozenset(
    {
        FetchFailureReason.TIMEOUT,
        FetchFailureReason.NETWORK_ERROR,
        FetchFailureReason.HTTP_ERROR,
    }
)


class FetchCandidate(StrictBaseModel):
    """An article eligible for full-content fetching."""

    article_id: int
    url: str
    title: str
    cluster_id: str
    interest_score: float = 0.0


class ExtractedContent(StrictBaseModel):
    """Readable content extracted from an article page.

    Attributes:
        title: Page title (og:title, <title> or first <h1>).
        author: Author from page metadata.
        published_at: Raw publication timestamp from page metadata.
        text: Article body text.
        used_fallback: True when no content container was found and the
            text is a raw slice of the page.
    """

    title: str | None = None
    author: str | None = None
    published_at: str | None = None
    text: str = ""
    used_fallback: bool = False


class FetchOutcome(StrictBaseModel):
    """Result of fetching one candidate. Exactly one of content/reason is set."""

    article_id: int
    url: str
    cluster_id: str
    content: ExtractedContent | None = None
    reason: FetchFailureReason | None = None
    message: str | None = None
    status_code: int | None = None
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        """Check if the content was fetched and extracted."""
        return self.content is not None


class FetchBatchResult(StrictBaseModel):
    """Outcomes of a prioritized fetch batch, in priority order."""

    outcomes: list[FetchOutcome] = Field(default_factory=list)

    @property
    def attempted_count(self) -> int:
        """Candidates selected for fetching."""
        return len(self.outcomes)

    @property
    def success_count(self) -> int:
        """Candidates fetched successfully."""
        return sum(1 for o in self.outcomes if o.success)

    @property
    def successes(self) -> list[FetchOutcome]:
        """Successful outcomes only."""
        return [o for o in self.outcomes if o.success]

    def failures_by_reason(self) -> dict[str, int]:
        """Count failures per reason."""
        counts: dict[str, int] = {}
        for outcome in self.outcomes:
            if outcome.reason is not None:
                counts[outcome.reason.value] = counts.get(outcome.reason.value, 0) + 1
        return counts

"""Curation input and result models."""

from datetime import datetime

from pydantic import Field

from curator.data_model import StrictBaseModel
from curator.store.models import Article


class CandidateArticle(StrictBaseModel):
    """A search result attributed to the interest that produced it."""

    interest_id: int
    title: str = ""
    url: str | None = None
    description: str | None = None
    source: str | None = None
    published_at: datetime | None = None
    thumbnail_url: str | None = None


class CurationResult(StrictBaseModel):
    """Outcome of curating one batch of candidates.

    Attributes:
        saved_count: Candidates inserted as new articles.
        duplicate_count: Candidates whose canonical URL was already stored
            or appeared earlier in the batch.
        skipped_count: Candidates without a usable URL.
        new_articles: The inserted articles, in candidate order.
        failed_interest_ids: Interests whose statistics update failed.
    """

    saved_count: int = 0
    duplicate_count: int = 0
    skipped_count: int = 0
    new_articles: list[Article] = Field(default_factory=list)
    failed_interest_ids: list[int] = Field(default_factory=list)

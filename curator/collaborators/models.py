"""Request and response models for external collaborators."""

from datetime import datetime
from typing import Annotated, Any

from pydantic import Field, field_validator

from curator.curation.models import CandidateArticle
from curator.data_model import StrictBaseModel


class SearchResult(StrictBaseModel):
    """One news search hit."""

    title: str
    url: str
    description: str | None = None
    source: str | None = None
    published_at: datetime | None = None
    thumbnail_url: str | None = None


class SearchBatch(StrictBaseModel):
    """Search results for all due interests.

    Attributes:
        candidates: Results attributed to the interest that produced them.
        errors: One message per interest whose search failed.
        searched_count: Interests a search was attempted for.
    """

    candidates: list[CandidateArticle] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    searched_count: int = 0

    @property
    def results_count(self) -> int:
        """Total search results across interests."""
        return len(self.candidates)


class ClusterMember(StrictBaseModel):
    """An article URL and its significance within a cluster."""

    url: Annotated[str, Field(min_length=1)]
    significance: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5

    @field_validator("significance", mode="before")
    @classmethod
    def clamp_significance(cls, v: Any) -> float:
        """Clamp model-supplied significance into [0, 1]."""
        if v is None:
            return 0.5
        return min(max(float(v), 0.0), 1.0)


class Cluster(StrictBaseModel):
    """A group of articles about one story."""

    cluster_id: Annotated[str, Field(min_length=1)]
    topic: str = ""
    members: list[ClusterMember] = Field(default_factory=list)


class MainStory(StrictBaseModel):
    """A headline story of the briefing."""

    headline: str
    summary: str
    key_takeaway: str
    citations: list[str] = Field(default_factory=list)


class QuickBite(StrictBaseModel):
    """A one-line secondary story."""

    headline: str
    one_line_summary: str
    citation: str


class SummaryImage(StrictBaseModel):
    """An image shown with the briefing."""

    url: str
    caption: str
    source_url: str


class Citation(StrictBaseModel):
    """A source article referenced by the briefing."""

    url: str
    title: str
    source: str


class BriefingSummary(StrictBaseModel):
    """Summary document attached to a briefing."""

    title: str
    subtitle: str
    main_stories: list[MainStory] = Field(default_factory=list)
    quick_bites: list[QuickBite] = Field(default_factory=list)
    images: list[SummaryImage] = Field(default_factory=list)
    citations: list[Citation] = Field(default_factory=list)
    generated_at: datetime

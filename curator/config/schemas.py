"""Configuration schema for the curation pipeline."""

from typing import Annotated

from pydantic import Field, model_validator

from curator.data_model import StrictBaseModel
from curator.fetch.config import FetchConfig


class SchedulerConfig(StrictBaseModel):
    """Cool-down policy configuration.

    Attributes:
        cooldown_multiplier: Multiple of the average discovery interval an
            interest must wait before it is searched again.
        default_cooldown_seconds: Cool-down used when no discovery history exists.
    """

    cooldown_multiplier: Annotated[float, Field(gt=0.0, le=100.0)] = 3.0
    default_cooldown_seconds: Annotated[float, Field(ge=0.0)] = 7200.0


class SearchConfig(StrictBaseModel):
    """Search collector configuration."""

    freshness: Annotated[str, Field(min_length=1)] = "pd"
    results_per_interest: Annotated[int, Field(ge=1, le=50)] = 10
    max_qps: Annotated[float, Field(gt=0.0, le=50.0)] = 1.0
    country: Annotated[str, Field(min_length=2, max_length=2)] = "US"
    search_lang: Annotated[str, Field(min_length=2)] = "en"
    timeout_seconds: Annotated[float, Field(ge=1.0, le=120.0)] = 15.0


class CurationConfig(StrictBaseModel):
    """Curation store configuration.

    Attributes:
        first_discovery_seed_seconds: Average interval seeded on an interest's
            first-ever discovery.
        strip_params: Query parameters removed during URL canonicalization.
            None selects the built-in tracking parameter list.
    """

    first_discovery_seed_seconds: Annotated[float, Field(gt=0.0)] = 86400.0
    strip_params: list[str] | None = None


class RankingConfig(StrictBaseModel):
    """Interest score blend configuration."""

    personalization_weight: Annotated[float, Field(ge=0.0, le=1.0)] = 0.6
    significance_weight: Annotated[float, Field(ge=0.0, le=1.0)] = 0.4
    unpersonalized_significance_weight: Annotated[float, Field(ge=0.0, le=1.0)] = 0.8
    default_significance: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5

    @model_validator(mode="after")
    def validate_blend(self) -> "RankingConfig":
        """Ensure the personalized blend weights sum to one."""
        total = self.personalization_weight + self.significance_weight
        if abs(total - 1.0) > 1e-9:
            msg = (
                "personalization_weight + significance_weight must be 1.0, "
                f"got {total}"
            )
            raise ValueError(msg)
        return self


class LlmConfig(StrictBaseModel):
    """LLM collaborator configuration."""

    model: Annotated[str, Field(min_length=1)] = "gemini-2.5-flash"
    min_request_interval_seconds: Annotated[float, Field(ge=0.0, le=60.0)] = 1.0
    max_main_stories: Annotated[int, Field(ge=1, le=10)] = 4


class RetentionConfig(StrictBaseModel):
    """Retention policy configuration."""

    keep_briefings: Annotated[int, Field(ge=1)] = 30


class CuratorConfig(StrictBaseModel):
    """Root configuration for curator.yaml.

    Every section is optional; omitted sections use their defaults.
    """

    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    curation: CurationConfig = Field(default_factory=CurationConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    llm: LlmConfig = Field(default_factory=LlmConfig)
    retention: RetentionConfig = Field(default_factory=RetentionConfig)

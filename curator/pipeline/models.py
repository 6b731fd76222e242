"""Pipeline run result models."""

from dataclasses import dataclass, field

from pydantic import Field

from curator.data_model import StrictBaseModel
from curator.store.models import RunCounts


class PipelineResult(StrictBaseModel):
    """Summary of one pipeline run.

    Counters from stages that committed before a failure stay valid;
    ``error`` is set when the run stopped early.
    """

    run_id: str
    scheduled_count: int = 0
    cooling_count: int = 0
    search_results_count: int = 0
    search_errors: list[str] = Field(default_factory=list)
    new_articles_saved: int = 0
    duplicates_filtered: int = 0
    clusters_found: int = 0
    topics_extracted_count: int = 0
    ranked_count: int = 0
    briefing_id: int | None = None
    fetch_attempted_count: int = 0
    scraping_success_count: int = 0
    summary_generated: bool = False
    error: str | None = None

    @property
    def success(self) -> bool:
        """Check if the run finished without error."""
        return self.error is None


@dataclass
class RunTally:
    """Mutable counters filled in while a run progresses."""

    scheduled_count: int = 0
    cooling_count: int = 0
    search_results_count: int = 0
    search_errors: list[str] = field(default_factory=list)
    new_articles_saved: int = 0
    duplicates_filtered: int = 0
    clusters_found: int = 0
    topics_extracted_count: int = 0
    ranked_count: int = 0
    briefing_id: int | None = None
    fetch_attempted_count: int = 0
    scraping_success_count: int = 0
    summary_generated: bool = False

    def to_result(self, run_id: str, error: str | None = None) -> PipelineResult:
        """Freeze the tally into a result."""
        return PipelineResult(
            run_id=run_id,
            scheduled_count=self.scheduled_count,
            cooling_count=self.cooling_count,
            search_results_count=self.search_results_count,
            search_errors=list(self.search_errors),
            new_articles_saved=self.new_articles_saved,
            duplicates_filtered=self.duplicates_filtered,
            clusters_found=self.clusters_found,
            topics_extracted_count=self.topics_extracted_count,
            ranked_count=self.ranked_count,
            briefing_id=self.briefing_id,
            fetch_attempted_count=self.fetch_attempted_count,
            scraping_success_count=self.scraping_success_count,
            summary_generated=self.summary_generated,
            error=error,
        )

    def to_run_counts(self) -> RunCounts:
        """Counters recorded on the workflow run row."""
        return RunCounts(
            scheduled_count=self.scheduled_count,
            search_results_count=self.search_results_count,
            new_articles_saved=self.new_articles_saved,
            duplicates_filtered=self.duplicates_filtered,
            ranked_count=self.ranked_count,
            scraping_success_count=self.scraping_success_count,
        )

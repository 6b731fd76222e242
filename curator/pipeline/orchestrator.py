"""Curation pipeline orchestrator.

Runs the stages strictly in order:

    schedule -> search -> curate -> cluster -> topics -> rank
      -> briefing -> fetch -> summarize

Collaborator failures fall back inside their stage. A persistence failure
stops the run; stages that already committed stay valid and the result
carries the error.
"""

import sqlite3
import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import httpx
import structlog

from curator.collaborators.clustering import ArticleClusterer, cluster_articles
from curator.collaborators.search import SearchCollector, SearchProvider
from curator.collaborators.summarizer import Summarizer, summarize_briefing
from curator.collaborators.topics import (
    TopicExtractionOutcome,
    TopicExtractor,
    extract_topics,
)
from curator.config.schemas import CuratorConfig
from curator.curation.curator import CurationStore
from curator.fetch.models import FetchCandidate
from curator.fetch.prioritizer import FetchPrioritizer
from curator.observability.logging import bind_run_context, clear_run_context
from curator.pipeline.models import PipelineResult, RunTally
from curator.pipeline.state_machine import PipelineState, PipelineStateMachine
from curator.ranker.models import RankedArticle
from curator.ranker.ranker import ArticleRanker
from curator.scheduler.errors import NoInterestsError
from curator.scheduler.scheduler import InterestScheduler
from curator.store.errors import StoreError
from curator.store.models import Interest, RunStatus
from curator.store.store import DiscoveryStore


logger = structlog.get_logger()


@dataclass(frozen=True)
class PipelineCollaborators:
    """External services used by a run.

    A None clusterer, topic extractor or summarizer selects that stage's
    deterministic fallback.
    """

    search: SearchProvider
    clusterer: ArticleClusterer | None = None
    topic_extractor: TopicExtractor | None = None
    summarizer: Summarizer | None = None


def briefing_title(now: datetime) -> str:
    """Title of the briefing saved for a run."""
    return f"Daily Briefing - {now:%Y-%m-%d}"


def briefing_topics(
    ranked: Sequence[RankedArticle], topics: TopicExtractionOutcome
) -> list[str]:
    """Distinct topic names in ranked article order."""
    seen: set[str] = set()
    names: list[str] = []
    for item in ranked:
        for link in topics.links.get(item.article.id, []):
            key = link.name.lower()
            if key not in seen:
                seen.add(key)
                names.append(link.name)
    return names


class CurationPipeline:
    """Turns the user's interests into a ranked, summarized briefing."""

    def __init__(  # noqa: PLR0913
        self,
        store: DiscoveryStore,
        collaborators: PipelineCollaborators,
        config: CuratorConfig | None = None,
        fetch_transport: httpx.BaseTransport | None = None,
        fetch_clock: Callable[[], float] = time.monotonic,
        fetch_sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the pipeline.

        Args:
            store: Connected discovery store.
            collaborators: Search and LLM-backed services.
            config: Pipeline configuration. Defaults apply when None.
            fetch_transport: Optional httpx transport for article fetching.
            fetch_clock: Monotonic clock for fetch deadlines.
            fetch_sleep: Sleep function for per-domain gaps.
        """
        self._store = store
        self._collaborators = collaborators
        self._config = config or CuratorConfig()
        self._fetch_transport = fetch_transport
        self._fetch_clock = fetch_clock
        self._fetch_sleep = fetch_sleep

    def run(
        self,
        now: datetime | None = None,
        force: bool = False,
        run_id: str | None = None,
    ) -> PipelineResult:
        """Execute one pipeline run.

        Any failure after scheduling marks the run row failed and is
        reported through the result instead of propagating.

        Args:
            now: Run time. Defaults to the current UTC time.
            force: Search every interest regardless of cool-down.
            run_id: Run identifier. A random one is generated when None.

        Returns:
            Counters for every stage, with ``error`` set if the run stopped.
        """
        run_id = run_id or uuid.uuid4().hex[:12]
        bind_run_context(run_id)
        try:
            return self._run(run_id, now or datetime.now(UTC), force)
        finally:
            clear_run_context()

    def _run(self, run_id: str, now: datetime, force: bool) -> PipelineResult:
        log = logger.bind(component="pipeline", run_id=run_id)
        machine = PipelineStateMachine(run_id)
        tally = RunTally()
        started = time.monotonic()
        log.info("pipeline_started", force=force)

        try:
            scheduler = InterestScheduler(self._store, self._config.scheduler, run_id)
            schedule = scheduler.schedule(now, force=force)
        except NoInterestsError as e:
            machine.fail()
            log.warning("pipeline_no_interests")
            return tally.to_result(run_id, error=str(e))
        except Exception as e:  # noqa: BLE001
            machine.fail()
            log.error("pipeline_failed", stage="schedule", error=str(e))
            return tally.to_result(run_id, error=f"{type(e).__name__}: {e}")

        tally.scheduled_count = schedule.due_count
        tally.cooling_count = schedule.cooling_count
        machine.transition_to(PipelineState.SCHEDULED)

        error: str | None = None
        try:
            self._store.begin_run(run_id, now)
            self._execute(run_id, now, schedule.due, machine, tally)
        except (StoreError, sqlite3.Error) as e:
            error = f"{type(e).__name__}: {e}"
            stage = machine.state.value
            machine.fail()
            log.error("pipeline_failed", last_stage=stage, error=error)
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            stage = machine.state.value
            machine.fail()
            log.exception("pipeline_crashed", last_stage=stage, error=error)

        finished_at = now + timedelta(seconds=time.monotonic() - started)
        self._finish_run(run_id, finished_at, tally, error, log)
        result = tally.to_result(run_id, error=error)
        log.info(
            "pipeline_complete",
            success=result.success,
            scheduled_count=result.scheduled_count,
            new_articles_saved=result.new_articles_saved,
            ranked_count=result.ranked_count,
            scraping_success_count=result.scraping_success_count,
            briefing_id=result.briefing_id,
        )
        return result

    def _finish_run(
        self,
        run_id: str,
        finished_at: datetime,
        tally: RunTally,
        error: str | None,
        log: structlog.typing.FilteringBoundLogger,
    ) -> None:
        status = RunStatus.FAILED if error else RunStatus.COMPLETED
        counts = tally.to_run_counts()
        try:
            self._store.end_run(run_id, status, counts, finished_at, error)
        except (StoreError, sqlite3.Error) as e:
            log.error("run_record_failed", error=str(e))

    def _execute(  # noqa: PLR0913
        self,
        run_id: str,
        now: datetime,
        due: Sequence[Interest],
        machine: PipelineStateMachine,
        tally: RunTally,
    ) -> None:
        config = self._config
        log = logger.bind(component="pipeline", run_id=run_id)

        if not due:
            log.info("pipeline_nothing_due", cooling_count=tally.cooling_count)
            machine.transition_to(PipelineState.FINISHED_SUCCESS)
            return

        collector = SearchCollector(
            self._collaborators.search, config.search, run_id=run_id
        )
        batch = collector.collect(due)
        tally.search_results_count = batch.results_count
        tally.search_errors = list(batch.errors)
        machine.transition_to(PipelineState.COLLECTED)

        curation = CurationStore(self._store, self._store, config.curation, run_id)
        curated = curation.curate(batch.candidates, now)
        tally.new_articles_saved = curated.saved_count
        tally.duplicates_filtered = curated.duplicate_count
        machine.transition_to(PipelineState.CURATED)

        articles = curated.new_articles
        if not articles:
            log.info("pipeline_no_new_articles")
            machine.transition_to(PipelineState.FINISHED_SUCCESS)
            return

        clustering = cluster_articles(articles, self._collaborators.clusterer, run_id)
        tally.clusters_found = clustering.clusters_found
        machine.transition_to(PipelineState.CLUSTERED)

        topics = extract_topics(
            articles, self._collaborators.topic_extractor, run_id=run_id
        )
        self._store.save_article_topics(topics.links, now)
        tally.topics_extracted_count = topics.topics_extracted_count
        machine.transition_to(PipelineState.TOPICS_EXTRACTED)

        ranker = ArticleRanker(self._store, self._store, config.ranking, run_id)
        ranking = ranker.rank(clustering.clustered)
        tally.ranked_count = ranking.ranked_count
        machine.transition_to(PipelineState.RANKED)

        briefing_articles = [r.article for r in ranking.ranked]
        topic_names = briefing_topics(ranking.ranked, topics)
        briefing = self._store.save_briefing(
            briefing_title(now), topic_names, briefing_articles, now
        )
        tally.briefing_id = briefing.id
        machine.transition_to(PipelineState.BRIEFING_SAVED)

        prioritizer = FetchPrioritizer(
            config.fetch,
            run_id=run_id,
            transport=self._fetch_transport,
            clock=self._fetch_clock,
            sleep=self._fetch_sleep,
        )
        fetched = prioritizer.fetch(
            [
                FetchCandidate(
                    article_id=r.article.id,
                    url=r.article.url,
                    title=r.article.title,
                    cluster_id=r.cluster_id,
                    interest_score=r.interest_score,
                )
                for r in ranking.ranked
            ]
        )
        tally.fetch_attempted_count = fetched.attempted_count
        tally.scraping_success_count = fetched.success_count
        machine.transition_to(PipelineState.FETCHED)

        summary = summarize_briefing(
            fetched.outcomes,
            briefing_articles,
            topic_names,
            now,
            self._collaborators.summarizer,
            run_id=run_id,
        )
        self._store.attach_summary(
            briefing.id, summary.summary.model_dump(mode="json")
        )
        tally.summary_generated = True
        machine.transition_to(PipelineState.SUMMARIZED)

        pruned = self._store.prune_briefings(config.retention.keep_briefings)
        if pruned:
            log.info("briefings_pruned", count=pruned)
        machine.transition_to(PipelineState.FINISHED_SUCCESS)


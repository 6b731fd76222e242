"""Cluster-aware prioritized fetching of full article content."""

import time
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait

import httpx
import structlog

from curator.fetch.config import FetchConfig
from curator.fetch.constants import POOL_POLL_INTERVAL_SECONDS
from curator.fetch.fetcher import ArticleFetcher
from curator.fetch.metrics import FetchMetrics
from curator.fetch.models import (
    FetchBatchResult,
    FetchCandidate,
    FetchFailureReason,
    FetchOutcome,
)
from curator.fetch.session import FetchSession


logger = structlog.get_logger()


def select_candidates(
    candidates: Sequence[FetchCandidate], per_cluster: int
) -> list[FetchCandidate]:
    """Pick the best articles of every cluster.

    Candidates are grouped by cluster, each group is sorted by interest
    score (highest first) and cut to ``per_cluster``. Clusters are ordered
    by their best score so the strongest stories are fetched first.

    Args:
        candidates: Ranked articles.
        per_cluster: Maximum articles per cluster.

    Returns:
        Selected candidates in fetch priority order.
    """
    clusters: dict[str, list[FetchCandidate]] = {}
    for candidate in candidates:
        clusters.setdefault(candidate.cluster_id, []).append(candidate)

    groups = [
        sorted(members, key=lambda c: (-c.interest_score, c.article_id))[:per_cluster]
        for members in clusters.values()
    ]
    groups.sort(key=lambda g: -g[0].interest_score)
    return [candidate for group in groups for candidate in group]


class FetchPrioritizer:
    """Fetches the top articles of each cluster within strict limits.

    Limits enforced per batch:
    - At most ``max_articles_per_cluster`` articles per cluster
    - Domains with too many failures are skipped without a request
    - robots.txt is honored and its crawl-delay spaces requests per domain
    - Each article has an overall deadline; the batch has a ceiling

    With more than one worker the deadlines are also enforced from outside
    the workers, so a request stuck in the transport cannot hold the batch
    past its ceiling. Fetching never raises; every selected candidate gets
    an outcome.
    """

    def __init__(
        self,
        config: FetchConfig | None = None,
        run_id: str = "",
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the prioritizer.

        Args:
            config: Fetch limits. Defaults apply when None.
            run_id: Run identifier for logging.
            transport: Optional httpx transport (tests use MockTransport).
            clock: Monotonic time source.
            sleep: Sleep function for domain gaps.
        """
        self._config = config or FetchConfig()
        self._run_id = run_id
        self._transport = transport
        self._clock = clock
        self._sleep = sleep
        self._log = logger.bind(component="fetch_prioritizer", run_id=run_id)

    def new_session(self) -> FetchSession:
        """Build fresh per-run domain state."""
        return FetchSession(
            max_failures_per_domain=self._config.max_failures_per_domain,
            failure_reset_seconds=self._config.failure_reset_seconds,
            clock=self._clock,
        )

    def fetch(
        self,
        candidates: Sequence[FetchCandidate],
        session: FetchSession | None = None,
    ) -> FetchBatchResult:
        """Select and fetch candidates concurrently.

        Args:
            candidates: Ranked articles with cluster ids.
            session: Domain state to reuse; a fresh one is built when None.

        Returns:
            One outcome per selected candidate, in priority order.
        """
        selected = select_candidates(candidates, self._config.max_articles_per_cluster)
        if not selected:
            return FetchBatchResult()

        session = session or self.new_session()
        batch_deadline = self._clock() + self._config.batch_timeout_seconds

        self._log.info(
            "fetch_batch_started",
            candidates=len(candidates),
            selected=len(selected),
            clusters=len({c.cluster_id for c in selected}),
            max_workers=self._config.max_workers,
        )

        outcomes: dict[int, FetchOutcome] = {}
        with httpx.Client(
            transport=self._transport,
            follow_redirects=True,
            timeout=self._config.request_timeout_seconds,
        ) as client:
            fetcher = ArticleFetcher(
                client=client,
                session=session,
                config=self._config,
                run_id=self._run_id,
                clock=self._clock,
                sleep=self._sleep,
            )

            if self._config.max_workers <= 1:
                for index, candidate in enumerate(selected):
                    outcomes[index] = fetcher.fetch(candidate, batch_deadline)
            else:
                outcomes = self._fetch_pooled(fetcher, selected, batch_deadline)

        result = FetchBatchResult(outcomes=[outcomes[i] for i in range(len(selected))])
        self._log_cluster_rates(result)
        self._log.info(
            "fetch_batch_complete",
            attempted_count=result.attempted_count,
            success_count=result.success_count,
            failures=result.failures_by_reason(),
        )
        return result

    def _fetch_pooled(
        self,
        fetcher: ArticleFetcher,
        selected: Sequence[FetchCandidate],
        batch_deadline: float,
    ) -> dict[int, FetchOutcome]:
        """Fetch on the worker pool, abandoning work that outlives its deadline.

        A running fetch still unfinished at its per-article deadline gets a
        timeout outcome; a queued one still waiting at the batch ceiling
        gets a batch-timeout outcome. Abandoned workers are left to finish
        on their own and their late results are discarded.
        """
        started: dict[int, float] = {}

        def fetch_one(index: int, candidate: FetchCandidate) -> FetchOutcome:
            started[index] = self._clock()
            return fetcher.fetch(candidate, batch_deadline)

        outcomes: dict[int, FetchOutcome] = {}
        executor = ThreadPoolExecutor(max_workers=self._config.max_workers)
        try:
            future_to_index = {
                executor.submit(fetch_one, i, c): i for i, c in enumerate(selected)
            }
            pending = set(future_to_index)
            while pending:
                done, pending = wait(
                    pending,
                    timeout=POOL_POLL_INTERVAL_SECONDS,
                    return_when=FIRST_COMPLETED,
                )
                for future in done:
                    index = future_to_index[future]
                    outcomes[index] = self._collect(future, selected[index])

                now = self._clock()
                for future in list(pending):
                    index = future_to_index[future]
                    reason = self._expired(started.get(index), now, batch_deadline)
                    if reason is None or future.done():
                        continue
                    future.cancel()
                    pending.discard(future)
                    outcomes[index] = self._abandoned(
                        selected[index], reason, started.get(index), now
                    )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return outcomes

    def _expired(
        self, started_at: float | None, now: float, batch_deadline: float
    ) -> FetchFailureReason | None:
        if started_at is None:
            return FetchFailureReason.BATCH_TIMEOUT if now >= batch_deadline else None
        deadline = min(
            started_at + self._config.article_timeout_seconds, batch_deadline
        )
        return FetchFailureReason.TIMEOUT if now >= deadline else None

    def _abandoned(
        self,
        candidate: FetchCandidate,
        reason: FetchFailureReason,
        started_at: float | None,
        now: float,
    ) -> FetchOutcome:
        metrics = FetchMetrics.get_instance()
        if started_at is None:
            metrics.record_attempt()
            metrics.record_failure(reason)
        self._log.warning(
            "fetch_abandoned",
            article_id=candidate.article_id,
            reason=reason.value,
            started=started_at is not None,
        )
        return FetchOutcome(
            article_id=candidate.article_id,
            url=candidate.url,
            cluster_id=candidate.cluster_id,
            reason=reason,
            message=(
                "per-article deadline expired"
                if reason is FetchFailureReason.TIMEOUT
                else "batch ceiling reached"
            ),
            duration_ms=0.0 if started_at is None else (now - started_at) * 1000,
        )

    def _collect(
        self, future: Future[FetchOutcome], candidate: FetchCandidate
    ) -> FetchOutcome:
        try:
            return future.result()
        except Exception as e:  # noqa: BLE001
            self._log.error(
                "fetch_execution_error",
                article_id=candidate.article_id,
                error=str(e),
            )
            return FetchOutcome(
                article_id=candidate.article_id,
                url=candidate.url,
                cluster_id=candidate.cluster_id,
                reason=FetchFailureReason.NETWORK_ERROR,
                message=f"Execution error: {e}",
            )

    def _log_cluster_rates(self, result: FetchBatchResult) -> None:
        totals: dict[str, list[int]] = {}
        for outcome in result.outcomes:
            counts = totals.setdefault(outcome.cluster_id, [0, 0])
            counts[0] += 1
            counts[1] += 1 if outcome.success else 0
        for cluster_id, (attempted, succeeded) in totals.items():
            self._log.info(
                "cluster_fetch_rate",
                cluster_id=cluster_id,
                attempted=attempted,
                succeeded=succeeded,
                success_rate=round(succeeded / attempted, 2),
            )

"""Deduplicating article curation."""

from collections.abc import Sequence
from datetime import datetime

import structlog

from curator.config.schemas import CurationConfig
from curator.curation.discovery import next_discovery_stats
from curator.curation.models import CandidateArticle, CurationResult
from curator.store.metrics import StoreMetrics
from curator.store.models import DiscoveryUpdate, NewArticle
from curator.store.repositories import ArticleRepository, InterestRepository
from curator.store.url import canonicalize_url


logger = structlog.get_logger()


class CurationStore:
    """Deduplicates candidates by canonical URL and persists the new ones.

    Inserting the batch and updating discovery statistics happen in a
    single store transaction.
    """

    def __init__(
        self,
        articles: ArticleRepository,
        interests: InterestRepository,
        config: CurationConfig | None = None,
        run_id: str = "",
    ) -> None:
        """Initialize the curation store.

        Args:
            articles: Article repository.
            interests: Interest repository.
            config: Curation settings. Defaults apply when None.
            run_id: Run identifier for logging.
        """
        self._articles = articles
        self._interests = interests
        self._config = config or CurationConfig()
        self._metrics = StoreMetrics.get_instance()
        self._log = logger.bind(component="curation", run_id=run_id)

    def curate(
        self, candidates: Sequence[CandidateArticle], now: datetime
    ) -> CurationResult:
        """Deduplicate and persist a batch of candidates.

        Args:
            candidates: Search results attributed to interests.
            now: Time of this discovery.

        Returns:
            Counts and the newly saved articles.

        Raises:
            StoreError: If the batch write fails; nothing is persisted.
            sqlite3.Error: If SQLite rejects the batch; nothing is persisted.
        """
        skipped = 0
        duplicates = 0
        new_articles: list[NewArticle] = []

        canonical: list[tuple[CandidateArticle, str]] = []
        for candidate in candidates:
            url = canonicalize_url(candidate.url or "", self._config.strip_params)
            if not url:
                skipped += 1
                continue
            canonical.append((candidate, url))

        existing = self._articles.existing_urls([url for _, url in canonical])
        seen: set[str] = set()
        interests_with_new: dict[int, None] = {}

        for candidate, url in canonical:
            if url in existing or url in seen:
                duplicates += 1
                continue
            seen.add(url)
            new_articles.append(
                NewArticle(
                    url=url,
                    title=candidate.title.strip() or url,
                    description=candidate.description,
                    source=candidate.source,
                    published_at=candidate.published_at,
                    thumbnail_url=candidate.thumbnail_url,
                    interest_id=candidate.interest_id,
                )
            )
            interests_with_new[candidate.interest_id] = None

        updates, missing = self._discovery_updates(list(interests_with_new), now)
        write = self._articles.save_curation_batch(new_articles, updates, now)
        self._metrics.record_duplicates(duplicates)

        result = CurationResult(
            saved_count=len(write.saved),
            duplicate_count=duplicates,
            skipped_count=skipped,
            new_articles=write.saved,
            failed_interest_ids=[*missing, *write.failed_interest_ids],
        )

        self._log.info(
            "curation_complete",
            candidates=len(candidates),
            saved_count=result.saved_count,
            duplicate_count=result.duplicate_count,
            skipped_count=result.skipped_count,
            interests_updated=len(write.updated_interest_ids),
            interests_failed=len(result.failed_interest_ids),
        )
        return result

    def _discovery_updates(
        self, interest_ids: list[int], now: datetime
    ) -> tuple[list[DiscoveryUpdate], list[int]]:
        interests = self._interests.get_interests(interest_ids)
        updates: list[DiscoveryUpdate] = []
        missing: list[int] = []
        for interest_id in interest_ids:
            interest = interests.get(interest_id)
            if interest is None:
                self._log.warning("discovery_interest_missing", interest_id=interest_id)
                missing.append(interest_id)
                continue
            updates.append(
                next_discovery_stats(
                    interest, now, self._config.first_discovery_seed_seconds
                )
            )
        return updates, missing

"""Tests for deduplicating curation and discovery statistics."""

from collections.abc import Generator
from datetime import timedelta

import pytest

from curator.config.schemas import CurationConfig
from curator.curation.curator import CurationStore
from curator.curation.discovery import incremental_mean, next_discovery_stats
from curator.curation.models import CandidateArticle
from curator.store.models import Interest
from curator.store.store import DiscoveryStore
from tests.helpers.time import FIXED_NOW


@pytest.fixture
def store() -> Generator[DiscoveryStore]:
    """Create an in-memory discovery store."""
    with DiscoveryStore(":memory:", run_id="test-curation") as store:
        yield store


def _candidate(
    interest_id: int, url: str | None, title: str = "Story"
) -> CandidateArticle:
    return CandidateArticle(interest_id=interest_id, url=url, title=title)


class TestIncrementalMean:
    """Tests for incremental_mean function."""

    def test_matches_arithmetic_mean(self) -> None:
        """Test folding samples one at a time gives the plain mean."""
        mean = 0.0
        for count, sample in enumerate([100.0, 200.0, 300.0]):
            mean = incremental_mean(mean, count, sample)
        assert mean == 200.0

    def test_negative_count_rejected(self) -> None:
        """Test a negative sample count raises."""
        with pytest.raises(ValueError, match="non-negative"):
            incremental_mean(1.0, -1, 2.0)


class TestNextDiscoveryStats:
    """Tests for next_discovery_stats function."""

    def _interest(self, **overrides: object) -> Interest:
        data: dict[str, object] = {
            "id": 1,
            "name": "rust",
            "created_at": FIXED_NOW - timedelta(days=10),
        }
        data.update(overrides)
        return Interest.model_validate(data)

    def test_first_discovery_seeds_average(self) -> None:
        """Test the first discovery seeds the configured interval."""
        update = next_discovery_stats(self._interest(), FIXED_NOW, 86400.0)

        assert update.discovery_count == 1
        assert update.avg_discovery_interval_seconds == 86400.0
        assert update.last_new_article_at == FIXED_NOW

    def test_later_discovery_folds_interval(self) -> None:
        """Test the gap since the last discovery joins the running mean."""
        interest = self._interest(
            discovery_count=1,
            avg_discovery_interval_seconds=86400.0,
            last_new_article_at=FIXED_NOW - timedelta(hours=12),
        )

        update = next_discovery_stats(interest, FIXED_NOW, 86400.0)

        assert update.discovery_count == 2
        assert update.avg_discovery_interval_seconds == (86400.0 + 43200.0) / 2

    def test_non_positive_interval_keeps_average(self) -> None:
        """Test a same-instant discovery leaves the average unchanged."""
        interest = self._interest(
            discovery_count=3,
            avg_discovery_interval_seconds=5000.0,
            last_new_article_at=FIXED_NOW,
        )

        update = next_discovery_stats(interest, FIXED_NOW, 86400.0)

        assert update.discovery_count == 4
        assert update.avg_discovery_interval_seconds == 5000.0


class TestCurationStore:
    """Tests for CurationStore."""

    def test_dedupes_within_batch(self, store: DiscoveryStore) -> None:
        """Test canonical-URL duplicates inside one batch are saved once."""
        interest = store.add_interest("rust", FIXED_NOW)
        candidates = [
            _candidate(interest.id, "https://a.com/1?utm_source=feed"),
            _candidate(interest.id, "https://A.com/1/"),
            _candidate(interest.id, "https://a.com/2"),
        ]

        result = CurationStore(store, store).curate(candidates, FIXED_NOW)

        assert result.saved_count == 2
        assert result.duplicate_count == 1
        assert [a.url for a in result.new_articles] == [
            "https://a.com/1",
            "https://a.com/2",
        ]

    def test_dedupes_across_batches(self, store: DiscoveryStore) -> None:
        """Test URLs saved by an earlier run count as duplicates."""
        interest = store.add_interest("rust", FIXED_NOW)
        curation = CurationStore(store, store)
        curation.curate([_candidate(interest.id, "https://a.com/1")], FIXED_NOW)

        result = curation.curate(
            [
                _candidate(interest.id, "https://a.com/1#comments"),
                _candidate(interest.id, "https://a.com/3"),
            ],
            FIXED_NOW + timedelta(hours=1),
        )

        assert result.saved_count == 1
        assert result.duplicate_count == 1
        assert store.count_articles() == 2

    def test_skips_missing_urls(self, store: DiscoveryStore) -> None:
        """Test candidates with no URL are skipped, not counted as duplicates."""
        interest = store.add_interest("rust", FIXED_NOW)

        result = CurationStore(store, store).curate(
            [_candidate(interest.id, None), _candidate(interest.id, "  ")], FIXED_NOW
        )

        assert result.saved_count == 0
        assert result.skipped_count == 2
        assert result.duplicate_count == 0

    def test_blank_title_falls_back_to_url(self, store: DiscoveryStore) -> None:
        """Test an article without a title is stored under its URL."""
        interest = store.add_interest("rust", FIXED_NOW)

        result = CurationStore(store, store).curate(
            [_candidate(interest.id, "https://a.com/1", title="  ")], FIXED_NOW
        )

        assert result.new_articles[0].title == "https://a.com/1"

    def test_updates_only_interests_with_new_articles(
        self, store: DiscoveryStore
    ) -> None:
        """Test statistics change only for interests that found something new."""
        finder = store.add_interest("rust", FIXED_NOW)
        repeater = store.add_interest("go", FIXED_NOW)
        curation = CurationStore(store, store)
        curation.curate([_candidate(repeater.id, "https://a.com/old")], FIXED_NOW)

        later = FIXED_NOW + timedelta(hours=6)
        curation.curate(
            [
                _candidate(finder.id, "https://a.com/new"),
                _candidate(repeater.id, "https://a.com/old"),
            ],
            later,
        )

        stored = store.get_interests([finder.id, repeater.id])
        assert stored[finder.id].discovery_count == 1
        assert stored[finder.id].avg_discovery_interval_seconds == 86400.0
        assert stored[repeater.id].discovery_count == 1
        assert stored[repeater.id].last_new_article_at == FIXED_NOW

    def test_running_mean_over_runs(self, store: DiscoveryStore) -> None:
        """Test discovery intervals accumulate into the running mean."""
        interest = store.add_interest("rust", FIXED_NOW)
        curation = CurationStore(
            store, store, CurationConfig(first_discovery_seed_seconds=100.0)
        )

        curation.curate([_candidate(interest.id, "https://a.com/1")], FIXED_NOW)
        curation.curate(
            [_candidate(interest.id, "https://a.com/2")],
            FIXED_NOW + timedelta(seconds=200),
        )
        curation.curate(
            [_candidate(interest.id, "https://a.com/3")],
            FIXED_NOW + timedelta(seconds=500),
        )

        stored = store.get_interests([interest.id])[interest.id]
        assert stored.discovery_count == 3
        assert stored.avg_discovery_interval_seconds == 200.0

    def test_unknown_interest_reported(self, store: DiscoveryStore) -> None:
        """Test a candidate from a deleted interest still saves its article."""
        result = CurationStore(store, store).curate(
            [_candidate(42, "https://a.com/1")], FIXED_NOW
        )

        assert result.saved_count == 1
        assert result.failed_interest_ids == [42]

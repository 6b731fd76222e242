"""Tests for adaptive cool-down scheduling."""

from collections.abc import Generator
from datetime import timedelta

import pytest

from curator.config.errors import ConfigurationError
from curator.config.schemas import SchedulerConfig
from curator.scheduler.errors import NoInterestsError
from curator.scheduler.models import ScheduleReason
from curator.scheduler.scheduler import (
    InterestScheduler,
    cooldown_threshold,
    evaluate_interest,
)
from curator.store.models import DiscoveryUpdate, Interest
from curator.store.store import DiscoveryStore
from tests.helpers.time import FIXED_NOW


@pytest.fixture
def store() -> Generator[DiscoveryStore]:
    """Create an in-memory discovery store."""
    with DiscoveryStore(":memory:", run_id="test-scheduler") as store:
        yield store


def _interest(
    avg: float = 0.0, last_attempt_ago: timedelta | None = None, name: str = "rust"
) -> Interest:
    return Interest(
        id=1,
        name=name,
        created_at=FIXED_NOW - timedelta(days=30),
        avg_discovery_interval_seconds=avg,
        discovery_count=2 if avg else 0,
        last_search_attempt_at=(
            FIXED_NOW - last_attempt_ago if last_attempt_ago is not None else None
        ),
    )


def _with_history(
    store: DiscoveryStore, name: str, avg: float, last_attempt_ago: timedelta
) -> Interest:
    interest = store.add_interest(name, FIXED_NOW - timedelta(days=30))
    store.save_curation_batch(
        [],
        [
            DiscoveryUpdate(
                interest_id=interest.id,
                last_new_article_at=FIXED_NOW - timedelta(days=1),
                discovery_count=2,
                avg_discovery_interval_seconds=avg,
            )
        ],
        FIXED_NOW,
    )
    store.mark_search_attempts([interest.id], FIXED_NOW - last_attempt_ago)
    return interest


class TestCooldownThreshold:
    """Tests for cooldown_threshold function."""

    def test_scales_average(self) -> None:
        """Test the threshold is the average times the multiplier."""
        assert cooldown_threshold(3600.0, 3.0, 7200.0) == 10800.0

    def test_default_without_history(self) -> None:
        """Test the default applies when there is no average."""
        assert cooldown_threshold(0.0, 3.0, 7200.0) == 7200.0


class TestEvaluateInterest:
    """Tests for evaluate_interest function."""

    def test_never_searched_is_due(self) -> None:
        """Test an interest never searched is due."""
        decision = evaluate_interest(_interest(), FIXED_NOW, SchedulerConfig())
        assert decision.due
        assert decision.reason == ScheduleReason.NEVER_SEARCHED

    def test_elapsed_cooldown_is_due(self) -> None:
        """Test an interest is due once the full threshold has passed."""
        interest = _interest(avg=3600.0, last_attempt_ago=timedelta(seconds=10800))
        decision = evaluate_interest(interest, FIXED_NOW, SchedulerConfig())
        assert decision.due
        assert decision.reason == ScheduleReason.COOLDOWN_ELAPSED

    def test_recent_attempt_is_cooling(self) -> None:
        """Test an interest within its threshold keeps cooling."""
        interest = _interest(avg=3600.0, last_attempt_ago=timedelta(hours=1))
        decision = evaluate_interest(interest, FIXED_NOW, SchedulerConfig())
        assert not decision.due
        assert decision.reason == ScheduleReason.COOLING
        assert decision.remaining_seconds == 7200.0

    def test_default_cooldown_without_history(self) -> None:
        """Test interests with no history wait the default cool-down."""
        config = SchedulerConfig(default_cooldown_seconds=7200.0)
        cooling = _interest(last_attempt_ago=timedelta(minutes=30))
        due = _interest(last_attempt_ago=timedelta(hours=2))

        assert not evaluate_interest(cooling, FIXED_NOW, config).due
        assert evaluate_interest(due, FIXED_NOW, config).due

    def test_force_overrides_cooldown(self) -> None:
        """Test force makes a cooling interest due."""
        interest = _interest(avg=3600.0, last_attempt_ago=timedelta(minutes=5))
        decision = evaluate_interest(interest, FIXED_NOW, SchedulerConfig(), force=True)
        assert decision.due
        assert decision.reason == ScheduleReason.FORCED


class TestInterestScheduler:
    """Tests for InterestScheduler."""

    def test_no_interests_raises(self, store: DiscoveryStore) -> None:
        """Test scheduling with no interests is a configuration error."""
        scheduler = InterestScheduler(store)
        with pytest.raises(NoInterestsError):
            scheduler.schedule(FIXED_NOW)
        assert issubclass(NoInterestsError, ConfigurationError)

    def test_partitions_and_stamps_due(self, store: DiscoveryStore) -> None:
        """Test due interests are stamped and cooling ones untouched."""
        due = _with_history(store, "rust", 3600.0, timedelta(seconds=10800))
        cooling = _with_history(store, "go", 3600.0, timedelta(hours=1))
        fresh = store.add_interest("zig", FIXED_NOW)

        result = InterestScheduler(store).schedule(FIXED_NOW)

        assert {i.id for i in result.due} == {due.id, fresh.id}
        assert [d.interest.id for d in result.cooling] == [cooling.id]
        stored = store.get_interests([due.id, cooling.id, fresh.id])
        assert stored[due.id].last_search_attempt_at == FIXED_NOW
        assert stored[fresh.id].last_search_attempt_at == FIXED_NOW
        assert stored[cooling.id].last_search_attempt_at == FIXED_NOW - timedelta(
            hours=1
        )

    def test_second_run_finds_everything_cooling(self, store: DiscoveryStore) -> None:
        """Test interests stamped by one run cool down for the next."""
        store.add_interest("rust", FIXED_NOW)
        scheduler = InterestScheduler(store)

        assert scheduler.schedule(FIXED_NOW).due_count == 1
        again = scheduler.schedule(FIXED_NOW + timedelta(minutes=1))

        assert again.due_count == 0
        assert again.cooling_count == 1

    def test_force_schedules_everything(self, store: DiscoveryStore) -> None:
        """Test force makes every interest due."""
        _with_history(store, "rust", 3600.0, timedelta(minutes=1))
        _with_history(store, "go", 3600.0, timedelta(minutes=2))

        result = InterestScheduler(store).schedule(FIXED_NOW, force=True)

        assert result.due_count == 2
        assert result.cooling_count == 0

    def test_reset_cooldowns(self, store: DiscoveryStore) -> None:
        """Test reset makes cooling interests due again."""
        _with_history(store, "rust", 3600.0, timedelta(minutes=1))
        scheduler = InterestScheduler(store)

        assert scheduler.reset_cooldowns() == 1
        assert scheduler.schedule(FIXED_NOW).due_count == 1

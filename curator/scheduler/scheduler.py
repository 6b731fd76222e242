"""Adaptive cool-down scheduling of interest searches.

An interest that historically yields new articles every ``avg`` seconds is
not searched again until ``avg * multiplier`` seconds have passed since its
last search attempt. Interests with no discovery history use a fixed
default cool-down, and interests never searched are always due.
"""

from datetime import datetime

import structlog

from curator.config.schemas import SchedulerConfig
from curator.scheduler.errors import NoInterestsError
from curator.scheduler.models import ScheduleDecision, ScheduleReason, ScheduleResult
from curator.store.models import Interest
from curator.store.repositories import InterestRepository


logger = structlog.get_logger()


def cooldown_threshold(
    avg_discovery_interval_seconds: float,
    multiplier: float,
    default_cooldown_seconds: float,
) -> float:
    """Return the cool-down in seconds for a given discovery history."""
    if avg_discovery_interval_seconds > 0:
        return avg_discovery_interval_seconds * multiplier
    return default_cooldown_seconds


def evaluate_interest(
    interest: Interest,
    now: datetime,
    config: SchedulerConfig,
    force: bool = False,
) -> ScheduleDecision:
    """Classify a single interest as due or cooling.

    Args:
        interest: Interest with its discovery statistics.
        now: Current time.
        config: Cool-down policy.
        force: Treat the interest as due regardless of cool-down.

    Returns:
        The scheduling decision.
    """
    threshold = cooldown_threshold(
        interest.avg_discovery_interval_seconds,
        config.cooldown_multiplier,
        config.default_cooldown_seconds,
    )

    if interest.last_search_attempt_at is None:
        reason = ScheduleReason.FORCED if force else ScheduleReason.NEVER_SEARCHED
        return ScheduleDecision(
            interest=interest, due=True, reason=reason, threshold_seconds=threshold
        )

    elapsed = (now - interest.last_search_attempt_at).total_seconds()
    if force or elapsed >= threshold:
        return ScheduleDecision(
            interest=interest,
            due=True,
            reason=ScheduleReason.FORCED if force else ScheduleReason.COOLDOWN_ELAPSED,
            threshold_seconds=threshold,
            elapsed_seconds=elapsed,
        )

    return ScheduleDecision(
        interest=interest,
        due=False,
        reason=ScheduleReason.COOLING,
        threshold_seconds=threshold,
        elapsed_seconds=elapsed,
        remaining_seconds=threshold - elapsed,
    )


class InterestScheduler:
    """Decides which interests to search this run and stamps them."""

    def __init__(
        self,
        interests: InterestRepository,
        config: SchedulerConfig | None = None,
        run_id: str = "",
    ) -> None:
        """Initialize the scheduler.

        Args:
            interests: Interest repository.
            config: Cool-down policy. Defaults apply when None.
            run_id: Run identifier for logging.
        """
        self._interests = interests
        self._config = config or SchedulerConfig()
        self._log = logger.bind(component="scheduler", run_id=run_id)

    def schedule(self, now: datetime, force: bool = False) -> ScheduleResult:
        """Partition all interests and stamp the due ones.

        The stamp is written in one transaction before any search is issued,
        so a crash mid-search still counts as an attempt.

        Args:
            now: Current time.
            force: Bypass the cool-down check.

        Returns:
            Due interests (stamped with ``now``) and cooling decisions.

        Raises:
            NoInterestsError: If no interests exist.
        """
        interests = self._interests.list_interests()
        if not interests:
            raise NoInterestsError

        decisions = [evaluate_interest(i, now, self._config, force) for i in interests]
        due = [d.interest for d in decisions if d.due]
        cooling = [d for d in decisions if not d.due]

        for decision in cooling:
            self._log.debug(
                "interest_cooling",
                interest=decision.interest.name,
                remaining_seconds=round(decision.remaining_seconds, 1),
                threshold_seconds=round(decision.threshold_seconds, 1),
            )

        if due:
            self._interests.mark_search_attempts([i.id for i in due], now)

        self._log.info(
            "schedule_complete",
            due_count=len(due),
            cooling_count=len(cooling),
            forced=force,
        )

        return ScheduleResult(
            due=[i.model_copy(update={"last_search_attempt_at": now}) for i in due],
            cooling=cooling,
        )

    def reset_cooldowns(self) -> int:
        """Clear every search attempt stamp so all interests become due.

        Returns:
            Number of interests reset.
        """
        count = self._interests.reset_search_attempts()
        self._log.info("cooldowns_reset", count=count)
        return count

"""Interest scheduling under an adaptive cool-down policy."""

from curator.scheduler.errors import NoInterestsError
from curator.scheduler.models import ScheduleDecision, ScheduleReason, ScheduleResult
from curator.scheduler.scheduler import (
    InterestScheduler,
    cooldown_threshold,
    evaluate_interest,
)


__all__ = [
    "InterestScheduler",
    "NoInterestsError",
    "ScheduleDecision",
    "ScheduleReason",
    "ScheduleResult",
    "cooldown_threshold",
    "evaluate_interest",
]

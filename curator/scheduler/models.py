"""Scheduler decision models."""

from enum import Enum

from pydantic import Field

from curator.data_model import StrictBaseModel
from curator.store.models import Interest


class ScheduleReason(str, Enum):
    """Why an interest was classified the way it was."""

    NEVER_SEARCHED = "never_searched"
    COOLDOWN_ELAPSED = "cooldown_elapsed"
    FORCED = "forced"
    COOLING = "cooling"


class ScheduleDecision(StrictBaseModel):
    """Classification of one interest at a point in time.

    Attributes:
        threshold_seconds: Cool-down that applied to the interest.
        elapsed_seconds: Time since the last search attempt, if any.
        remaining_seconds: Time left until the interest becomes due.
    """

    interest: Interest
    due: bool
    reason: ScheduleReason
    threshold_seconds: float
    elapsed_seconds: float | None = None
    remaining_seconds: float = 0.0


class ScheduleResult(StrictBaseModel):
    """Partition of interests into due and cooling.

    Due interests carry the search attempt stamp written for this run.
    """

    due: list[Interest] = Field(default_factory=list)
    cooling: list[ScheduleDecision] = Field(default_factory=list)

    @property
    def due_count(self) -> int:
        """Number of interests due for search."""
        return len(self.due)

    @property
    def cooling_count(self) -> int:
        """Number of interests still cooling down."""
        return len(self.cooling)

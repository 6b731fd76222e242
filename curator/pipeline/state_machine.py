"""State machine enforcing the fixed stage order of a pipeline run."""

from enum import Enum

import structlog


logger = structlog.get_logger()


class PipelineState(str, Enum):
    """Stage a pipeline run has completed.

    Stages run strictly in order. A run may finish early after scheduling
    (nothing due) or after curation (nothing new), and may fail from any
    non-terminal state.
    """

    STARTED = "STARTED"
    SCHEDULED = "SCHEDULED"
    COLLECTED = "COLLECTED"
    CURATED = "CURATED"
    CLUSTERED = "CLUSTERED"
    TOPICS_EXTRACTED = "TOPICS_EXTRACTED"
    RANKED = "RANKED"
    BRIEFING_SAVED = "BRIEFING_SAVED"
    FETCHED = "FETCHED"
    SUMMARIZED = "SUMMARIZED"
    FINISHED_SUCCESS = "FINISHED_SUCCESS"
    FINISHED_FAILURE = "FINISHED_FAILURE"


_TERMINAL_STATES = frozenset(
    {PipelineState.FINISHED_SUCCESS, PipelineState.FINISHED_FAILURE}
)

VALID_TRANSITIONS: dict[PipelineState, set[PipelineState]] = {
    PipelineState.STARTED: {PipelineState.SCHEDULED},
    PipelineState.SCHEDULED: {PipelineState.COLLECTED, PipelineState.FINISHED_SUCCESS},
    PipelineState.COLLECTED: {PipelineState.CURATED},
    PipelineState.CURATED: {PipelineState.CLUSTERED, PipelineState.FINISHED_SUCCESS},
    PipelineState.CLUSTERED: {PipelineState.TOPICS_EXTRACTED},
    PipelineState.TOPICS_EXTRACTED: {PipelineState.RANKED},
    PipelineState.RANKED: {PipelineState.BRIEFING_SAVED},
    PipelineState.BRIEFING_SAVED: {PipelineState.FETCHED},
    PipelineState.FETCHED: {PipelineState.SUMMARIZED},
    PipelineState.SUMMARIZED: {PipelineState.FINISHED_SUCCESS},
    PipelineState.FINISHED_SUCCESS: set(),
    PipelineState.FINISHED_FAILURE: set(),
}

# Failure is reachable from every non-terminal state
for _state in PipelineState:
    if _state not in _TERMINAL_STATES:
        VALID_TRANSITIONS[_state].add(PipelineState.FINISHED_FAILURE)


class PipelineStateError(Exception):
    """Raised when an illegal stage transition is attempted."""

    def __init__(
        self, run_id: str, from_state: PipelineState, to_state: PipelineState
    ) -> None:
        """Initialize the transition error.

        Args:
            run_id: Run identifier.
            from_state: Current state.
            to_state: Attempted target state.
        """
        self.run_id = run_id
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Illegal pipeline transition for run '{run_id}': "
            f"{from_state.value} -> {to_state.value}"
        )


class PipelineStateMachine:
    """Tracks and validates the stage of one pipeline run."""

    def __init__(self, run_id: str) -> None:
        self._run_id = run_id
        self._state = PipelineState.STARTED
        self._log = logger.bind(component="pipeline", run_id=run_id)

    @property
    def state(self) -> PipelineState:
        """Get the current state."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Check if the run has finished."""
        return self._state in _TERMINAL_STATES

    def can_transition_to(self, target: PipelineState) -> bool:
        """Check if a transition to the target state is valid."""
        return target in VALID_TRANSITIONS[self._state]

    def transition_to(self, target: PipelineState) -> None:
        """Move to the next stage.

        Raises:
            PipelineStateError: If the transition is not allowed.
        """
        if not self.can_transition_to(target):
            self._log.error(
                "invariant_violation",
                from_state=self._state.value,
                to_state=target.value,
            )
            raise PipelineStateError(self._run_id, self._state, target)

        old_state = self._state
        self._state = target
        self._log.debug(
            "state_transition",
            from_state=old_state.value,
            to_state=target.value,
        )

    def fail(self) -> None:
        """Mark the run failed unless it already finished."""
        if not self.is_terminal:
            self.transition_to(PipelineState.FINISHED_FAILURE)

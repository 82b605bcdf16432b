"""State machine for a ranking pass."""

from enum import Enum

import structlog


logger = structlog.get_logger()


class PassState(str, Enum):
    """State of a ranking pass.

    States represent the lifecycle of one pass:
    - PASS_STARTED: Pass accepted, fetchers not yet run
    - FETCHED: Candidate statuses collected from all fetchers
    - PREPARED: Scorer features and feed context computed
    - SCORED: Every candidate carries its scores map
    - RANKED: Feed combined, decayed, filtered, sorted and deduplicated
    - PASS_FAILED: Pass aborted, cached feed left untouched
    """

    PASS_STARTED = "PASS_STARTED"
    FETCHED = "FETCHED"
    PREPARED = "PREPARED"
    SCORED = "SCORED"
    RANKED = "RANKED"
    PASS_FAILED = "PASS_FAILED"


# Valid state transitions
_VALID_TRANSITIONS: dict[PassState, set[PassState]] = {
    PassState.PASS_STARTED: {PassState.FETCHED, PassState.SCORED, PassState.PASS_FAILED},
    PassState.FETCHED: {PassState.PREPARED, PassState.PASS_FAILED},
    PassState.PREPARED: {PassState.SCORED, PassState.PASS_FAILED},
    PassState.SCORED: {PassState.RANKED, PassState.PASS_FAILED},
    PassState.RANKED: set(),  # Terminal state
    PassState.PASS_FAILED: set(),  # Terminal state
}


class PassStateTransitionError(Exception):
    """Raised when an illegal state transition is attempted."""

    def __init__(
        self,
        pass_id: str,
        from_state: PassState,
        to_state: PassState,
    ) -> None:
        """Initialize the transition error.

        Args:
            pass_id: Identifier of the pass.
            from_state: Current state.
            to_state: Attempted target state.
        """
        self.pass_id = pass_id
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Illegal pass state transition for pass '{pass_id}': "
            f"{from_state.value} -> {to_state.value}"
        )


class PassStateMachine:
    """Manages state transitions for a ranking pass.

    A weight-only re-scoring goes straight from PASS_STARTED to SCORED,
    since the cached statuses already carry their scores.
    """

    def __init__(
        self,
        pass_id: str,
        initial_state: PassState = PassState.PASS_STARTED,
    ) -> None:
        """Initialize the state machine.

        Args:
            pass_id: Identifier for the current pass.
            initial_state: Starting state.
        """
        self._pass_id = pass_id
        self._state = initial_state
        self._log = logger.bind(component="ranker", pass_id=pass_id)

    @property
    def pass_id(self) -> str:
        """Get the pass identifier."""
        return self._pass_id

    @property
    def state(self) -> PassState:
        """Get the current state."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return self._state in (PassState.RANKED, PassState.PASS_FAILED)

    def can_transition_to(self, target: PassState) -> bool:
        """Check if a transition to the target state is valid.

        Args:
            target: The target state.

        Returns:
            True if the transition is valid.
        """
        return target in _VALID_TRANSITIONS.get(self._state, set())

    def transition_to(self, target: PassState) -> None:
        """Transition to a new state.

        Args:
            target: The target state.

        Raises:
            PassStateTransitionError: If the transition is invalid.
        """
        if not self.can_transition_to(target):
            self._log.error(
                "illegal_pass_state_transition",
                from_state=self._state.value,
                to_state=target.value,
            )
            raise PassStateTransitionError(
                pass_id=self._pass_id,
                from_state=self._state,
                to_state=target,
            )

        old_state = self._state
        self._state = target

        self._log.debug(
            "pass_state_transition",
            from_state=old_state.value,
            to_state=target.value,
        )

    def to_fetched(self) -> None:
        """Transition to FETCHED state."""
        self.transition_to(PassState.FETCHED)

    def to_prepared(self) -> None:
        """Transition to PREPARED state."""
        self.transition_to(PassState.PREPARED)

    def to_scored(self) -> None:
        """Transition to SCORED state."""
        self.transition_to(PassState.SCORED)

    def to_ranked(self) -> None:
        """Transition to RANKED state."""
        self.transition_to(PassState.RANKED)

    def to_failed(self) -> None:
        """Transition to PASS_FAILED state."""
        self.transition_to(PassState.PASS_FAILED)

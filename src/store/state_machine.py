"""Run lifecycle for commands that record a row in `runs`.

Each run kind has one working state: ingest runs match documents, daily
runs select a digest. A run leaves its working state only by finishing.
"""

from enum import Enum, auto
from typing import ClassVar

import structlog


logger = structlog.get_logger()

RUN_KIND_INGEST = "ingest"
RUN_KIND_DAILY = "daily"


class RunState(Enum):
    """Run lifecycle states."""

    RUN_STARTED = auto()
    RUN_MATCHING = auto()
    RUN_SELECTING = auto()
    RUN_FINISHED_SUCCESS = auto()
    RUN_FINISHED_FAILURE = auto()


TERMINAL_STATES = frozenset({RunState.RUN_FINISHED_SUCCESS, RunState.RUN_FINISHED_FAILURE})


class RunStateError(Exception):
    """Raised when an invalid run state transition is attempted."""

    def __init__(self, from_state: RunState, to_state: RunState) -> None:
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid run state transition: {from_state.name} -> {to_state.name}"
        )


class RunStateMachine:
    """Tracks one run from start to a terminal state.

    STARTED moves to the kind's working state; the working state moves to
    SUCCESS. FAILURE is reachable from any non-terminal state.
    """

    WORK_STATES: ClassVar[dict[str, RunState]] = {
        RUN_KIND_INGEST: RunState.RUN_MATCHING,
        RUN_KIND_DAILY: RunState.RUN_SELECTING,
    }

    def __init__(self, run_id: str, kind: str) -> None:
        """Initialize the machine in RUN_STARTED.

        Args:
            run_id: Run identifier for logging.
            kind: Run kind, one of WORK_STATES.

        Raises:
            ValueError: If the kind is unknown.
        """
        if kind not in self.WORK_STATES:
            msg = f"Unknown run kind: {kind}"
            raise ValueError(msg)
        self._kind = kind
        self._work_state = self.WORK_STATES[kind]
        self._state = RunState.RUN_STARTED
        self._log = logger.bind(run_id=run_id, component="store", kind=kind)

    @property
    def kind(self) -> str:
        """Get the run kind."""
        return self._kind

    @property
    def state(self) -> RunState:
        """Get the current state."""
        return self._state

    def can_transition(self, to_state: RunState) -> bool:
        """Check if a transition to the given state is valid."""
        if self._state in TERMINAL_STATES:
            return False
        if to_state == RunState.RUN_FINISHED_FAILURE:
            return True
        if self._state == RunState.RUN_STARTED:
            return to_state == self._work_state
        return to_state == RunState.RUN_FINISHED_SUCCESS

    def transition(self, to_state: RunState) -> None:
        """Move to a new state.

        Raises:
            RunStateError: If the transition is invalid.
        """
        if not self.can_transition(to_state):
            self._log.error(
                "invalid_run_transition",
                from_state=self._state.name,
                to_state=to_state.name,
            )
            raise RunStateError(self._state, to_state)

        self._log.debug(
            "run_state_transition",
            from_state=self._state.name,
            to_state=to_state.name,
        )
        self._state = to_state

    def start(self) -> None:
        """Enter the working state of the run's kind."""
        self.transition(self._work_state)

    def finish(self, success: bool) -> None:
        """Enter the terminal state matching the outcome."""
        self.transition(
            RunState.RUN_FINISHED_SUCCESS if success else RunState.RUN_FINISHED_FAILURE
        )

    def is_terminal(self) -> bool:
        """Check if the run has finished."""
        return self._state in TERMINAL_STATES

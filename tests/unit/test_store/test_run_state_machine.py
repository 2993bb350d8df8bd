"""Unit tests for run state machine."""

import pytest

from src.store.state_machine import (
    RUN_KIND_DAILY,
    RUN_KIND_INGEST,
    RunState,
    RunStateError,
    RunStateMachine,
)


class TestRunStateMachine:
    """Tests for RunStateMachine."""

    def test_initial_state(self) -> None:
        """Test machine starts in RUN_STARTED state."""
        machine = RunStateMachine(run_id="test-run", kind=RUN_KIND_INGEST)
        assert machine.state == RunState.RUN_STARTED
        assert machine.kind == RUN_KIND_INGEST
        assert not machine.is_terminal()

    @pytest.mark.parametrize(
        ("kind", "work_state"),
        [
            (RUN_KIND_INGEST, RunState.RUN_MATCHING),
            (RUN_KIND_DAILY, RunState.RUN_SELECTING),
        ],
    )
    def test_lifecycle_per_kind(self, kind: str, work_state: RunState) -> None:
        """Each kind works in its own state before succeeding."""
        machine = RunStateMachine(run_id="test", kind=kind)

        machine.start()
        assert machine.state == work_state

        machine.finish(success=True)
        assert machine.state == RunState.RUN_FINISHED_SUCCESS
        assert machine.is_terminal()

    def test_unknown_kind(self) -> None:
        """Only known run kinds are accepted."""
        with pytest.raises(ValueError, match="Unknown run kind"):
            RunStateMachine(run_id="test", kind="weekly")

    def test_other_kinds_work_state_rejected(self) -> None:
        """A daily run cannot enter the matching state."""
        machine = RunStateMachine(run_id="test", kind=RUN_KIND_DAILY)

        assert not machine.can_transition(RunState.RUN_MATCHING)
        with pytest.raises(RunStateError):
            machine.transition(RunState.RUN_MATCHING)

    def test_matching_to_selecting_rejected(self) -> None:
        """An ingest run finishes without a selection pass."""
        machine = RunStateMachine(run_id="test", kind=RUN_KIND_INGEST)
        machine.start()

        assert not machine.can_transition(RunState.RUN_SELECTING)

    @pytest.mark.parametrize("started", [False, True])
    def test_failure_from_any_non_terminal(self, started: bool) -> None:
        """A run may fail before or during its work."""
        machine = RunStateMachine(run_id="test", kind=RUN_KIND_DAILY)
        if started:
            machine.start()

        machine.finish(success=False)

        assert machine.state == RunState.RUN_FINISHED_FAILURE

    def test_started_to_success_rejected(self) -> None:
        """A run cannot succeed without doing any work."""
        machine = RunStateMachine(run_id="test", kind=RUN_KIND_INGEST)

        with pytest.raises(RunStateError):
            machine.finish(success=True)
        assert machine.state == RunState.RUN_STARTED

    @pytest.mark.parametrize("success", [True, False])
    def test_no_transition_from_terminal(self, success: bool) -> None:
        """Finished runs accept no further transitions."""
        machine = RunStateMachine(run_id="test", kind=RUN_KIND_INGEST)
        machine.start()
        machine.finish(success=success)

        for state in RunState:
            assert not machine.can_transition(state)

    def test_error_message_format(self) -> None:
        """The error names both states."""
        error = RunStateError(RunState.RUN_STARTED, RunState.RUN_FINISHED_SUCCESS)

        assert "RUN_STARTED" in str(error)
        assert "RUN_FINISHED_SUCCESS" in str(error)
        assert error.from_state == RunState.RUN_STARTED
        assert error.to_state == RunState.RUN_FINISHED_SUCCESS

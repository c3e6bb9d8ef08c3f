"""Tests for the schedule build state machine."""
import pytest

from shootplan.scheduling.state_machine import (
    BuildRun,
    BuildState,
    InvalidTransitionError,
    assert_transition,
    is_terminal,
)

PIPELINE = [
    BuildState.FETCHING_SCENES,
    BuildState.PROMPTING_AI,
    BuildState.PARSING,
    BuildState.RECONCILING,
    BuildState.PERSISTING,
    BuildState.DONE,
]


class TestTransitions:
    def test_happy_path(self):
        run = BuildRun("p1")
        for state in PIPELINE:
            run.advance(state)
        assert run.state == BuildState.DONE
        assert run.history == [BuildState.VALIDATING] + PIPELINE

    @pytest.mark.parametrize("state", [BuildState.VALIDATING] + PIPELINE[:-1])
    def test_failed_reachable_from_every_active_state(self, state):
        assert_transition(state, BuildState.FAILED)

    def test_cannot_skip_steps(self):
        with pytest.raises(InvalidTransitionError) as exc:
            assert_transition(BuildState.VALIDATING, BuildState.PERSISTING)
        assert exc.value.from_state == BuildState.VALIDATING
        assert exc.value.to_state == BuildState.PERSISTING

    @pytest.mark.parametrize("state", [BuildState.DONE, BuildState.FAILED])
    def test_terminal_states_have_no_exits(self, state):
        assert is_terminal(state)
        with pytest.raises(InvalidTransitionError):
            assert_transition(state, BuildState.FAILED)


class TestBuildRun:
    def test_fail_records_failed_state(self):
        run = BuildRun("p1")
        run.advance(BuildState.FETCHING_SCENES)
        run.fail()
        assert run.state == BuildState.FAILED
        assert run.history[-2:] == [BuildState.FETCHING_SCENES, BuildState.FAILED]

    def test_fail_is_noop_once_terminal(self):
        run = BuildRun("p1")
        for state in PIPELINE:
            run.advance(state)
        run.fail()
        assert run.state == BuildState.DONE

    def test_state_values_are_strings(self):
        assert BuildState.PROMPTING_AI == "prompting_ai"

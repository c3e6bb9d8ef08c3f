"""
Schedule build state machine.

States:
    VALIDATING      : checking the request and the project
    FETCHING_SCENES : loading the project's scenes
    PROMPTING_AI    : cache lookup, then the planner call on a miss
    PARSING         : extracting and checking the plan JSON
    RECONCILING     : matching plan scene IDs against real scenes
    PERSISTING      : replacing / creating shooting days
    DONE            : finished
    FAILED          : terminal error

FAILED is reachable from every non-terminal state.
"""
import logging
from enum import Enum

logger = logging.getLogger(__name__)


class BuildState(str, Enum):
    VALIDATING = "validating"
    FETCHING_SCENES = "fetching_scenes"
    PROMPTING_AI = "prompting_ai"
    PARSING = "parsing"
    RECONCILING = "reconciling"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = frozenset({BuildState.DONE, BuildState.FAILED})

_PIPELINE = [
    BuildState.VALIDATING,
    BuildState.FETCHING_SCENES,
    BuildState.PROMPTING_AI,
    BuildState.PARSING,
    BuildState.RECONCILING,
    BuildState.PERSISTING,
    BuildState.DONE,
]

_TRANSITIONS = {
    state: frozenset({_PIPELINE[index + 1], BuildState.FAILED})
    for index, state in enumerate(_PIPELINE[:-1])
}
_TRANSITIONS[BuildState.DONE] = frozenset()
_TRANSITIONS[BuildState.FAILED] = frozenset()


class InvalidTransitionError(Exception):
    def __init__(self, from_state: BuildState, to_state: BuildState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {from_state.value} -> {to_state.value}")


def assert_transition(from_state: BuildState, to_state: BuildState) -> None:
    if to_state not in _TRANSITIONS.get(from_state, frozenset()):
        raise InvalidTransitionError(from_state, to_state)


def is_terminal(state: BuildState) -> bool:
    return state in TERMINAL_STATES


class BuildRun:
    """Tracks the state of a single build request."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        self.state = BuildState.VALIDATING
        self.history = [BuildState.VALIDATING]

    def advance(self, to_state: BuildState) -> None:
        assert_transition(self.state, to_state)
        logger.debug(f"Build for project {self.project_id}: {self.state.value} -> {to_state.value}")
        self.state = to_state
        self.history.append(to_state)

    def fail(self) -> None:
        if not is_terminal(self.state):
            self.advance(BuildState.FAILED)

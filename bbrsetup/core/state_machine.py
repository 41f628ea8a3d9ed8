"""Run state machine for a single configuration pass."""

from __future__ import annotations

from enum import Enum, auto

from loguru import logger

from bbrsetup.core.errors import InvalidTransitionError


class RunState(Enum):
    INIT = auto()
    PRIVILEGE_CHECKED = auto()
    PREREQUISITES_VERIFIED = auto()
    STATE_OBSERVED = auto()
    SATISFIED = auto()
    NEEDS_APPLY = auto()
    APPLIED = auto()
    VERIFIED = auto()
    FAILED = auto()


class RunEvent(Enum):
    PRIVILEGE_OK = auto()
    PREREQUISITES_OK = auto()
    STATE_READ = auto()
    ALREADY_CONFIGURED = auto()
    CHANGES_NEEDED = auto()
    CHANGES_APPLIED = auto()
    VERIFICATION_PASSED = auto()
    ERROR = auto()


TERMINAL_STATES = frozenset({RunState.SATISFIED, RunState.VERIFIED, RunState.FAILED})

_TRANSITIONS = {
    RunState.INIT: {
        RunEvent.PRIVILEGE_OK: RunState.PRIVILEGE_CHECKED,
    },
    RunState.PRIVILEGE_CHECKED: {
        RunEvent.PREREQUISITES_OK: RunState.PREREQUISITES_VERIFIED,
    },
    RunState.PREREQUISITES_VERIFIED: {
        RunEvent.STATE_READ: RunState.STATE_OBSERVED,
    },
    RunState.STATE_OBSERVED: {
        RunEvent.ALREADY_CONFIGURED: RunState.SATISFIED,
        RunEvent.CHANGES_NEEDED: RunState.NEEDS_APPLY,
    },
    RunState.NEEDS_APPLY: {
        RunEvent.CHANGES_APPLIED: RunState.APPLIED,
    },
    RunState.APPLIED: {
        RunEvent.VERIFICATION_PASSED: RunState.VERIFIED,
    },
}


class RunStateMachine:
    def __init__(self):
        self.state = RunState.INIT

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, event: RunEvent) -> RunState:
        if event is RunEvent.ERROR and not self.is_terminal:
            next_state = RunState.FAILED
        else:
            next_state = _TRANSITIONS.get(self.state, {}).get(event)

        if next_state is None:
            raise InvalidTransitionError(
                f"Invalid state transition: {self.state.name} --{event.name}-->"
            )

        logger.debug(f"State {self.state.name} --{event.name}--> {next_state.name}")
        self.state = next_state
        return self.state

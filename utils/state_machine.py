import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger("api.state_machine")


class CredentialState(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    INITIALIZING = "INITIALIZING"
    READY = "READY"
    FAILED = "FAILED"


TERMINAL_STATES = {CredentialState.READY, CredentialState.FAILED}

_ALLOWED = {
    CredentialState.UNINITIALIZED: {CredentialState.INITIALIZING},
    CredentialState.INITIALIZING: {CredentialState.READY, CredentialState.FAILED},
    CredentialState.READY: set(),
    CredentialState.FAILED: set(),
}


def is_allowed_transition(current: CredentialState, target: CredentialState) -> bool:
    return target in _ALLOWED.get(current, set())


class StateMachine:
    """Holds one state value and only moves along the transition table."""

    def __init__(self, name: str, initial: CredentialState = CredentialState.UNINITIALIZED):
        self.name = name
        self.state = initial

    def transition(self, target: CredentialState, *, context: str = "") -> bool:
        current = self.state
        if not is_allowed_transition(current, target):
            logger.warning(
                "state_transition_blocked machine=%s context=%s current=%s target=%s",
                self.name,
                context,
                current.value,
                target.value,
            )
            return False
        self.state = target
        logger.info(
            "state_transition machine=%s context=%s current=%s target=%s",
            self.name,
            context,
            current.value,
            target.value,
        )
        return True

    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def reset(self, state: Optional[CredentialState] = None) -> None:
        self.state = state or CredentialState.UNINITIALIZED

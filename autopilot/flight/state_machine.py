"""
Mission Execution State Machine

Tracks the mission lifecycle and notifies observers of every change.
"""

from enum import Enum, auto
from typing import Callable, Dict, List, Set
import logging

logger = logging.getLogger(__name__)


class ExecutionState(Enum):
    """Mission execution states"""
    UNKNOWN = auto()            # Not yet connected
    DISCONNECTED = auto()       # Link to the vehicle lost
    RECOVERING = auto()         # Re-enabling supervisory control after reconnect
    NOT_SUPPORTED = auto()      # Vehicle model not supported
    READY_TO_UPLOAD = auto()    # Connected, waiting for a mission
    UPLOADING = auto()          # Enabling supervisory control
    READY_TO_EXECUTE = auto()   # Mission loaded and control enabled
    EXECUTING = auto()          # Flying the mission
    PAUSED = auto()             # Mission suspended, state kept


_CONNECTION_LOSS = {ExecutionState.DISCONNECTED}
_RESET = {ExecutionState.READY_TO_UPLOAD, ExecutionState.NOT_SUPPORTED}

# Valid state transitions
VALID_TRANSITIONS: Dict[ExecutionState, Set[ExecutionState]] = {
    ExecutionState.UNKNOWN: _RESET | _CONNECTION_LOSS,
    ExecutionState.DISCONNECTED: _RESET | {ExecutionState.RECOVERING},
    ExecutionState.RECOVERING: _RESET | _CONNECTION_LOSS | {ExecutionState.EXECUTING},
    ExecutionState.NOT_SUPPORTED: _RESET | _CONNECTION_LOSS,
    ExecutionState.READY_TO_UPLOAD: _RESET | _CONNECTION_LOSS | {ExecutionState.UPLOADING},
    ExecutionState.UPLOADING: _RESET | _CONNECTION_LOSS | {ExecutionState.READY_TO_EXECUTE},
    ExecutionState.READY_TO_EXECUTE: _RESET | _CONNECTION_LOSS | {ExecutionState.EXECUTING},
    ExecutionState.EXECUTING: _RESET | _CONNECTION_LOSS | {ExecutionState.PAUSED},
    ExecutionState.PAUSED: _RESET | _CONNECTION_LOSS | {ExecutionState.EXECUTING, ExecutionState.RECOVERING},
}


class ExecutionStateMachine:
    """
    Execution state machine with transition enforcement

    Listeners receive (old_state, new_state) after each change.
    A transition to the current state is a no-op.
    """

    def __init__(self, initial: ExecutionState = ExecutionState.UNKNOWN):
        self._state = initial
        self._previous_state = initial
        self._listeners: List[Callable[[ExecutionState, ExecutionState], None]] = []

    @property
    def state(self) -> ExecutionState:
        """Current state"""
        return self._state

    @property
    def previous_state(self) -> ExecutionState:
        """Previous state"""
        return self._previous_state

    @property
    def is_executing(self) -> bool:
        """Check if a mission is in flight (running or paused)"""
        return self._state in {ExecutionState.EXECUTING, ExecutionState.PAUSED}

    def can_transition_to(self, new_state: ExecutionState) -> bool:
        """Check if transition to new state is valid"""
        return new_state in VALID_TRANSITIONS.get(self._state, set())

    def transition_to(self, new_state: ExecutionState, force: bool = False) -> bool:
        """
        Attempt to transition to a new state

        Args:
            new_state: Target state
            force: If True, bypass validation

        Returns:
            True if the state is new_state afterwards
        """
        if new_state == self._state:
            return True

        if not force and not self.can_transition_to(new_state):
            logger.warning(f"Invalid transition: {self._state.name} -> {new_state.name}")
            return False

        old_state = self._state
        self._previous_state = old_state
        self._state = new_state

        logger.info(f"State transition: {old_state.name} -> {new_state.name}")

        for listener in list(self._listeners):
            try:
                listener(old_state, new_state)
            except Exception as e:
                logger.error(f"Error in state listener: {e}")

        return True

    def add_listener(self, callback: Callable[[ExecutionState, ExecutionState], None]):
        """Register a state change listener (can be used as decorator)"""
        self._listeners.append(callback)
        return callback

    def remove_listener(self, callback: Callable[[ExecutionState, ExecutionState], None]):
        if callback in self._listeners:
            self._listeners.remove(callback)

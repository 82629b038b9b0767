"""
Action Sequencer

Runs a waypoint's action list strictly in order. Each action expands
into a linear list of sub-steps (e.g. camera mode switch, then capture);
a sub-step completes through a device callback, a timer, or a settle
check driven by the control loop.

Every callback captures a generation token. Once the sequencer is
cancelled or moves to another waypoint the token goes stale and late
completions are ignored.
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Deque, List, Optional, TYPE_CHECKING

from ..errors import DeviceCommandError
from ..flight.vehicle import CameraMode, Completion
from ..utils.geo import headings_match
from .models import (
    Action,
    RotateGimbalAction,
    RotateVehicleAction,
    ShootPhotoAction,
    StartRecordAction,
    StopRecordAction,
    WaitAction,
)

if TYPE_CHECKING:
    from ..config import ActionConfig
    from ..control.runloop import Handle, RunLoop
    from ..flight.vehicle import Payload

logger = logging.getLogger(__name__)


class ActionState(Enum):
    """Per-waypoint action sub-machine"""
    IDLE = auto()       # Cruising
    READY = auto()      # Arrived, heading and height settled
    EXECUTING = auto()  # Running the action list
    FINISHED = auto()   # List exhausted or aborted
    RESTORING = auto()  # Re-acquiring cruise heading and speed


class ErrorPolicy(Enum):
    """What a failed sub-step does to the rest of the list"""
    CONTINUE = auto()       # Log and carry on
    RETRY_ONCE = auto()     # Retry after a short delay, then carry on
    ABORT = auto()          # End the action list


@dataclass
class SubStep:
    name: str
    run: Callable[[Completion], None]
    on_error: ErrorPolicy = ErrorPolicy.CONTINUE


class ActionSequencer:
    """
    Executes waypoint actions one after another

    Completion criteria:
    - rotate_vehicle: heading within tolerance (see check())
    - rotate_gimbal: gimbal pitch within tolerance (see check())
    - shoot_photo / start_record / stop_record: device callback
    - wait: timer elapsed
    """

    def __init__(self, run_loop: 'RunLoop', payload: 'Payload',
                 config: 'ActionConfig', heading_tolerance: float = 1.0):
        self.run_loop = run_loop
        self.payload = payload
        self.config = config
        self.heading_tolerance = heading_tolerance

        self._state = ActionState.IDLE
        self._listeners: List[Callable[[ActionState, ActionState], None]] = []

        self._generation = 0    # Action list token
        self._session = 0       # Standalone capture token, bumped only on reset
        self._handles: List['Handle'] = []

        self._actions: List[Action] = []
        self._index = -1
        self._waypoint_index = -1
        self._hold_heading: Callable[[float], None] = lambda heading: None

        self._target_heading: Optional[float] = None
        self._target_gimbal: Optional[float] = None
        self._pending_done: Optional[Completion] = None

    # ==================== State ====================

    @property
    def state(self) -> ActionState:
        return self._state

    @state.setter
    def state(self, new_state: ActionState):
        if new_state == self._state:
            return
        old_state = self._state
        self._state = new_state
        logger.debug(f"Action state: {old_state.name} -> {new_state.name}")
        for listener in list(self._listeners):
            try:
                listener(old_state, new_state)
            except Exception as e:
                logger.error(f"Error in action state listener: {e}")

    def add_listener(self, callback: Callable[[ActionState, ActionState], None]):
        self._listeners.append(callback)
        return callback

    @property
    def action_index(self) -> int:
        return self._index

    @property
    def target_heading(self) -> Optional[float]:
        """Heading an in-flight rotate action is waiting for"""
        return self._target_heading

    # ==================== Lifecycle ====================

    def start(self, waypoint_index: int, actions: List[Action],
              hold_heading: Callable[[float], None]) -> bool:
        """
        Begin the action list for a waypoint

        Returns:
            False if there is nothing to run
        """
        self.cancel()
        if not actions:
            return False

        self._actions = list(actions)
        self._index = -1
        self._waypoint_index = waypoint_index
        self._hold_heading = hold_heading
        self.state = ActionState.EXECUTING
        logger.info(f"Waypoint {waypoint_index}: running {len(actions)} actions")
        self._next_action(self._generation)
        return True

    def cancel(self):
        """Drop the current list; late callbacks become no-ops"""
        self._generation += 1
        for handle in self._handles:
            handle.cancel()
        self._handles = []
        self._actions = []
        self._index = -1
        self._target_heading = None
        self._target_gimbal = None
        self._pending_done = None

    def reset(self):
        """Cancel everything, including standalone captures, and go IDLE"""
        self._session += 1
        self.cancel()
        self.state = ActionState.IDLE

    def check(self, heading: float, gimbal_pitch: float):
        """Complete a pending rotate action once its target is reached"""
        if self._state != ActionState.EXECUTING:
            return
        if self._target_heading is not None:
            if headings_match(heading, self._target_heading, self.heading_tolerance):
                logger.debug(f"Action heading {self._target_heading:.1f} reached")
                self._target_heading = None
                self._settle()
        elif self._target_gimbal is not None:
            if abs(gimbal_pitch - self._target_gimbal) < self.config.gimbal_tolerance_deg:
                logger.debug(f"Action gimbal pitch {self._target_gimbal:.1f} reached")
                self._target_gimbal = None
                self._settle()

    def shoot_photo(self):
        """Capture one photo outside the action list, retried once on failure"""
        session = self._session
        steps = deque([
            self._mode_step(CameraMode.PHOTO),
            SubStep("shoot photo", self.payload.start_photo, ErrorPolicy.RETRY_ONCE),
        ])
        self._run_steps(steps, lambda: session == self._session, lambda aborted: None)

    # ==================== Execution ====================

    def _next_action(self, generation: int):
        if generation != self._generation:
            return
        self._index += 1
        if self._index >= len(self._actions):
            logger.info(f"Waypoint {self._waypoint_index}: actions finished")
            self.state = ActionState.FINISHED
            return

        action = self._actions[self._index]
        logger.info(f"Waypoint {self._waypoint_index} action {self._index}: {action.action_type.value}")

        def on_done(aborted: bool):
            if aborted:
                logger.warning(f"Waypoint {self._waypoint_index}: action list aborted")
                self._index = len(self._actions)
                self.state = ActionState.FINISHED
            else:
                self._next_action(generation)

        self._run_steps(deque(self._sub_steps(action)), lambda: generation == self._generation, on_done)

    def _run_steps(self, steps: Deque[SubStep], is_current: Callable[[], bool],
                   on_done: Callable[[bool], None], attempt: int = 0):
        if not is_current():
            return
        if not steps:
            on_done(False)
            return

        step = steps[0]
        fired = False

        def completion(error: Optional[DeviceCommandError] = None):
            nonlocal fired
            if fired or not is_current():
                return
            fired = True

            if error is None:
                steps.popleft()
                self._run_steps(steps, is_current, on_done)
            elif step.on_error == ErrorPolicy.RETRY_ONCE and attempt == 0:
                logger.warning(f"{step.name} failed, retrying: {error}")
                self._later(self.config.photo_retry_delay_s,
                            self._run_steps, steps, is_current, on_done, 1)
            elif step.on_error == ErrorPolicy.ABORT:
                logger.error(f"{step.name} failed: {error}")
                on_done(True)
            else:
                logger.warning(f"{step.name} failed: {error}")
                steps.popleft()
                self._run_steps(steps, is_current, on_done)

        step.run(completion)

    def _sub_steps(self, action: Action) -> List[SubStep]:
        if isinstance(action, RotateVehicleAction):
            heading = action.heading
            return [SubStep("rotate vehicle", lambda done: self._await_heading(heading, done))]
        elif isinstance(action, RotateGimbalAction):
            pitch = action.pitch
            return [SubStep("rotate gimbal", lambda done: self._await_gimbal(pitch, done))]
        elif isinstance(action, ShootPhotoAction):
            return [self._mode_step(CameraMode.PHOTO),
                    SubStep("shoot photo", self.payload.start_photo, ErrorPolicy.RETRY_ONCE)]
        elif isinstance(action, StartRecordAction):
            return [self._mode_step(CameraMode.VIDEO),
                    SubStep("start record", self.payload.start_record)]
        elif isinstance(action, StopRecordAction):
            return [SubStep("stop record", self.payload.stop_record)]
        elif isinstance(action, WaitAction):
            delay = action.milliseconds / 1000.0
            return [SubStep("wait", lambda done: self._later(delay, done))]
        logger.warning(f"Unsupported action {action.action_type}")
        return []

    def _mode_step(self, mode: CameraMode) -> SubStep:
        def run(done: Completion):
            if self.payload.read_mode() == mode:
                done(None)
            else:
                logger.info(f"Switching camera to {mode.value} mode")
                self.payload.set_mode(mode, done)
        return SubStep(f"set camera mode {mode.value}", run, ErrorPolicy.ABORT)

    def _await_heading(self, heading: float, done: Completion):
        self._target_heading = heading
        self._pending_done = done
        self._hold_heading(heading)

    def _await_gimbal(self, pitch: float, done: Completion):
        self._target_gimbal = pitch
        self._pending_done = done

        def on_rotate(error: Optional[DeviceCommandError] = None):
            if error is not None and self._pending_done is done:
                self._target_gimbal = None
                self._pending_done = None
                done(error)

        self.payload.rotate_gimbal(pitch, on_rotate)

    def _settle(self):
        done, self._pending_done = self._pending_done, None
        if done is not None:
            self._later(self.config.settle_delay_s, done)

    def _later(self, delay: float, callback: Callable, *args):
        self._handles.append(self.run_loop.call_later(delay, callback, *args))

"""
Mission State Machine

Owns the loaded mission and drives its lifecycle: load, upload, start,
pause, resume and stop. Also reacts to link loss, reconnects and flight
status edges reported by the vehicle.
"""

import copy
import logging
from typing import Callable, List, Optional

from ..config import Config, get_config
from ..control.loop import ControlLoop
from ..control.mission_run import ExecutionProgress, MissionRun
from ..control.runloop import RunLoop
from ..errors import (
    AutopilotError,
    ConnectivityError,
    DeviceCommandError,
    PreconditionError,
    StateError,
    ValidationError,
)
from ..mission.actions import ActionState
from ..mission.models import FinishedAction, Mission
from ..utils.logger import CommandLogger
from .preflight_checks import PreflightChecker
from .state_machine import ExecutionState, ExecutionStateMachine
from .vehicle import Completion, FlightStatus, Payload, Vehicle

logger = logging.getLogger(__name__)

_LOADABLE = {
    ExecutionState.UNKNOWN,
    ExecutionState.READY_TO_UPLOAD,
    ExecutionState.READY_TO_EXECUTE,
}


def _log_failure(command: str) -> Completion:
    def done(error: Optional[DeviceCommandError] = None):
        if error is not None:
            logger.error(f"{command} failed: {error}")
    return done


class Autopilot:
    """
    Waypoint autopilot under supervisory control

    All methods and callbacks must run on the run loop. Errors are
    returned (or passed to completion callbacks), never raised.

    Usage:
        autopilot = Autopilot(vehicle, payload, run_loop)
        autopilot.load(mission)
        autopilot.upload(on_uploaded)
        ...
        error = autopilot.start()
    """

    def __init__(self, vehicle: Vehicle, payload: Payload, run_loop: RunLoop,
                 config: Optional[Config] = None):
        self.vehicle = vehicle
        self.payload = payload
        self.run_loop = run_loop
        self.config = config or get_config()

        self.state_machine = ExecutionStateMachine()
        self.control_loop = ControlLoop(run_loop, self.config.control.tick_rate_hz)
        self.checker = PreflightChecker(self.config.vehicle)

        self.command_logger: Optional[CommandLogger] = None
        if self.config.logging.command_log_dir:
            self.command_logger = CommandLogger(self.config.logging.command_log_dir)

        self._mission: Optional[Mission] = None
        self._run: Optional[MissionRun] = None
        self._pending: Optional[Completion] = None
        self._resume_pending = False
        self._flight_status = vehicle.read_flight_status()
        self._progress_listeners: List[Callable[[ExecutionProgress], None]] = []

        vehicle.subscribe(self._on_connection, self._on_flight_status)
        if vehicle.is_connected():
            self._on_connected()

    # ==================== Observers ====================

    @property
    def state(self) -> ExecutionState:
        return self.state_machine.state

    @property
    def mission(self) -> Optional[Mission]:
        return self._mission

    @property
    def run(self) -> Optional[MissionRun]:
        return self._run

    @property
    def progress(self) -> Optional[ExecutionProgress]:
        return self._run.progress if self._run else None

    @property
    def waypoint_index(self) -> int:
        return self._run.index if self._run else -1

    @property
    def repeat_count(self) -> int:
        """Passes left, including the current one"""
        if self._run is not None:
            return self._run.repeat_remaining
        return self._mission.repeat_times if self._mission else 1

    @property
    def action_state(self) -> ActionState:
        return self._run.sequencer.state if self._run else ActionState.IDLE

    def add_state_listener(self, callback: Callable[[ExecutionState, ExecutionState], None]):
        return self.state_machine.add_listener(callback)

    def add_progress_listener(self, callback: Callable[[ExecutionProgress], None]):
        self._progress_listeners.append(callback)
        return callback

    def should_move_to_next_mission(self) -> bool:
        """Hook for mission chaining; a single mission never chains"""
        return False

    # ==================== Lifecycle ====================

    def load(self, mission: Mission) -> Optional[AutopilotError]:
        """
        Validate and store a mission

        Returns:
            ValidationError or StateError, None on success
        """
        if self.state not in _LOADABLE:
            return StateError("load", self.state)

        errors = mission.validate(self.config.limits)
        if errors:
            logger.warning(f"Mission rejected: {errors}")
            return ValidationError(errors)

        self._reset()
        self._mission = copy.deepcopy(mission)
        logger.info(f"Mission '{mission.name}' loaded: {mission.waypoint_count} waypoints")
        self.state_machine.transition_to(ExecutionState.READY_TO_UPLOAD)
        return None

    def upload(self, completion: Optional[Completion] = None) -> Optional[AutopilotError]:
        """Enable supervisory control for the loaded mission"""
        if not self.vehicle.is_connected():
            return ConnectivityError()
        if self.state != ExecutionState.READY_TO_UPLOAD or self._mission is None:
            return StateError("upload", self.state)

        self.state_machine.transition_to(ExecutionState.UPLOADING)
        self._pending = completion
        mission = self._mission

        def on_enabled(error: Optional[DeviceCommandError] = None):
            if self._mission is not mission or self.state != ExecutionState.UPLOADING:
                return
            self._pending = None
            if error is not None:
                logger.error(f"Upload failed: {error}")
                self.state_machine.transition_to(ExecutionState.READY_TO_UPLOAD)
            else:
                logger.info("Supervisory control enabled, ready to execute")
                self.state_machine.transition_to(ExecutionState.READY_TO_EXECUTE)
            if completion is not None:
                completion(error)

        self.vehicle.enable_supervisory_control(True, on_enabled)
        return None

    def start(self, completion: Optional[Completion] = None) -> Optional[AutopilotError]:
        """
        Start the uploaded mission

        Runs the start checks, then climbs directly when airborne or
        takes off first. A takeoff failure is passed to completion and
        leaves the state at READY_TO_EXECUTE.

        Returns:
            ConnectivityError, StateError or PreconditionError, None if starting
        """
        if not self.vehicle.is_connected():
            return ConnectivityError()
        if self.state != ExecutionState.READY_TO_EXECUTE or self._mission is None or self._run is not None:
            return StateError("start", self.state)

        result = self.checker.run_checks(self.vehicle)
        if not result.passed:
            return result.error
        if not self.vehicle.is_supervisory_control_enabled():
            return PreconditionError(PreconditionError.SUPERVISORY_CONTROL_DISABLED)

        run = MissionRun(self._mission, self.vehicle, self.payload, self.run_loop,
                         self.config, self.command_logger)
        run.on_progress(self._publish_progress)
        run.on_finished(self._on_mission_finished)
        self._run = run

        if self.vehicle.read_flight_status().flying:
            self._begin(run)
            if completion is not None:
                completion(None)
            return None

        logger.info("Taking off")
        self._pending = completion

        def on_takeoff(error: Optional[DeviceCommandError] = None):
            if self._run is not run:
                return
            self._pending = None
            if error is not None:
                logger.error(f"Takeoff failed: {error}")
                self._run = None
            elif not self._begin(run):
                error = StateError("start", self.state)
            if completion is not None:
                completion(error)

        self.vehicle.takeoff(on_takeoff)
        return None

    def _begin(self, run: MissionRun) -> bool:
        """Enter EXECUTING and start ticking; the loop never runs in any other state"""
        if not self.vehicle.is_connected() or not self.state_machine.transition_to(ExecutionState.EXECUTING):
            logger.error(f"Cannot begin mission in state {self.state.name}")
            self._reset()
            return False
        if self.command_logger is not None:
            self.command_logger.start(run.mission.name)
        run.begin()
        if self._run is run:
            self.control_loop.start(run.handlers())
        return True

    def pause(self) -> Optional[AutopilotError]:
        if self.state != ExecutionState.EXECUTING:
            return StateError("pause", self.state)
        self.control_loop.pause()
        self.state_machine.transition_to(ExecutionState.PAUSED)
        logger.info(f"Mission paused at waypoint {self.waypoint_index}")
        return None

    def resume(self) -> Optional[AutopilotError]:
        if self.state != ExecutionState.PAUSED:
            return StateError("resume", self.state)
        self.state_machine.transition_to(ExecutionState.EXECUTING)
        self.control_loop.resume()
        logger.info(f"Mission resumed at waypoint {self.waypoint_index}")
        return None

    def stop(self):
        """
        Abort and fully reset; safe from any state and from inside callbacks

        Disables supervisory control, levels the gimbal, stops any
        recording and drops the mission.
        """
        had_run = self._run is not None
        logger.info("Stopping mission" if had_run else "Resetting autopilot")

        if self.vehicle.is_connected():
            self.vehicle.enable_supervisory_control(False, _log_failure("Disable supervisory control"))
            if had_run:
                self.payload.rotate_gimbal(0.0, _log_failure("Gimbal reset"))
            if self.payload.is_recording():
                self.payload.stop_record(_log_failure("Stop record"))

        self._reset()
        self._mission = None

        if self.state != ExecutionState.NOT_SUPPORTED:
            self.state_machine.transition_to(ExecutionState.READY_TO_UPLOAD)

    def _reset(self):
        run, self._run = self._run, None
        if run is not None:
            run.cancel()
        self.control_loop.stop()
        self._resume_pending = False
        self._pending = None
        if self.command_logger is not None and self.command_logger.is_logging:
            self.command_logger.stop()

    def _on_mission_finished(self, action: FinishedAction):
        if action == FinishedAction.GO_HOME:
            logger.info("Mission finished, returning home")
            self.vehicle.go_home(_log_failure("Go home"))
        elif action == FinishedAction.AUTO_LAND:
            logger.info("Mission finished, landing")
            self.vehicle.land(_log_failure("Land"))
        else:
            logger.info("Mission finished")
        self.stop()

    def _publish_progress(self, progress: ExecutionProgress):
        for callback in list(self._progress_listeners):
            try:
                callback(progress)
            except Exception as e:
                logger.error(f"Error in progress listener: {e}")

    # ==================== Vehicle events ====================

    def _is_supported(self) -> bool:
        vehicle_config = self.config.vehicle
        if vehicle_config.support_all_models:
            return True
        return self.vehicle.read_model() in vehicle_config.supported_models

    def _on_connection(self, connected: bool):
        if connected:
            self._on_connected()
        else:
            self._on_disconnected()

    def _on_disconnected(self):
        logger.warning("Vehicle disconnected")
        pending, self._pending = self._pending, None
        if self.state == ExecutionState.EXECUTING:
            if self._mission.exit_on_signal_lost:
                logger.warning("Signal lost, exiting mission")
                self.stop()
            else:
                logger.warning("Signal lost, pausing mission")
                self._resume_pending = True
                self.pause()
            return

        if self._run is not None and self.state == ExecutionState.READY_TO_EXECUTE:
            logger.warning("Signal lost during takeoff, dropping the run")
            self._reset()
        self.state_machine.transition_to(ExecutionState.DISCONNECTED)
        if pending is not None:
            pending(ConnectivityError())

    def _on_connected(self):
        logger.info(f"Vehicle connected: {self.vehicle.read_model() or 'unknown model'}")
        if self._resume_pending:
            self._recover()
            return

        if not self._is_supported():
            logger.error(f"Vehicle model {self.vehicle.read_model()} is not supported")
            self._reset()
            self._mission = None
            self.state_machine.transition_to(ExecutionState.NOT_SUPPORTED)
        elif self._run is not None:
            self.stop()
        else:
            if self.vehicle.is_supervisory_control_enabled():
                # Nothing is uploaded in READY_TO_UPLOAD
                self.vehicle.enable_supervisory_control(False, _log_failure("Disable supervisory control"))
            self.state_machine.transition_to(ExecutionState.READY_TO_UPLOAD)

    def _recover(self):
        self._resume_pending = False
        status = self.vehicle.read_flight_status()
        if status.going_home or status.landing or not status.flying:
            logger.warning("Vehicle no longer flying the mission, stopping")
            self.stop()
            return

        if self.vehicle.is_supervisory_control_enabled():
            self.resume()
            return

        logger.info("Re-enabling supervisory control")
        self.state_machine.transition_to(ExecutionState.RECOVERING)
        run = self._run

        def on_enabled(error: Optional[DeviceCommandError] = None):
            if self._run is not run or self.state != ExecutionState.RECOVERING:
                return
            if error is not None:
                logger.error(f"Recovery failed: {error}")
                self.stop()
                return
            self.state_machine.transition_to(ExecutionState.EXECUTING)
            self.control_loop.resume()
            logger.info(f"Mission recovered at waypoint {self.waypoint_index}")

        self.vehicle.enable_supervisory_control(True, on_enabled)

    def _on_flight_status(self, status: FlightStatus):
        previous, self._flight_status = self._flight_status, status
        if self.state != ExecutionState.EXECUTING:
            return
        if status.going_home and not previous.going_home:
            logger.warning("Vehicle started returning home, stopping mission")
            self.stop()
        elif previous.flying and not status.flying:
            logger.warning("Vehicle no longer airborne, stopping mission")
            self.stop()

"""
Mission Run

Per-mission execution state driven by the control loop: waypoint index,
repeat passes, climb and turn flags, periodic photos and the action
sub-machine. One MissionRun lives from start() to stop(); discarding it
is the full reset.
"""

import logging
from collections import deque
from dataclasses import dataclass, replace
from typing import Callable, Deque, List, Optional, TYPE_CHECKING

from ..mission.actions import ActionSequencer, ActionState
from ..mission.models import FinishedAction, Mission, Waypoint
from ..navigation.context import build_context
from ..navigation.curve_turn import CurveTurnPlanner
from ..navigation.hotpoint import HotpointController
from ..navigation.navigator import NavigationEngine, SpeedControl
from ..utils.geo import Coordinate, distance_between
from .loop import PhaseHandlers, TickPhase

if TYPE_CHECKING:
    from ..config import Config
    from ..flight.vehicle import Payload, Vehicle
    from ..utils.logger import CommandLogger
    from .runloop import RunLoop

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionProgress:
    """Snapshot published on every waypoint index change"""
    waypoint_index: int
    reached: bool = False
    mute: bool = False


class MissionRun:
    """
    Flies one loaded mission

    Waypoint missions stop at each sharp corner, run the waypoint's
    actions, then turn and continue. Orbit missions circle the point of
    interest and pass waypoints by angle, taking a photo at each pass.
    """

    def __init__(self, mission: Mission, vehicle: 'Vehicle', payload: 'Payload',
                 run_loop: 'RunLoop', config: 'Config',
                 command_logger: Optional['CommandLogger'] = None):
        self.mission = mission
        self.vehicle = vehicle
        self.payload = payload
        self.config = config
        self.command_logger = command_logger

        self.engine = NavigationEngine(vehicle, config.navigation)
        self.sequencer = ActionSequencer(run_loop, payload, config.action,
                                         config.navigation.heading_tolerance_deg)
        self.planner = CurveTurnPlanner(config.curve)

        self.hotpoint: Optional[HotpointController] = None
        if mission.is_orbit:
            self.hotpoint = HotpointController(mission.point_of_interest, mission.waypoints,
                                               mission.hotpoint_heading, mission.orbit_clockwise,
                                               config.hotpoint)
            self.engine.hotpoint = self.hotpoint

        self.index = -1
        self.repeat_remaining = max(1, mission.repeat_times)
        self.climbing = False
        self.turning = False
        self.finished = False
        self.progress: Optional[ExecutionProgress] = None

        self._waypoint: Optional[Waypoint] = None
        self._photo_anchor: Optional[Coordinate] = None
        self._photo_interval = 0.0
        self._pending_progress: Deque[ExecutionProgress] = deque()
        self._sent = 0

        self._progress_callbacks: List[Callable[[ExecutionProgress], None]] = []
        self._finished_callback: Optional[Callable[[FinishedAction], None]] = None

    # ==================== Callbacks ====================

    def on_progress(self, callback: Callable[[ExecutionProgress], None]):
        self._progress_callbacks.append(callback)

    def on_finished(self, callback: Callable[[FinishedAction], None]):
        """Called once when the last pass completes"""
        self._finished_callback = callback

    @property
    def waypoint(self) -> Optional[Waypoint]:
        return self._waypoint

    @property
    def is_orbit(self) -> bool:
        return self.hotpoint is not None

    def handlers(self) -> PhaseHandlers:
        """Phase handlers for the control loop"""
        if self.is_orbit:
            return {
                TickPhase.SEND_COMMAND: self.send_command,
                TickPhase.PUBLISH_PROGRESS: self.detect_orbit_pass,
                TickPhase.CONTROL_HEADING: self.control_heading,
                TickPhase.CONTROL_MOTION: self.control_orbit,
            }
        return {
            TickPhase.SEND_COMMAND: self.send_command,
            TickPhase.PUBLISH_PROGRESS: self.publish_progress,
            TickPhase.CONTROL_HEADING: self.control_heading,
            TickPhase.CONTROL_MOTION: self.control_motion,
        }

    # ==================== Lifecycle ====================

    def begin(self):
        """Climb to the first waypoint's altitude, then fly the mission"""
        logger.info(f"Mission '{self.mission.name}': {len(self.mission.waypoints)} waypoints, "
                    f"{self.repeat_remaining} pass(es), {'orbit' if self.is_orbit else 'waypoint'} mode")
        self.climbing = True
        self.advance()

    def cancel(self):
        """Tear down all per-mission state; later callbacks are ignored"""
        self.finished = True
        self.sequencer.reset()
        self.engine.reset()
        self._pending_progress.clear()
        self._photo_anchor = None

    def advance(self) -> bool:
        """
        Move to the next waypoint

        Returns:
            False when the mission has completed its last pass
        """
        if self.finished:
            return False

        previous = self._waypoint
        origin = previous.coordinate if previous is not None else self.engine.position
        self.index += 1
        self._mark_reached()
        self._photo_anchor = None

        if self.index >= len(self.mission.waypoints):
            return self._complete_pass()

        waypoint = self.mission.waypoints[self.index]
        self._waypoint = waypoint

        if self.mission.rotate_gimbal_pitch and self.index > 0:
            self._set_gimbal_pitch(waypoint.gimbal_pitch)

        context = build_context(self.mission, self.index, origin, self.vehicle.read_heading(),
                                None if self.is_orbit else self.planner, previous)
        self.engine.set_context(context)
        self.turning = context.curve is None
        self._photo_anchor = context.photo_origin
        self._photo_interval = context.photo_interval

        logger.info(f"Waypoint {self.index}: ({waypoint.latitude:.6f}, {waypoint.longitude:.6f}) "
                    f"alt {waypoint.altitude:.1f} m")
        self._set_progress(ExecutionProgress(self.index))
        return True

    def _complete_pass(self) -> bool:
        self.repeat_remaining -= 1
        if self.repeat_remaining <= 0:
            logger.info(f"Mission '{self.mission.name}' complete")
            self.finished = True
            self._flush_progress()
            if self._finished_callback is not None:
                self._finished_callback(self.mission.finished_action)
            return False

        logger.info(f"Pass complete, {self.repeat_remaining} remaining")
        self.index = -1
        return self.advance()

    # ==================== Progress ====================

    def _mark_reached(self):
        if self.progress is not None and not self.progress.reached:
            self._set_progress(replace(self.progress, reached=True))

    def _set_progress(self, progress: ExecutionProgress):
        self.progress = progress
        self._pending_progress.append(progress)

    def publish_progress(self):
        """Deliver queued progress snapshots and check the photo distance"""
        self._flush_progress()
        self._check_photo_distance()

    def _flush_progress(self):
        while self._pending_progress:
            progress = self._pending_progress.popleft()
            for callback in list(self._progress_callbacks):
                try:
                    callback(progress)
                except Exception as e:
                    logger.error(f"Error in progress callback: {e}")

    def _check_photo_distance(self):
        if self._photo_anchor is None or self._photo_interval <= 0:
            return
        position = self.engine.position
        if position is None:
            return
        travelled = distance_between(self._photo_anchor, position)
        if travelled + self.config.action.photo_distance_margin_m > self._photo_interval:
            logger.debug(f"Distance photo after {travelled:.1f} m")
            self.sequencer.shoot_photo()
            self._photo_anchor = position

    # ==================== Waypoint phases ====================

    def send_command(self):
        command = self.engine.command.copy()
        self.vehicle.send_control_command(command)
        self._sent += 1
        if self.command_logger is not None:
            position = self.engine.position
            self.command_logger.log(
                tick=self._sent, state="EXECUTING", waypoint_index=self.index,
                action_state=self.sequencer.state.name,
                lat=position.latitude if position else 0.0,
                lon=position.longitude if position else 0.0,
                alt=self.vehicle.read_altitude(), heading=self.vehicle.read_heading(),
                roll=command.roll, pitch=command.pitch, yaw=command.yaw, vertical=command.vertical)

    def control_heading(self):
        """Yaw axis; left alone while an action owns the heading"""
        if self.sequencer.state == ActionState.EXECUTING:
            return
        heading = self.engine.target_heading()
        if heading is not None:
            self.engine.hold_heading(heading)

    def control_motion(self):
        """Speed and vertical axes, then the action sub-machine once stopped"""
        result = self.engine.control_speed()
        if result == SpeedControl.CURVE_COMPLETED:
            self.advance()
            return
        if result == SpeedControl.MOVING:
            return
        if self._control_climb():
            return
        self._update_action_state()

    def _control_climb(self) -> bool:
        """True while still climbing"""
        if not self.climbing:
            return False
        if not self.engine.is_target_height_reached():
            return True
        logger.info(f"Climb complete at {self.vehicle.read_altitude():.1f} m")
        self.climbing = False
        if self.mission.rotate_gimbal_pitch:
            self._set_gimbal_pitch(self.mission.waypoints[0].gimbal_pitch)
        return False

    def _update_action_state(self):
        sequencer = self.sequencer
        state = sequencer.state

        if state == ActionState.IDLE:
            if not self.turning and self.engine.is_target_height_reached():
                sequencer.state = ActionState.READY if self.engine.approaching else ActionState.RESTORING
            if self.engine.is_target_heading_reached():
                self.turning = False
        elif state == ActionState.READY:
            if not sequencer.start(self.index, self._waypoint.actions, self.engine.hold_heading):
                sequencer.state = ActionState.FINISHED
        elif state == ActionState.EXECUTING:
            sequencer.check(self.vehicle.read_heading(), self.payload.read_gimbal_pitch())
        elif state == ActionState.FINISHED:
            sequencer.state = ActionState.RESTORING
            self.advance()
        elif state == ActionState.RESTORING:
            if self.engine.is_target_heading_reached():
                self.engine.hold_speed(self.engine.cruise_speed)
                self.engine.approaching = False
                self.turning = False
                sequencer.state = ActionState.IDLE

    # ==================== Orbit phases ====================

    def detect_orbit_pass(self):
        """Angular waypoint pass detection, a photo at each pass"""
        self._flush_progress()
        hotpoint = self.hotpoint
        if not hotpoint.captured or self.finished:
            return
        if not hotpoint.is_pass_reached(self.engine.position, self.index, self.engine.target_distance()):
            return

        logger.info(f"Orbit passed waypoint {self.index}")
        self.sequencer.shoot_photo()
        self._mark_reached()
        self.index += 1
        if self.index < len(self.mission.waypoints):
            self._set_orbit_target(self.index)
            return

        self.repeat_remaining -= 1
        if self.repeat_remaining <= 0:
            logger.info(f"Orbit mission '{self.mission.name}' complete")
            self.finished = True
            self._flush_progress()
            if self._finished_callback is not None:
                self._finished_callback(self.mission.finished_action)
        else:
            logger.info(f"Orbit pass complete, {self.repeat_remaining} remaining")
            self.index = 0
            self._set_orbit_target(0)

    def _set_orbit_target(self, index: int):
        self._waypoint = self.mission.waypoints[index]
        context = build_context(self.mission, index, self.engine.position, None)
        self.engine.set_context(context)
        self._set_progress(ExecutionProgress(index, mute=True))

    def control_orbit(self):
        """Climb and turn in place, approach the circle, then hold the radius"""
        engine = self.engine
        speed = self.mission.auto_flight_speed

        if engine.command.speed == 0:
            if self._control_climb():
                return
            if engine.is_target_heading_reached():
                if engine.target_distance() < self.config.hotpoint.first_pass_distance_m:
                    self.hotpoint.capture()
                    engine.hold_circle(speed)
                else:
                    engine.hold_speed(speed)
            return

        distance = engine.target_distance()
        if self.hotpoint.captured:
            engine.hold_circle(speed)
        elif distance < self.config.navigation.arrival_distance_m:
            self.hotpoint.capture()
            engine.hold_circle(speed)
        else:
            engine.hold_speed(engine.approach_speed(distance))

    # ==================== Devices ====================

    def _set_gimbal_pitch(self, pitch: float):
        logger.info(f"Setting gimbal pitch {pitch:.1f}")

        def done(error=None):
            if error is not None:
                logger.warning(f"Gimbal pitch {pitch:.1f} failed: {error}")

        self.payload.rotate_gimbal(pitch, done)

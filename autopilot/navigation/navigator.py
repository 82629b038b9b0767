"""
Navigation Engine

Per-tick control law for one leg of the mission. Not a PID: speed
follows a deceleration envelope toward the target, a lateral term pulls
the vehicle back onto the path, and both are mixed into body-frame
velocities relative to the current vehicle heading.

    roll  = speed * cos(d) + track * sin(-d)      forward
    pitch = speed * sin(d) + track * cos(-d)      right
    d     = course heading - vehicle heading
"""

import logging
import math
from enum import Enum, auto
from typing import Optional, TYPE_CHECKING

from ..flight.vehicle import ControlCommand
from ..utils.geo import (
    Coordinate,
    bearing_between,
    cross_track_distance,
    distance_between,
    headings_match,
    wrap_angle_180,
    wrap_angle_360,
)
from .curve_turn import CurveTurnTracker

if TYPE_CHECKING:
    from ..config import NavigationConfig
    from ..flight.vehicle import Vehicle
    from .context import NavigationContext
    from .hotpoint import HotpointController

logger = logging.getLogger(__name__)

# Reported when there is no position fix or no target
NO_TARGET_DISTANCE = 1_000_000.0


class SpeedControl(Enum):
    """Outcome of a speed update"""
    SETTLED = auto()            # Commanded speed is zero, nothing computed
    MOVING = auto()
    CURVE_COMPLETED = auto()    # Arc flown, advance to the next waypoint


def clamp(value: float, limit: float) -> float:
    return max(-limit, min(limit, value))


def body_velocity(speed: float, track: float, course: float, heading: float):
    """Mix along-track speed and lateral track speed into (roll, pitch)"""
    angle = math.radians(course - heading)
    roll = speed * math.cos(angle) + track * math.sin(-angle)
    pitch = speed * math.sin(angle) + track * math.cos(-angle)
    return roll, pitch


class NavigationEngine:
    """
    Speed, track and heading control for the active leg

    Holds the command being built for the next flush. Per-leg flags
    (approaching, curving) reset whenever a new context is set.
    """

    def __init__(self, vehicle: 'Vehicle', config: 'NavigationConfig'):
        self.vehicle = vehicle
        self.config = config
        self.command = ControlCommand()

        self.context: Optional['NavigationContext'] = None
        self.hotpoint: Optional['HotpointController'] = None
        self.approaching = False
        self.curving = False
        self._curve: Optional[CurveTurnTracker] = None

        self._last_target_heading: Optional[float] = None
        self._last_course_heading: Optional[float] = None

    # ==================== Context ====================

    def set_context(self, context: 'NavigationContext'):
        """Switch to a new leg"""
        self.context = context
        self.approaching = False
        self.curving = False
        self._curve = CurveTurnTracker(context.curve, self.config.heading_tolerance_deg) if context.curve else None
        self._last_target_heading = None
        self._last_course_heading = None
        self.hold_height(context.altitude)

    def reset(self):
        self.context = None
        self.hotpoint = None
        self.approaching = False
        self.curving = False
        self._curve = None
        self._last_target_heading = None
        self._last_course_heading = None
        self.command = ControlCommand()

    @property
    def cruise_speed(self) -> float:
        return self.context.cruise_speed if self.context else 0.0

    @property
    def decel_factor(self) -> float:
        if self.cruise_speed > self.config.fast_speed_threshold_ms:
            return self.config.fast_decel_factor
        return self.config.decel_factor

    # ==================== Telemetry ====================

    @property
    def position(self) -> Optional[Coordinate]:
        return self.vehicle.read_position()

    def target_distance(self) -> float:
        position = self.position
        if position is None or self.context is None:
            return NO_TARGET_DISTANCE
        return distance_between(position, self.context.target)

    # ==================== Speed ====================

    def approach_speed(self, distance: float) -> float:
        """
        Deceleration envelope toward the target

        Zero inside the arrival radius; inside V * factor (or once
        approaching) max(min speed, D / factor); cruise speed otherwise.
        """
        if distance < self.config.arrival_distance_m:
            self.approaching = True
            return 0.0
        factor = self.decel_factor
        if distance < self.cruise_speed * factor or self.approaching:
            self.approaching = True
            return max(self.config.min_approach_speed_ms, distance / factor)
        return self.cruise_speed

    def control_speed(self) -> SpeedControl:
        """Update the horizontal command for this cycle"""
        if self.command.speed == 0:
            return SpeedControl.SETTLED

        distance = self.target_distance()
        if self.curving:
            if self._curve.is_course_reached(self.position):
                logger.info(f"Curve at waypoint {self.context.index} completed")
                self.curving = False
                return SpeedControl.CURVE_COMPLETED
            self.hold_speed(self._curve.turn.turning_speed)
        elif self._curve is not None:
            turn = self._curve.turn
            if distance < turn.turning_distance:
                logger.info(f"Curving into waypoint {self.context.index}")
                self.curving = True
                self.hold_speed(turn.turning_speed)
            elif distance < turn.turning_distance + turn.deceleration_distance:
                self.hold_speed(turn.turning_speed)
            else:
                self.hold_speed(self.cruise_speed)
        else:
            self.hold_speed(self.approach_speed(distance))
        return SpeedControl.MOVING

    # ==================== Track ====================

    def cross_track_error(self) -> float:
        """Signed lateral error, positive calls for a correction to the right"""
        position = self.position
        if position is None or self.context is None:
            return 0.0
        if self.curving:
            return self._curve.radius_error(position)
        if self.context.origin is None:
            return 0.0
        return cross_track_distance(position, self.context.origin, self.context.target)

    # ==================== Heading ====================

    def _bearing_to_poi(self, position: Coordinate, poi: Coordinate) -> float:
        # Too close to the point of interest for a stable bearing: use the target instead
        if distance_between(poi, position) < self.config.poi_min_distance_m:
            position = self.context.target
        return bearing_between(position, poi)

    def _orbit_heading(self, position: Coordinate) -> float:
        return self.hotpoint.heading(position, self.context.target, self.config.poi_min_distance_m)

    def _hold(self, heading: Optional[float]) -> float:
        # Bearing is unstable this close to the target: keep the last one, or the current heading
        return heading if heading is not None else wrap_angle_360(self.vehicle.read_heading())

    def target_heading(self) -> Optional[float]:
        """Heading the vehicle should face"""
        position = self.position
        if position is None or self.context is None:
            return None
        ctx = self.context

        if self.hotpoint is not None:
            return self._orbit_heading(position)
        if ctx.point_of_interest is not None:
            return self._bearing_to_poi(position, ctx.point_of_interest)
        if ctx.heading_plan is not None:
            return ctx.heading_plan.target(self.target_distance())
        if self.curving:
            return self._curve.turning_heading(position)

        if distance_between(ctx.target, position) < self.config.target_heading_hold_m:
            return self._hold(self._last_target_heading)
        heading = bearing_between(position, ctx.target)
        self._last_target_heading = heading
        return heading

    def course_heading(self) -> Optional[float]:
        """Direction of travel"""
        position = self.position
        if position is None or self.context is None:
            return None
        if self.curving:
            return self._curve.turning_heading(position)
        if self.context.is_track_mode and self.hotpoint is None:
            return self.target_heading()

        if distance_between(self.context.target, position) < self.config.course_hold_m:
            return self._hold(self._last_course_heading)
        heading = bearing_between(position, self.context.target)
        self._last_course_heading = heading
        return heading

    def is_target_heading_reached(self) -> bool:
        target = self.target_heading()
        if target is None:
            return False
        return headings_match(target, self.vehicle.read_heading(), self.config.heading_tolerance_deg)

    def is_target_height_reached(self) -> bool:
        return abs(self.command.vertical - self.vehicle.read_altitude()) < self.config.altitude_tolerance_m

    # ==================== Command ====================

    def hold_speed(self, speed: float):
        """Command speed along the course plus track correction"""
        course = self.course_heading()
        if course is None:
            return
        track = 0.0 if speed == 0 else clamp(self.cross_track_error(), self.config.max_track_speed_ms)
        self.command.roll, self.command.pitch = body_velocity(
            speed, track, course, self.vehicle.read_heading())

    def hold_heading(self, heading: float):
        self.command.yaw = wrap_angle_180(heading)

    def hold_height(self, altitude: float):
        self.command.vertical = altitude

    def hold_circle(self, speed: float):
        """Orbit the point of interest at the captured radius"""
        position = self.position
        if position is None or self.hotpoint is None:
            return
        self.hold_heading(self._orbit_heading(position))
        self.command.roll, self.command.pitch = self.hotpoint.circle_velocity(
            position, speed, self.config.max_track_speed_ms)

"""
Hotpoint Orbit Controller

Circles a point of interest at the radius of the first waypoint. Each
waypoint becomes an angular target (bearing from the point of interest)
and is passed when the vehicle's own bearing from the center sweeps
past it in the orbit direction.
"""

import logging
import math
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Tuple, TYPE_CHECKING

from ..mission.models import HotpointHeading
from ..utils.geo import Coordinate, bearing_between, distance_between, wrap_angle_180, wrap_angle_360

if TYPE_CHECKING:
    from ..config import HotpointConfig
    from ..mission.models import Waypoint

logger = logging.getLogger(__name__)


class Axis(Enum):
    ROLL = "roll"       # Forward
    PITCH = "pitch"     # Right


class AxisMapping(NamedTuple):
    """Which body axis carries the radial and tangential speeds, and with which sign"""
    radial_axis: Axis
    radial_sign: float
    tangential_axis: Axis
    tangential_sign: float

    def apply(self, radial: float, tangential: float) -> Tuple[float, float]:
        """Returns (roll, pitch)"""
        roll = pitch = 0.0
        if self.radial_axis == Axis.ROLL:
            roll += self.radial_sign * radial
        else:
            pitch += self.radial_sign * radial
        if self.tangential_axis == Axis.ROLL:
            roll += self.tangential_sign * tangential
        else:
            pitch += self.tangential_sign * tangential
        return roll, pitch


# (heading mode, clockwise) -> mapping; radial speed is positive outward
_AXIS_TABLE: Dict[Tuple[HotpointHeading, bool], AxisMapping] = {
    (HotpointHeading.TOWARD_HOTPOINT, True): AxisMapping(Axis.ROLL, -1, Axis.PITCH, -1),
    (HotpointHeading.TOWARD_HOTPOINT, False): AxisMapping(Axis.ROLL, -1, Axis.PITCH, 1),
    (HotpointHeading.ALONG_CIRCLE_LOOKING_FORWARD, True): AxisMapping(Axis.PITCH, -1, Axis.ROLL, 1),
    (HotpointHeading.ALONG_CIRCLE_LOOKING_FORWARD, False): AxisMapping(Axis.PITCH, 1, Axis.ROLL, 1),
    (HotpointHeading.ALONG_CIRCLE_LOOKING_BACKWARD, True): AxisMapping(Axis.PITCH, 1, Axis.ROLL, -1),
    (HotpointHeading.ALONG_CIRCLE_LOOKING_BACKWARD, False): AxisMapping(Axis.PITCH, -1, Axis.ROLL, -1),
    (HotpointHeading.AWAY_FROM_HOTPOINT, True): AxisMapping(Axis.ROLL, 1, Axis.PITCH, 1),
    (HotpointHeading.AWAY_FROM_HOTPOINT, False): AxisMapping(Axis.ROLL, 1, Axis.PITCH, -1),
}


def axis_mapping(mode: HotpointHeading, clockwise: bool) -> AxisMapping:
    return _AXIS_TABLE[(mode, clockwise)]


def orbit_heading(mode: HotpointHeading, clockwise: bool, bearing_to_center: float) -> float:
    """Vehicle heading for a heading sub-mode given the bearing toward the center"""
    if mode == HotpointHeading.TOWARD_HOTPOINT:
        heading = bearing_to_center
    elif mode == HotpointHeading.ALONG_CIRCLE_LOOKING_FORWARD:
        heading = bearing_to_center - 90 if clockwise else bearing_to_center + 90
    elif mode == HotpointHeading.ALONG_CIRCLE_LOOKING_BACKWARD:
        heading = bearing_to_center + 90 if clockwise else bearing_to_center - 90
    else:
        heading = bearing_to_center - 180
    return wrap_angle_360(heading)


def is_target_angle_reached(angle: float, target: float, clockwise: bool) -> bool:
    """
    Has the bearing from center swept past the target angle?

    Angles are rounded toward each other by whole degrees, then one side
    is shifted by 360 when they are more than half a circle apart.
    """
    if clockwise:
        current = math.ceil(angle)
        goal = math.floor(target)
        if current == 360:
            current = 0
    else:
        current = math.floor(angle)
        goal = math.ceil(target)
        if goal == 360:
            goal = 0

    if abs(goal - current) > 180:
        if current < goal:
            current += 360
        else:
            goal += 360

    return current >= goal if clockwise else current <= goal


class HotpointController:
    """Orbit geometry and waypoint pass detection"""

    def __init__(self, point_of_interest: Coordinate, waypoints: List['Waypoint'],
                 mode: HotpointHeading, clockwise: bool, config: 'HotpointConfig'):
        self.center = point_of_interest
        self.mode = mode
        self.clockwise = clockwise
        self.config = config

        self.radius = distance_between(waypoints[0].coordinate, point_of_interest)
        self.target_angles = [bearing_between(point_of_interest, wp.coordinate) for wp in waypoints]
        self.captured = False

        logger.info(f"Orbit radius {self.radius:.1f} m, "
                    f"{'clockwise' if clockwise else 'counter-clockwise'}, {mode.value}")

    @property
    def mapping(self) -> AxisMapping:
        return axis_mapping(self.mode, self.clockwise)

    def capture(self):
        if not self.captured:
            logger.info("Orbit captured")
        self.captured = True

    def angle_of(self, position: Coordinate) -> float:
        """Bearing from the center to position"""
        return bearing_between(self.center, position)

    def heading(self, position: Coordinate, target: Optional[Coordinate] = None,
                min_distance: float = 0.0) -> float:
        """Orbit heading; within min_distance of the center the bearing is taken from target"""
        if target is not None and distance_between(self.center, position) < min_distance:
            position = target
        return orbit_heading(self.mode, self.clockwise, bearing_between(position, self.center))

    def is_pass_reached(self, position: Optional[Coordinate], index: int,
                        distance_to_target: float) -> bool:
        """
        Waypoint pass test

        The first waypoint is passed when close to it or almost at its
        angle; later ones when the orbit sweeps past their angle.
        """
        if position is None or not self.captured:
            return False
        angle = self.angle_of(position)
        target = self.target_angles[index]
        if index == 0:
            if distance_to_target < self.config.first_pass_distance_m:
                return True
            return abs(wrap_angle_180(target - angle)) < self.config.first_pass_angle_deg
        return is_target_angle_reached(angle, target, self.clockwise)

    def circle_velocity(self, position: Coordinate, speed: float,
                        max_correction: float) -> Tuple[float, float]:
        """
        Body-frame (roll, pitch) that holds the radius while orbiting

        Radial correction is the radius error clamped to max_correction.
        """
        radial = self.radius - distance_between(position, self.center)
        radial = max(-max_correction, min(max_correction, radial))
        return self.mapping.apply(radial, speed)

"""
Curve-Turn Planner

Rounds an interior waypoint with an arc of the waypoint's corner radius
instead of stopping and rotating.

Geometry (local plane centered on the corner waypoint):
    half          = interior angle / 2
    tangent       = radius / tan(half)     distance from corner to arc ends
    center offset = radius / sin(half)     along the interior bisector

A turn whose tangent is longer than either adjacent leg cannot fit and
is rejected; the waypoint then falls back to a sharp turn.
"""

import logging
import math
from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple, TYPE_CHECKING

from ..utils.geo import (
    Coordinate,
    bearing_between,
    distance_between,
    from_local,
    headings_match,
    to_local,
    wrap_angle_180,
    wrap_angle_360,
)

if TYPE_CHECKING:
    from ..config import CurveTurnConfig
    from ..mission.models import Waypoint

logger = logging.getLogger(__name__)

Vector = Tuple[float, float]


class ArcGeometry(NamedTuple):
    """Arc fitted into a corner, in the corner's local plane"""
    center: Vector              # (east, north) from the corner
    tangent_length: float
    center_offset: float
    half_angle: float           # Half the interior angle, radians
    clockwise: bool


def _unit(v: Vector) -> Optional[Vector]:
    length = math.hypot(v[0], v[1])
    if length < 1e-9:
        return None
    return v[0] / length, v[1] / length


def arc_geometry(previous: Vector, corner: Vector, following: Vector,
                 radius: float) -> Optional[ArcGeometry]:
    """
    Fit an arc of the given radius into the corner previous -> corner -> following

    Returns:
        ArcGeometry, or None when the legs are degenerate, collinear or reversed
    """
    u1 = _unit((previous[0] - corner[0], previous[1] - corner[1]))
    u2 = _unit((following[0] - corner[0], following[1] - corner[1]))
    if u1 is None or u2 is None:
        return None

    cos_interior = max(-1.0, min(1.0, u1[0] * u2[0] + u1[1] * u2[1]))
    interior = math.acos(cos_interior)
    if interior < 1e-6 or math.pi - interior < 1e-6:
        return None

    half = interior / 2
    tangent = radius / math.tan(half)
    offset = radius / math.sin(half)

    bisector = _unit((u1[0] + u2[0], u1[1] + u2[1]))
    if bisector is None:
        return None
    center = (corner[0] + bisector[0] * offset, corner[1] + bisector[1] * offset)

    # Incoming direction is -u1, outgoing is u2; negative cross = right turn
    cross = (-u1[0]) * u2[1] - (-u1[1]) * u2[0]

    return ArcGeometry(center=center, tangent_length=tangent, center_offset=offset,
                       half_angle=half, clockwise=cross < 0)


@dataclass(frozen=True)
class CurveTurn:
    """An accepted rounded corner"""
    center: Coordinate
    radius: float
    clockwise: bool
    turning_distance: float         # Start curving below this distance to the corner
    deceleration_distance: float    # Slow to turning speed this far before curving
    turning_speed: float
    entry_course: float
    exit_course: float
    exit_coordinate: Coordinate
    sweep_deg: float


class CurveTurnPlanner:
    """Decides whether a waypoint is rounded and plans the arc"""

    def __init__(self, config: 'CurveTurnConfig'):
        self.config = config

    def plan(self, previous: Optional[Coordinate], waypoint: 'Waypoint',
             next_waypoint: Optional['Waypoint'], index: int, count: int,
             cruise_speed: float) -> Optional[CurveTurn]:
        """
        Plan the arc for the waypoint at index

        Args:
            previous: Start of the incoming leg
            waypoint: Corner waypoint
            next_waypoint: End of the outgoing leg
            index: Corner index in the mission
            count: Number of waypoints
            cruise_speed: Mission cruise speed (m/s)

        Returns:
            CurveTurn, or None for a sharp stop-and-rotate corner
        """
        if not (0 < index < count - 1):
            return None
        if waypoint.corner_radius <= self.config.min_corner_radius_m:
            return None
        if previous is None or next_waypoint is None:
            return None

        corner = waypoint.coordinate
        following = next_waypoint.coordinate
        radius = waypoint.corner_radius

        geometry = arc_geometry(to_local(previous, corner), (0.0, 0.0),
                                to_local(following, corner), radius)
        if geometry is None:
            logger.debug(f"Waypoint {index}: straight or degenerate corner, no curve")
            return None

        incoming = distance_between(previous, corner)
        outgoing = distance_between(corner, following)
        if geometry.tangent_length > incoming or geometry.tangent_length > outgoing:
            logger.info(f"Waypoint {index}: radius {radius:.1f} m does not fit "
                        f"(tangent {geometry.tangent_length:.1f} m, legs {incoming:.1f}/{outgoing:.1f} m)")
            return None

        sweep = 180.0 - math.degrees(2 * geometry.half_angle)
        if sweep / 2 < self.config.small_turn_deg:
            deceleration = cruise_speed
        else:
            deceleration = cruise_speed + 5.0 * cruise_speed / 15.0

        turn = CurveTurn(
            center=from_local(geometry.center[0], geometry.center[1], corner),
            radius=radius,
            clockwise=geometry.clockwise,
            turning_distance=geometry.tangent_length,
            deceleration_distance=deceleration,
            turning_speed=max(1.0, min(radius * self.config.turning_speed_factor, cruise_speed)),
            entry_course=bearing_between(previous, corner),
            exit_course=bearing_between(corner, following),
            exit_coordinate=following,
            sweep_deg=sweep,
        )
        logger.info(f"Waypoint {index}: curve {'CW' if turn.clockwise else 'CCW'} "
                    f"sweep {sweep:.1f} deg, turning distance {turn.turning_distance:.1f} m")
        return turn


class CurveTurnTracker:
    """
    Live state while flying an arc

    The heading target is the arc tangent at the vehicle's position. It
    only ever advances in the turn direction; a regression caused by
    position noise keeps the last accepted heading.
    """

    def __init__(self, turn: CurveTurn, heading_tolerance: float = 1.0):
        self.turn = turn
        self.heading_tolerance = heading_tolerance
        self._heading = turn.entry_course

    @property
    def direction(self) -> float:
        return 1.0 if self.turn.clockwise else -1.0

    def tangent_heading(self, position: Coordinate) -> float:
        to_center = bearing_between(position, self.turn.center)
        return wrap_angle_360(to_center - 90 * self.direction)

    def turning_heading(self, position: Optional[Coordinate]) -> float:
        if position is None:
            return self._heading
        heading = self.tangent_heading(position)
        if wrap_angle_180(heading - self._heading) * self.direction < 0:
            return self._heading
        self._heading = heading
        return heading

    def is_course_reached(self, position: Optional[Coordinate]) -> bool:
        """Exit course reached: pointing at the exit waypoint, or the tangent swept past it"""
        if position is None:
            return False
        course = bearing_between(position, self.turn.exit_coordinate)
        if headings_match(course, self.turn.exit_course, self.heading_tolerance):
            return True
        return wrap_angle_180(self.tangent_heading(position) - self.turn.exit_course) * self.direction >= 0

    def radius_error(self, position: Optional[Coordinate]) -> float:
        """Signed correction toward the arc, positive to the right"""
        if position is None:
            return 0.0
        error = distance_between(position, self.turn.center) - self.turn.radius
        return error if self.turn.clockwise else -error

"""
Navigation context

Everything the navigation engine needs to know about the active leg,
rebuilt as a single immutable value each time the waypoint advances.
"""

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from ..mission.models import FlightPathMode, HeadingMode, TurnMode
from ..utils.geo import Coordinate, distance_between, wrap_angle_360

if TYPE_CHECKING:
    from ..mission.models import Mission, Waypoint
    from .curve_turn import CurveTurn, CurveTurnPlanner


@dataclass(frozen=True)
class HeadingPlan:
    """Heading interpolated along a leg from start to end in a fixed turn direction"""
    start: float
    end: float
    span: float                     # Signed degrees, positive = clockwise
    leg_length: Optional[float]

    def target(self, distance_to_target: float) -> float:
        if self.span == 0 or not self.leg_length:
            return self.end
        ratio = max(0.0, 1.0 - distance_to_target / self.leg_length)
        return wrap_angle_360(self.start + self.span * ratio)


def plan_heading(previous: Optional['Waypoint'], waypoint: 'Waypoint',
                 vehicle_heading: Optional[float]) -> HeadingPlan:
    """Build the heading plan for a leg flown in USING_WAYPOINT_HEADING mode"""
    if vehicle_heading is not None:
        start = wrap_angle_360(vehicle_heading)
    elif previous is not None:
        start = wrap_angle_360(previous.heading)
    else:
        start = 0.0
    end = wrap_angle_360(waypoint.heading)

    if previous is not None and previous.heading == waypoint.heading:
        span = 0.0
    else:
        span = end - start

    clockwise = previous is None or previous.turn_mode == TurnMode.CLOCKWISE
    if clockwise and span < 0:
        span += 360
    elif not clockwise and span > 0:
        span -= 360

    leg = distance_between(previous.coordinate, waypoint.coordinate) if previous is not None else None
    return HeadingPlan(start=start, end=end, span=span, leg_length=leg)


@dataclass(frozen=True)
class NavigationContext:
    """The active leg: where from, where to, and how to fly it"""
    index: int
    waypoint: 'Waypoint'
    previous_waypoint: Optional['Waypoint']
    origin: Optional[Coordinate]            # Start of the leg for cross-track
    cruise_speed: float
    heading_mode: HeadingMode
    point_of_interest: Optional[Coordinate]
    curve: Optional['CurveTurn'] = None
    heading_plan: Optional[HeadingPlan] = None
    photo_origin: Optional[Coordinate] = None
    photo_interval: float = 0.0

    @property
    def target(self) -> Coordinate:
        return self.waypoint.coordinate

    @property
    def altitude(self) -> float:
        return self.waypoint.altitude

    @property
    def is_track_mode(self) -> bool:
        """Vehicle faces along the track"""
        return self.heading_mode == HeadingMode.AUTO and self.point_of_interest is None


def build_context(mission: 'Mission', index: int, origin: Optional[Coordinate],
                  vehicle_heading: Optional[float],
                  planner: Optional['CurveTurnPlanner'] = None,
                  previous_waypoint: Optional['Waypoint'] = None) -> NavigationContext:
    """
    Context for flying to mission.waypoints[index]

    Args:
        mission: Loaded mission
        index: Active waypoint index
        origin: Leg start (previous waypoint, or vehicle position on the first leg)
        vehicle_heading: Current heading, start of an interpolated heading leg
        planner: Curve planner, used only for curved missions
        previous_waypoint: Waypoint flown before this one in the current pass
    """
    waypoint = mission.waypoints[index]

    curve = None
    if planner is not None and mission.flight_path_mode == FlightPathMode.CURVED:
        following = mission.waypoints[index + 1] if index + 1 < len(mission.waypoints) else None
        curve = planner.plan(origin, waypoint, following, index,
                             len(mission.waypoints), mission.auto_flight_speed)

    heading_plan = None
    if mission.heading_mode == HeadingMode.USING_WAYPOINT_HEADING:
        heading_plan = plan_heading(previous_waypoint, waypoint, vehicle_heading)

    photo_origin = None
    photo_interval = 0.0
    if previous_waypoint is not None and previous_waypoint.photo_distance_interval > 0:
        photo_origin = previous_waypoint.coordinate
        photo_interval = previous_waypoint.photo_distance_interval

    poi = mission.point_of_interest if mission.point_of_interest and mission.point_of_interest.is_valid else None

    return NavigationContext(
        index=index,
        waypoint=waypoint,
        previous_waypoint=previous_waypoint,
        origin=origin,
        cruise_speed=mission.auto_flight_speed,
        heading_mode=mission.heading_mode,
        point_of_interest=poi,
        curve=curve,
        heading_plan=heading_plan,
        photo_origin=photo_origin,
        photo_interval=photo_interval,
    )

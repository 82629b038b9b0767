"""
Mission models

A mission is an ordered list of waypoints plus flight behavior flags.
Each waypoint carries its own ordered list of device actions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from ..errors import ValidationError
from ..utils.geo import Coordinate, distance_between

if TYPE_CHECKING:
    from ..config import MissionLimitsConfig


class ActionType(Enum):
    """Available waypoint action types"""
    ROTATE_VEHICLE = "rotate_vehicle"
    ROTATE_GIMBAL = "rotate_gimbal"
    SHOOT_PHOTO = "shoot_photo"
    START_RECORD = "start_record"
    STOP_RECORD = "stop_record"
    WAIT = "wait"


class HeadingMode(Enum):
    """How the vehicle heading is chosen between waypoints"""
    AUTO = "auto"                                   # Follow the track
    USING_WAYPOINT_HEADING = "using_waypoint_heading"
    TOWARD_POINT_OF_INTEREST = "toward_point_of_interest"


class FlightPathMode(Enum):
    NORMAL = "normal"       # Stop and rotate at every waypoint
    CURVED = "curved"       # Round corners using waypoint corner radius


class FinishedAction(Enum):
    NO_ACTION = "no_action"
    GO_HOME = "go_home"
    AUTO_LAND = "auto_land"


class TurnMode(Enum):
    CLOCKWISE = "clockwise"
    COUNTER_CLOCKWISE = "counter_clockwise"


class HotpointHeading(Enum):
    """Heading sub-modes while orbiting a point of interest"""
    TOWARD_HOTPOINT = "toward_hotpoint"
    ALONG_CIRCLE_LOOKING_FORWARD = "along_circle_looking_forward"
    ALONG_CIRCLE_LOOKING_BACKWARD = "along_circle_looking_backward"
    AWAY_FROM_HOTPOINT = "away_from_hotpoint"


@dataclass
class Action(ABC):
    """Base class for all waypoint actions"""

    @property
    @abstractmethod
    def action_type(self) -> ActionType:
        """Return the action type"""
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert action to dictionary"""
        return {"type": self.action_type.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Action':
        """Create action from dictionary"""
        return cls()

    def validate(self, limits: 'MissionLimitsConfig') -> List[str]:
        """
        Validate action parameters.

        Returns:
            List of validation error messages (empty if valid)
        """
        return []


@dataclass
class RotateVehicleAction(Action):
    """Rotate the vehicle to an absolute heading"""
    heading: float  # degrees, 0=North

    @property
    def action_type(self) -> ActionType:
        return ActionType.ROTATE_VEHICLE

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "rotate_vehicle", "heading": self.heading}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RotateVehicleAction':
        return cls(heading=float(data["heading"]))

    def validate(self, limits: 'MissionLimitsConfig') -> List[str]:
        if not (-180 <= self.heading <= 360):
            return [f"rotate_vehicle: heading must be -180..360, got {self.heading}"]
        return []


@dataclass
class RotateGimbalAction(Action):
    """Pitch the gimbal to an absolute angle"""
    pitch: float  # degrees, 0=horizon, -90=down

    @property
    def action_type(self) -> ActionType:
        return ActionType.ROTATE_GIMBAL

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "rotate_gimbal", "pitch": self.pitch}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RotateGimbalAction':
        return cls(pitch=float(data["pitch"]))

    def validate(self, limits: 'MissionLimitsConfig') -> List[str]:
        if not (-90 <= self.pitch <= 0):
            return [f"rotate_gimbal: pitch must be -90..0, got {self.pitch}"]
        return []


@dataclass
class ShootPhotoAction(Action):
    """Capture a single photo"""

    @property
    def action_type(self) -> ActionType:
        return ActionType.SHOOT_PHOTO


@dataclass
class StartRecordAction(Action):
    """Start video recording"""

    @property
    def action_type(self) -> ActionType:
        return ActionType.START_RECORD


@dataclass
class StopRecordAction(Action):
    """Stop video recording"""

    @property
    def action_type(self) -> ActionType:
        return ActionType.STOP_RECORD


@dataclass
class WaitAction(Action):
    """Hover in place for a number of milliseconds"""
    milliseconds: int

    @property
    def action_type(self) -> ActionType:
        return ActionType.WAIT

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "wait", "milliseconds": self.milliseconds}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WaitAction':
        return cls(milliseconds=int(data["milliseconds"]))

    def validate(self, limits: 'MissionLimitsConfig') -> List[str]:
        if not (0 <= self.milliseconds <= limits.max_wait_ms):
            return [f"wait: duration must be 0..{limits.max_wait_ms} ms, got {self.milliseconds}"]
        return []


# Action type mapping
ACTION_CLASSES: Dict[str, type] = {
    "rotate_vehicle": RotateVehicleAction,
    "rotate_gimbal": RotateGimbalAction,
    "shoot_photo": ShootPhotoAction,
    "start_record": StartRecordAction,
    "stop_record": StopRecordAction,
    "wait": WaitAction,
}


def action_from_dict(data: Dict[str, Any]) -> Action:
    """Build an action from its tagged dictionary form"""
    action_type = data.get("type")
    if action_type not in ACTION_CLASSES:
        raise ValidationError([f"unknown action type '{action_type}'"])
    try:
        return ACTION_CLASSES[action_type].from_dict(data)
    except KeyError as e:
        raise ValidationError([f"{action_type}: missing required field {e}"])
    except (TypeError, ValueError) as e:
        raise ValidationError([f"{action_type}: {e}"])


@dataclass
class Waypoint:
    """A target position with its per-waypoint behavior"""
    latitude: float
    longitude: float
    altitude: float
    heading: float = 0.0                    # Used in USING_WAYPOINT_HEADING mode
    corner_radius: float = 0.0              # 0 = sharp turn
    turn_mode: TurnMode = TurnMode.CLOCKWISE
    gimbal_pitch: float = 0.0               # Applied on arrival when rotate_gimbal_pitch is set
    photo_distance_interval: float = 0.0    # Periodic capture along the next leg, 0 = off
    actions: List[Action] = field(default_factory=list)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Waypoint':
        return cls(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            altitude=float(data.get("altitude", 0.0)),
            heading=float(data.get("heading", 0.0)),
            corner_radius=float(data.get("corner_radius", 0.0)),
            turn_mode=TurnMode(data.get("turn_mode", TurnMode.CLOCKWISE.value)),
            gimbal_pitch=float(data.get("gimbal_pitch", 0.0)),
            photo_distance_interval=float(data.get("photo_distance_interval", 0.0)),
            actions=[action_from_dict(a) for a in data.get("actions", [])],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitude": self.altitude,
            "heading": self.heading,
            "corner_radius": self.corner_radius,
            "turn_mode": self.turn_mode.value,
            "gimbal_pitch": self.gimbal_pitch,
            "photo_distance_interval": self.photo_distance_interval,
            "actions": [a.to_dict() for a in self.actions],
        }

    def validate(self, limits: 'MissionLimitsConfig') -> List[str]:
        errors = []
        if not self.coordinate.is_valid:
            errors.append(f"invalid coordinate ({self.latitude}, {self.longitude})")
        if not (limits.min_altitude_m <= self.altitude <= limits.max_altitude_m):
            errors.append(f"altitude {self.altitude} outside "
                          f"{limits.min_altitude_m}..{limits.max_altitude_m}")
        if not (-180 <= self.heading <= 360):
            errors.append(f"heading must be -180..360, got {self.heading}")
        if not (0 <= self.corner_radius <= limits.max_corner_radius_m):
            errors.append(f"corner radius must be 0..{limits.max_corner_radius_m}, got {self.corner_radius}")
        if not (-90 <= self.gimbal_pitch <= 0):
            errors.append(f"gimbal pitch must be -90..0, got {self.gimbal_pitch}")
        if self.photo_distance_interval < 0:
            errors.append("photo distance interval cannot be negative")
        if len(self.actions) > limits.max_actions:
            errors.append(f"too many actions ({len(self.actions)} > {limits.max_actions})")
        for action in self.actions:
            errors.extend(action.validate(limits))
        return errors


@dataclass
class Mission:
    """
    Complete waypoint mission

    Waypoints are visited in order, repeat_times passes over the list,
    then finished_action is issued.
    """
    waypoints: List[Waypoint]
    auto_flight_speed: float = 5.0          # m/s cruise speed
    name: str = "Unnamed Mission"
    repeat_times: int = 1
    heading_mode: HeadingMode = HeadingMode.AUTO
    flight_path_mode: FlightPathMode = FlightPathMode.NORMAL
    finished_action: FinishedAction = FinishedAction.NO_ACTION
    point_of_interest: Optional[Coordinate] = None
    hotpoint_heading: Optional[HotpointHeading] = None
    orbit_clockwise: bool = True
    exit_on_signal_lost: bool = False
    rotate_gimbal_pitch: bool = False

    @property
    def is_orbit(self) -> bool:
        """Orbit mode needs both a point of interest and a hotpoint heading"""
        return self.point_of_interest is not None and self.hotpoint_heading is not None

    @property
    def waypoint_count(self) -> int:
        return len(self.waypoints)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Mission':
        """
        Create mission from dictionary (JSON/YAML data)

        Raises:
            ValidationError: If a field is missing or has the wrong type
        """
        waypoints = []
        for i, wp_data in enumerate(data.get("waypoints", [])):
            try:
                waypoints.append(Waypoint.from_dict(wp_data))
            except ValidationError as e:
                raise ValidationError([f"Waypoint {i}: {err}" for err in e.errors])
            except KeyError as e:
                raise ValidationError([f"Waypoint {i}: missing required field {e}"])
            except (TypeError, ValueError) as e:
                raise ValidationError([f"Waypoint {i}: {e}"])

        poi = data.get("point_of_interest")
        hotpoint = data.get("hotpoint_heading")
        try:
            return cls(
                waypoints=waypoints,
                auto_flight_speed=float(data.get("auto_flight_speed", 5.0)),
                name=data.get("name", "Unnamed Mission"),
                repeat_times=int(data.get("repeat_times", 1)),
                heading_mode=HeadingMode(data.get("heading_mode", HeadingMode.AUTO.value)),
                flight_path_mode=FlightPathMode(data.get("flight_path_mode", FlightPathMode.NORMAL.value)),
                finished_action=FinishedAction(data.get("finished_action", FinishedAction.NO_ACTION.value)),
                point_of_interest=Coordinate(float(poi["latitude"]), float(poi["longitude"])) if poi else None,
                hotpoint_heading=HotpointHeading(hotpoint) if hotpoint else None,
                orbit_clockwise=bool(data.get("orbit_clockwise", True)),
                exit_on_signal_lost=bool(data.get("exit_on_signal_lost", False)),
                rotate_gimbal_pitch=bool(data.get("rotate_gimbal_pitch", False)),
            )
        except KeyError as e:
            raise ValidationError([f"missing required field {e}"])
        except (TypeError, ValueError) as e:
            raise ValidationError([str(e)])

    def to_dict(self) -> Dict[str, Any]:
        """Convert mission to dictionary (for JSON serialization)"""
        d: Dict[str, Any] = {
            "name": self.name,
            "auto_flight_speed": self.auto_flight_speed,
            "repeat_times": self.repeat_times,
            "heading_mode": self.heading_mode.value,
            "flight_path_mode": self.flight_path_mode.value,
            "finished_action": self.finished_action.value,
            "orbit_clockwise": self.orbit_clockwise,
            "exit_on_signal_lost": self.exit_on_signal_lost,
            "rotate_gimbal_pitch": self.rotate_gimbal_pitch,
            "waypoints": [wp.to_dict() for wp in self.waypoints],
        }
        if self.point_of_interest is not None:
            d["point_of_interest"] = {
                "latitude": self.point_of_interest.latitude,
                "longitude": self.point_of_interest.longitude,
            }
        if self.hotpoint_heading is not None:
            d["hotpoint_heading"] = self.hotpoint_heading.value
        return d

    def validate(self, limits: 'MissionLimitsConfig') -> List[str]:
        """
        Validate geometry, speed and per-waypoint parameters

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        count = len(self.waypoints)
        if not (limits.min_waypoints <= count <= limits.max_waypoints):
            errors.append(f"Mission needs {limits.min_waypoints}..{limits.max_waypoints} "
                          f"waypoints, got {count}")

        if not (0 < self.auto_flight_speed <= limits.max_speed_ms):
            errors.append(f"Speed must be 0..{limits.max_speed_ms} m/s, got {self.auto_flight_speed}")

        if self.repeat_times < 1:
            errors.append(f"Repeat times must be at least 1, got {self.repeat_times}")

        if self.point_of_interest is not None and not self.point_of_interest.is_valid:
            errors.append("Point of interest is not a valid coordinate")

        if self.hotpoint_heading is not None and self.point_of_interest is None:
            errors.append("Hotpoint heading requires a point of interest")

        if self.heading_mode == HeadingMode.TOWARD_POINT_OF_INTEREST and self.point_of_interest is None:
            errors.append("Heading toward point of interest requires a point of interest")

        for i, wp in enumerate(self.waypoints):
            for err in wp.validate(limits):
                errors.append(f"Waypoint {i}: {err}")

        # Consecutive spacing
        for i in range(1, count):
            a, b = self.waypoints[i - 1], self.waypoints[i]
            if not (a.coordinate.is_valid and b.coordinate.is_valid):
                continue
            spacing = distance_between(a.coordinate, b.coordinate)
            if spacing < limits.min_spacing_m:
                errors.append(f"Waypoints {i - 1} and {i} are too close ({spacing:.2f} m)")
            elif spacing > limits.max_spacing_m:
                errors.append(f"Waypoints {i - 1} and {i} are too far apart ({spacing:.0f} m)")

        return errors

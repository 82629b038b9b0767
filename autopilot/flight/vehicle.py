"""
Vehicle and payload interfaces

The autopilot never talks to hardware directly. A Vehicle supplies
telemetry and accepts control commands; a Payload drives the camera
and gimbal. Long operations complete through callbacks that must be
delivered on the autopilot's run loop.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable, Optional

from ..errors import DeviceCommandError
from ..utils.geo import Coordinate

# Completion callback: None on success, the error otherwise
Completion = Callable[[Optional[DeviceCommandError]], None]


class GPSSignalLevel(IntEnum):
    """Satellite signal quality, higher is better"""
    LEVEL_0 = 0
    LEVEL_1 = 1
    LEVEL_2 = 2
    LEVEL_3 = 3
    LEVEL_4 = 4
    LEVEL_5 = 5


class CameraMode(Enum):
    PHOTO = "photo"
    VIDEO = "video"


@dataclass(frozen=True)
class FlightStatus:
    """Flight state flags reported by the vehicle"""
    flying: bool = False
    landing: bool = False
    going_home: bool = False


@dataclass
class ControlCommand:
    """
    Body-frame velocity command

    roll is forward speed, pitch is rightward speed (m/s),
    yaw is an absolute heading (-180..180), vertical an absolute altitude.
    """
    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0
    vertical: float = 0.0

    @property
    def speed(self) -> float:
        return (self.roll ** 2 + self.pitch ** 2) ** 0.5

    def copy(self) -> 'ControlCommand':
        return ControlCommand(self.roll, self.pitch, self.yaw, self.vertical)


class Vehicle(ABC):
    """Telemetry source and actuator sink"""

    @abstractmethod
    def is_connected(self) -> bool:
        pass

    @abstractmethod
    def read_model(self) -> Optional[str]:
        """Model name, None when unknown"""
        pass

    @abstractmethod
    def read_position(self) -> Optional[Coordinate]:
        """Current position, None without a fix"""
        pass

    @abstractmethod
    def read_altitude(self) -> float:
        pass

    @abstractmethod
    def read_heading(self) -> float:
        """Heading in degrees, -180..180 or 0..360"""
        pass

    @abstractmethod
    def read_gps_level(self) -> GPSSignalLevel:
        pass

    @abstractmethod
    def read_flight_status(self) -> FlightStatus:
        pass

    @abstractmethod
    def is_supervisory_control_enabled(self) -> bool:
        pass

    @abstractmethod
    def enable_supervisory_control(self, enabled: bool, completion: Optional[Completion] = None):
        pass

    @abstractmethod
    def send_control_command(self, command: ControlCommand):
        """Fire and forget, called once per tick"""
        pass

    @abstractmethod
    def takeoff(self, completion: Optional[Completion] = None):
        pass

    @abstractmethod
    def go_home(self, completion: Optional[Completion] = None):
        pass

    @abstractmethod
    def land(self, completion: Optional[Completion] = None):
        pass

    @abstractmethod
    def subscribe(self,
                  on_connection: Callable[[bool], None],
                  on_flight_status: Callable[[FlightStatus], None]):
        """Register for connection changes and flight status updates"""
        pass


class Payload(ABC):
    """Camera and gimbal"""

    @abstractmethod
    def read_mode(self) -> CameraMode:
        pass

    @abstractmethod
    def is_recording(self) -> bool:
        pass

    @abstractmethod
    def read_gimbal_pitch(self) -> float:
        pass

    @abstractmethod
    def set_mode(self, mode: CameraMode, completion: Optional[Completion] = None):
        pass

    @abstractmethod
    def start_photo(self, completion: Optional[Completion] = None):
        pass

    @abstractmethod
    def start_record(self, completion: Optional[Completion] = None):
        pass

    @abstractmethod
    def stop_record(self, completion: Optional[Completion] = None):
        pass

    @abstractmethod
    def rotate_gimbal(self, pitch: float, completion: Optional[Completion] = None):
        pass

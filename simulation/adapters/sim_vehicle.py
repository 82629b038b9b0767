"""
Simulated Vehicle

Kinematic multirotor on the autopilot's run loop. Velocity follows the
body-frame command with a first-order lag, yaw and altitude move toward
their targets at bounded rates. Device commands complete after a fixed
latency and can be made to fail on demand.
"""

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple
import logging

from autopilot.control.runloop import RunLoop
from autopilot.errors import DeviceCommandError
from autopilot.flight.vehicle import (
    Completion,
    ControlCommand,
    FlightStatus,
    GPSSignalLevel,
    Vehicle,
)
from autopilot.utils.geo import Coordinate, from_local, to_local, wrap_angle_180, wrap_angle_360

logger = logging.getLogger(__name__)


class SimDevice:
    """Latency, scripted failures and a call log shared by simulated devices"""

    def __init__(self, run_loop: RunLoop, latency_s: float):
        self.run_loop = run_loop
        self.latency_s = latency_s
        self.calls: List[Tuple[float, str]] = []
        self._failures: Dict[str, List[str]] = {}

    def fail_next(self, command: str, reason: str = "simulated failure", count: int = 1):
        """Make the next `count` calls of `command` fail"""
        self._failures.setdefault(command, []).extend([reason] * count)

    def called(self, command: str) -> int:
        return sum(1 for _, name in self.calls if name == command)

    def _record(self, command: str):
        self.calls.append((self.run_loop.time(), command))

    def _complete(self, command: str, completion: Optional[Completion],
                  on_success: Optional[Callable[[], None]] = None,
                  delay: Optional[float] = None):
        """Finish a command after the latency, applying any scripted failure"""
        self._record(command)
        reasons = self._failures.get(command)
        error = DeviceCommandError(command, reasons.pop(0)) if reasons else None

        def finish():
            if error is None and on_success is not None:
                on_success()
            if completion is not None:
                completion(error)

        self.run_loop.call_later(self.latency_s if delay is None else delay, finish)


@dataclass
class SimulatedState:
    """Vehicle state in a local frame around the origin"""
    east: float = 0.0           # meters
    north: float = 0.0
    altitude: float = 0.0
    heading: float = 0.0        # degrees, 0..360

    vel_east: float = 0.0       # m/s
    vel_north: float = 0.0

    flying: bool = False
    landing: bool = False
    going_home: bool = False


class SimVehicle(SimDevice, Vehicle):
    """
    Simulated vehicle

    Physics steps at physics_rate_hz on the run loop. Commands only move
    the vehicle while it is flying with supervisory control enabled.
    """

    def __init__(self, run_loop: RunLoop,
                 origin: Coordinate = Coordinate(48.8566, 2.3522),
                 model: Optional[str] = "Mavic Air 2",
                 latency_s: float = 0.05,
                 physics_rate_hz: float = 50.0,
                 velocity_time_constant_s: float = 0.1,
                 max_yaw_rate_dps: float = 120.0,
                 max_climb_rate_ms: float = 4.0,
                 takeoff_altitude_m: float = 1.2,
                 takeoff_duration_s: float = 2.0,
                 land_duration_s: float = 3.0):
        super().__init__(run_loop, latency_s)
        self.origin = origin
        self.model = model
        self.velocity_time_constant_s = velocity_time_constant_s
        self.max_yaw_rate_dps = max_yaw_rate_dps
        self.max_climb_rate_ms = max_climb_rate_ms
        self.takeoff_altitude_m = takeoff_altitude_m
        self.takeoff_duration_s = takeoff_duration_s
        self.land_duration_s = land_duration_s

        self.state = SimulatedState()
        self.gps_level = GPSSignalLevel.LEVEL_5
        self.connected = True
        self.supervisory_enabled = False

        self.last_command: Optional[ControlCommand] = None
        self.commands_sent = 0

        self._connection_callbacks: List[Callable[[bool], None]] = []
        self._status_callbacks: List[Callable[[FlightStatus], None]] = []

        self._dt = 1.0 / physics_rate_hz
        self._timer = run_loop.schedule_periodic(self._dt, self.step)

    # ==================== Scenario control ====================

    def set_connected(self, connected: bool):
        if connected == self.connected:
            return
        self.connected = connected
        logger.info(f"Sim link {'up' if connected else 'down'}")
        for callback in list(self._connection_callbacks):
            callback(connected)

    def set_flight_status(self, flying: Optional[bool] = None, landing: Optional[bool] = None,
                          going_home: Optional[bool] = None):
        if flying is not None:
            self.state.flying = flying
        if landing is not None:
            self.state.landing = landing
        if going_home is not None:
            self.state.going_home = going_home
        self._notify_status()

    def place(self, position: Coordinate, altitude: float = 0.0, heading: float = 0.0,
              flying: bool = False):
        """Teleport the vehicle"""
        self.state.east, self.state.north = to_local(position, self.origin)
        self.state.altitude = altitude
        self.state.heading = wrap_angle_360(heading)
        self.state.vel_east = self.state.vel_north = 0.0
        self.state.flying = flying

    def shutdown(self):
        self._timer.invalidate()

    def _notify_status(self):
        status = self.read_flight_status()
        for callback in list(self._status_callbacks):
            callback(status)

    # ==================== Physics ====================

    def step(self):
        dt = self._dt
        s = self.state
        command = self.last_command if self.supervisory_enabled and s.flying else None

        if command is None:
            target_east = target_north = 0.0
        else:
            h = math.radians(s.heading)
            target_east = command.roll * math.sin(h) + command.pitch * math.cos(h)
            target_north = command.roll * math.cos(h) - command.pitch * math.sin(h)

            yaw_error = wrap_angle_180(command.yaw - s.heading)
            max_yaw = self.max_yaw_rate_dps * dt
            s.heading = wrap_angle_360(s.heading + max(-max_yaw, min(max_yaw, yaw_error)))

            climb = command.vertical - s.altitude
            max_climb = self.max_climb_rate_ms * dt
            s.altitude += max(-max_climb, min(max_climb, climb))

        if not s.flying:
            s.vel_east = s.vel_north = 0.0
            return

        alpha = 1.0 if self.velocity_time_constant_s <= 0 else min(1.0, dt / self.velocity_time_constant_s)
        s.vel_east += (target_east - s.vel_east) * alpha
        s.vel_north += (target_north - s.vel_north) * alpha
        s.east += s.vel_east * dt
        s.north += s.vel_north * dt

    # ==================== Telemetry ====================

    def is_connected(self) -> bool:
        return self.connected

    def read_model(self) -> Optional[str]:
        return self.model

    def read_position(self) -> Optional[Coordinate]:
        if self.gps_level == GPSSignalLevel.LEVEL_0:
            return None
        return from_local(self.state.east, self.state.north, self.origin)

    def read_altitude(self) -> float:
        return self.state.altitude

    def read_heading(self) -> float:
        return wrap_angle_180(self.state.heading)

    def read_gps_level(self) -> GPSSignalLevel:
        return self.gps_level

    def read_flight_status(self) -> FlightStatus:
        return FlightStatus(flying=self.state.flying, landing=self.state.landing,
                            going_home=self.state.going_home)

    def subscribe(self, on_connection: Callable[[bool], None],
                  on_flight_status: Callable[[FlightStatus], None]):
        self._connection_callbacks.append(on_connection)
        self._status_callbacks.append(on_flight_status)

    # ==================== Commands ====================

    def is_supervisory_control_enabled(self) -> bool:
        return self.supervisory_enabled

    def enable_supervisory_control(self, enabled: bool, completion: Optional[Completion] = None):
        def apply():
            self.supervisory_enabled = enabled
            if not enabled:
                self.last_command = None
        self._complete("enable_supervisory_control" if enabled else "disable_supervisory_control",
                       completion, apply)

    def send_control_command(self, command: ControlCommand):
        if not self.connected:
            return
        self.last_command = command.copy()
        self.commands_sent += 1

    def takeoff(self, completion: Optional[Completion] = None):
        def lifted():
            self.state.flying = True
            self.state.altitude = max(self.state.altitude, self.takeoff_altitude_m)
            self._notify_status()
        self._complete("takeoff", completion, lifted, self.takeoff_duration_s)

    def go_home(self, completion: Optional[Completion] = None):
        def returning():
            self.state.going_home = True
            self._notify_status()
        self._complete("go_home", completion, returning)

    def land(self, completion: Optional[Completion] = None):
        def touchdown():
            self.state.flying = False
            self.state.landing = False
            self.state.altitude = 0.0
            self._notify_status()

        def landing():
            self.state.landing = True
            self._notify_status()
            self.run_loop.call_later(self.land_duration_s, touchdown)

        self._complete("land", completion, landing)

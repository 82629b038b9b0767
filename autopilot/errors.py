"""
Autopilot errors

Errors are returned by value or passed to completion callbacks.
Nothing in the control loop raises them across a tick.
"""

from typing import List, Optional


class AutopilotError(Exception):
    """Base class for autopilot errors"""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__

    def __eq__(self, other):
        if not isinstance(other, AutopilotError):
            return NotImplemented
        return type(self) is type(other) and self.code == other.code and self.message == other.message

    def __hash__(self):
        return hash((type(self), self.code, self.message))


class ValidationError(AutopilotError):
    """Mission is malformed"""

    def __init__(self, errors: List[str]):
        super().__init__(f"Mission validation failed: {'; '.join(errors)}", "InvalidMission")
        self.errors = list(errors)


class PreconditionError(AutopilotError):
    """Vehicle is not in a state that allows starting"""

    GPS_SIGNAL_WEAK = "GPSSignalWeak"
    AIRCRAFT_LANDING = "AircraftLanding"
    AIRCRAFT_GOING_HOME = "AircraftGoingHome"
    SUPERVISORY_CONTROL_DISABLED = "SupervisoryControlDisabled"

    def __init__(self, code: str, message: Optional[str] = None):
        super().__init__(message or code, code)


class StateError(AutopilotError):
    """Operation not allowed in the current execution state"""

    def __init__(self, operation: str, state):
        super().__init__(f"Cannot {operation} in state {state.name}", "InvalidState")
        self.operation = operation
        self.state = state


class DeviceCommandError(AutopilotError):
    """A vehicle or payload command failed"""

    def __init__(self, command: str, reason: str = ""):
        message = f"{command} failed" + (f": {reason}" if reason else "")
        super().__init__(message, "DeviceCommandFailed")
        self.command = command
        self.reason = reason


class ConnectivityError(AutopilotError):
    """Telemetry link is down"""

    def __init__(self, message: str = "Vehicle disconnected"):
        super().__init__(message, "Disconnected")

"""
Flight modules

Vehicle interfaces, the execution state machine and start checks.
The Autopilot itself lives in autopilot.flight.autopilot.
"""

from .state_machine import ExecutionState, ExecutionStateMachine
from .vehicle import (
    CameraMode,
    Completion,
    ControlCommand,
    FlightStatus,
    GPSSignalLevel,
    Payload,
    Vehicle,
)
from .preflight_checks import PreflightChecker, PreflightResult

__all__ = [
    'ExecutionState',
    'ExecutionStateMachine',
    'CameraMode',
    'Completion',
    'ControlCommand',
    'FlightStatus',
    'GPSSignalLevel',
    'Payload',
    'Vehicle',
    'PreflightChecker',
    'PreflightResult',
]

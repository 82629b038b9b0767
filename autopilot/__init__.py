"""
Autopilot - waypoint following under supervisory control

Converts a declarative mission into per-tick velocity commands,
sequences waypoint actions and handles curved corners and orbits.
"""

__version__ = "0.1.0"

from .config import Config, get_config, set_config
from .errors import (
    AutopilotError,
    ConnectivityError,
    DeviceCommandError,
    PreconditionError,
    StateError,
    ValidationError,
)
from .flight.autopilot import Autopilot
from .flight.state_machine import ExecutionState
from .control.mission_run import ExecutionProgress
from .control.runloop import RunLoop
from .mission.models import Mission, Waypoint

__all__ = [
    'Config', 'get_config', 'set_config',
    'AutopilotError', 'ConnectivityError', 'DeviceCommandError',
    'PreconditionError', 'StateError', 'ValidationError',
    'Autopilot', 'ExecutionState', 'ExecutionProgress', 'RunLoop',
    'Mission', 'Waypoint',
]

"""
Control loop and run loop
"""

from .runloop import Handle, PeriodicTimer, RunLoop
from .loop import ControlLoop, TickPhase
from .mission_run import ExecutionProgress, MissionRun

__all__ = [
    'Handle',
    'PeriodicTimer',
    'RunLoop',
    'ControlLoop',
    'TickPhase',
    'ExecutionProgress',
    'MissionRun',
]

"""
Mission module

Mission models and the per-waypoint action sequencer.
"""

from ..errors import ValidationError
from .models import (
    Action,
    ActionType,
    FinishedAction,
    FlightPathMode,
    HeadingMode,
    HotpointHeading,
    Mission,
    RotateGimbalAction,
    RotateVehicleAction,
    ShootPhotoAction,
    StartRecordAction,
    StopRecordAction,
    TurnMode,
    WaitAction,
    Waypoint,
    action_from_dict,
)
from .actions import ActionSequencer, ActionState

__all__ = [
    'ValidationError',
    'Action',
    'ActionType',
    'FinishedAction',
    'FlightPathMode',
    'HeadingMode',
    'HotpointHeading',
    'Mission',
    'RotateGimbalAction',
    'RotateVehicleAction',
    'ShootPhotoAction',
    'StartRecordAction',
    'StopRecordAction',
    'TurnMode',
    'WaitAction',
    'Waypoint',
    'action_from_dict',
    'ActionSequencer',
    'ActionState',
]

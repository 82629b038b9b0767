"""
Navigation modules
"""

from .context import HeadingPlan, NavigationContext, build_context
from .curve_turn import CurveTurn, CurveTurnPlanner, CurveTurnTracker, arc_geometry
from .hotpoint import HotpointController, axis_mapping, is_target_angle_reached
from .navigator import NavigationEngine, SpeedControl

__all__ = [
    'HeadingPlan', 'NavigationContext', 'build_context',
    'CurveTurn', 'CurveTurnPlanner', 'CurveTurnTracker', 'arc_geometry',
    'HotpointController', 'axis_mapping', 'is_target_angle_reached',
    'NavigationEngine', 'SpeedControl',
]

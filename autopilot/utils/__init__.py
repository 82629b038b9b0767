"""
Utility modules
"""

from .geo import Coordinate, bearing_between, distance_between, headings_match
from .logger import setup_logging, CommandLogger

__all__ = ['Coordinate', 'bearing_between', 'distance_between', 'headings_match',
           'setup_logging', 'CommandLogger']

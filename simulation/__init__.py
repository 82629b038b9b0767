"""
Autopilot - Simulation Module

Kinematic vehicle and payload models that implement the autopilot's
device interfaces on a manual-clock run loop, so missions can be flown
faster than real time.
"""

__version__ = "0.1.0"

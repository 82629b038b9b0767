"""Simulated vehicle and payload for running the autopilot without hardware"""
from .sim_vehicle import SimDevice, SimVehicle, SimulatedState
from .sim_payload import SimPayload

__all__ = ["SimDevice", "SimVehicle", "SimulatedState", "SimPayload"]

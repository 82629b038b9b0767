"""
Pytest configuration and fixtures
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from autopilot.config import Config
from autopilot.control.runloop import RunLoop
from autopilot.flight.autopilot import Autopilot
from autopilot.flight.state_machine import ExecutionState
from autopilot.mission.models import Mission, Waypoint
from autopilot.utils.geo import Coordinate, from_local
from simulation.adapters import SimPayload, SimVehicle

ORIGIN = Coordinate(48.8566, 2.3522)


@pytest.fixture
def origin():
    """Local frame origin used by every simulated scenario"""
    return ORIGIN


@pytest.fixture
def offset():
    """Coordinate `north`/`east` meters away from the origin"""
    def _offset(north: float, east: float = 0.0) -> Coordinate:
        return from_local(east, north, ORIGIN)
    return _offset


@pytest.fixture
def make_waypoint(offset):
    """Waypoint factory in local meters"""
    def _make(north: float, east: float = 0.0, altitude: float = 10.0, **kwargs) -> Waypoint:
        point = offset(north, east)
        return Waypoint(latitude=point.latitude, longitude=point.longitude,
                        altitude=altitude, **kwargs)
    return _make


@pytest.fixture
def make_mission(make_waypoint):
    """Three-waypoint L-shaped mission: origin, 10 m north, then 10 m east"""
    def _make(waypoints=None, **kwargs) -> Mission:
        if waypoints is None:
            waypoints = [
                make_waypoint(0, 0),
                make_waypoint(10, 0),
                make_waypoint(10, 10),
            ]
        kwargs.setdefault("name", "Test Mission")
        kwargs.setdefault("auto_flight_speed", 5.0)
        return Mission(waypoints=waypoints, **kwargs)
    return _make


@pytest.fixture
def run_loop():
    """Run loop on a manual clock"""
    return RunLoop(realtime=False)


@pytest.fixture
def config():
    """Default configuration, independent of config/default.yaml"""
    return Config()


@pytest.fixture
def vehicle(run_loop):
    """Simulated vehicle hovering at the origin, 10 m up"""
    sim = SimVehicle(run_loop, origin=ORIGIN)
    sim.place(ORIGIN, altitude=10.0, flying=True)
    return sim


@pytest.fixture
def payload(run_loop):
    return SimPayload(run_loop)


@pytest.fixture
def autopilot(vehicle, payload, run_loop, config):
    return Autopilot(vehicle, payload, run_loop, config)


@pytest.fixture
def launch(autopilot, run_loop):
    """Load, upload and start a mission; returns the start() result"""
    def _launch(mission: Mission):
        assert autopilot.load(mission) is None
        assert autopilot.upload() is None
        assert run_loop.run_until(lambda: autopilot.state == ExecutionState.READY_TO_EXECUTE, 1.0)
        return autopilot.start()
    return _launch

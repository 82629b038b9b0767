"""
Tests for the simulation entry point
"""

from pathlib import Path

import pytest

from autopilot.config import Config
from autopilot.errors import ValidationError
from autopilot.main import load_mission_file, main, run_simulation

MISSIONS = Path(__file__).parent.parent / "config" / "missions"


class TestMissionFiles:

    @pytest.mark.parametrize("name", ["survey.yaml", "curved_route.json", "orbit.json"])
    def test_sample_missions_are_valid(self, name):
        mission = load_mission_file(str(MISSIONS / name))
        assert mission.validate(Config().limits) == []

    def test_orbit_sample(self):
        assert load_mission_file(str(MISSIONS / "orbit.json")).is_orbit

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValidationError):
            load_mission_file(str(path))


class TestRunSimulation:

    def test_airborne_mission_completes(self, make_mission, config):
        assert run_simulation(make_mission(), config, airborne=True, timeout=120.0)

    def test_takeoff_mission_completes(self, make_mission, config):
        assert run_simulation(make_mission(), config, timeout=120.0)

    def test_timeout_reports_failure(self, make_mission, config):
        assert not run_simulation(make_mission(), config, airborne=True, timeout=1.0)

    def test_empty_mission_is_rejected(self, make_mission, config):
        assert not run_simulation(make_mission(waypoints=[]), config, timeout=1.0)


class TestMain:

    def test_missing_mission_file(self, tmp_path):
        assert main([str(tmp_path / "missing.yaml")]) == 1

    def test_invalid_mission_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"waypoints": [{"longitude": 2.0}]}')
        assert main([str(path)]) == 1

    def test_mission_without_waypoints(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("name: Empty\nwaypoints: []\n")
        assert main([str(path)]) == 1

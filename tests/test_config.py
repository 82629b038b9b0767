"""
Tests for configuration loading
"""

import os

import pytest
import yaml

from autopilot.config import Config, get_config, set_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("AUTOPILOT_"):
            monkeypatch.delenv(key)


class TestConfig:

    def test_defaults(self):
        config = Config()
        assert config.control.tick_rate_hz == 40.0
        assert config.navigation.arrival_distance_m == 0.5
        assert config.hotpoint.first_pass_angle_deg == 4.0
        assert "Mavic Air 2" in config.vehicle.supported_models

    def test_default_file_matches_defaults(self):
        loaded = Config.load()
        assert loaded == Config()

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({
            "navigation": {"arrival_distance_m": 0.8, "unknown_key": 1},
            "unknown_section": {"x": 1},
            "vehicle": {"support_all_models": True},
        }))

        config = Config.load(str(path))

        assert config.navigation.arrival_distance_m == 0.8
        assert config.vehicle.support_all_models is True
        assert not hasattr(config.navigation, "unknown_key")
        assert config.curve.turning_speed_factor == 0.3

    def test_missing_file_uses_defaults(self, tmp_path):
        assert Config.load(str(tmp_path / "missing.yaml")) == Config()

    def test_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AUTOPILOT_NAVIGATION_ARRIVAL_DISTANCE_M", "0.75")
        monkeypatch.setenv("AUTOPILOT_LIMITS_MAX_WAYPOINTS", "50")
        monkeypatch.setenv("AUTOPILOT_VEHICLE_SUPPORT_ALL_MODELS", "yes")
        monkeypatch.setenv("AUTOPILOT_VEHICLE_SUPPORTED_MODELS", "Mavic Air 2, Mini 3")
        monkeypatch.setenv("AUTOPILOT_LOGGING_LOG_LEVEL", "DEBUG")

        config = Config.load(str(tmp_path / "missing.yaml"))

        assert config.navigation.arrival_distance_m == 0.75
        assert config.limits.max_waypoints == 50
        assert config.vehicle.support_all_models is True
        assert config.vehicle.supported_models == ["Mavic Air 2", "Mini 3"]
        assert config.logging.log_level == "DEBUG"

    def test_env_beats_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"control": {"tick_rate_hz": 20.0}}))
        monkeypatch.setenv("AUTOPILOT_CONTROL_TICK_RATE_HZ", "50")

        assert Config.load(str(path)).control.tick_rate_hz == 50.0

    def test_save_round_trip(self, tmp_path):
        config = Config()
        config.action.settle_delay_s = 0.25
        config.vehicle.supported_models = ["Only One"]
        path = tmp_path / "saved.yaml"

        config.save(str(path))

        assert Config.load(str(path)) == config

    def test_global_config(self):
        config = Config()
        config.control.tick_rate_hz = 10.0
        set_config(config)
        try:
            assert get_config() is config
        finally:
            set_config(None)

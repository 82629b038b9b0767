"""
Configuration management for the Autopilot

All parameters are configurable and can be overridden via:
1. config/default.yaml
2. Environment variables (prefixed with AUTOPILOT_)
3. Command line arguments
"""

import os
import yaml
from dataclasses import dataclass, field
from typing import List, Optional
from pathlib import Path


@dataclass
class ControlLoopConfig:
    """Control loop timing"""
    tick_rate_hz: float = 40.0          # One phase per tick, full cycle = 4 ticks


@dataclass
class NavigationConfig:
    """Navigation engine parameters"""

    # Arrival / speed envelope
    arrival_distance_m: float = 0.5     # Speed is zero below this
    min_approach_speed_ms: float = 1.0
    decel_factor: float = 2.0
    fast_decel_factor: float = 2.5      # Used above fast_speed_threshold
    fast_speed_threshold_ms: float = 10.0

    # Track correction
    max_track_speed_ms: float = 5.0     # Cross-track correction clamp

    # Tolerances
    heading_tolerance_deg: float = 1.0
    altitude_tolerance_m: float = 1.0

    # Heading holds near the waypoint
    target_heading_hold_m: float = 1.0
    course_hold_m: float = 2.0
    poi_min_distance_m: float = 5.0     # Closer than this, POI bearing is taken from the target


@dataclass
class CurveTurnConfig:
    """Rounded corner parameters"""
    min_corner_radius_m: float = 0.2
    turning_speed_factor: float = 0.3   # Turning speed = radius * factor
    small_turn_deg: float = 5.0         # Half-sweep below this skips extra decel distance


@dataclass
class HotpointConfig:
    """Point of interest orbit parameters"""
    first_pass_distance_m: float = 2.0
    first_pass_angle_deg: float = 4.0


@dataclass
class ActionConfig:
    """Waypoint action sequencing"""
    settle_delay_s: float = 0.0         # Extra wait after heading/gimbal reached
    photo_retry_delay_s: float = 0.2
    gimbal_tolerance_deg: float = 0.5
    photo_distance_margin_m: float = 0.5


@dataclass
class MissionLimitsConfig:
    """Mission validation bounds"""
    min_waypoints: int = 2
    max_waypoints: int = 99
    max_speed_ms: float = 15.0
    min_spacing_m: float = 0.5
    max_spacing_m: float = 2000.0
    max_actions: int = 15
    min_altitude_m: float = -200.0
    max_altitude_m: float = 500.0
    max_corner_radius_m: float = 1000.0
    max_wait_ms: int = 32767


@dataclass
class VehicleConfig:
    """Vehicle gating"""
    home_point_gps_level: int = 4       # GPS level required to record home point
    support_all_models: bool = False
    supported_models: List[str] = field(default_factory=lambda: [
        "Mavic Air 2",
        "Mavic Mini",
        "DJI Mini 2",
        "DJI Mini SE",
        "DJI Air 2S",
    ])


@dataclass
class LoggingConfig:
    """Logging configuration"""
    log_level: str = "INFO"
    log_file: str = ""
    command_log_dir: str = ""           # Empty disables the CSV command log


@dataclass
class Config:
    """Main configuration container"""

    control: ControlLoopConfig = field(default_factory=ControlLoopConfig)
    navigation: NavigationConfig = field(default_factory=NavigationConfig)
    curve: CurveTurnConfig = field(default_factory=CurveTurnConfig)
    hotpoint: HotpointConfig = field(default_factory=HotpointConfig)
    action: ActionConfig = field(default_factory=ActionConfig)
    limits: MissionLimitsConfig = field(default_factory=MissionLimitsConfig)
    vehicle: VehicleConfig = field(default_factory=VehicleConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    SECTIONS = ('control', 'navigation', 'curve', 'hotpoint',
                'action', 'limits', 'vehicle', 'logging')

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """Load configuration from YAML file and environment"""
        config = cls()

        # Load from file if exists
        if config_path is None:
            config_path = Path(__file__).parent.parent / "config" / "default.yaml"

        if Path(config_path).exists():
            with open(config_path, 'r') as f:
                yaml_config = yaml.safe_load(f)
                if yaml_config:
                    config._update_from_dict(yaml_config)

        # Override from environment variables
        config._update_from_env()

        return config

    def _update_from_dict(self, d: dict):
        """Update config from dictionary (e.g., YAML)"""
        for section_name, section_data in d.items():
            if section_name in self.SECTIONS and isinstance(section_data, dict):
                section = getattr(self, section_name)
                for key, value in section_data.items():
                    if hasattr(section, key):
                        setattr(section, key, value)

    def _update_from_env(self):
        """Override config from environment variables"""
        prefix = "AUTOPILOT_"
        for key, value in os.environ.items():
            if key.startswith(prefix):
                # Parse AUTOPILOT_SECTION_KEY format
                parts = key[len(prefix):].lower().split("_", 1)
                if len(parts) == 2:
                    section_name, param_name = parts
                    if section_name in self.SECTIONS:
                        section = getattr(self, section_name)
                        if hasattr(section, param_name):
                            # Type conversion
                            current_value = getattr(section, param_name)
                            if isinstance(current_value, bool):
                                setattr(section, param_name, value.lower() in ('true', '1', 'yes'))
                            elif isinstance(current_value, int):
                                setattr(section, param_name, int(value))
                            elif isinstance(current_value, float):
                                setattr(section, param_name, float(value))
                            elif isinstance(current_value, list):
                                setattr(section, param_name, [v.strip() for v in value.split(",") if v.strip()])
                            else:
                                setattr(section, param_name, value)

    def save(self, config_path: str):
        """Save current configuration to YAML file"""
        data = {}
        for section_name in self.SECTIONS:
            section = getattr(self, section_name)
            data[section_name] = {k: v for k, v in section.__dict__.items()}

        with open(config_path, 'w') as f:
            yaml.dump(data, f, default_flow_style=False)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance"""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config):
    """Set the global configuration instance"""
    global _config
    _config = config

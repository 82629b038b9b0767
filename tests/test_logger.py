"""
Tests for logging setup and the CSV command log
"""

import logging

import pytest

from autopilot.utils.logger import CommandLogger, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:

    def test_level_by_name(self, restore_root_logger):
        setup_logging("debug")
        assert restore_root_logger.level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        setup_logging("chatty")
        assert restore_root_logger.level == logging.INFO

    def test_log_file(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "logs" / "autopilot.log"
        setup_logging(logging.INFO, log_file=str(log_file))

        logging.getLogger("autopilot.test").info("hello from the test")
        for handler in restore_root_logger.handlers:
            handler.flush()

        assert "hello from the test" in log_file.read_text()


class TestCommandLogger:

    def test_not_logging_until_started(self, tmp_path):
        command_log = CommandLogger(tmp_path)
        assert not command_log.is_logging
        # Ignored without an open file
        command_log.log(1, "EXECUTING", 0, "IDLE", 0, 0, 0, 0, 0, 0, 0, 0)

    def test_rows(self, tmp_path):
        command_log = CommandLogger(tmp_path / "commands")
        path = command_log.start("Field Survey #2")

        assert path.name.endswith("_Field_Survey__2.csv")
        assert command_log.is_logging

        command_log.log(tick=1, state="EXECUTING", waypoint_index=0, action_state="IDLE",
                        lat=48.8566, lon=2.3522, alt=10.0, heading=90.0,
                        roll=5.0, pitch=-0.25, yaw=90.0, vertical=10.0)
        command_log.log(tick=2, state="EXECUTING", waypoint_index=1, action_state="READY",
                        lat=48.8567, lon=2.3522, alt=10.0, heading=90.0,
                        roll=0.0, pitch=0.0, yaw=90.0, vertical=10.0)
        command_log.stop()

        assert not command_log.is_logging
        lines = path.read_text().splitlines()
        assert lines[0] == "# Mission: Field Survey #2"
        assert lines[2].split(",") == CommandLogger.COLUMNS

        first = dict(zip(CommandLogger.COLUMNS, lines[3].split(",")))
        assert first["tick"] == "1"
        assert first["waypoint_index"] == "0"
        assert first["lat"] == "48.8566000"
        assert first["roll_cmd"] == "5.000"
        assert first["pitch_cmd"] == "-0.250"

        assert lines[4].split(",")[4] == "READY"
        assert lines[-1] == "# Total rows: 2"

    def test_restart_closes_previous(self, tmp_path):
        command_log = CommandLogger(tmp_path)
        first = command_log.start()
        second = command_log.start("next")

        assert first.read_text().splitlines()[-1] == "# Total rows: 0"
        assert second != first
        command_log.stop()

"""
Logging configuration
"""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Union


def setup_logging(level: Union[int, str] = logging.INFO,
                  log_file: Optional[str] = None,
                  log_format: Optional[str] = None):
    """
    Setup logging configuration

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR) or its name
        log_file: Optional path to log file
        log_format: Optional custom format string
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if log_format is None:
        log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    formatter = logging.Formatter(log_format, datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


class CommandLogger:
    """
    Control command logger for post-flight analysis.

    Writes one CSV row per flushed control command:
    - Execution and action state, waypoint index
    - Vehicle position, altitude and heading
    - The four command axes
    """

    COLUMNS = [
        "time_s", "tick", "state", "waypoint_index", "action_state",
        "lat", "lon", "alt", "heading",
        "roll_cmd", "pitch_cmd", "yaw_cmd", "vertical_cmd",
    ]

    def __init__(self, log_dir: Union[str, Path]):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file: Optional[Path] = None
        self._file = None
        self._start_time: float = 0.0
        self._rows: int = 0

    @property
    def is_logging(self) -> bool:
        return self._file is not None

    def start(self, mission_name: Optional[str] = None) -> Path:
        """
        Start a new command log.

        Args:
            mission_name: Optional mission name for the filename

        Returns:
            Path to the log file
        """
        if self._file is not None:
            self.stop()

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        if mission_name:
            safe_name = "".join(c if c.isalnum() or c in "-_" else "_" for c in mission_name)
            filename = f"commands_{timestamp}_{safe_name}.csv"
        else:
            filename = f"commands_{timestamp}.csv"

        self.log_file = self.log_dir / filename
        self._file = open(self.log_file, 'w', buffering=1)  # Line buffering
        self._start_time = time.time()
        self._rows = 0

        self._file.write(f"# Mission: {mission_name or 'None'}\n")
        self._file.write(f"# Started: {datetime.now().isoformat()}\n")
        self._file.write(",".join(self.COLUMNS) + "\n")

        logging.getLogger(__name__).info(f"Command log started: {self.log_file}")
        return self.log_file

    def log(self, tick: int, state: str, waypoint_index: int, action_state: str,
            lat: float, lon: float, alt: float, heading: float,
            roll: float, pitch: float, yaw: float, vertical: float):
        """Log one flushed command."""
        if self._file is None:
            return

        self._rows += 1
        values = [
            f"{time.time() - self._start_time:.3f}",
            str(tick),
            state,
            str(waypoint_index),
            action_state,
            f"{lat:.7f}",
            f"{lon:.7f}",
            f"{alt:.2f}",
            f"{heading:.2f}",
            f"{roll:.3f}",
            f"{pitch:.3f}",
            f"{yaw:.2f}",
            f"{vertical:.2f}",
        ]
        self._file.write(",".join(values) + "\n")

    def stop(self):
        """Stop logging and close file."""
        if self._file:
            self._file.write(f"# Ended: {datetime.now().isoformat()}\n")
            self._file.write(f"# Total rows: {self._rows}\n")
            self._file.close()
            self._file = None
            logging.getLogger(__name__).info(f"Command log stopped: {self._rows} rows")

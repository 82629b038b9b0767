#!/usr/bin/env python3
"""
Autopilot - Simulation Entry Point

Flies a mission file against the simulated vehicle and payload.

Usage:
    autopilot-sim config/missions/survey.yaml [options]
"""

import argparse
import json
import signal
import sys
import logging
from pathlib import Path

import yaml

from .config import Config, set_config
from .control.runloop import RunLoop
from .errors import ValidationError
from .flight.autopilot import Autopilot
from .flight.state_machine import ExecutionState
from .mission.models import Mission
from .utils.logger import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Autopilot - fly a mission in simulation"
    )

    parser.add_argument(
        "mission",
        type=str,
        help="Mission file (JSON or YAML)"
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to configuration file (YAML)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Log file path"
    )

    parser.add_argument(
        "--command-log",
        type=str,
        default=None,
        help="Directory for the CSV command log"
    )

    parser.add_argument(
        "--realtime",
        action="store_true",
        help="Run on the wall clock instead of simulated time"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=1800.0,
        help="Give up after this many (simulated) seconds (default: 1800)"
    )

    parser.add_argument(
        "--airborne",
        action="store_true",
        help="Start hovering at the first waypoint's altitude instead of on the ground"
    )

    return parser.parse_args(argv)


def load_mission_file(path: str) -> Mission:
    """
    Read a mission from JSON or YAML

    Raises:
        ValidationError: If the mission is malformed
    """
    text = Path(path).read_text(encoding="utf-8")
    if path.endswith(".json"):
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValidationError([f"{path}: expected a mapping at the top level"])
    return Mission.from_dict(data)


def run_simulation(mission: Mission, config: Config, realtime: bool = False,
                   timeout: float = 1800.0, airborne: bool = False) -> bool:
    """
    Fly one mission in simulation

    Returns:
        True if the mission ran to completion
    """
    from simulation.adapters import SimPayload, SimVehicle

    errors = mission.validate(config.limits)
    if errors:
        logger.error(f"Load failed: {ValidationError(errors)}")
        return False

    run_loop = RunLoop(realtime=realtime)
    origin = mission.waypoints[0].coordinate
    vehicle = SimVehicle(run_loop, origin=origin)
    payload = SimPayload(run_loop)
    if airborne:
        vehicle.place(origin, altitude=mission.waypoints[0].altitude, flying=True)

    autopilot = Autopilot(vehicle, payload, run_loop, config)
    outcome = {"started": False, "done": False, "failed": False, "reached": 0}

    def on_state(old: ExecutionState, new: ExecutionState):
        if new == ExecutionState.EXECUTING:
            outcome["started"] = True
        elif outcome["started"] and new == ExecutionState.READY_TO_UPLOAD:
            outcome["done"] = True
            run_loop.stop()

    def on_progress(progress):
        if progress.reached:
            outcome["reached"] += 1

    autopilot.add_state_listener(on_state)
    autopilot.add_progress_listener(on_progress)

    error = autopilot.load(mission)
    if error is not None:
        logger.error(f"Load failed: {error}")
        return False

    def fail():
        outcome["failed"] = True
        run_loop.stop()

    def on_uploaded(upload_error=None):
        if upload_error is not None:
            logger.error(f"Upload failed: {upload_error}")
            fail()
            return
        start_error = autopilot.start(on_started)
        if start_error is not None:
            logger.error(f"Start failed: {start_error}")
            fail()

    def on_started(start_error=None):
        if start_error is not None:
            logger.error(f"Start failed: {start_error}")
            fail()

    run_loop.call_soon(autopilot.upload, on_uploaded)

    if realtime:
        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, stopping mission...")
            run_loop.call_soon_threadsafe(autopilot.stop)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)
        run_loop.call_later(timeout, run_loop.stop)
        run_loop.run_forever()
    else:
        run_loop.run_until(lambda: outcome["done"] or outcome["failed"], timeout)

    if not outcome["done"]:
        logger.error(f"Mission did not complete, state {autopilot.state.name}")
        autopilot.stop()

    logger.info(f"Waypoints reached: {outcome['reached']}, photos: {len(payload.photos)}, "
                f"final state: {autopilot.state.name}")
    vehicle.shutdown()
    payload.shutdown()
    return outcome["done"]


def main(argv=None) -> int:
    """Main entry point"""
    args = parse_args(argv)

    config = Config.load(args.config)
    if args.command_log:
        config.logging.command_log_dir = args.command_log
    set_config(config)

    level = logging.DEBUG if args.verbose else config.logging.log_level
    setup_logging(level=level, log_file=args.log_file or config.logging.log_file or None)
    logger.info("Autopilot simulation starting...")

    try:
        mission = load_mission_file(args.mission)
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        logger.error(f"Cannot read mission {args.mission}: {e}")
        return 1
    except ValidationError as e:
        logger.error(str(e))
        return 1

    completed = run_simulation(mission, config, realtime=args.realtime,
                               timeout=args.timeout, airborne=args.airborne)
    return 0 if completed else 1


if __name__ == "__main__":
    sys.exit(main())

"""
Control Loop

Fixed-rate phase scheduler. Each tick runs exactly one phase and the
phases rotate, so one full control cycle spans four ticks:

    SEND_COMMAND      flush the command computed in the last cycle
    PUBLISH_PROGRESS  publish progress / periodic checks
    CONTROL_HEADING   compute the yaw axis
    CONTROL_MOTION    compute speed and vertical axes, or step actions

A failing phase is logged and never blocks the next tick.
"""

import logging
from enum import Enum
from typing import Callable, Dict, Optional

from .runloop import PeriodicTimer, RunLoop

logger = logging.getLogger(__name__)


class TickPhase(Enum):
    """Phase run on a tick"""
    SEND_COMMAND = 0
    PUBLISH_PROGRESS = 1
    CONTROL_HEADING = 2
    CONTROL_MOTION = 3

    def next(self) -> 'TickPhase':
        return _PHASE_ORDER[(self.value + 1) % len(_PHASE_ORDER)]


_PHASE_ORDER = list(TickPhase)

PhaseHandlers = Dict[TickPhase, Callable[[], None]]


class ControlLoop:
    """
    Round-robin phase scheduler on a periodic timer

    Pausing suspends the timer without touching the phase cursor, so a
    resumed loop continues with the phase that was next.
    """

    def __init__(self, run_loop: RunLoop, rate_hz: float = 40.0):
        self.run_loop = run_loop
        self.rate_hz = rate_hz
        self._timer: Optional[PeriodicTimer] = None
        self._handlers: PhaseHandlers = {}
        self._phase = TickPhase.SEND_COMMAND
        self.tick_count = 0

    @property
    def phase(self) -> TickPhase:
        """Phase the next tick will run"""
        return self._phase

    @property
    def is_running(self) -> bool:
        return self._timer is not None and not self._timer.paused

    @property
    def is_paused(self) -> bool:
        return self._timer is not None and self._timer.paused

    def start(self, handlers: PhaseHandlers):
        """Begin ticking with a fresh phase cursor"""
        self.stop()
        self._handlers = dict(handlers)
        self._phase = TickPhase.SEND_COMMAND
        self.tick_count = 0
        self._timer = self.run_loop.schedule_periodic(1.0 / self.rate_hz, self.tick)
        logger.info(f"Control loop started at {self.rate_hz:.0f} Hz")

    def pause(self):
        if self._timer is not None:
            self._timer.paused = True

    def resume(self):
        if self._timer is not None:
            self._timer.paused = False

    def stop(self):
        if self._timer is not None:
            self._timer.invalidate()
            self._timer = None
            logger.info(f"Control loop stopped after {self.tick_count} ticks")
        self._handlers = {}

    def tick(self):
        """Run the current phase and advance the cursor"""
        phase = self._phase
        self._phase = phase.next()
        self.tick_count += 1

        handler = self._handlers.get(phase)
        if handler is None:
            return
        try:
            handler()
        except Exception as e:
            logger.error(f"Control loop error in {phase.name}: {e}")

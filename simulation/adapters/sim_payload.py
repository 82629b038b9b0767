"""
Simulated Payload

Camera and gimbal on the autopilot's run loop. The gimbal slews toward
its target at a fixed rate; captures and mode switches complete after
the device latency.
"""

from typing import List, Optional
import logging

from autopilot.control.runloop import RunLoop
from autopilot.flight.vehicle import CameraMode, Completion, Payload

from .sim_vehicle import SimDevice

logger = logging.getLogger(__name__)


class SimPayload(SimDevice, Payload):
    """Simulated camera and gimbal"""

    def __init__(self, run_loop: RunLoop, latency_s: float = 0.1,
                 gimbal_rate_dps: float = 90.0, update_rate_hz: float = 50.0):
        super().__init__(run_loop, latency_s)
        self.gimbal_rate_dps = gimbal_rate_dps

        self.mode = CameraMode.PHOTO
        self.recording = False
        self.gimbal_pitch = 0.0
        self.gimbal_target = 0.0
        self.photos: List[float] = []   # Capture times

        self._dt = 1.0 / update_rate_hz
        self._timer = run_loop.schedule_periodic(self._dt, self.step)

    def shutdown(self):
        self._timer.invalidate()

    def step(self):
        error = self.gimbal_target - self.gimbal_pitch
        max_step = self.gimbal_rate_dps * self._dt
        self.gimbal_pitch += max(-max_step, min(max_step, error))

    # ==================== Telemetry ====================

    def read_mode(self) -> CameraMode:
        return self.mode

    def is_recording(self) -> bool:
        return self.recording

    def read_gimbal_pitch(self) -> float:
        return self.gimbal_pitch

    # ==================== Commands ====================

    def set_mode(self, mode: CameraMode, completion: Optional[Completion] = None):
        def apply():
            self.mode = mode
        self._complete("set_mode", completion, apply)

    def start_photo(self, completion: Optional[Completion] = None):
        def captured():
            self.photos.append(self.run_loop.time())
            logger.info(f"Photo {len(self.photos)} captured")
        self._complete("start_photo", completion, captured)

    def start_record(self, completion: Optional[Completion] = None):
        def started():
            self.recording = True
        self._complete("start_record", completion, started)

    def stop_record(self, completion: Optional[Completion] = None):
        def stopped():
            self.recording = False
        self._complete("stop_record", completion, stopped)

    def rotate_gimbal(self, pitch: float, completion: Optional[Completion] = None):
        def accepted():
            self.gimbal_target = pitch
        self._complete("rotate_gimbal", completion, accepted)

"""
Tests for the waypoint action sequencer
"""

import pytest

from autopilot.flight.vehicle import CameraMode
from autopilot.mission import (
    Action,
    ActionSequencer,
    ActionState,
    ActionType,
    RotateGimbalAction,
    RotateVehicleAction,
    ShootPhotoAction,
    StartRecordAction,
    StopRecordAction,
    WaitAction,
)


@pytest.fixture
def sequencer(run_loop, payload, config):
    return ActionSequencer(run_loop, payload, config.action)


@pytest.fixture
def transitions(sequencer):
    seen = []
    sequencer.add_listener(lambda old, new: seen.append(new))
    return seen


class CustomPhotoAction(Action):
    """Reports a photo type without being a ShootPhotoAction"""

    @property
    def action_type(self):
        return ActionType.SHOOT_PHOTO


def drive(run_loop, sequencer, payload, heading=0.0, timeout=3.0):
    """Feed heading / gimbal checks like the control loop does until the list finishes"""
    def finished():
        sequencer.check(heading, payload.read_gimbal_pitch())
        return sequencer.state == ActionState.FINISHED
    return run_loop.run_until(finished, timeout)


class TestActionSequencer:

    def test_empty_list(self, sequencer):
        assert not sequencer.start(0, [], lambda heading: None)
        assert sequencer.state == ActionState.IDLE

    def test_runs_in_order(self, run_loop, sequencer, payload):
        held = []
        actions = [RotateVehicleAction(heading=90), WaitAction(milliseconds=1000), ShootPhotoAction()]

        assert sequencer.start(1, actions, held.append)
        assert sequencer.state == ActionState.EXECUTING
        assert held == [90]

        # Heading not there yet
        sequencer.check(45.0, 0.0)
        run_loop.advance(0.5)
        assert sequencer.action_index == 0

        sequencer.check(90.0, 0.0)
        run_loop.advance(0)
        assert sequencer.action_index == 1

        run_loop.advance(0.99)
        assert sequencer.action_index == 1
        assert payload.photos == []

        run_loop.advance(0.02)
        assert sequencer.action_index == 2

        run_loop.advance(0.2)
        assert len(payload.photos) == 1
        assert sequencer.state == ActionState.FINISHED

    def test_rotate_accepts_wrapped_heading(self, run_loop, sequencer):
        sequencer.start(0, [RotateVehicleAction(heading=270)], lambda heading: None)

        sequencer.check(-90.0, 0.0)
        run_loop.advance(0)

        assert sequencer.state == ActionState.FINISHED

    def test_photo_retried_once(self, run_loop, sequencer, payload):
        payload.fail_next("start_photo")
        sequencer.start(0, [ShootPhotoAction()], lambda heading: None)

        run_loop.advance(1.0)

        assert payload.called("start_photo") == 2
        assert len(payload.photos) == 1
        assert sequencer.state == ActionState.FINISHED

    def test_photo_failing_twice_moves_on(self, run_loop, sequencer, payload):
        payload.fail_next("start_photo", count=2)
        sequencer.start(0, [ShootPhotoAction(), WaitAction(milliseconds=100)], lambda heading: None)

        run_loop.advance(1.0)

        assert payload.called("start_photo") == 2
        assert payload.photos == []
        assert sequencer.state == ActionState.FINISHED

    def test_mode_switch_failure_aborts(self, run_loop, sequencer, payload):
        payload.fail_next("set_mode")
        sequencer.start(0, [StartRecordAction(), ShootPhotoAction()], lambda heading: None)

        run_loop.advance(1.0)

        assert sequencer.state == ActionState.FINISHED
        assert payload.called("start_record") == 0
        assert payload.called("start_photo") == 0

    def test_record(self, run_loop, sequencer, payload):
        actions = [StartRecordAction(), WaitAction(milliseconds=100), StopRecordAction()]
        sequencer.start(0, actions, lambda heading: None)

        run_loop.advance(0.25)
        assert payload.mode == CameraMode.VIDEO
        assert payload.recording

        run_loop.advance(1.0)
        assert not payload.recording
        assert payload.called("set_mode") == 1
        assert sequencer.state == ActionState.FINISHED

    def test_photo_switches_back_to_photo_mode(self, run_loop, sequencer, payload):
        payload.mode = CameraMode.VIDEO
        sequencer.start(0, [ShootPhotoAction()], lambda heading: None)

        run_loop.advance(1.0)

        assert payload.mode == CameraMode.PHOTO
        assert len(payload.photos) == 1

    def test_gimbal(self, run_loop, sequencer, payload):
        sequencer.start(0, [RotateGimbalAction(pitch=-45)], lambda heading: None)

        assert drive(run_loop, sequencer, payload)
        assert payload.read_gimbal_pitch() == pytest.approx(-45.0, abs=0.5)

    def test_gimbal_failure_continues(self, run_loop, sequencer, payload):
        payload.fail_next("rotate_gimbal")
        sequencer.start(0, [RotateGimbalAction(pitch=-45), ShootPhotoAction()], lambda heading: None)

        assert drive(run_loop, sequencer, payload)
        assert payload.read_gimbal_pitch() == 0.0
        assert len(payload.photos) == 1

    def test_reset_ignores_late_completion(self, run_loop, sequencer, transitions):
        sequencer.start(0, [ShootPhotoAction(), WaitAction(milliseconds=500)], lambda heading: None)
        sequencer.reset()

        run_loop.advance(2.0)

        assert sequencer.state == ActionState.IDLE
        assert transitions == [ActionState.EXECUTING, ActionState.IDLE]

    def test_restart_supersedes_previous_list(self, run_loop, sequencer, payload):
        sequencer.start(0, [WaitAction(milliseconds=500), ShootPhotoAction()], lambda heading: None)
        sequencer.start(1, [WaitAction(milliseconds=100)], lambda heading: None)

        run_loop.advance(2.0)

        assert sequencer.state == ActionState.FINISHED
        assert payload.photos == []

    def test_unknown_action_class_is_skipped(self, run_loop, sequencer, payload):
        sequencer.start(0, [CustomPhotoAction(), WaitAction(milliseconds=100)], lambda heading: None)

        run_loop.advance(0.5)

        assert payload.called("start_photo") == 0
        assert sequencer.state == ActionState.FINISHED

    def test_check_ignored_when_idle(self, sequencer, transitions):
        sequencer.check(0.0, 0.0)
        assert transitions == []


class TestStandalonePhoto:

    def test_shoot_photo(self, run_loop, sequencer, payload):
        sequencer.shoot_photo()
        run_loop.advance(0.5)

        assert len(payload.photos) == 1
        assert sequencer.state == ActionState.IDLE

    def test_survives_action_list_changes(self, run_loop, sequencer, payload):
        payload.fail_next("start_photo")
        sequencer.shoot_photo()
        sequencer.start(0, [WaitAction(milliseconds=100)], lambda heading: None)

        run_loop.advance(1.0)

        assert payload.called("start_photo") == 2
        assert len(payload.photos) == 1

    def test_reset_drops_retry(self, run_loop, sequencer, payload):
        payload.fail_next("start_photo")
        sequencer.shoot_photo()
        sequencer.reset()

        run_loop.advance(1.0)

        assert payload.called("start_photo") == 1
        assert payload.photos == []

"""
Tests for the run loop and the phase-rotating control loop
"""

import pytest

from autopilot.control import ControlLoop, RunLoop, TickPhase


@pytest.fixture
def loop():
    return RunLoop(realtime=False)


class TestRunLoop:

    def test_callbacks_run_in_time_order(self, loop):
        order = []
        loop.call_later(0.3, order.append, "c")
        loop.call_later(0.1, order.append, "a")
        loop.call_later(0.2, order.append, "b")

        loop.advance(0.5)

        assert order == ["a", "b", "c"]

    def test_same_time_runs_in_submission_order(self, loop):
        order = []
        for name in "xyz":
            loop.call_soon(order.append, name)

        loop.advance(0)

        assert order == ["x", "y", "z"]

    def test_callback_sees_its_scheduled_time(self, loop):
        seen = []
        loop.call_later(0.25, lambda: seen.append(loop.time()))

        loop.advance(1.0)

        assert seen == [0.25]
        assert loop.time() == 1.0

    def test_cancel(self, loop):
        order = []
        handle = loop.call_later(0.1, order.append, "never")
        handle.cancel()

        loop.advance(1.0)

        assert order == []
        assert loop.pending == 0

    def test_callback_error_is_contained(self, loop):
        order = []

        def broken():
            raise ValueError("boom")

        loop.call_later(0.1, broken)
        loop.call_later(0.2, order.append, "after")

        loop.advance(1.0)

        assert order == ["after"]

    def test_run_until(self, loop):
        flag = []
        loop.call_later(0.5, flag.append, True)

        assert loop.run_until(lambda: bool(flag), timeout=1.0)
        assert not loop.run_until(lambda: False, timeout=0.1)

    def test_advance_requires_manual_clock(self):
        with pytest.raises(RuntimeError):
            RunLoop(realtime=True).advance(1.0)

    def test_periodic_timer(self, loop):
        ticks = []
        loop.schedule_periodic(0.1, lambda: ticks.append(loop.time()))

        loop.advance(0.45)

        assert len(ticks) == 4

    def test_periodic_pause_and_invalidate(self, loop):
        ticks = []
        timer = loop.schedule_periodic(0.1, lambda: ticks.append(1))

        loop.advance(0.25)
        timer.paused = True
        loop.advance(1.0)
        assert len(ticks) == 2

        timer.paused = False
        loop.advance(0.25)
        assert len(ticks) == 4

        timer.invalidate()
        timer.paused = False
        loop.advance(1.0)
        assert len(ticks) == 4
        assert not timer.is_valid


class TestControlLoop:

    @pytest.fixture
    def recorder(self):
        calls = []
        handlers = {phase: (lambda p=phase: calls.append(p)) for phase in TickPhase}
        return calls, handlers

    def test_phase_order(self):
        assert TickPhase.SEND_COMMAND.next() == TickPhase.PUBLISH_PROGRESS
        assert TickPhase.CONTROL_MOTION.next() == TickPhase.SEND_COMMAND

    def test_round_robin(self, loop, recorder):
        calls, handlers = recorder
        control = ControlLoop(loop, rate_hz=10)
        control.start(handlers)

        loop.advance(0.85)

        assert calls == [
            TickPhase.SEND_COMMAND, TickPhase.PUBLISH_PROGRESS,
            TickPhase.CONTROL_HEADING, TickPhase.CONTROL_MOTION,
        ] * 2
        assert control.tick_count == 8

    def test_pause_keeps_phase(self, loop, recorder):
        calls, handlers = recorder
        control = ControlLoop(loop, rate_hz=10)
        control.start(handlers)

        loop.advance(0.25)
        control.pause()
        assert control.is_paused
        assert control.phase == TickPhase.CONTROL_HEADING

        loop.advance(1.0)
        assert len(calls) == 2

        control.resume()
        loop.advance(0.15)
        assert calls[-1] == TickPhase.CONTROL_HEADING

    def test_handler_error_does_not_stop_loop(self, loop):
        calls = []

        def broken():
            raise RuntimeError("boom")

        control = ControlLoop(loop, rate_hz=10)
        control.start({
            TickPhase.SEND_COMMAND: broken,
            TickPhase.PUBLISH_PROGRESS: lambda: calls.append("progress"),
        })

        loop.advance(0.85)

        assert calls == ["progress", "progress"]
        assert control.is_running

    def test_missing_handler_still_advances(self, loop):
        calls = []
        control = ControlLoop(loop, rate_hz=10)
        control.start({TickPhase.CONTROL_MOTION: lambda: calls.append(1)})

        loop.advance(0.45)

        assert calls == [1]

    def test_stop(self, loop, recorder):
        calls, handlers = recorder
        control = ControlLoop(loop, rate_hz=10)
        control.start(handlers)
        loop.advance(0.15)

        control.stop()
        loop.advance(1.0)

        assert len(calls) == 1
        assert not control.is_running
        assert not control.is_paused

    def test_restart_resets_phase(self, loop, recorder):
        calls, handlers = recorder
        control = ControlLoop(loop, rate_hz=10)
        control.start(handlers)
        loop.advance(0.25)

        control.start(handlers)
        assert control.phase == TickPhase.SEND_COMMAND
        assert control.tick_count == 0

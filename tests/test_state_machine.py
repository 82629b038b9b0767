"""
Tests for Execution State Machine
"""

import unittest

# Try to import state machine
try:
    from autopilot.flight.state_machine import (
        ExecutionState, ExecutionStateMachine, VALID_TRANSITIONS)
    STATE_MACHINE_AVAILABLE = True
except ImportError:
    STATE_MACHINE_AVAILABLE = False


@unittest.skipUnless(STATE_MACHINE_AVAILABLE, "State machine not available")
class TestExecutionStateMachine(unittest.TestCase):
    """Test execution state machine transitions"""

    def setUp(self):
        """Set up test state machine"""
        self.sm = ExecutionStateMachine()

    def _get_to_executing(self):
        """Helper to walk the normal lifecycle up to EXECUTING"""
        self.sm.transition_to(ExecutionState.READY_TO_UPLOAD)
        self.sm.transition_to(ExecutionState.UPLOADING)
        self.sm.transition_to(ExecutionState.READY_TO_EXECUTE)
        self.sm.transition_to(ExecutionState.EXECUTING)

    def test_initial_state(self):
        """Test initial state is UNKNOWN"""
        self.assertEqual(self.sm.state, ExecutionState.UNKNOWN)
        self.assertFalse(self.sm.is_executing)

    # ==================== Valid Transitions ====================

    def test_lifecycle(self):
        """Test the upload / execute path"""
        self._get_to_executing()

        self.assertEqual(self.sm.state, ExecutionState.EXECUTING)
        self.assertEqual(self.sm.previous_state, ExecutionState.READY_TO_EXECUTE)
        self.assertTrue(self.sm.is_executing)

    def test_pause_resume(self):
        """Test EXECUTING <-> PAUSED"""
        self._get_to_executing()

        self.assertTrue(self.sm.transition_to(ExecutionState.PAUSED))
        self.assertTrue(self.sm.is_executing)
        self.assertTrue(self.sm.transition_to(ExecutionState.EXECUTING))

    def test_recovery_path(self):
        """Test DISCONNECTED -> RECOVERING -> EXECUTING"""
        self._get_to_executing()
        self.sm.transition_to(ExecutionState.DISCONNECTED)

        self.assertTrue(self.sm.transition_to(ExecutionState.RECOVERING))
        self.assertTrue(self.sm.transition_to(ExecutionState.EXECUTING))

    def test_paused_to_recovering(self):
        """Test a paused mission can re-enable control"""
        self._get_to_executing()
        self.sm.transition_to(ExecutionState.PAUSED)

        self.assertTrue(self.sm.transition_to(ExecutionState.RECOVERING))

    def test_reset_from_anywhere(self):
        """Test READY_TO_UPLOAD is reachable from every state"""
        for state in ExecutionState:
            if state == ExecutionState.READY_TO_UPLOAD:
                continue
            sm = ExecutionStateMachine(initial=state)
            self.assertTrue(sm.transition_to(ExecutionState.READY_TO_UPLOAD), state.name)

    def test_disconnect_from_anywhere(self):
        """Test DISCONNECTED is reachable from every connected state"""
        for state in VALID_TRANSITIONS:
            if state == ExecutionState.DISCONNECTED:
                continue
            self.assertIn(ExecutionState.DISCONNECTED, VALID_TRANSITIONS[state], state.name)

    # ==================== Invalid Transitions ====================

    def test_cannot_skip_upload(self):
        """Test READY_TO_UPLOAD cannot go straight to EXECUTING"""
        self.sm.transition_to(ExecutionState.READY_TO_UPLOAD)

        self.assertFalse(self.sm.transition_to(ExecutionState.EXECUTING))
        self.assertEqual(self.sm.state, ExecutionState.READY_TO_UPLOAD)

    def test_cannot_pause_before_executing(self):
        """Test PAUSED requires EXECUTING"""
        self.sm.transition_to(ExecutionState.READY_TO_UPLOAD)

        self.assertFalse(self.sm.transition_to(ExecutionState.PAUSED))

    def test_disconnected_cannot_execute(self):
        """Test DISCONNECTED must recover before EXECUTING"""
        self.sm.transition_to(ExecutionState.DISCONNECTED)

        self.assertFalse(self.sm.transition_to(ExecutionState.EXECUTING))

    def test_force_transition(self):
        """Test forced transition bypasses validation"""
        self.assertTrue(self.sm.transition_to(ExecutionState.EXECUTING, force=True))
        self.assertEqual(self.sm.state, ExecutionState.EXECUTING)

    def test_same_state_is_noop(self):
        """Test transition to current state succeeds without notifying"""
        calls = []
        self.sm.add_listener(lambda old, new: calls.append((old, new)))

        self.assertTrue(self.sm.transition_to(ExecutionState.UNKNOWN))
        self.assertEqual(calls, [])

    # ==================== Listeners ====================

    def test_listener_receives_old_and_new(self):
        """Test listeners get (old, new)"""
        calls = []
        self.sm.add_listener(lambda old, new: calls.append((old, new)))

        self.sm.transition_to(ExecutionState.READY_TO_UPLOAD)

        self.assertEqual(calls, [(ExecutionState.UNKNOWN, ExecutionState.READY_TO_UPLOAD)])

    def test_listener_error_does_not_block(self):
        """Test a failing listener does not stop others"""
        calls = []

        def broken(old, new):
            raise RuntimeError("boom")

        self.sm.add_listener(broken)
        self.sm.add_listener(lambda old, new: calls.append(new))

        self.assertTrue(self.sm.transition_to(ExecutionState.READY_TO_UPLOAD))
        self.assertEqual(calls, [ExecutionState.READY_TO_UPLOAD])

    def test_remove_listener(self):
        """Test removed listeners are not called"""
        calls = []
        listener = self.sm.add_listener(lambda old, new: calls.append(new))
        self.sm.remove_listener(listener)

        self.sm.transition_to(ExecutionState.READY_TO_UPLOAD)

        self.assertEqual(calls, [])


if __name__ == '__main__':
    unittest.main()

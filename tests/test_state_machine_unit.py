import unittest

from utils.state_machine import CredentialState, StateMachine, is_allowed_transition


class StateMachineUnitTests(unittest.TestCase):
    def test_allowed_transitions(self):
        self.assertTrue(is_allowed_transition(CredentialState.UNINITIALIZED, CredentialState.INITIALIZING))
        self.assertTrue(is_allowed_transition(CredentialState.INITIALIZING, CredentialState.READY))
        self.assertTrue(is_allowed_transition(CredentialState.INITIALIZING, CredentialState.FAILED))

    def test_blocked_transitions(self):
        self.assertFalse(is_allowed_transition(CredentialState.UNINITIALIZED, CredentialState.READY))
        self.assertFalse(is_allowed_transition(CredentialState.READY, CredentialState.FAILED))
        self.assertFalse(is_allowed_transition(CredentialState.FAILED, CredentialState.INITIALIZING))
        self.assertFalse(is_allowed_transition(CredentialState.READY, CredentialState.INITIALIZING))

    def test_machine_stays_put_on_blocked_transition(self):
        machine = StateMachine("test")
        self.assertFalse(machine.transition(CredentialState.READY))
        self.assertEqual(machine.state, CredentialState.UNINITIALIZED)

        self.assertTrue(machine.transition(CredentialState.INITIALIZING))
        self.assertTrue(machine.transition(CredentialState.FAILED))
        self.assertTrue(machine.is_terminal())
        self.assertFalse(machine.transition(CredentialState.INITIALIZING))
        self.assertEqual(machine.state, CredentialState.FAILED)


if __name__ == "__main__":
    unittest.main()

import unittest

from jiramirror.security import AuthStateRegistry


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class AuthStateRegistryTests(unittest.TestCase):
    def test_state_is_consumed_once(self):
        registry = AuthStateRegistry(600)
        state = registry.issue({"account_name": "Acme", "account_email": ""})

        self.assertEqual(registry.consume(state), {"account_name": "Acme"})
        self.assertIsNone(registry.consume(state))

    def test_unknown_or_empty_state(self):
        registry = AuthStateRegistry(600)
        registry.issue()

        self.assertIsNone(registry.consume("forged"))
        self.assertIsNone(registry.consume(""))
        self.assertIsNone(registry.consume(None))

    def test_non_ascii_state_is_rejected(self):
        registry = AuthStateRegistry(600)
        state = registry.issue({"account_name": "Acme"})

        self.assertIsNone(registry.consume("état"))
        self.assertIsNone(registry.consume("\x00\xff garbage"))
        self.assertEqual(registry.consume(state), {"account_name": "Acme"})

    def test_expired_state_is_rejected(self):
        clock = _Clock()
        registry = AuthStateRegistry(600, clock=clock)
        state = registry.issue({"account_name": "Acme"})

        clock.now += 601
        self.assertIsNone(registry.consume(state))
        self.assertEqual(len(registry), 0)

    def test_states_are_independent(self):
        registry = AuthStateRegistry(600)
        first = registry.issue({"account_name": "One"})
        second = registry.issue({"account_name": "Two"})

        self.assertNotEqual(first, second)
        self.assertEqual(registry.consume(second), {"account_name": "Two"})
        self.assertEqual(registry.consume(first), {"account_name": "One"})


if __name__ == "__main__":
    unittest.main()

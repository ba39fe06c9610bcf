import threading
import unittest
from types import SimpleNamespace
from unittest.mock import Mock


def _scheduler(tokens=None, orchestrator=None, client_factory=None):
    from jiramirror.config import Settings
    from jiramirror.scheduler import SyncScheduler

    return SyncScheduler(
        tokens or Mock(),
        orchestrator or Mock(),
        Settings(),
        client_factory=client_factory,
    )


class RefreshGuardTests(unittest.TestCase):
    def test_overlapping_refresh_cycle_is_skipped(self):
        entered = threading.Event()
        release = threading.Event()
        tokens = Mock()

        def slow_cycle():
            entered.set()
            release.wait(5)
            return {1: "refreshed"}

        tokens.refresh_due_accounts.side_effect = slow_cycle
        scheduler = _scheduler(tokens=tokens)

        results = []
        worker = threading.Thread(target=lambda: results.append(scheduler.refresh_tokens_job()))
        worker.start()
        try:
            self.assertTrue(entered.wait(5))
            self.assertIsNone(scheduler.refresh_tokens_job())
        finally:
            release.set()
            worker.join(5)

        self.assertEqual(results, [{1: "refreshed"}])
        self.assertEqual(tokens.refresh_due_accounts.call_count, 1)

        # Guard released: the next cycle runs.
        tokens.refresh_due_accounts.side_effect = None
        tokens.refresh_due_accounts.return_value = {}
        self.assertEqual(scheduler.refresh_tokens_job(), {})

    def test_cycle_error_does_not_escape(self):
        tokens = Mock()
        tokens.refresh_due_accounts.side_effect = RuntimeError("db down")
        scheduler = _scheduler(tokens=tokens)

        self.assertEqual(scheduler.refresh_tokens_job(), {})


class DataSyncJobTests(unittest.TestCase):
    def test_busy_and_unavailable_accounts_are_skipped(self):
        from jiramirror.errors import CredentialUnavailable, SyncAlreadyInProgress

        tokens = Mock()
        tokens.list_accounts.return_value = [SimpleNamespace(id=1), SimpleNamespace(id=2), SimpleNamespace(id=3)]
        orchestrator = Mock()
        orchestrator.run.side_effect = [
            SyncAlreadyInProgress(1),
            CredentialUnavailable(2, "expired"),
            SimpleNamespace(status="partial"),
        ]

        results = _scheduler(tokens=tokens, orchestrator=orchestrator).data_sync_job()

        self.assertEqual(results, {1: "skipped", 2: "credential_unavailable", 3: "partial"})
        orchestrator.run.assert_called_with(3, trigger="scheduled")
        tokens.list_accounts.assert_called_once_with(active_only=True)


class HealthCheckJobTests(unittest.TestCase):
    def test_unauthorized_token_triggers_refresh(self):
        from jiramirror.errors import JiraApiError

        tokens = Mock()
        tokens.list_accounts.return_value = [
            SimpleNamespace(id=1, access_token="good"),
            SimpleNamespace(id=2, access_token="stale"),
            SimpleNamespace(id=3, access_token=None),
        ]

        def factory(token):
            client = Mock()
            if token == "stale":
                client.get_accessible_resources.side_effect = JiraApiError(401, "unauthorized")
            else:
                client.get_accessible_resources.return_value = [{"id": "x"}]
            return client

        results = _scheduler(tokens=tokens, client_factory=factory).health_check_job()

        self.assertEqual(results, {1: "healthy", 2: "refreshed", 3: "no_token"})
        tokens.refresh.assert_called_once_with(2)

    def test_failed_refresh_marks_unhealthy(self):
        from jiramirror.errors import JiraApiError, RefreshFailed

        tokens = Mock()
        tokens.list_accounts.return_value = [SimpleNamespace(id=5, access_token="stale")]
        tokens.refresh.side_effect = RefreshFailed(5, "invalid_grant", 400)
        client = Mock()
        client.get_accessible_resources.side_effect = JiraApiError(401, "unauthorized")

        results = _scheduler(tokens=tokens, client_factory=lambda token: client).health_check_job()

        self.assertEqual(results, {5: "unhealthy"})


class SchedulerLifecycleTests(unittest.TestCase):
    def test_start_registers_three_jobs(self):
        scheduler = _scheduler()
        scheduler.start()
        try:
            job_ids = sorted(job.id for job in scheduler.scheduler.get_jobs())
            self.assertEqual(job_ids, ["data_sync", "health_check", "token_refresh"])
        finally:
            scheduler.stop()


if __name__ == "__main__":
    unittest.main()

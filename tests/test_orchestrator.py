import importlib.util
import sys
import threading
import unittest
from datetime import timedelta
from pathlib import Path
from unittest.mock import Mock

SEED_SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "seed_demo_data.py"


def _demo_client_class():
    spec = importlib.util.spec_from_file_location("seed_demo_data", SEED_SCRIPT)
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)
    return module.DemoJiraClient


class _FakeSiteClient:
    """Jira client stand-in; unknown paths return an empty body."""

    def __init__(self, routes=None, sites=None):
        self.routes = routes or {}
        self.sites = sites if sites is not None else [{"id": "cloud-1", "url": "https://acme.atlassian.net"}]
        self.paths = []
        self.bound_to = None

    def for_site(self, cloud_id):
        self.bound_to = cloud_id
        return self

    def get_accessible_resources(self):
        return self.sites

    def _answer(self, path):
        self.paths.append(path)
        answer = self.routes.get(path)
        if isinstance(answer, Exception):
            raise answer
        return answer

    def get(self, path, params=None):
        return self._answer(path)

    def post(self, path, body=None):
        return self._answer(path)


def _setup(cloud_id="cloud-1", **account_overrides):
    from jiramirror.config import Settings
    from jiramirror.models.base import Store, utcnow
    from jiramirror.services.token_manager import TokenLifecycleManager, TokenSet

    store = Store("sqlite://")
    store.init_schema()
    settings = Settings(jira_client_id="cid", jira_client_secret="secret")
    tokens = TokenLifecycleManager(store, settings, http=Mock())
    info = {"account_name": "Acme", "cloud_id": cloud_id}
    info.update(account_overrides)
    account_id = tokens.store_tokens("test", TokenSet("tok", "ref", utcnow() + timedelta(hours=1)), info)
    return store, settings, tokens, account_id


def _orchestrator(store, settings, tokens, client):
    from jiramirror.services.orchestrator import SyncOrchestrator

    return SyncOrchestrator(store, tokens, settings, client_factory=lambda token: client)


PROJECTS = {"values": [{"id": "1", "key": "ACME"}]}
ISSUES = {"issues": [{"id": "10", "key": "ACME-1", "fields": {"summary": "first"}}]}


class OrchestratorRunTests(unittest.TestCase):
    def test_failed_step_does_not_stop_the_run(self):
        from jiramirror.errors import JiraApiError
        from jiramirror.services.sync_report import StepStatus

        store, settings, tokens, account_id = _setup()
        client = _FakeSiteClient(
            {
                "/project/search": PROJECTS,
                "/users/search": JiraApiError(500, "server error"),
                "/search": ISSUES,
            }
        )

        report = _orchestrator(store, settings, tokens, client).run(account_id)

        self.assertEqual(len(report.steps), 20)
        self.assertEqual(report.step("users").status, StepStatus.FAILED)
        self.assertEqual([s.entity_type for s in report.failed], ["users"])
        self.assertEqual(report.step("issues").status, StepStatus.SUCCESS)
        self.assertEqual(report.step("issues").count, 1)
        self.assertEqual(report.status, "partial")

    def test_one_failed_entity_type_leaves_every_other_count_populated(self):
        from jiramirror.errors import JiraApiError
        from jiramirror.services.sync_report import StepStatus

        class _GroupsDown(_demo_client_class()):
            def get(self, path, params=None):
                if path == "/groups/picker":
                    raise JiraApiError(500, "server error")
                return super().get(path, params)

        store, settings, tokens, account_id = _setup()

        report = _orchestrator(store, settings, tokens, _GroupsDown()).run(account_id)

        self.assertEqual(len(report.steps), 20)
        self.assertEqual([s.entity_type for s in report.failed], ["groups"])
        self.assertEqual(report.status, "partial")
        for step in report.steps:
            if step.entity_type == "groups":
                continue
            self.assertEqual(step.status, StepStatus.SUCCESS, step.entity_type)
            self.assertGreater(step.count, 0, step.entity_type)

    def test_forbidden_step_is_not_a_failure(self):
        from jiramirror.errors import JiraApiError
        from jiramirror.services.sync_report import StepStatus

        store, settings, tokens, account_id = _setup()
        client = _FakeSiteClient({"/groups/picker": JiraApiError(403, "forbidden")})

        report = _orchestrator(store, settings, tokens, client).run(account_id)

        self.assertEqual(report.step("groups").status, StepStatus.FORBIDDEN)
        self.assertEqual(report.status, "success")

    def test_tier_three_reads_issue_keys_from_store(self):
        store, settings, tokens, account_id = _setup()
        client = _FakeSiteClient({"/project/search": PROJECTS, "/search": ISSUES})

        _orchestrator(store, settings, tokens, client).run(account_id)

        self.assertIn("/issue/ACME-1/comment", client.paths)
        self.assertIn("/issue/ACME-1/worklog", client.paths)
        self.assertIn("/project/ACME/components", client.paths)
        self.assertEqual(client.bound_to, "cloud-1")

    def test_credential_unavailable_aborts_before_any_step(self):
        from jiramirror.errors import CredentialUnavailable

        store, settings, tokens, account_id = _setup()
        tokens.deactivate(account_id)
        client = _FakeSiteClient()

        with self.assertRaises(CredentialUnavailable):
            _orchestrator(store, settings, tokens, client).run(account_id)
        self.assertEqual(client.paths, [])

    def test_cloud_id_is_resolved_and_cached(self):
        store, settings, tokens, account_id = _setup(cloud_id=None)
        client = _FakeSiteClient()

        _orchestrator(store, settings, tokens, client).run(account_id)

        account = tokens.get_account(account_id)
        self.assertEqual(account.cloud_id, "cloud-1")
        self.assertEqual(account.jira_domain, "acme.atlassian.net")

    def test_no_accessible_site_is_credential_unavailable(self):
        from jiramirror.errors import CredentialUnavailable

        store, settings, tokens, account_id = _setup(cloud_id=None)
        client = _FakeSiteClient(sites=[])

        with self.assertRaises(CredentialUnavailable):
            _orchestrator(store, settings, tokens, client).run(account_id)

    def test_site_without_cloud_id_is_credential_unavailable(self):
        from jiramirror.errors import CredentialUnavailable

        store, settings, tokens, account_id = _setup(cloud_id=None)
        client = _FakeSiteClient(sites=[{"url": "https://acme.atlassian.net"}])

        with self.assertRaises(CredentialUnavailable):
            _orchestrator(store, settings, tokens, client).run(account_id)
        self.assertIsNone(client.bound_to)
        self.assertEqual(client.paths, [])
        self.assertIsNone(tokens.get_account(account_id).cloud_id)

    def test_run_is_recorded(self):
        from jiramirror.models import SyncRun
        from jiramirror.models.sync_run import SyncStatus, SyncTrigger

        store, settings, tokens, account_id = _setup()
        client = _FakeSiteClient({"/project/search": PROJECTS})

        _orchestrator(store, settings, tokens, client).run(account_id, trigger="scheduled")

        db = store.session()
        try:
            run = db.query(SyncRun).one()
            self.assertEqual(run.status, SyncStatus.SUCCESS)
            self.assertEqual(run.trigger, SyncTrigger.SCHEDULED)
            self.assertEqual(run.total_records, 1)
            self.assertIsNone(run.entity_type)
            self.assertEqual(len(run.report["steps"]), 20)
        finally:
            db.close()


class OrchestratorEntityTests(unittest.TestCase):
    def test_run_entity_runs_one_step(self):
        store, settings, tokens, account_id = _setup()
        client = _FakeSiteClient({"/project/search": PROJECTS})

        report = _orchestrator(store, settings, tokens, client).run_entity(account_id, "projects")

        self.assertEqual([s.entity_type for s in report.steps], ["projects"])
        self.assertEqual(report.total_records, 1)

    def test_unknown_entity_type(self):
        store, settings, tokens, account_id = _setup()
        orchestrator = _orchestrator(store, settings, tokens, _FakeSiteClient())

        with self.assertRaises(ValueError):
            orchestrator.run_entity(account_id, "sprints")


class AccountLeaseTests(unittest.TestCase):
    def test_second_sync_for_same_account_is_rejected(self):
        from jiramirror.errors import SyncAlreadyInProgress

        store, settings, tokens, account_id = _setup()
        orchestrator = _orchestrator(store, settings, tokens, _FakeSiteClient())

        orchestrator.leases.acquire(account_id)
        try:
            with self.assertRaises(SyncAlreadyInProgress):
                orchestrator.run(account_id)
        finally:
            orchestrator.leases.release(account_id)

        # Released again: the next run goes through.
        orchestrator.run(account_id)
        self.assertFalse(orchestrator.is_running(account_id))

    def test_lease_is_released_when_run_raises(self):
        from jiramirror.errors import CredentialUnavailable

        store, settings, tokens, account_id = _setup()
        tokens.deactivate(account_id)
        orchestrator = _orchestrator(store, settings, tokens, _FakeSiteClient())

        with self.assertRaises(CredentialUnavailable):
            orchestrator.run(account_id)
        self.assertFalse(orchestrator.is_running(account_id))

    def test_concurrent_runs_on_one_account(self):
        from jiramirror.errors import SyncAlreadyInProgress

        store, settings, tokens, account_id = _setup()
        entered = threading.Event()
        release = threading.Event()

        class _SlowClient(_FakeSiteClient):
            def get(self, path, params=None):
                if path == "/project/search":
                    entered.set()
                    release.wait(5)
                return super().get(path, params)

        orchestrator = _orchestrator(store, settings, tokens, _SlowClient())
        worker = threading.Thread(target=orchestrator.run, args=(account_id,))
        worker.start()
        try:
            self.assertTrue(entered.wait(5))
            with self.assertRaises(SyncAlreadyInProgress):
                orchestrator.run(account_id, trigger="scheduled")
        finally:
            release.set()
            worker.join(5)


if __name__ == "__main__":
    unittest.main()

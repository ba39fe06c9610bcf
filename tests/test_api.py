import unittest
from datetime import timedelta
from unittest.mock import Mock


class _ApiTestCase(unittest.TestCase):
    def setUp(self):
        # Import inside setUp so unittest discovery doesn't fail if deps are missing
        from fastapi.testclient import TestClient

        from jiramirror.config import Settings
        from jiramirror.main import create_app
        from jiramirror.models.base import Store

        self.store = Store("sqlite://")
        self.store.init_schema()
        self.settings = Settings(jira_client_id="cid", jira_client_secret="secret", scheduler_enabled=False)
        self.app = create_app(self.settings, self.store, start_scheduler=False)
        self.tokens = self.app.state.tokens
        self.tokens.http = Mock()
        self.client = TestClient(self.app)

    def tearDown(self):
        self.store.close()

    def _add_account(self, name="Acme", refresh_token="ref"):
        from jiramirror.models.base import utcnow
        from jiramirror.services.token_manager import TokenSet

        return self.tokens.store_tokens(
            "test",
            TokenSet("tok", refresh_token, utcnow() + timedelta(hours=1)),
            {"account_name": name, "cloud_id": "cloud-1"},
        )


class HealthAndAuthTests(_ApiTestCase):
    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    def test_auth_start_returns_url_with_state(self):
        response = self.client.post("/auth/start", json={"account_name": "Acme"})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertIn(f"state={body['state']}", body["authorization_url"])
        self.assertEqual(self.app.state.auth_states.consume(body["state"]), {"account_name": "Acme"})

    def test_callback_rejects_unknown_state(self):
        response = self.client.get("/auth/callback", params={"code": "c", "state": "forged"})
        self.assertEqual(response.status_code, 400)
        self.tokens.http.post.assert_not_called()

    def test_callback_rejects_non_ascii_state(self):
        self.app.state.auth_states.issue()
        response = self.client.get("/auth/callback", params={"code": "c", "state": "état"})
        self.assertEqual(response.status_code, 400)


class AccountApiTests(_ApiTestCase):
    def test_list_and_current(self):
        first = self._add_account("One")
        self._add_account("Two")

        listed = self.client.get("/api/accounts").json()
        self.assertEqual([a["account_name"] for a in listed][0], "One")
        self.assertNotIn("access_token", listed[0])
        self.assertEqual(listed[0]["credential_state"], "valid")

        current = self.client.get("/api/accounts/current").json()
        self.assertEqual(current["id"], first)

    def test_current_without_accounts_is_404(self):
        self.assertEqual(self.client.get("/api/accounts/current").status_code, 404)

    def test_set_primary_and_deactivate(self):
        self._add_account("One")
        second = self._add_account("Two")

        self.assertEqual(self.client.post(f"/api/accounts/{second}/set-primary").status_code, 200)
        self.assertEqual(self.client.get("/api/accounts/current").json()["id"], second)

        self.assertEqual(self.client.delete(f"/api/accounts/{second}").status_code, 200)
        self.assertFalse(self.tokens.get_account(second).is_active)
        self.assertEqual(self.client.delete("/api/accounts/999").status_code, 404)

    def test_refresh_without_refresh_token_requires_reauth(self):
        account_id = self._add_account(refresh_token=None)

        body = self.client.post(f"/api/accounts/{account_id}/refresh-token").json()

        self.assertFalse(body["success"])
        self.assertTrue(body["requiresReauth"])


class SyncApiTests(_ApiTestCase):
    def test_busy_account_returns_409(self):
        account_id = self._add_account()
        orchestrator = self.app.state.orchestrator
        orchestrator.leases.acquire(account_id)
        try:
            response = self.client.post(f"/api/accounts/{account_id}/sync")
        finally:
            orchestrator.leases.release(account_id)
        self.assertEqual(response.status_code, 409)

    def test_inactive_account_returns_400(self):
        account_id = self._add_account()
        self.tokens.deactivate(account_id)

        response = self.client.post(f"/api/accounts/{account_id}/sync")
        self.assertEqual(response.status_code, 400)

    def test_unknown_entity_type_returns_404(self):
        account_id = self._add_account()
        response = self.client.post(f"/api/accounts/{account_id}/sync/sprints")
        self.assertEqual(response.status_code, 404)

    def test_entity_sync_and_run_log(self):
        account_id = self._add_account()
        site = Mock()
        site.for_site.return_value = site
        site.get.return_value = [{"id": "1", "name": "To Do"}]
        self.app.state.orchestrator.client_factory = lambda token: site

        response = self.client.post(f"/api/accounts/{account_id}/sync/statuses")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["total_records"], 1)
        runs = self.client.get("/api/sync/runs").json()
        self.assertEqual(len(runs), 1)
        self.assertEqual(runs[0]["entity_type"], "statuses")
        self.assertEqual(runs[0]["status"], "success")

    def test_hyphenated_entity_type_is_accepted(self):
        account_id = self._add_account()
        site = Mock()
        site.for_site.return_value = site
        site.get.return_value = [{"id": "10001", "name": "Story"}]
        self.app.state.orchestrator.client_factory = lambda token: site

        response = self.client.post(f"/api/accounts/{account_id}/sync/issue-types")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["steps"][0]["entity_type"], "issue_types")


class DataApiTests(_ApiTestCase):
    def _seed(self, account_id):
        from jiramirror.models import JiraIssue, JiraProject

        with self.store.session_scope() as db:
            db.add(JiraProject(account_id=account_id, project_key="ACME", name="Acme", raw_data={"key": "ACME"}))
            for n in range(3):
                db.add(
                    JiraIssue(
                        account_id=account_id,
                        issue_key=f"ACME-{n + 1}",
                        project_key="ACME",
                        summary=f"issue {n + 1}",
                        raw_data={},
                    )
                )

    def test_stats_projects_and_issues(self):
        account_id = self._add_account()
        self._seed(account_id)

        stats = self.client.get(f"/api/accounts/{account_id}/stats").json()
        self.assertEqual(stats["counts"]["projects"], 1)
        self.assertEqual(stats["counts"]["issues"], 3)

        projects = self.client.get(f"/api/accounts/{account_id}/projects").json()
        self.assertEqual(projects[0]["issue_count"], 3)

        page = self.client.get(
            f"/api/accounts/{account_id}/projects/ACME/issues", params={"limit": 2, "offset": 2}
        ).json()
        self.assertEqual(page["total"], 3)
        self.assertEqual([i["issue_key"] for i in page["issues"]], ["ACME-3"])

    def test_raw_data_is_limited_to_mirrored_tables(self):
        account_id = self._add_account()
        self._seed(account_id)

        ok = self.client.get(f"/api/accounts/{account_id}/raw-data", params={"table": "jira_projects"})
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()["rows"][0]["raw_data"], {"key": "ACME"})

        bad = self.client.get(f"/api/accounts/{account_id}/raw-data", params={"table": "accounts"})
        self.assertEqual(bad.status_code, 400)

    def test_dashboard(self):
        account_id = self._add_account()
        self._seed(account_id)

        stats = self.client.get("/api/dashboard/stats").json()
        self.assertEqual(stats["total_accounts"], 1)
        self.assertEqual(stats["total_issues"], 3)
        self.assertEqual(self.client.get("/api/dashboard/activity").json(), [])


if __name__ == "__main__":
    unittest.main()

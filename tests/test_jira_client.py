import unittest
from types import SimpleNamespace
from unittest.mock import Mock, patch

import requests


def _response(status_code=200, payload=None, text=""):
    return SimpleNamespace(
        ok=200 <= status_code < 300,
        status_code=status_code,
        text=text,
        content=b"x" if payload is not None else b"",
        json=lambda: payload,
    )


def _client(session):
    from jiramirror.services.jira_client import JiraClient

    session.headers = {}
    return JiraClient("tok", "https://api.atlassian.com/ex/jira/c1/rest/api/3", session=session)


class JiraClientTests(unittest.TestCase):
    def test_bearer_header_and_url_building(self):
        session = Mock()
        session.request.return_value = _response(200, [{"id": "1"}])
        client = _client(session)

        self.assertEqual(client.get("/status", params={"a": 1}), [{"id": "1"}])
        self.assertEqual(session.headers["Authorization"], "Bearer tok")
        method, url = session.request.call_args.args
        self.assertEqual(method, "GET")
        self.assertEqual(url, "https://api.atlassian.com/ex/jira/c1/rest/api/3/status")

    def test_for_site_builds_rest_root(self):
        from jiramirror.services.jira_client import JiraClient

        session = Mock()
        session.headers = {}
        client = JiraClient("tok", session=session).for_site("abc")
        self.assertEqual(client.base_url, "https://api.atlassian.com/ex/jira/abc/rest/api/3")
        self.assertIs(client.session, session)

    def test_non_2xx_raises_with_status(self):
        from jiramirror.errors import JiraApiError

        session = Mock()
        session.request.return_value = _response(403, None, text="forbidden")
        client = _client(session)

        with self.assertRaises(JiraApiError) as ctx:
            client.get("/groups/picker")
        self.assertEqual(ctx.exception.status_code, 403)
        self.assertEqual(session.request.call_count, 1)

    @patch("jiramirror.services.jira_client.time.sleep")
    def test_transient_errors_are_retried(self, sleep):
        session = Mock()
        session.request.side_effect = [_response(503, None, "busy"), _response(200, {"ok": True})]
        client = _client(session)

        self.assertEqual(client.get("/myself"), {"ok": True})
        self.assertEqual(session.request.call_count, 2)
        sleep.assert_called_once()

    @patch("jiramirror.services.jira_client.time.sleep")
    def test_retries_give_up_after_three_attempts(self, sleep):
        from jiramirror.errors import JiraApiError

        session = Mock()
        session.request.return_value = _response(429, None, "slow down")
        client = _client(session)

        with self.assertRaises(JiraApiError):
            client.get("/users/search")
        self.assertEqual(session.request.call_count, 3)

    def test_transport_error_has_no_status(self):
        from jiramirror.errors import JiraApiError

        session = Mock()
        session.request.side_effect = requests.exceptions.Timeout("timed out")
        client = _client(session)

        with self.assertRaises(JiraApiError) as ctx:
            client.get("/project/search")
        self.assertIsNone(ctx.exception.status_code)

    def test_site_call_without_base_url(self):
        from jiramirror.services.jira_client import JiraClient

        session = Mock()
        session.headers = {}
        with self.assertRaises(ValueError):
            JiraClient("tok", session=session).get("/status")


if __name__ == "__main__":
    unittest.main()

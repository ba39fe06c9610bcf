"""Jira Cloud REST API client wrapper"""
import logging
import time
from typing import Any, Dict, List, Optional

import requests

from jiramirror.errors import JiraApiError

logger = logging.getLogger(__name__)


class JiraClient:
    """Thin bearer-token client for one Jira Cloud site.

    ``base_url`` is the REST root of the site, e.g.
    ``https://api.atlassian.com/ex/jira/<cloud id>/rest/api/3``. It may be left
    unset for calls that don't target a site (accessible resources).
    """

    def __init__(
        self,
        access_token: str,
        base_url: Optional[str] = None,
        *,
        api_base_url: str = "https://api.atlassian.com",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """Initialize Jira client"""
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self._token = access_token
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    def for_site(self, cloud_id: str) -> "JiraClient":
        """Client bound to a site's REST root, sharing the HTTP session."""
        return JiraClient(
            self._token,
            self.site_rest_root(self.api_base_url, cloud_id),
            api_base_url=self.api_base_url,
            timeout=self.timeout,
            session=self.session,
        )

    @staticmethod
    def site_rest_root(api_base_url: str, cloud_id: str) -> str:
        return f"{api_base_url.rstrip('/')}/ex/jira/{cloud_id}/rest/api/3"

    @staticmethod
    def _should_retry(exc: Exception) -> bool:
        """Retry predicate for transient Jira failures."""
        rc = getattr(exc, "status_code", None)
        if rc in (429, 500, 502, 503, 504):
            return True
        # If we can't classify, don't retry to avoid hiding real issues.
        return False

    def _with_retries(self, fn, *, max_attempts: int = 3, base_delay_s: float = 0.5):
        """Run callable with small exponential backoff on transient errors."""
        attempt = 1
        while True:
            try:
                return fn()
            except Exception as e:
                if attempt >= max_attempts or not self._should_retry(e):
                    raise
                time.sleep(base_delay_s * (2 ** (attempt - 1)))
                attempt += 1

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if not self.base_url:
            raise ValueError("JiraClient has no site base_url; call for_site() first")
        return f"{self.base_url}/{path.lstrip('/')}"

    def _send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = self._url(path)
        try:
            response = self.session.request(
                method, url, params=params, json=json_body, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            # Transport failures (timeouts, DNS, resets) carry no status code.
            raise JiraApiError(None, str(e), url=url) from e

        if not response.ok:
            raise JiraApiError(response.status_code, response.text[:500], url=url)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise JiraApiError(response.status_code, f"Malformed JSON response: {e}", url=url) from e

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body."""
        return self._with_retries(lambda: self._send(method, path, params, json_body))

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("POST", path, json_body=body)

    def get_accessible_resources(self) -> List[Dict[str, Any]]:
        """List the Jira sites this token can reach"""
        try:
            resources = self.get(f"{self.api_base_url}/oauth/token/accessible-resources")
        except JiraApiError as e:
            logger.error(f"Failed to fetch accessible resources: {e}")
            raise
        return resources or []

    def get_myself(self) -> Dict[str, Any]:
        """Profile of the authorized user on the bound site"""
        return self.get("/myself") or {}

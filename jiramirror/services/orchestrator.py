"""Runs a full (or single-entity) sync for one account"""

import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional, Set

from jiramirror.config import Settings, settings as default_settings
from jiramirror.errors import (
    CredentialUnavailable,
    EntityFetchFailed,
    JiraApiError,
    SyncAlreadyInProgress,
)
from jiramirror.models import Account, SyncRun
from jiramirror.models.base import Store
from jiramirror.models.sync_run import SyncStatus, SyncTrigger
from jiramirror.services.entity_catalog import build_definitions
from jiramirror.services.entity_sync import EntitySyncTask
from jiramirror.services.jira_client import JiraClient
from jiramirror.services.sync_graph import SyncGraph, SyncNode
from jiramirror.services.sync_report import StepResult, StepStatus, SyncReport
from jiramirror.services.token_manager import Credential, TokenLifecycleManager

logger = logging.getLogger(__name__)


class AccountLeases:
    """Process-local, non-blocking per-account mutual exclusion."""

    def __init__(self):
        self._lock = threading.Lock()
        self._held: Set[int] = set()

    def acquire(self, account_id: int) -> None:
        with self._lock:
            if account_id in self._held:
                raise SyncAlreadyInProgress(account_id)
            self._held.add(account_id)

    def release(self, account_id: int) -> None:
        with self._lock:
            self._held.discard(account_id)

    def is_held(self, account_id: int) -> bool:
        with self._lock:
            return account_id in self._held


class SyncOrchestrator:
    """Drives the entity sync tasks for one account in dependency order.

    Only ``CredentialUnavailable`` and ``SyncAlreadyInProgress`` escape
    ``run()``; every other failure is captured as a failed step so one broken
    collection never stops the rest of the run.
    """

    def __init__(
        self,
        store: Store,
        tokens: TokenLifecycleManager,
        settings: Optional[Settings] = None,
        *,
        tasks: Optional[Iterable[EntitySyncTask]] = None,
        graph: Optional[SyncGraph] = None,
        client_factory: Optional[Callable[[str], JiraClient]] = None,
        leases: Optional[AccountLeases] = None,
    ):
        self.store = store
        self.tokens = tokens
        self.settings = settings or default_settings
        if tasks is None:
            tasks = [
                EntitySyncTask(d, store)
                for d in build_definitions(
                    self.settings.issue_page_size, self.settings.jira_issue_search_path
                )
            ]
        self.tasks: Dict[str, EntitySyncTask] = {t.name: t for t in tasks}
        self.graph = graph or SyncGraph.from_definitions(t.definition for t in self.tasks.values())
        self.client_factory = client_factory or self._default_client
        self.leases = leases or AccountLeases()

    def _default_client(self, access_token: str) -> JiraClient:
        return JiraClient(
            access_token,
            api_base_url=self.settings.jira_api_base_url,
            timeout=self.settings.request_timeout_seconds,
        )

    @property
    def entity_types(self) -> List[str]:
        return [n.name for n in self.graph.ordered()]

    def is_running(self, account_id: int) -> bool:
        return self.leases.is_held(account_id)

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def run(self, account_id: int, trigger: str = "manual") -> SyncReport:
        """Sync every entity type for one account."""
        return self._run(account_id, self.graph.ordered(), trigger, entity_type=None)

    def run_entity(self, account_id: int, entity_type: str, trigger: str = "manual") -> SyncReport:
        """Sync a single entity type (ValueError if it is not in the graph)."""
        node = self.graph.get(entity_type)
        return self._run(account_id, [node], trigger, entity_type=entity_type)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(
        self, account_id: int, nodes: List[SyncNode], trigger: str, entity_type: Optional[str]
    ) -> SyncReport:
        self.leases.acquire(account_id)
        try:
            credential = self.tokens.ensure_valid(account_id)
            client = self._site_client(credential)

            report = SyncReport(account_id)
            logger.info(
                f"Starting {trigger} sync for account {account_id} ({len(nodes)} entity type(s))"
            )
            for node in nodes:
                report.add(self._run_step(account_id, node, client))
            report.finish()

            logger.info(
                f"Sync for account {account_id} finished: {report.status}, "
                f"{report.total_records} records, {len(report.failed)} failed step(s)"
            )
            self._record_run(report, trigger, entity_type)
            return report
        finally:
            self.leases.release(account_id)

    def _site_client(self, credential: Credential) -> JiraClient:
        """Client bound to the account's Jira site; the cloud id is cached on the account."""
        client = self.client_factory(credential.access_token)
        cloud_id = credential.cloud_id
        if not cloud_id:
            try:
                resources = client.get_accessible_resources()
            except JiraApiError as e:
                raise CredentialUnavailable(credential.account_id, f"cannot list Jira sites: {e.message}") from e
            if not resources:
                raise CredentialUnavailable(credential.account_id, "no accessible Jira site")
            site = resources[0]
            cloud_id = site.get("id")
            if not cloud_id:
                raise CredentialUnavailable(credential.account_id, "accessible Jira site has no cloud id")
            with self.store.session_scope() as db:
                account = db.get(Account, credential.account_id)
                if account is not None:
                    account.cloud_id = cloud_id
                    if not account.jira_domain and site.get("url"):
                        account.jira_domain = site["url"].replace("https://", "").rstrip("/")
            logger.info(f"Resolved Jira site {cloud_id} for account {credential.account_id}")
        return client.for_site(cloud_id)

    def _run_step(self, account_id: int, node: SyncNode, client) -> StepResult:
        task = self.tasks[node.name]
        try:
            counts = task.sync(account_id, client)
        except EntityFetchFailed as e:
            if e.forbidden:
                logger.info(f"No permission to read {node.name} for account {account_id}; skipping")
                return StepResult(node.name, node.tier, StepStatus.FORBIDDEN, error=e.message)
            logger.error(f"Sync step {node.name} failed for account {account_id}: {e.message}")
            return StepResult(node.name, node.tier, StepStatus.FAILED, error=e.message)
        except Exception as e:
            logger.exception(f"Sync step {node.name} crashed for account {account_id}: {e}")
            return StepResult(node.name, node.tier, StepStatus.FAILED, error=str(e))

        return StepResult(
            node.name,
            node.tier,
            StepStatus.SUCCESS,
            count=counts.upserted,
            skipped=counts.skipped,
            scope_failures=counts.scope_failures,
            error="; ".join(counts.scope_errors) or None,
        )

    def _record_run(self, report: SyncReport, trigger: str, entity_type: Optional[str]) -> None:
        """Persist a SyncRun row; a failure here never fails the run itself."""
        message = None
        if report.failed:
            message = ", ".join(f"{s.entity_type}: {s.error}" for s in report.failed)[:2000]
        try:
            with self.store.session_scope() as db:
                db.add(
                    SyncRun(
                        account_id=report.account_id,
                        entity_type=entity_type,
                        trigger=SyncTrigger(trigger),
                        status=SyncStatus(report.status),
                        total_records=report.total_records,
                        message=message,
                        report=report.to_dict(),
                        started_at=report.started_at,
                        finished_at=report.finished_at,
                    )
                )
        except Exception as e:
            logger.error(f"Failed to record sync run for account {report.account_id}: {e}")

"""Background scheduler for token refresh, periodic sync and health checks"""

import logging
import threading
from typing import Callable, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from jiramirror.config import Settings, settings as default_settings
from jiramirror.errors import (
    CredentialUnavailable,
    JiraApiError,
    JiraMirrorError,
    SyncAlreadyInProgress,
)
from jiramirror.services.jira_client import JiraClient
from jiramirror.services.orchestrator import SyncOrchestrator
from jiramirror.services.token_manager import TokenLifecycleManager

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Scheduler for the periodic jobs of one process"""

    def __init__(
        self,
        tokens: TokenLifecycleManager,
        orchestrator: SyncOrchestrator,
        settings: Optional[Settings] = None,
        *,
        client_factory: Optional[Callable[[str], JiraClient]] = None,
    ):
        self.tokens = tokens
        self.orchestrator = orchestrator
        self.settings = settings or default_settings
        self.client_factory = client_factory or self._default_client
        self.scheduler = BackgroundScheduler()
        # Skip, don't queue, a refresh cycle that overlaps the previous one.
        self._refresh_guard = threading.Lock()

    def _default_client(self, access_token: str) -> JiraClient:
        return JiraClient(
            access_token,
            api_base_url=self.settings.jira_api_base_url,
            timeout=self.settings.request_timeout_seconds,
        )

    def start(self):
        """Start the scheduler"""
        s = self.settings
        self.scheduler.add_job(
            func=self.refresh_tokens_job,
            trigger=IntervalTrigger(minutes=s.refresh_interval_minutes),
            id="token_refresh",
            replace_existing=True,
        )
        self.scheduler.add_job(
            func=self.data_sync_job,
            trigger=IntervalTrigger(minutes=s.sync_interval_minutes),
            id="data_sync",
            replace_existing=True,
        )
        self.scheduler.add_job(
            func=self.health_check_job,
            trigger=IntervalTrigger(minutes=s.health_check_interval_minutes),
            id="health_check",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(
            f"Scheduler started: token refresh every {s.refresh_interval_minutes} min, "
            f"sync every {s.sync_interval_minutes} min, "
            f"health check every {s.health_check_interval_minutes} min"
        )

    def stop(self):
        """Stop the scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    def refresh_tokens_job(self) -> Optional[Dict[int, str]]:
        """Refresh every token that is due. Returns None when a cycle is already running."""
        if not self._refresh_guard.acquire(blocking=False):
            logger.info("Token refresh already in progress, skipping this cycle")
            return None
        try:
            outcomes = self.tokens.refresh_due_accounts()
            refreshed = sum(1 for o in outcomes.values() if o == "refreshed")
            logger.info(f"Token refresh cycle done: {refreshed}/{len(outcomes)} refreshed")
            return outcomes
        except Exception as e:
            logger.error(f"Token refresh cycle failed: {e}")
            return {}
        finally:
            self._refresh_guard.release()

    def data_sync_job(self) -> Dict[int, str]:
        """Scheduled sync of every active account; busy accounts are skipped."""
        results: Dict[int, str] = {}
        for account in self.tokens.list_accounts(active_only=True):
            try:
                report = self.orchestrator.run(account.id, trigger="scheduled")
                results[account.id] = report.status
            except SyncAlreadyInProgress:
                logger.info(f"Sync already running for account {account.id}, skipping")
                results[account.id] = "skipped"
            except CredentialUnavailable as e:
                logger.warning(f"Scheduled sync skipped for account {account.id}: {e.reason}")
                results[account.id] = "credential_unavailable"
            except Exception as e:
                logger.error(f"Scheduled sync failed for account {account.id}: {e}")
                results[account.id] = "error"
        return results

    def health_check_job(self) -> Dict[int, str]:
        """Probe each active account's token; a 401 triggers a refresh attempt."""
        results: Dict[int, str] = {}
        for account in self.tokens.list_accounts(active_only=True):
            if not account.access_token:
                results[account.id] = "no_token"
                continue
            try:
                self.client_factory(account.access_token).get_accessible_resources()
                results[account.id] = "healthy"
            except JiraApiError as e:
                if e.status_code != 401:
                    logger.warning(f"Health check for account {account.id} failed: {e}")
                    results[account.id] = "unreachable"
                    continue
                logger.info(f"Token for account {account.id} rejected, attempting refresh")
                try:
                    self.tokens.refresh(account.id)
                    results[account.id] = "refreshed"
                except JiraMirrorError as refresh_error:
                    logger.error(f"Refresh after failed health check for account {account.id}: {refresh_error}")
                    results[account.id] = "unhealthy"
        return results

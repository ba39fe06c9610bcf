"""Services"""

from jiramirror.services.entity_sync import EntitySyncTask
from jiramirror.services.jira_client import JiraClient
from jiramirror.services.orchestrator import SyncOrchestrator
from jiramirror.services.token_manager import TokenLifecycleManager

__all__ = ["JiraClient", "TokenLifecycleManager", "EntitySyncTask", "SyncOrchestrator"]

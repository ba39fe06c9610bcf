"""Database models"""

from jiramirror.models.account import Account
from jiramirror.models.base import Base, Store
from jiramirror.models.issue import (
    JiraAttachment,
    JiraComment,
    JiraIssue,
    JiraIssueLink,
    JiraWorklog,
)
from jiramirror.models.project_scoped import JiraComponent, JiraVersion
from jiramirror.models.reference import (
    JiraDashboard,
    JiraField,
    JiraFilter,
    JiraGroup,
    JiraIssueType,
    JiraLabel,
    JiraPermission,
    JiraPriority,
    JiraProject,
    JiraResolution,
    JiraStatus,
    JiraUser,
    JiraWorkflow,
)
from jiramirror.models.sync_run import SyncRun

__all__ = [
    "Base",
    "Store",
    "Account",
    "SyncRun",
    "JiraProject",
    "JiraIssueType",
    "JiraPriority",
    "JiraStatus",
    "JiraResolution",
    "JiraUser",
    "JiraGroup",
    "JiraField",
    "JiraLabel",
    "JiraWorkflow",
    "JiraDashboard",
    "JiraFilter",
    "JiraPermission",
    "JiraComponent",
    "JiraVersion",
    "JiraIssue",
    "JiraComment",
    "JiraWorklog",
    "JiraAttachment",
    "JiraIssueLink",
]

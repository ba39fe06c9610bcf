"""Per-entity-type definitions for the Jira Cloud REST v3 collections we mirror"""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from jiramirror.config import settings
from jiramirror.models import (
    JiraAttachment,
    JiraComment,
    JiraComponent,
    JiraDashboard,
    JiraField,
    JiraFilter,
    JiraGroup,
    JiraIssue,
    JiraIssueLink,
    JiraIssueType,
    JiraLabel,
    JiraPermission,
    JiraPriority,
    JiraProject,
    JiraResolution,
    JiraStatus,
    JiraUser,
    JiraVersion,
    JiraWorkflow,
    JiraWorklog,
)
from jiramirror.services.entity_sync import EntityDefinition, OffsetPager, SinglePagePager

# Jira Cloud's default custom field ids; sites that re-created them will just get NULLs.
EPIC_LINK_FIELD = "customfield_10014"
STORY_POINTS_FIELD = "customfield_10016"


def _get(obj: Any, *path: str, default: Any = None) -> Any:
    """Nested dict lookup that tolerates missing keys and non-dict values."""
    for name in path:
        if not isinstance(obj, dict):
            return default
        obj = obj.get(name)
        if obj is None:
            return default
    return obj


def _str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    return bool(value)


def _int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _id(raw: Any) -> Optional[str]:
    return _str(_get(raw, "id"))


# ----------------------------------------------------------------------
# Scope sources: read keys from the store at call time, never from memory
# ----------------------------------------------------------------------


def project_keys(db: Session, account_id: int) -> List[str]:
    rows = (
        db.query(JiraProject.project_key)
        .filter(JiraProject.account_id == account_id)
        .order_by(JiraProject.project_key)
        .all()
    )
    return [r[0] for r in rows]


def issue_keys(db: Session, account_id: int) -> List[str]:
    rows = (
        db.query(JiraIssue.issue_key)
        .filter(JiraIssue.account_id == account_id)
        .order_by(JiraIssue.issue_key)
        .all()
    )
    return [r[0] for r in rows]


# ----------------------------------------------------------------------
# Tier 0: account-global
# ----------------------------------------------------------------------


def _normalize_project(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {
        "project_id": _id(raw),
        "name": _get(raw, "name"),
        "project_type": _get(raw, "projectTypeKey"),
        "description": _get(raw, "description"),
        "lead_account_id": _get(raw, "lead", "accountId"),
        "lead_display_name": _get(raw, "lead", "displayName"),
        "category_name": _get(raw, "projectCategory", "name"),
        "url": _get(raw, "self"),
        "is_private": _bool(_get(raw, "isPrivate")),
    }


def _normalize_issue_type(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {
        "name": _get(raw, "name"),
        "description": _get(raw, "description"),
        "icon_url": _get(raw, "iconUrl"),
        "subtask": _bool(_get(raw, "subtask")),
        "hierarchy_level": _int(_get(raw, "hierarchyLevel")),
    }


def _normalize_priority(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {
        "name": _get(raw, "name"),
        "description": _get(raw, "description"),
        "icon_url": _get(raw, "iconUrl"),
        "status_color": _get(raw, "statusColor"),
    }


def _normalize_status(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {
        "name": _get(raw, "name"),
        "description": _get(raw, "description"),
        "icon_url": _get(raw, "iconUrl"),
        "status_category": _get(raw, "statusCategory", "key"),
    }


def _normalize_named(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {"name": _get(raw, "name"), "description": _get(raw, "description")}


def _normalize_user(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {
        "account_type": _get(raw, "accountType"),
        "display_name": _get(raw, "displayName"),
        "email_address": _get(raw, "emailAddress"),
        "active": _bool(_get(raw, "active")),
        "time_zone": _get(raw, "timeZone"),
        "locale": _get(raw, "locale"),
    }


def _group_key(raw: Any) -> Optional[str]:
    # Older sites return groups without a groupId; the name is unique there.
    return _str(_get(raw, "groupId")) or _str(_get(raw, "name"))


def _normalize_field(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {
        "name": _get(raw, "name"),
        "field_type": _get(raw, "schema", "type"),
        "is_custom": _bool(_get(raw, "custom")),
        "orderable": _bool(_get(raw, "orderable")),
        "navigable": _bool(_get(raw, "navigable")),
        "searchable": _bool(_get(raw, "searchable")),
    }


def _label_key(raw: Any) -> Optional[str]:
    # /label returns bare strings.
    return _str(raw) if isinstance(raw, str) else _str(_get(raw, "name"))


def _workflow_key(raw: Any) -> Optional[str]:
    return _str(_get(raw, "id", "entityId")) or _str(_get(raw, "id", "name"))


def _normalize_workflow(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {
        "name": _get(raw, "id", "name"),
        "description": _get(raw, "description"),
        "is_default": _bool(_get(raw, "isDefault")),
    }


def _normalize_dashboard(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {
        "name": _get(raw, "name"),
        "description": _get(raw, "description"),
        "owner_account_id": _get(raw, "owner", "accountId"),
        "view_url": _get(raw, "view"),
        "is_favourite": _bool(_get(raw, "isFavourite")),
    }


def _normalize_filter(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {
        "name": _get(raw, "name"),
        "description": _get(raw, "description"),
        "jql": _get(raw, "jql"),
        "owner_account_id": _get(raw, "owner", "accountId"),
        "view_url": _get(raw, "viewUrl"),
        "search_url": _get(raw, "searchUrl"),
    }


def _normalize_permission(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {
        "name": _get(raw, "name"),
        "type": _get(raw, "type"),
        "description": _get(raw, "description"),
        "have_permission": _bool(_get(raw, "havePermission")),
    }


# ----------------------------------------------------------------------
# Tier 1: per project
# ----------------------------------------------------------------------


def _normalize_component(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {
        "project_key": _get(raw, "project") or scope,
        "name": _get(raw, "name"),
        "description": _get(raw, "description"),
        "lead_account_id": _get(raw, "lead", "accountId"),
        "assignee_type": _get(raw, "assigneeType"),
    }


def _normalize_version(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {
        "project_key": scope,
        "name": _get(raw, "name"),
        "description": _get(raw, "description"),
        "archived": _bool(_get(raw, "archived")),
        "released": _bool(_get(raw, "released")),
        "start_date": _get(raw, "startDate"),
        "release_date": _get(raw, "releaseDate"),
    }


# ----------------------------------------------------------------------
# Tier 2: issues
# ----------------------------------------------------------------------


def _issue_pager(project_key: Optional[str], page_size: int, path: str) -> OffsetPager:
    # Stable ordering keeps offsets meaningful while issues are being edited.
    return OffsetPager(
        path,
        "issues",
        page_size,
        method="POST",
        body={
            "jql": f'project = "{project_key}" ORDER BY created ASC',
            "fields": ["*all"],
        },
    )


def _normalize_issue(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    fields = _get(raw, "fields", default={})
    epic = _get(fields, EPIC_LINK_FIELD)
    if isinstance(epic, dict):
        epic = epic.get("key")
    parent_key = _get(fields, "parent", "key")
    if epic is None and _get(fields, "parent", "fields", "issuetype", "hierarchyLevel") == 1:
        # Team-managed projects model the epic as the parent.
        epic = parent_key
    return {
        "issue_id": _id(raw),
        "project_key": _get(fields, "project", "key") or scope,
        "summary": _get(fields, "summary"),
        "status_id": _str(_get(fields, "status", "id")),
        "status_name": _get(fields, "status", "name"),
        "priority_id": _str(_get(fields, "priority", "id")),
        "priority_name": _get(fields, "priority", "name"),
        "issue_type_id": _str(_get(fields, "issuetype", "id")),
        "issue_type_name": _get(fields, "issuetype", "name"),
        "resolution_id": _str(_get(fields, "resolution", "id")),
        "resolution_name": _get(fields, "resolution", "name"),
        "assignee_account_id": _get(fields, "assignee", "accountId"),
        "assignee_display_name": _get(fields, "assignee", "displayName"),
        "reporter_account_id": _get(fields, "reporter", "accountId"),
        "reporter_display_name": _get(fields, "reporter", "displayName"),
        "parent_key": parent_key,
        "epic_key": _str(epic),
        "story_points": _float(_get(fields, STORY_POINTS_FIELD)),
        "created": _get(fields, "created"),
        "updated": _get(fields, "updated"),
    }


# ----------------------------------------------------------------------
# Tier 3: per issue
# ----------------------------------------------------------------------


def _normalize_comment(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {
        "issue_key": scope,
        "author_account_id": _get(raw, "author", "accountId"),
        "author_display_name": _get(raw, "author", "displayName"),
        "created": _get(raw, "created"),
        "updated": _get(raw, "updated"),
    }


def _normalize_worklog(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {
        "issue_key": scope,
        "author_account_id": _get(raw, "author", "accountId"),
        "author_display_name": _get(raw, "author", "displayName"),
        "time_spent": _get(raw, "timeSpent"),
        "time_spent_seconds": _int(_get(raw, "timeSpentSeconds")),
        "started": _get(raw, "started"),
        "created": _get(raw, "created"),
        "updated": _get(raw, "updated"),
    }


def _normalize_attachment(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {
        "issue_key": scope,
        "filename": _get(raw, "filename"),
        "author_account_id": _get(raw, "author", "accountId"),
        "author_display_name": _get(raw, "author", "displayName"),
        "created": _get(raw, "created"),
        "size": _int(_get(raw, "size")),
        "mime_type": _get(raw, "mimeType"),
        "content_url": _get(raw, "content"),
    }


def _normalize_issue_link(raw: Any, scope: Optional[str]) -> Dict[str, Any]:
    return {
        "issue_key": scope,
        "outward_issue_key": _get(raw, "outwardIssue", "key"),
        "inward_issue_key": _get(raw, "inwardIssue", "key"),
        "link_type_id": _str(_get(raw, "type", "id")),
        "link_type_name": _get(raw, "type", "name"),
    }


def build_definitions(
    issue_page_size: Optional[int] = None, issue_search_path: Optional[str] = None
) -> List[EntityDefinition]:
    """All mirrored entity types, in sync order."""
    page_size = issue_page_size or settings.issue_page_size
    search_path = issue_search_path or settings.jira_issue_search_path
    return [
        # Tier 0
        EntityDefinition(
            "projects", JiraProject, 0,
            pager=lambda _: OffsetPager("/project/search", "values", 50, params={"expand": "description,lead"}),
            natural_key=lambda r: _str(_get(r, "key")),
            normalize=_normalize_project,
        ),
        EntityDefinition(
            "issue_types", JiraIssueType, 0,
            pager=lambda _: SinglePagePager("/issuetype"),
            natural_key=_id,
            normalize=_normalize_issue_type,
        ),
        EntityDefinition(
            "priorities", JiraPriority, 0,
            pager=lambda _: SinglePagePager("/priority"),
            natural_key=_id,
            normalize=_normalize_priority,
        ),
        EntityDefinition(
            "statuses", JiraStatus, 0,
            pager=lambda _: SinglePagePager("/status"),
            natural_key=_id,
            normalize=_normalize_status,
        ),
        EntityDefinition(
            "resolutions", JiraResolution, 0,
            pager=lambda _: SinglePagePager("/resolution"),
            natural_key=_id,
            normalize=_normalize_named,
        ),
        EntityDefinition(
            "users", JiraUser, 0,
            pager=lambda _: OffsetPager("/users/search", None, 1000),
            natural_key=lambda r: _str(_get(r, "accountId")),
            normalize=_normalize_user,
        ),
        EntityDefinition(
            "groups", JiraGroup, 0,
            pager=lambda _: SinglePagePager("/groups/picker", "groups", params={"maxResults": 1000}),
            natural_key=_group_key,
            normalize=lambda r, s: {"name": _get(r, "name")},
        ),
        EntityDefinition(
            "fields", JiraField, 0,
            pager=lambda _: SinglePagePager("/field"),
            natural_key=_id,
            normalize=_normalize_field,
        ),
        EntityDefinition(
            "labels", JiraLabel, 0,
            pager=lambda _: OffsetPager("/label", "values", 1000),
            natural_key=_label_key,
            normalize=lambda r, s: {},
        ),
        EntityDefinition(
            "workflows", JiraWorkflow, 0,
            pager=lambda _: OffsetPager("/workflow/search", "values", 50),
            natural_key=_workflow_key,
            normalize=_normalize_workflow,
        ),
        EntityDefinition(
            "dashboards", JiraDashboard, 0,
            pager=lambda _: OffsetPager("/dashboard", "dashboards", 100),
            natural_key=_id,
            normalize=_normalize_dashboard,
        ),
        EntityDefinition(
            "filters", JiraFilter, 0,
            pager=lambda _: OffsetPager(
                "/filter/search", "values", 100, params={"expand": "description,owner,jql,viewUrl,searchUrl"}
            ),
            natural_key=_id,
            normalize=_normalize_filter,
        ),
        EntityDefinition(
            "permissions", JiraPermission, 0,
            # {"permissions": {"BROWSE_PROJECTS": {...}, ...}} - a dict, not a list.
            pager=lambda _: SinglePagePager("/permissions", "permissions"),
            natural_key=lambda r: _str(_get(r, "key")),
            normalize=_normalize_permission,
        ),
        # Tier 1
        EntityDefinition(
            "components", JiraComponent, 1,
            pager=lambda key: SinglePagePager(f"/project/{key}/components"),
            natural_key=_id,
            normalize=_normalize_component,
            scope_source=project_keys,
            depends_on=("projects",),
        ),
        EntityDefinition(
            "versions", JiraVersion, 1,
            pager=lambda key: SinglePagePager(f"/project/{key}/versions"),
            natural_key=_id,
            normalize=_normalize_version,
            scope_source=project_keys,
            depends_on=("projects",),
        ),
        # Tier 2
        EntityDefinition(
            "issues", JiraIssue, 2,
            pager=lambda key: _issue_pager(key, page_size, search_path),
            natural_key=lambda r: _str(_get(r, "key")),
            normalize=_normalize_issue,
            scope_source=project_keys,
            depends_on=("projects",),
        ),
        # Tier 3
        EntityDefinition(
            "comments", JiraComment, 3,
            pager=lambda key: OffsetPager(f"/issue/{key}/comment", "comments", 100),
            natural_key=_id,
            normalize=_normalize_comment,
            scope_source=issue_keys,
            depends_on=("issues",),
        ),
        EntityDefinition(
            "worklogs", JiraWorklog, 3,
            pager=lambda key: OffsetPager(f"/issue/{key}/worklog", "worklogs", 100),
            natural_key=_id,
            normalize=_normalize_worklog,
            scope_source=issue_keys,
            depends_on=("issues",),
        ),
        EntityDefinition(
            "attachments", JiraAttachment, 3,
            pager=lambda key: SinglePagePager(f"/issue/{key}", "fields.attachment", params={"fields": "attachment"}),
            natural_key=_id,
            normalize=_normalize_attachment,
            scope_source=issue_keys,
            depends_on=("issues",),
        ),
        EntityDefinition(
            "issue_links", JiraIssueLink, 3,
            pager=lambda key: SinglePagePager(f"/issue/{key}", "fields.issuelinks", params={"fields": "issuelinks"}),
            natural_key=_id,
            normalize=_normalize_issue_link,
            scope_source=issue_keys,
            depends_on=("issues",),
        ),
    ]


DEFINITIONS: List[EntityDefinition] = build_definitions()
DEFINITIONS_BY_NAME: Dict[str, EntityDefinition] = {d.name: d for d in DEFINITIONS}
TABLES: Dict[str, Any] = {d.table_name: d.model for d in DEFINITIONS}

"""Seed a demo SQLite DB with sample Jira Mirror data.

This is intended for docs and local demos. It does NOT contact Jira: canned
payloads are pushed through the real sync orchestrator via a fake client.

Usage:
  python scripts/seed_demo_data.py --db ./data/demo_jiramirror.db --overwrite
"""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


def _sqlite_url_for_path(db_path: Path) -> str:
    # Absolute paths give the 4-slash form: sqlite:////abs/path
    p = db_path.expanduser().resolve()
    return f"sqlite:///{p}"


def _user(account_id: str, name: str) -> dict:
    return {"accountId": account_id, "displayName": name, "accountType": "atlassian", "active": True}


ALICE = _user("5b10a2844c20165700ede21g", "Alice Example")
BOB = _user("5b10ac8d82e05b22cc7d4ef5", "Bob Example")

DEMO_ISSUES = {
    "DEMO": [
        {
            "id": "10001",
            "key": "DEMO-1",
            "fields": {
                "summary": "Set up the demo board",
                "project": {"key": "DEMO"},
                "status": {"id": "3", "name": "In Progress"},
                "priority": {"id": "2", "name": "High"},
                "issuetype": {"id": "10000", "name": "Epic", "hierarchyLevel": 1},
                "assignee": ALICE,
                "reporter": BOB,
                "created": "2024-01-10T09:00:00.000+0000",
                "updated": "2024-01-12T15:30:00.000+0000",
            },
        },
        {
            "id": "10002",
            "key": "DEMO-2",
            "fields": {
                "summary": "Write the onboarding guide",
                "project": {"key": "DEMO"},
                "status": {"id": "1", "name": "To Do"},
                "priority": {"id": "3", "name": "Medium"},
                "issuetype": {"id": "10001", "name": "Story"},
                "parent": {"key": "DEMO-1", "fields": {"issuetype": {"hierarchyLevel": 1}}},
                "reporter": ALICE,
                "customfield_10016": 3,
                "created": "2024-01-11T10:00:00.000+0000",
                "updated": "2024-01-11T10:00:00.000+0000",
            },
        },
    ],
    "OPS": [
        {
            "id": "10100",
            "key": "OPS-7",
            "fields": {
                "summary": "Rotate the staging certificates",
                "project": {"key": "OPS"},
                "status": {"id": "10001", "name": "Done"},
                "resolution": {"id": "1", "name": "Done"},
                "issuetype": {"id": "10002", "name": "Task"},
                "assignee": BOB,
                "created": "2024-01-05T08:00:00.000+0000",
                "updated": "2024-01-06T17:45:00.000+0000",
            },
        },
    ],
}

DEMO_RESPONSES = {
    "/project/search": {
        "values": [
            {"id": "10000", "key": "DEMO", "name": "Demo Project", "projectTypeKey": "software", "lead": ALICE},
            {"id": "10001", "key": "OPS", "name": "Operations", "projectTypeKey": "business", "lead": BOB},
        ]
    },
    "/issuetype": [
        {"id": "10000", "name": "Epic", "hierarchyLevel": 1, "subtask": False},
        {"id": "10001", "name": "Story", "hierarchyLevel": 0, "subtask": False},
        {"id": "10002", "name": "Task", "hierarchyLevel": 0, "subtask": False},
    ],
    "/priority": [{"id": "2", "name": "High", "statusColor": "#f15c75"}, {"id": "3", "name": "Medium"}],
    "/status": [
        {"id": "1", "name": "To Do", "statusCategory": {"key": "new"}},
        {"id": "3", "name": "In Progress", "statusCategory": {"key": "indeterminate"}},
        {"id": "10001", "name": "Done", "statusCategory": {"key": "done"}},
    ],
    "/resolution": [{"id": "1", "name": "Done", "description": "Work has been completed."}],
    "/users/search": [ALICE, BOB],
    "/groups/picker": {"groups": [{"name": "jira-software-users", "groupId": "276f955c-63d7-42c8-9520-92d01dca0625"}]},
    "/field": [
        {"id": "summary", "name": "Summary", "custom": False, "schema": {"type": "string"}},
        {"id": "customfield_10016", "name": "Story point estimate", "custom": True, "schema": {"type": "number"}},
    ],
    "/label": {"values": ["backend", "docs", "infra"]},
    "/workflow/search": {"values": [{"id": {"name": "Software Simplified Workflow", "entityId": "wf-1"}, "isDefault": True}]},
    "/dashboard": {"dashboards": [{"id": "10000", "name": "Default dashboard", "view": "/jira/dashboards/10000"}]},
    "/filter/search": {"values": [{"id": "10010", "name": "My open issues", "jql": "assignee = currentUser()", "owner": ALICE}]},
    "/permissions": {
        "permissions": {
            "BROWSE_PROJECTS": {"key": "BROWSE_PROJECTS", "name": "Browse Projects", "type": "PROJECT"},
            "CREATE_ISSUES": {"key": "CREATE_ISSUES", "name": "Create Issues", "type": "PROJECT"},
        }
    },
    "/project/DEMO/components": [{"id": "10050", "name": "Backend", "project": "DEMO", "lead": ALICE}],
    "/project/OPS/components": [],
    "/project/DEMO/versions": [{"id": "10060", "name": "1.0", "released": False, "releaseDate": "2024-03-01"}],
    "/project/OPS/versions": [],
    "/issue/DEMO-1/comment": {"comments": [{"id": "20001", "author": BOB, "created": "2024-01-11T12:00:00.000+0000"}]},
    "/issue/DEMO-1/worklog": {"worklogs": [{"id": "30001", "author": ALICE, "timeSpent": "2h", "timeSpentSeconds": 7200}]},
    "/issue/DEMO-2": {
        "fields": {
            "attachment": [{"id": "40001", "filename": "guide-draft.pdf", "size": 48213, "mimeType": "application/pdf", "author": ALICE}],
            "issuelinks": [{"id": "50001", "type": {"id": "10003", "name": "Relates"}, "outwardIssue": {"key": "OPS-7"}}],
        }
    },
}


class DemoJiraClient:
    """Stands in for JiraClient: answers from the canned payloads above."""

    def for_site(self, cloud_id):
        return self

    def get_accessible_resources(self):
        return [{"id": "demo-cloud-id", "url": "https://demo.atlassian.net", "name": "Demo"}]

    # Every canned collection is shorter than its page size, so one page each.
    def get(self, path, params=None):
        if path in DEMO_RESPONSES:
            return DEMO_RESPONSES[path]
        if path.endswith("/comment"):
            return {"comments": []}
        if path.endswith("/worklog"):
            return {"worklogs": []}
        return {"fields": {}}

    def post(self, path, body=None):
        jql = (body or {}).get("jql", "")
        key = jql.split('"')[1] if '"' in jql else ""
        return {"issues": DEMO_ISSUES.get(key, [])}


@dataclass(frozen=True)
class SeedResult:
    db_path: Path
    report: dict


def seed_demo_db(db_path: Path, overwrite: bool = False) -> SeedResult:
    db_path = db_path.expanduser().resolve()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    if overwrite and db_path.exists():
        db_path.unlink()

    os.environ.setdefault("LOG_LEVEL", "WARNING")

    from jiramirror.config import Settings  # noqa: WPS433
    from jiramirror.models.base import Store, utcnow  # noqa: WPS433
    from jiramirror.services.orchestrator import SyncOrchestrator  # noqa: WPS433
    from jiramirror.services.token_manager import TokenLifecycleManager, TokenSet  # noqa: WPS433

    settings = Settings(database_url=_sqlite_url_for_path(db_path), scheduler_enabled=False)
    store = Store(settings.database_url)
    store.init_schema()
    try:
        tokens = TokenLifecycleManager(store, settings)
        account_id = tokens.store_tokens(
            "demo",
            TokenSet("demo-access-token", "demo-refresh-token", utcnow() + timedelta(hours=1)),
            {"account_name": "Demo Account", "account_email": "demo@example.com", "jira_domain": "demo.atlassian.net"},
        )
        orchestrator = SyncOrchestrator(
            store, tokens, settings, client_factory=lambda token: DemoJiraClient()
        )
        report = orchestrator.run(account_id, trigger="manual")
    finally:
        store.close()

    return SeedResult(db_path=db_path, report=report.to_dict())


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a demo Jira Mirror SQLite DB")
    parser.add_argument(
        "--db",
        default="./data/demo_jiramirror.db",
        help="Path to SQLite DB file to create (default: ./data/demo_jiramirror.db)",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Delete existing DB file first",
    )
    args = parser.parse_args()

    result = seed_demo_db(Path(args.db), overwrite=bool(args.overwrite))
    print(f"Seeded demo DB at: {result.db_path} ({result.report['total_records']} records, {result.report['status']})")


if __name__ == "__main__":
    main()

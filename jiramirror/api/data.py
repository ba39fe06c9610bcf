"""Read access to the mirrored Jira data"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import desc
from sqlalchemy.orm import Session

from jiramirror.api.deps import get_db
from jiramirror.models import Account, JiraIssue, JiraProject, SyncRun
from jiramirror.services.entity_catalog import DEFINITIONS, TABLES

router = APIRouter(prefix="/api/accounts", tags=["data"])


def _account_or_404(db: Session, account_id: int) -> Account:
    account = db.get(Account, account_id)
    if account is None:
        raise HTTPException(status_code=404, detail=f"Account {account_id} not found")
    return account


def _row(row, with_raw: bool = False) -> dict:
    data = {c.key: getattr(row, c.key) for c in row.__table__.columns if c.key != "raw_data"}
    if with_raw:
        data["raw_data"] = row.raw_data
    return data


@router.get("/{account_id}/stats")
def get_account_stats(account_id: int, db: Session = Depends(get_db)):
    """Row count per entity type plus the last sync run"""
    account = _account_or_404(db, account_id)
    counts = {
        d.name: db.query(d.model).filter(d.model.account_id == account_id).count()
        for d in DEFINITIONS
    }
    last_run = (
        db.query(SyncRun)
        .filter(SyncRun.account_id == account_id)
        .order_by(desc(SyncRun.started_at), desc(SyncRun.id))
        .first()
    )
    return {
        "account_id": account.id,
        "account_name": account.account_name,
        "counts": counts,
        "total_records": sum(counts.values()),
        "last_sync_at": last_run.finished_at if last_run else None,
        "last_sync_status": last_run.status if last_run else None,
    }


@router.get("/{account_id}/raw-data")
def get_raw_data(account_id: int, table: str, limit: int = 100, db: Session = Depends(get_db)):
    """Rows of one mirrored table, including the raw Jira payload"""
    _account_or_404(db, account_id)
    model = TABLES.get(table)
    if model is None:
        raise HTTPException(status_code=400, detail=f"Unknown table: {table}")
    limit = max(1, min(limit, 1000))
    rows = (
        db.query(model)
        .filter(model.account_id == account_id)
        .order_by(model.id)
        .limit(limit)
        .all()
    )
    return {"table": table, "count": len(rows), "rows": [_row(r, with_raw=True) for r in rows]}


@router.get("/{account_id}/projects")
def list_projects(account_id: int, db: Session = Depends(get_db)):
    """Mirrored projects with their issue counts"""
    _account_or_404(db, account_id)
    projects = (
        db.query(JiraProject)
        .filter(JiraProject.account_id == account_id)
        .order_by(JiraProject.project_key)
        .all()
    )
    result = []
    for project in projects:
        data = _row(project)
        data["issue_count"] = (
            db.query(JiraIssue)
            .filter(JiraIssue.account_id == account_id, JiraIssue.project_key == project.project_key)
            .count()
        )
        result.append(data)
    return result


@router.get("/{account_id}/projects/{project_key}/issues")
def list_project_issues(
    account_id: int,
    project_key: str,
    limit: int = 50,
    offset: int = 0,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Issues of one project (key order), paginated"""
    _account_or_404(db, account_id)
    query = db.query(JiraIssue).filter(
        JiraIssue.account_id == account_id, JiraIssue.project_key == project_key
    )
    if status:
        query = query.filter(JiraIssue.status_name == status)
    total = query.count()
    issues = query.order_by(JiraIssue.issue_key).offset(max(offset, 0)).limit(max(1, min(limit, 500))).all()
    return {
        "project_key": project_key,
        "total": total,
        "limit": limit,
        "offset": offset,
        "issues": [_row(i) for i in issues],
    }

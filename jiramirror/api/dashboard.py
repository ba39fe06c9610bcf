"""Dashboard and statistics endpoints"""

from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import desc
from sqlalchemy.orm import Session

from jiramirror.api.deps import get_db
from jiramirror.models import Account, JiraIssue, JiraProject, SyncRun
from jiramirror.models.base import utcnow
from jiramirror.models.sync_run import SyncStatus

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats")
def get_dashboard_stats(db: Session = Depends(get_db)):
    """Get dashboard statistics"""
    # Total counts
    total_accounts = db.query(Account).count()
    active_accounts = db.query(Account).filter(Account.is_active == True).count()
    total_projects = db.query(JiraProject).count()
    total_issues = db.query(JiraIssue).count()

    # Recent sync activity (last 24 hours)
    last_24h = utcnow() - timedelta(hours=24)
    recent_runs = db.query(SyncRun).filter(SyncRun.started_at >= last_24h)
    recent_syncs = recent_runs.count()
    recent_successes = recent_runs.filter(SyncRun.status == SyncStatus.SUCCESS).count()
    recent_partials = (
        db.query(SyncRun)
        .filter(SyncRun.started_at >= last_24h, SyncRun.status == SyncStatus.PARTIAL)
        .count()
    )
    recent_failures = (
        db.query(SyncRun)
        .filter(SyncRun.started_at >= last_24h, SyncRun.status == SyncStatus.FAILED)
        .count()
    )

    # Per account stats
    account_stats = []
    for account in db.query(Account).order_by(Account.id).all():
        last_run = (
            db.query(SyncRun)
            .filter(SyncRun.account_id == account.id)
            .order_by(desc(SyncRun.started_at), desc(SyncRun.id))
            .first()
        )
        account_stats.append(
            {
                "id": account.id,
                "account_name": account.account_name,
                "jira_domain": account.jira_domain,
                "is_active": account.is_active,
                "is_primary": account.is_primary,
                "projects": db.query(JiraProject).filter(JiraProject.account_id == account.id).count(),
                "issues": db.query(JiraIssue).filter(JiraIssue.account_id == account.id).count(),
                "last_sync_at": last_run.finished_at if last_run else None,
                "last_status": last_run.status if last_run else None,
                "last_message": last_run.message if last_run else None,
            }
        )

    return {
        "total_accounts": total_accounts,
        "active_accounts": active_accounts,
        "total_projects": total_projects,
        "total_issues": total_issues,
        "recent_syncs": recent_syncs,
        "recent_successes": recent_successes,
        "recent_partials": recent_partials,
        "recent_failures": recent_failures,
        "account_stats": account_stats,
    }


@router.get("/activity")
def get_recent_activity(limit: int = 50, db: Session = Depends(get_db)):
    """Get recent sync activity"""
    runs = db.query(SyncRun).order_by(desc(SyncRun.started_at), desc(SyncRun.id)).limit(limit).all()

    activity = []
    for run in runs:
        activity.append(
            {
                "id": run.id,
                "account_id": run.account_id,
                "entity_type": run.entity_type,
                "trigger": run.trigger,
                "status": run.status,
                "total_records": run.total_records,
                "message": run.message,
                "started_at": run.started_at,
                "finished_at": run.finished_at,
            }
        )

    return activity

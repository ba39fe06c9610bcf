"""Sync management endpoints"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from jiramirror.api.deps import get_db, get_orchestrator
from jiramirror.errors import CredentialUnavailable, SyncAlreadyInProgress
from jiramirror.models import SyncRun
from jiramirror.models.sync_run import SyncStatus, SyncTrigger
from jiramirror.services.orchestrator import SyncOrchestrator

router = APIRouter(prefix="/api", tags=["sync"])


class SyncRunResponse(BaseModel):
    id: int
    account_id: int
    entity_type: Optional[str] = None
    trigger: SyncTrigger
    status: SyncStatus
    total_records: int
    message: Optional[str] = None
    started_at: datetime
    finished_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def _run(fn, *args):
    try:
        return fn(*args).to_dict()
    except SyncAlreadyInProgress as e:
        raise HTTPException(status_code=409, detail=e.message)
    except CredentialUnavailable as e:
        raise HTTPException(status_code=400, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/accounts/{account_id}/sync")
def trigger_sync(account_id: int, orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """Manually sync every entity type for an account"""
    return _run(orchestrator.run, account_id, "manual")


@router.post("/accounts/{account_id}/sync/{entity_type}")
def trigger_entity_sync(
    account_id: int, entity_type: str, orchestrator: SyncOrchestrator = Depends(get_orchestrator)
):
    """Manually sync one entity type for an account"""
    # Accept the hyphenated names too (issue-types, issue-links).
    return _run(orchestrator.run_entity, account_id, entity_type.replace("-", "_"), "manual")


@router.get("/sync/runs", response_model=List[SyncRunResponse])
def list_sync_runs(
    limit: int = 100,
    account_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    """List sync runs, newest first"""
    query = db.query(SyncRun).order_by(SyncRun.started_at.desc(), SyncRun.id.desc())
    if account_id:
        query = query.filter(SyncRun.account_id == account_id)
    return query.limit(limit).all()

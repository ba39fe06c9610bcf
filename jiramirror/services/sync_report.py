"""Typed per-step results aggregated into one report per sync run"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from jiramirror.models.base import utcnow


class StepStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"
    # Missing Jira permission for the collection; expected, not a failure.
    FORBIDDEN = "forbidden"


@dataclass
class StepResult:
    entity_type: str
    tier: int
    status: StepStatus
    count: int = 0
    skipped: int = 0
    scope_failures: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_type": self.entity_type,
            "tier": self.tier,
            "status": self.status.value,
            "count": self.count,
            "skipped": self.skipped,
            "scope_failures": self.scope_failures,
            "error": self.error,
        }


@dataclass
class SyncReport:
    account_id: int
    steps: List[StepResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None

    def add(self, step: StepResult) -> None:
        self.steps.append(step)

    def finish(self) -> "SyncReport":
        self.finished_at = utcnow()
        return self

    @property
    def succeeded(self) -> List[StepResult]:
        return [s for s in self.steps if s.status == StepStatus.SUCCESS]

    @property
    def failed(self) -> List[StepResult]:
        return [s for s in self.steps if s.status == StepStatus.FAILED]

    @property
    def forbidden(self) -> List[StepResult]:
        return [s for s in self.steps if s.status == StepStatus.FORBIDDEN]

    @property
    def total_records(self) -> int:
        return sum(s.count for s in self.steps)

    @property
    def status(self) -> str:
        """``success``, ``partial`` (some steps failed) or ``failed`` (all did)."""
        if not self.failed:
            return "success"
        if len(self.failed) == len(self.steps):
            return "failed"
        return "partial"

    def step(self, entity_type: str) -> Optional[StepResult]:
        for s in self.steps:
            if s.entity_type == entity_type:
                return s
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "status": self.status,
            "total_records": self.total_records,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "steps": [s.to_dict() for s in self.steps],
        }

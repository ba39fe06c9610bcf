"""Sync run model"""
from sqlalchemy import JSON, Column, Integer, String, ForeignKey, DateTime, Text, Enum
from sqlalchemy.orm import relationship
import enum
from jiramirror.models.base import Base, utcnow


class SyncStatus(str, enum.Enum):
    """Outcome of one orchestrator run"""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class SyncTrigger(str, enum.Enum):
    """What started the run"""
    MANUAL = "manual"
    SCHEDULED = "scheduled"


class SyncRun(Base):
    """Log of orchestrator runs"""

    __tablename__ = "sync_runs"

    id = Column(Integer, primary_key=True, index=True)

    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    # None for a full run, otherwise the single entity type that was synced
    entity_type = Column(String, nullable=True)
    trigger = Column(Enum(SyncTrigger), nullable=False, default=SyncTrigger.MANUAL)

    status = Column(Enum(SyncStatus), nullable=False)
    total_records = Column(Integer, nullable=False, default=0)
    message = Column(Text, nullable=True)
    report = Column(JSON, nullable=True)  # SyncReport.to_dict()

    started_at = Column(DateTime, default=utcnow, index=True)
    finished_at = Column(DateTime, nullable=True)

    account = relationship("Account")

    def __repr__(self):
        return f"<SyncRun(account_id={self.account_id}, status={self.status})>"

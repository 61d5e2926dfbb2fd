"""
Repository pattern for data access.

Each repository wraps one table and converts SQLAlchemy failures into
DatabaseError so handlers can surface them as a 500.
"""

from datetime import datetime
from typing import List, Optional, Dict, Any, Iterable

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from loguru import logger

from fusionrisk.config import LookbackWindow
from fusionrisk.db.models import MetricRecord, FusionRiskEvent, PipelineAuditLog
from fusionrisk.utils.errors import DatabaseError


class MetricRecordRepository:
    """Read access to the adaptive workflow metrics table."""

    def __init__(self, db: Session):
        self.db = db

    def get_recent(self, window: LookbackWindow) -> List[MetricRecord]:
        """Most recent records first, capped by the lookback window."""
        try:
            query = self.db.query(MetricRecord)
            if window.max_age is not None:
                query = query.filter(MetricRecord.created_at >= datetime.utcnow() - window.max_age)
            return (
                query.order_by(desc(MetricRecord.created_at), desc(MetricRecord.id))
                .limit(window.max_records)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Metric query failed: {e}")
            raise DatabaseError("Failed to query telemetry data", details=str(e))


class RiskEventRepository:
    """Append-only access to fusion risk events."""

    def __init__(self, db: Session):
        self.db = db

    def bulk_create(self, events: Iterable[Dict[str, Any]]) -> List[FusionRiskEvent]:
        """Insert all events in a single flush and commit."""
        rows = [FusionRiskEvent(**event) for event in events]
        try:
            self.db.add_all(rows)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Risk event insert failed: {e}")
            raise DatabaseError("Failed to record risk events", details=str(e))
        return rows

    def get_recent(self, limit: int = 50) -> List[FusionRiskEvent]:
        try:
            return (
                self.db.query(FusionRiskEvent)
                .order_by(desc(FusionRiskEvent.created_at), desc(FusionRiskEvent.id))
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to query risk events", details=str(e))


class AuditLogRepository:
    """Generic audit sink shared by all handlers."""

    def __init__(self, db: Session):
        self.db = db

    def log(
        self,
        event_type: str,
        event_source: str,
        event_payload: Dict[str, Any],
        stability_score: Optional[float] = None,
        reinforcement_delta: Optional[float] = None,
    ) -> PipelineAuditLog:
        """Write and commit one audit entry."""
        entry = PipelineAuditLog(
            event_type=event_type,
            event_source=event_source,
            event_payload=event_payload,
            stability_score=stability_score,
            reinforcement_delta=reinforcement_delta,
        )
        try:
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Audit log write failed for {event_source}: {e}")
            raise DatabaseError("Failed to write audit log", details=str(e))
        return entry

    def get_recent(self, event_source: Optional[str] = None, limit: int = 100) -> List[PipelineAuditLog]:
        query = self.db.query(PipelineAuditLog).order_by(desc(PipelineAuditLog.created_at))
        if event_source:
            query = query.filter(PipelineAuditLog.event_source == event_source)
        return query.limit(limit).all()

"""
SQLAlchemy 2.0 database models for the Fusion Stability pipeline.

The metrics table is written by the upstream event logger and only read here;
risk events and audit entries are append-only.
"""

from datetime import datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

RISK_CATEGORIES = ("Stable", "Moderate Risk", "High Risk")
RISK_ACTIONS = ("maintain", "reinforce", "reset")


def _in_list(column: str, values) -> str:
    return f"{column} IN (" + ", ".join(f"'{v}'" for v in values) + ")"


class MetricRecord(Base):
    """One observed adaptive-workflow event."""

    __tablename__ = "adaptive_workflow_metrics"
    __table_args__ = (
        Index("ix_adaptive_workflow_metrics_created_at", "created_at"),
        Index("ix_adaptive_workflow_metrics_event_type_created", "event_type", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    workflow_id = Column(String, nullable=True)
    event_type = Column(String, nullable=False)
    confidence_score = Column(Float, nullable=True)
    feedback_score = Column(Float, nullable=True)
    adjustment_type = Column(String, nullable=True)  # reinforce | tune | reset
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<MetricRecord(id={self.id}, event_type={self.event_type}, "
            f"confidence={self.confidence_score}, feedback={self.feedback_score})>"
        )


class FusionRiskEvent(Base):
    """Risk action recorded by the risk engine."""

    __tablename__ = "fusion_risk_events"
    __table_args__ = (
        CheckConstraint(
            _in_list("risk_category", RISK_CATEGORIES),
            name="ck_fusion_risk_events_category",
        ),
        CheckConstraint(
            _in_list("action_taken", RISK_ACTIONS),
            name="ck_fusion_risk_events_action",
        ),
        Index("ix_fusion_risk_events_created_at", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(String, nullable=False, index=True)
    predicted_variance = Column(Float, nullable=False)
    predicted_stability = Column(Float, nullable=False)
    risk_category = Column(String, nullable=False)
    action_taken = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "predicted_variance": self.predicted_variance,
            "predicted_stability": self.predicted_stability,
            "risk_category": self.risk_category,
            "action_taken": self.action_taken,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"<FusionRiskEvent(id={self.id}, event_type={self.event_type}, "
            f"risk={self.risk_category}, action={self.action_taken})>"
        )


class PipelineAuditLog(Base):
    """Audit entry written once per handler run."""

    __tablename__ = "pipeline_audit_log"
    __table_args__ = (
        Index("ix_pipeline_audit_log_source_created", "event_source", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(String, nullable=False)
    event_source = Column(String, nullable=False)
    event_payload = Column(JSON, nullable=True)
    stability_score = Column(Float, nullable=True)  # 0-100 scale
    reinforcement_delta = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<PipelineAuditLog(id={self.id}, event_type={self.event_type}, source={self.event_source})>"

"""
Baseline analyzer.

Aggregates the most recent adaptive workflow metrics into per-category
baseline statistics: mean confidence, mean feedback, adjustment-type ratios
and the derived stability index.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from fusionrisk.config import LookbackWindow, settings
from fusionrisk.db.models import MetricRecord
from fusionrisk.db.repositories import AuditLogRepository, MetricRecordRepository
from fusionrisk.domain.results import BaselineMetrics, BaselineReport
from fusionrisk.domain.stability import group_by_event_type, mean, stability_index
from fusionrisk.log_config import handler_logger

logger = handler_logger("baseline")
EVENT_SOURCE = "analyze-fusion-baseline"


def _is_valid(record: MetricRecord) -> bool:
    return (
        record.confidence_score is not None
        and record.feedback_score is not None
        and record.adjustment_type is not None
    )


def compute_baseline(records: List[MetricRecord]) -> List[BaselineMetrics]:
    """Per-category baselines over valid records, highest stability first."""
    summary: List[BaselineMetrics] = []

    for event_type, group in group_by_event_type(records).items():
        valid = [r for r in group if _is_valid(r)]
        if not valid:
            continue

        count = len(valid)
        avg_confidence = mean([r.confidence_score for r in valid])
        avg_feedback = mean([r.feedback_score for r in valid])
        adjustments = [r.adjustment_type for r in valid]

        summary.append(
            BaselineMetrics(
                event_type=event_type,
                avg_confidence=avg_confidence,
                avg_feedback=avg_feedback,
                reinforcement_ratio=adjustments.count("reinforce") / count,
                tune_ratio=adjustments.count("tune") / count,
                reset_ratio=adjustments.count("reset") / count,
                stability_index=stability_index(avg_confidence, avg_feedback),
                sample_count=count,
            )
        )

    summary.sort(key=lambda s: s.stability_index, reverse=True)
    return summary


class BaselineAnalyzer:
    """Baseline analysis handler."""

    def __init__(self, db: Session, lookback: Optional[LookbackWindow] = None):
        self.db = db
        self.lookback = lookback or settings.baseline_lookback
        self.metrics = MetricRecordRepository(db)
        self.audit = AuditLogRepository(db)

    def analyze(self) -> BaselineReport:
        logger.info("Starting baseline analysis...")

        records = self.metrics.get_recent(self.lookback)

        if not records:
            logger.warning("No telemetry data found")
            return BaselineReport(
                total_records=0,
                summary=[],
                message="No telemetry data available for analysis",
            )

        logger.info(f"Total records: {len(records)}")
        summary = compute_baseline(records)

        for item in summary:
            logger.info(
                f"{item.event_type}: "
                f"avg_confidence={item.avg_confidence:.3f} | "
                f"avg_feedback={item.avg_feedback:.3f} | "
                f"stability={item.stability_index:.3f}"
            )

        self.audit.log(
            event_type="baseline_analysis",
            event_source=EVENT_SOURCE,
            event_payload={
                "total_records": len(records),
                "event_types_analyzed": len(summary),
                "summary": [
                    {
                        "event_type": s.event_type,
                        "stability_index": s.stability_index,
                        "sample_count": s.sample_count,
                    }
                    for s in summary
                ],
            },
            stability_score=summary[0].stability_index * 100 if summary else None,
        )

        logger.info(f"Analysis complete. Event types analyzed: {len(summary)}")
        return BaselineReport(total_records=len(records), summary=summary)

"""
Adaptive reinforcement calibration.

Compares the baseline stability of each category with the stability of a
smaller, fresher sample and recommends reinforce, reset or tune. Largest
drift comes first.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from fusionrisk.config import LookbackWindow, settings
from fusionrisk.db.models import MetricRecord
from fusionrisk.db.repositories import AuditLogRepository, MetricRecordRepository
from fusionrisk.domain.results import BaselineMetrics, CalibrationReport, CalibrationResult
from fusionrisk.domain import stability
from fusionrisk.log_config import handler_logger
from fusionrisk.services.collaborators import BaselineSource
from fusionrisk.utils.errors import DatabaseError

logger = handler_logger("calibration")
EVENT_SOURCE = "adaptive-reinforcement-calibration"


def compute_calibrations(
    baseline: List[BaselineMetrics],
    recent: List[MetricRecord],
) -> List[CalibrationResult]:
    grouped = stability.group_by_event_type(recent)
    calibrations: List[CalibrationResult] = []

    for item in baseline:
        current = grouped.get(item.event_type)
        if not current:
            logger.info(f"No current data for event type: {item.event_type}")
            continue

        valid = [r for r in current if r.confidence_score is not None and r.feedback_score is not None]
        if not valid:
            continue

        current_stability = stability.stability_index(
            stability.mean([r.confidence_score for r in valid]),
            stability.mean([r.feedback_score for r in valid]),
        )
        delta = current_stability - item.stability_index
        recommendation = stability.recommend_calibration(delta)

        calibrations.append(
            CalibrationResult(
                event_type=item.event_type,
                baseline_stability=item.stability_index,
                current_stability=current_stability,
                variance=delta,
                recommendation=recommendation,
                sample_count=len(valid),
            )
        )

        logger.info(
            f"{item.event_type}: baseline={item.stability_index:.3f} | "
            f"current={current_stability:.3f} (delta {delta:.3f}) -> {recommendation}"
        )

    calibrations.sort(key=lambda c: abs(c.variance), reverse=True)
    return calibrations


class CalibrationLoop:
    """Calibration handler."""

    def __init__(
        self,
        db: Session,
        baseline: BaselineSource,
        lookback: Optional[LookbackWindow] = None,
    ):
        self.db = db
        self.baseline = baseline
        self.lookback = lookback or settings.calibration_lookback
        self.metrics = MetricRecordRepository(db)
        self.audit = AuditLogRepository(db)

    def run(self) -> CalibrationReport:
        logger.info("Starting adaptive reinforcement calibration...")

        baseline = self.baseline.fetch()
        if not baseline:
            logger.warning("No baseline data available")
            return CalibrationReport(
                calibrations=[],
                message="No baseline data available for calibration",
            )

        logger.info(f"Baseline metrics retrieved: {len(baseline)} event types")

        try:
            recent = self.metrics.get_recent(self.lookback)
        except DatabaseError as e:
            raise DatabaseError("Failed to query recent data", details=e.details)

        if not recent:
            logger.warning("No recent data found")
            return CalibrationReport(
                calibrations=[],
                message="No recent data available for calibration",
            )

        calibrations = compute_calibrations(baseline, recent)

        if calibrations:
            avg_variance = stability.mean([abs(c.variance) for c in calibrations])
            avg_stability = stability.mean([c.current_stability for c in calibrations])
        else:
            avg_variance = 0.0
            avg_stability = 0.0

        self.audit.log(
            event_type="reinforcement_calibration",
            event_source=EVENT_SOURCE,
            event_payload={
                "calibrations_count": len(calibrations),
                "avg_variance": round(avg_variance, 4),
                "recommendations": [
                    {
                        "event_type": c.event_type,
                        "variance": c.variance,
                        "recommendation": c.recommendation,
                    }
                    for c in calibrations
                ],
            },
            stability_score=avg_stability * 100,
            reinforcement_delta=avg_variance,
        )

        logger.info(f"Calibration complete. Event types analyzed: {len(calibrations)}")
        return CalibrationReport(calibrations=calibrations)

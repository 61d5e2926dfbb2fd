"""
Predictive stability forecaster.

For every category with enough samples, projects confidence variance and the
stability index one step ahead and classifies the resulting instability
probability into a risk category.

Smoothing compares the current reading against the most recent historical
window only (single step). It is not a recursive EMA over the whole history,
and changing that alters outputs for any category with more than one
historical window.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from fusionrisk.config import LookbackWindow, settings
from fusionrisk.db.models import MetricRecord
from fusionrisk.db.repositories import AuditLogRepository, MetricRecordRepository
from fusionrisk.domain.results import ForecastReport, ForecastResult
from fusionrisk.domain import stability
from fusionrisk.log_config import handler_logger
from fusionrisk.utils.errors import DatabaseError

logger = handler_logger("forecast")
EVENT_SOURCE = "predictive-stability-forecast"


def _chronological(records: List[MetricRecord]) -> List[MetricRecord]:
    return sorted(records, key=lambda r: (r.created_at, r.id or 0))


def _feedback_scores(records: List[MetricRecord]) -> List[float]:
    return [r.feedback_score for r in records if r.feedback_score is not None]


def compute_forecast(event_type: str, records: List[MetricRecord]) -> ForecastResult:
    """Forecast for one category.

    ``records`` must be ordered oldest to newest and carry a confidence score.
    """
    confidence = [r.confidence_score for r in records]
    windows = stability.historical_windows(len(records))

    current_variance = stability.rolling_variance(confidence)
    historical_variances = [stability.variance(confidence[w]) for w in windows]
    predicted_variance = stability.smooth_against_last(current_variance, historical_variances)

    current_stability = stability.stability_from_scores(confidence, _feedback_scores(records))
    historical_stabilities = [
        stability.stability_from_scores(confidence[w], _feedback_scores(records[w]))
        for w in windows
    ]
    predicted_stability = stability.smooth_against_last(current_stability, historical_stabilities)

    probability = stability.instability_probability(predicted_stability)

    return ForecastResult(
        event_type=event_type,
        current_variance=current_variance,
        predicted_variance=predicted_variance,
        predicted_stability_index=predicted_stability,
        instability_probability=probability,
        risk_category=stability.categorize_risk(probability),
        sample_count=len(records),
    )


def compute_forecasts(records: List[MetricRecord]) -> List[ForecastResult]:
    """Forecasts for every category at or above the sample floor, in first-seen order."""
    forecasts: List[ForecastResult] = []

    for event_type, group in stability.group_by_event_type(records).items():
        samples = [r for r in group if r.confidence_score is not None]
        if len(samples) < stability.MIN_FORECAST_SAMPLES:
            logger.info(f"Skipping {event_type}: insufficient data ({len(samples)} records)")
            continue

        forecast = compute_forecast(event_type, _chronological(samples))
        forecasts.append(forecast)

        logger.info(
            f"{event_type}: predicted_variance={forecast.predicted_variance:.3f} | "
            f"instability={forecast.instability_probability:.3f} ({forecast.risk_category})"
        )

    return forecasts


class PredictiveForecaster:
    """Predictive stability forecast handler."""

    def __init__(self, db: Session, lookback: Optional[LookbackWindow] = None):
        self.db = db
        self.lookback = lookback or settings.forecast_lookback
        self.metrics = MetricRecordRepository(db)
        self.audit = AuditLogRepository(db)

    def forecast(self) -> ForecastReport:
        logger.info("Starting predictive stability forecast...")

        try:
            records = self.metrics.get_recent(self.lookback)
        except DatabaseError as e:
            raise DatabaseError("Database error", details=e.details)

        if not records:
            logger.info("No metrics found in database")
            return ForecastReport(
                forecasts=[],
                message="No historical data available for forecasting",
            )

        forecasts = compute_forecasts(records)

        self.audit.log(
            event_type="stability_forecast",
            event_source=EVENT_SOURCE,
            event_payload={
                "total_records": len(records),
                "event_types_forecast": len(forecasts),
                "forecasts": [
                    {
                        "event_type": f.event_type,
                        "instability_probability": f.instability_probability,
                        "risk_category": f.risk_category,
                    }
                    for f in forecasts
                ],
            },
            stability_score=(
                stability.mean([f.predicted_stability_index for f in forecasts]) * 100
                if forecasts else None
            ),
        )

        logger.info(f"Forecast complete. {len(forecasts)} event type(s) forecast")

        message = None
        if not forecasts:
            message = "Insufficient data for forecasting"
        return ForecastReport(forecasts=forecasts, message=message)

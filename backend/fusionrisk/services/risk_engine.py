"""
Fusion risk engine.

Turns forecasts into corrective actions:

    High Risk      -> reset
    Moderate Risk  -> reinforce
    Stable         -> maintain (no downstream call)

Actions are pushed to the reinforcement sync endpoint one category at a time.
A failed sync call drops only that category; every other failure aborts the
run. Applied reinforce/reset actions are recorded as risk events in a single
insert at the end of the run.
"""

from collections import Counter
from typing import List

from sqlalchemy.orm import Session

from fusionrisk.db.repositories import AuditLogRepository, RiskEventRepository
from fusionrisk.domain.results import ForecastResult, RiskEngineReport, RiskEvent
from fusionrisk.domain import stability
from fusionrisk.log_config import handler_logger
from fusionrisk.services.collaborators import ForecastSource
from fusionrisk.services.reinforcement_sync import ReinforcementSyncClient

logger = handler_logger("risk-engine")
EVENT_SOURCE = "fusion-risk-engine"


class RiskEngine:
    """Risk response handler."""

    def __init__(
        self,
        db: Session,
        forecasts: ForecastSource,
        sync_client: ReinforcementSyncClient,
    ):
        self.db = db
        self.forecasts = forecasts
        self.sync_client = sync_client
        self.risk_events = RiskEventRepository(db)
        self.audit = AuditLogRepository(db)

    def run(self) -> RiskEngineReport:
        logger.info("Starting fusion risk engine...")

        forecasts = self.forecasts.fetch()

        if not forecasts:
            logger.info("No forecasts available. Exiting gracefully.")
            return RiskEngineReport(
                events_processed=0,
                risk_events=[],
                message="No forecasts available for processing",
            )

        logger.info(f"Retrieved {len(forecasts)} forecast(s)")

        processed: List[ForecastResult] = []
        actions = Counter()
        recorded: List[RiskEvent] = []

        for forecast in forecasts:
            action = stability.determine_action(forecast.risk_category)

            logger.info(
                f"{forecast.event_type}: risk={forecast.risk_category} "
                f"(instability={forecast.instability_probability:.3f}) -> action={action}"
            )

            if not self.sync_client.apply(forecast.event_type, action):
                continue

            processed.append(forecast)
            actions[action] += 1

            if action != stability.ACTION_MAINTAIN:
                recorded.append(
                    RiskEvent(
                        event_type=forecast.event_type,
                        predicted_variance=forecast.predicted_variance,
                        predicted_stability=forecast.predicted_stability_index,
                        risk_category=forecast.risk_category,
                        action_taken=action,
                    )
                )

        if recorded:
            self.risk_events.bulk_create(event.to_dict() for event in recorded)
            logger.info(f"Logged {len(recorded)} risk event(s) to database")

        self._audit(processed, actions, recorded)

        logger.info(f"Completed. {len(processed)} event(s) processed.")
        return RiskEngineReport(events_processed=len(processed), risk_events=recorded)

    def _audit(self, processed: List[ForecastResult], actions: Counter, recorded: List[RiskEvent]) -> None:
        risks = Counter(f.risk_category for f in processed)

        if recorded:
            avg_stability = stability.mean([e.predicted_stability for e in recorded])
            avg_instability = stability.mean([1 - e.predicted_stability for e in recorded])
        else:
            avg_stability = 0.0
            avg_instability = 0.0

        self.audit.log(
            event_type="risk_response",
            event_source=EVENT_SOURCE,
            event_payload={
                "events_processed": len(processed),
                "events_recorded": len(recorded),
                "actions_distribution": {
                    "maintain": actions[stability.ACTION_MAINTAIN],
                    "reinforce": actions[stability.ACTION_REINFORCE],
                    "reset": actions[stability.ACTION_RESET],
                },
                "risk_distribution": {
                    "stable": risks[stability.STABLE],
                    "moderate": risks[stability.MODERATE_RISK],
                    "high": risks[stability.HIGH_RISK],
                },
                "avg_instability": avg_instability,
            },
            stability_score=avg_stability * 100,
        )

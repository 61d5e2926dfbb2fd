"""
Fusion stability API router.

The four pipeline handlers plus a read-only view of recorded risk events.
Every route requires the internal token in X-Internal-Token.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.dependencies import get_baseline_source, get_db, get_forecast_source, get_sync_client
from api.schemas.errors import ErrorResponse
from api.schemas.stability import (
    BaselineResponse,
    CalibrationResponse,
    ForecastResponse,
    RiskEngineResponse,
    RiskEventListResponse,
)
from api.utils.auth import require_internal_token
from api.utils.exceptions import handler_errors
from api.utils.metrics import increment_metric
from fusionrisk.db.repositories import RiskEventRepository
from fusionrisk.services.baseline_analyzer import BaselineAnalyzer
from fusionrisk.services.calibration import CalibrationLoop
from fusionrisk.services.collaborators import BaselineSource, ForecastSource
from fusionrisk.services.forecaster import PredictiveForecaster
from fusionrisk.services.reinforcement_sync import ReinforcementSyncClient
from fusionrisk.services.risk_engine import RiskEngine

router = APIRouter(
    prefix="/stability",
    tags=["stability"],
    dependencies=[Depends(require_internal_token)],
    responses={
        403: {"model": ErrorResponse, "description": "Missing or invalid internal token"},
        500: {"model": ErrorResponse, "description": "Handler failure"},
    },
)


@router.post("/baseline", response_model=BaselineResponse, response_model_exclude_none=True)
def analyze_baseline(db: Session = Depends(get_db)):
    """Summarize per-category stability over the recent telemetry window."""
    with handler_errors("baseline"):
        report = BaselineAnalyzer(db).analyze()
    return report.to_dict()


@router.post("/forecast", response_model=ForecastResponse, response_model_exclude_none=True)
def forecast_stability(db: Session = Depends(get_db)):
    """Forecast confidence variance and risk category per workflow category."""
    with handler_errors("forecast"):
        report = PredictiveForecaster(db).forecast()
    return report.to_dict()


@router.post("/risk-engine", response_model=RiskEngineResponse, response_model_exclude_none=True)
def run_risk_engine(
    db: Session = Depends(get_db),
    forecasts: ForecastSource = Depends(get_forecast_source),
    sync_client: ReinforcementSyncClient = Depends(get_sync_client),
):
    """
    Apply corrective actions for every forecast.

    Moderate Risk categories are reinforced and High Risk categories reset.
    A failed sync call drops only that category from the result.
    """
    try:
        with handler_errors("risk-engine"):
            report = RiskEngine(db, forecasts, sync_client).run()
    finally:
        # Counted whether or not the run completes
        increment_metric("reinforcement_sync_calls_total", sync_client.calls_made)
        increment_metric("reinforcement_sync_failures_total", sync_client.failures)

    increment_metric("risk_events_recorded_total", len(report.risk_events))
    return report.to_dict()


@router.post("/calibration", response_model=CalibrationResponse, response_model_exclude_none=True)
def run_calibration(
    db: Session = Depends(get_db),
    baseline: BaselineSource = Depends(get_baseline_source),
):
    """Compare baseline stability with recent stability and recommend adjustments."""
    with handler_errors("calibration"):
        report = CalibrationLoop(db, baseline).run()
    return report.to_dict()


@router.get("/risk-events", response_model=RiskEventListResponse)
def list_risk_events(
    limit: int = Query(50, ge=1, le=500, description="Maximum number of events to return"),
    db: Session = Depends(get_db),
):
    """Most recent risk events, newest first."""
    with handler_errors("risk-events"):
        events = RiskEventRepository(db).get_recent(limit)
    return {"risk_events": [e.to_dict() for e in events], "count": len(events)}

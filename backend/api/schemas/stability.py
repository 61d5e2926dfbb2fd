"""
Fusion stability API response schemas.

Mirrors the report objects returned by the four pipeline handlers.
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class BaselineMetricsResponse(BaseModel):
    """Per-category baseline stability."""
    event_type: str = Field(description="Workflow category")
    avg_confidence: float = Field(description="Mean confidence over all valid records")
    avg_feedback: float = Field(description="Mean feedback over all valid records")
    reinforcement_ratio: float = Field(description="Share of 'reinforce' adjustments")
    tune_ratio: float = Field(description="Share of 'tune' adjustments")
    reset_ratio: float = Field(description="Share of 'reset' adjustments")
    stability_index: float = Field(description="0.6 * avg_confidence + 0.4 * avg_feedback")
    sample_count: int = Field(description="Number of valid records in the category")


class BaselineResponse(BaseModel):
    status: str = "success"
    total_records: int
    summary: List[BaselineMetricsResponse] = Field(default_factory=list)
    timestamp: str
    message: Optional[str] = None


class ForecastResultResponse(BaseModel):
    """Per-category variance forecast."""
    event_type: str
    current_variance: float = Field(description="Variance of the 20 most recent confidence scores")
    predicted_variance: float = Field(description="Exponentially smoothed variance")
    predicted_stability_index: float = Field(description="Exponentially smoothed stability index")
    instability_probability: float = Field(description="1 - predicted_stability_index, clamped to [0, 1]")
    risk_category: str = Field(description="Stable, Moderate Risk or High Risk")
    sample_count: int


class ForecastResponse(BaseModel):
    status: str = "success"
    forecasts: List[ForecastResultResponse] = Field(default_factory=list)
    timestamp: str
    message: Optional[str] = None


class RiskEventResponse(BaseModel):
    """Corrective action applied by the risk engine."""
    event_type: str
    predicted_variance: float
    predicted_stability: float
    risk_category: str
    action_taken: str = Field(description="reinforce or reset")


class RiskEngineResponse(BaseModel):
    status: str = "success"
    events_processed: int = Field(description="Forecasts whose action was applied successfully")
    risk_events: List[RiskEventResponse] = Field(default_factory=list)
    timestamp: str
    message: Optional[str] = None


class CalibrationResultResponse(BaseModel):
    """Baseline versus current stability for one category."""
    event_type: str
    baseline_stability: float
    current_stability: float
    variance: float = Field(description="current_stability - baseline_stability")
    recommendation: str = Field(description="reinforce, reset or tune")
    sample_count: int


class CalibrationResponse(BaseModel):
    status: str = "success"
    calibrations: List[CalibrationResultResponse] = Field(default_factory=list)
    timestamp: str
    message: Optional[str] = None


class StoredRiskEventResponse(RiskEventResponse):
    """Risk event as persisted."""
    id: int
    created_at: Optional[str] = None


class RiskEventListResponse(BaseModel):
    risk_events: List[StoredRiskEventResponse] = Field(default_factory=list)
    count: int

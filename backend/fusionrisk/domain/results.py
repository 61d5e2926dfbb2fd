"""Value objects produced by the pipeline handlers."""

from dataclasses import dataclass, asdict, field
from datetime import datetime
from typing import Any, Dict, List, Optional


def _utc_timestamp() -> str:
    return datetime.utcnow().isoformat() + "Z"


@dataclass
class BaselineMetrics:
    event_type: str
    avg_confidence: float
    avg_feedback: float
    reinforcement_ratio: float
    tune_ratio: float
    reset_ratio: float
    stability_index: float
    sample_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BaselineMetrics":
        return cls(
            event_type=data["event_type"],
            avg_confidence=float(data.get("avg_confidence", 0.0)),
            avg_feedback=float(data.get("avg_feedback", 0.0)),
            reinforcement_ratio=float(data.get("reinforcement_ratio", 0.0)),
            tune_ratio=float(data.get("tune_ratio", 0.0)),
            reset_ratio=float(data.get("reset_ratio", 0.0)),
            stability_index=float(data["stability_index"]),
            sample_count=int(data.get("sample_count", 0)),
        )


@dataclass
class BaselineReport:
    total_records: int
    summary: List[BaselineMetrics]
    message: Optional[str] = None
    timestamp: str = field(default_factory=_utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "status": "success",
            "total_records": self.total_records,
            "summary": [s.to_dict() for s in self.summary],
            "timestamp": self.timestamp,
        }
        if self.message:
            body["message"] = self.message
        return body


@dataclass
class ForecastResult:
    event_type: str
    current_variance: float
    predicted_variance: float
    predicted_stability_index: float
    instability_probability: float
    risk_category: str
    sample_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ForecastResult":
        return cls(
            event_type=data["event_type"],
            current_variance=float(data.get("current_variance", 0.0)),
            predicted_variance=float(data.get("predicted_variance", 0.0)),
            predicted_stability_index=float(data.get("predicted_stability_index", 0.0)),
            instability_probability=float(data.get("instability_probability", 0.0)),
            risk_category=data.get("risk_category", ""),
            sample_count=int(data.get("sample_count", 0)),
        )


@dataclass
class ForecastReport:
    forecasts: List[ForecastResult]
    message: Optional[str] = None
    timestamp: str = field(default_factory=_utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "status": "success",
            "forecasts": [f.to_dict() for f in self.forecasts],
            "timestamp": self.timestamp,
        }
        if self.message:
            body["message"] = self.message
        return body


@dataclass
class RiskEvent:
    event_type: str
    predicted_variance: float
    predicted_stability: float
    risk_category: str
    action_taken: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RiskEngineReport:
    events_processed: int
    risk_events: List[RiskEvent]
    message: Optional[str] = None
    timestamp: str = field(default_factory=_utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "status": "success",
            "events_processed": self.events_processed,
            "risk_events": [e.to_dict() for e in self.risk_events],
            "timestamp": self.timestamp,
        }
        if self.message:
            body["message"] = self.message
        return body


@dataclass
class CalibrationResult:
    event_type: str
    baseline_stability: float
    current_stability: float
    variance: float
    recommendation: str
    sample_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CalibrationReport:
    calibrations: List[CalibrationResult]
    message: Optional[str] = None
    timestamp: str = field(default_factory=_utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "status": "success",
            "calibrations": [c.to_dict() for c in self.calibrations],
            "timestamp": self.timestamp,
        }
        if self.message:
            body["message"] = self.message
        return body

"""
Stability math shared by the baseline analyzer, forecaster and calibration loop.

All functions are pure. Weights, window size, smoothing factor and risk
breakpoints are fixed constants; callers must not assume they can be tuned.
"""

from typing import Dict, Iterable, List, Optional, Sequence, TypeVar

T = TypeVar("T")

CONFIDENCE_WEIGHT = 0.6
FEEDBACK_WEIGHT = 0.4

ROLLING_WINDOW = 20
SMOOTHING_ALPHA = 0.6
MIN_FORECAST_SAMPLES = 10

HIGH_RISK_THRESHOLD = 0.8
MODERATE_RISK_THRESHOLD = 0.6

CALIBRATION_THRESHOLD = 0.05

STABLE = "Stable"
MODERATE_RISK = "Moderate Risk"
HIGH_RISK = "High Risk"

ACTION_MAINTAIN = "maintain"
ACTION_REINFORCE = "reinforce"
ACTION_RESET = "reset"
ACTION_TUNE = "tune"

_RISK_ACTIONS = {
    HIGH_RISK: ACTION_RESET,
    MODERATE_RISK: ACTION_REINFORCE,
    STABLE: ACTION_MAINTAIN,
}


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def variance(values: Sequence[float]) -> float:
    """Population variance; 0 for an empty sequence."""
    if not values:
        return 0.0
    mu = mean(values)
    return sum((v - mu) ** 2 for v in values) / len(values)


def rolling_variance(values: Sequence[float], window: int = ROLLING_WINDOW) -> float:
    """Variance of the last ``window`` values, or of all of them if fewer exist."""
    if len(values) < window:
        return variance(values)
    return variance(values[-window:])


def stability_index(avg_confidence: float, avg_feedback: float) -> float:
    return CONFIDENCE_WEIGHT * avg_confidence + FEEDBACK_WEIGHT * avg_feedback


def stability_from_scores(confidence_scores: Sequence[float], feedback_scores: Sequence[float]) -> float:
    """Stability index over raw score lists.

    An empty confidence list yields 0; an empty feedback list contributes 0.
    """
    if not confidence_scores:
        return 0.0
    return stability_index(mean(confidence_scores), mean(feedback_scores))


def historical_windows(length: int, window: int = ROLLING_WINDOW) -> List[slice]:
    """Slices [i - window, i) for i = window, 2*window, ... while i < length."""
    return [slice(i - window, i) for i in range(window, length, window)]


def exponential_smoothing(current: float, previous: float, alpha: float = SMOOTHING_ALPHA) -> float:
    return alpha * current + (1 - alpha) * previous


def smooth_against_last(current: float, history: Sequence[float], alpha: float = SMOOTHING_ALPHA) -> float:
    """Single-step smoothing of ``current`` against the last historical sample.

    This is intentionally not a recursive EMA over ``history``; only the most
    recent sample takes part.
    """
    if not history:
        return current
    return exponential_smoothing(current, history[-1], alpha)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def instability_probability(predicted_stability: float) -> float:
    return clamp(1 - predicted_stability)


def categorize_risk(probability: float) -> str:
    """Map an instability probability to a risk category (lower bounds inclusive)."""
    if probability >= HIGH_RISK_THRESHOLD:
        return HIGH_RISK
    if probability >= MODERATE_RISK_THRESHOLD:
        return MODERATE_RISK
    return STABLE


def determine_action(risk_category: Optional[str]) -> str:
    """Corrective action for a risk category; unknown categories maintain."""
    return _RISK_ACTIONS.get(risk_category, ACTION_MAINTAIN)


def recommend_calibration(delta: float) -> str:
    if delta >= CALIBRATION_THRESHOLD:
        return ACTION_REINFORCE
    if delta <= -CALIBRATION_THRESHOLD:
        return ACTION_RESET
    return ACTION_TUNE


def group_by_event_type(records: Iterable[T]) -> Dict[str, List[T]]:
    """Group records by ``event_type``, keeping first-seen order of the keys."""
    grouped: Dict[str, List[T]] = {}
    for record in records:
        grouped.setdefault(record.event_type, []).append(record)
    return grouped

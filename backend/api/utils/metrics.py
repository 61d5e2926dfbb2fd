"""
Prometheus-style metrics for the pipeline handlers.

Simple in-memory counters, reset on restart.
"""

import threading
from datetime import datetime
from typing import Dict

_lock = threading.Lock()

_METRICS: Dict[str, int] = {
    "risk_events_recorded_total": 0,
    "reinforcement_sync_calls_total": 0,
    "reinforcement_sync_failures_total": 0,
}

_LABELED_METRICS: Dict[str, Dict[str, int]] = {
    "pipeline_runs_total": {},  # handler=baseline|forecast|risk-engine|calibration
    "pipeline_errors_total": {},  # handler=...
}

_HELP = {
    "risk_events_recorded_total": "Total number of risk events written by the risk engine",
    "reinforcement_sync_calls_total": "Total number of reinforcement sync calls issued",
    "reinforcement_sync_failures_total": "Total number of failed reinforcement sync calls",
    "pipeline_runs_total": "Total number of handler runs that completed successfully",
    "pipeline_errors_total": "Total number of handler runs that failed",
}

_START_TIME = datetime.utcnow()


def increment_metric(metric_name: str, value: int = 1):
    """Increment a metric counter."""
    with _lock:
        if metric_name in _METRICS:
            _METRICS[metric_name] += value


def increment_counter(metric_name: str, labels: Dict[str, str] = None, value: int = 1):
    """Increment a counter with optional labels."""
    with _lock:
        if metric_name in _METRICS:
            _METRICS[metric_name] += value
        elif metric_name in _LABELED_METRICS and labels:
            label_key = ",".join(f'{k}="{v}"' for k, v in sorted(labels.items()))
            _LABELED_METRICS[metric_name][label_key] = _LABELED_METRICS[metric_name].get(label_key, 0) + value


def get_metrics() -> Dict[str, int]:
    """Get current metric values."""
    with _lock:
        return _METRICS.copy()


def get_labeled_metric(metric_name: str) -> Dict[str, int]:
    with _lock:
        return dict(_LABELED_METRICS.get(metric_name, {}))


def get_metrics_text() -> str:
    """Get metrics in Prometheus text format."""
    uptime_seconds = int((datetime.utcnow() - _START_TIME).total_seconds())
    lines = []

    with _lock:
        for name, value in _METRICS.items():
            lines.extend([
                f"# HELP {name} {_HELP[name]}",
                f"# TYPE {name} counter",
                f"{name} {value}",
                "",
            ])

        for name, series in _LABELED_METRICS.items():
            lines.extend([f"# HELP {name} {_HELP[name]}", f"# TYPE {name} counter"])
            if series:
                for label_str, count in series.items():
                    lines.append(f"{name}{{{label_str}}} {count}")
            else:
                lines.append(f"{name} 0")
            lines.append("")

    lines.extend([
        "# HELP api_uptime_seconds API uptime in seconds",
        "# TYPE api_uptime_seconds gauge",
        f"api_uptime_seconds {uptime_seconds}",
        "",
    ])
    return "\n".join(lines)

#!/usr/bin/env python3
"""
Fusion stability pipeline job.

Runs the pipeline stages in-process against the configured database and
prints each stage's result as JSON. Intended for cron: the calibration loop
and the risk engine are the periodic stages.

Usage:
    python -m jobs.run_stability_pipeline                    # All stages
    python -m jobs.run_stability_pipeline --stage risk       # Risk engine only
    python -m jobs.run_stability_pipeline --init-db          # Create tables first
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.orm import Session

from fusionrisk.config import settings
from fusionrisk.db.session import get_db_context, init_db
from fusionrisk.log_config import handler_logger
from fusionrisk.services.baseline_analyzer import BaselineAnalyzer
from fusionrisk.services.calibration import CalibrationLoop
from fusionrisk.services.collaborators import InProcessBaselineSource, InProcessForecastSource
from fusionrisk.services.forecaster import PredictiveForecaster
from fusionrisk.services.reinforcement_sync import ReinforcementSyncClient
from fusionrisk.services.risk_engine import RiskEngine
from fusionrisk.utils.errors import FusionRiskError

logger = handler_logger("pipeline")

STAGES = ["baseline", "forecast", "risk", "calibration"]


def run_baseline(db: Session) -> Dict[str, Any]:
    return BaselineAnalyzer(db).analyze().to_dict()


def run_forecast(db: Session) -> Dict[str, Any]:
    return PredictiveForecaster(db).forecast().to_dict()


def run_risk(db: Session) -> Dict[str, Any]:
    sync_client = ReinforcementSyncClient(
        sync_url=settings.sync_endpoint,
        internal_token=settings.internal_webhook_token,
        timeout=settings.http_timeout_seconds,
    )
    return RiskEngine(db, InProcessForecastSource(db), sync_client).run().to_dict()


def run_calibration(db: Session) -> Dict[str, Any]:
    return CalibrationLoop(db, InProcessBaselineSource(db)).run().to_dict()


RUNNERS: Dict[str, Callable[[Session], Dict[str, Any]]] = {
    "baseline": run_baseline,
    "forecast": run_forecast,
    "risk": run_risk,
    "calibration": run_calibration,
}


def run_pipeline(stages: List[str]) -> Dict[str, Any]:
    """Run the given stages in order, each in its own session."""
    results: Dict[str, Any] = {}
    for stage in stages:
        logger.info(f"Running stage: {stage}")
        with get_db_context() as db:
            results[stage] = RUNNERS[stage](db)
    return results


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the fusion stability pipeline")
    parser.add_argument(
        "--stage",
        choices=STAGES + ["all"],
        default="all",
        help="Stage to run (default: all)",
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create pipeline tables before running",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    if args.init_db:
        init_db()

    stages = STAGES if args.stage == "all" else [args.stage]

    try:
        results = run_pipeline(stages)
    except FusionRiskError as e:
        logger.error(f"Failed: {e.message}")
        print(json.dumps(e.to_dict(), indent=2, default=str))
        return 1

    print(json.dumps(results, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())

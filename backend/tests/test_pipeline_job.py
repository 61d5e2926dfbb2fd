"""
Tests for the stability pipeline job entry point.
"""

import json

import pytest

from fusionrisk.db.repositories import AuditLogRepository
from fusionrisk.utils.errors import DatabaseError
from jobs import run_stability_pipeline


def test_runs_all_stages(db_session, seed_records, capsys):
    seed_records("signup", [0.9] * 10 + [0.1, 0.1], 0.8)

    exit_code = run_stability_pipeline.main([])

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert list(output) == ["baseline", "forecast", "risk", "calibration"]
    assert output["baseline"]["summary"][0]["stability_index"] == pytest.approx(0.78)
    assert output["forecast"]["forecasts"][0]["risk_category"] == "Stable"
    assert output["risk"]["events_processed"] == 1
    assert output["calibration"]["calibrations"][0]["recommendation"] == "tune"


def test_single_stage(db_session, seed_records, capsys):
    seed_records("signup", [0.5] * 3, 0.5)

    exit_code = run_stability_pipeline.main(["--stage", "baseline"])

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert list(output) == ["baseline"]
    entries = AuditLogRepository(db_session).get_recent("analyze-fusion-baseline")
    assert [e.event_type for e in entries] == ["baseline_analysis"]


def test_failure_exits_non_zero(db_session, monkeypatch, capsys):
    def broken(db):
        raise DatabaseError("Failed to query telemetry data", details="disk full")

    monkeypatch.setitem(run_stability_pipeline.RUNNERS, "forecast", broken)

    exit_code = run_stability_pipeline.main(["--stage", "forecast"])

    assert exit_code == 1
    assert json.loads(capsys.readouterr().out) == {
        "error": "Failed to query telemetry data",
        "details": "disk full",
    }


def test_rejects_unknown_stage():
    with pytest.raises(SystemExit):
        run_stability_pipeline.parse_args(["--stage", "everything"])

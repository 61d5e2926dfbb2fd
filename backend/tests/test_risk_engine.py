"""
Tests for the fusion risk engine.

Verifies the action mapping, the maintain short-circuit, per-item isolation
of sync failures, the single bulk insert and upstream error propagation.
"""

import json

import httpx
import pytest

from api.dependencies import get_forecast_source
from api.main import app
from api.utils.metrics import get_metrics
from fusionrisk.db.models import FusionRiskEvent, PipelineAuditLog
from fusionrisk.db.repositories import MetricRecordRepository, RiskEventRepository
from fusionrisk.domain.results import ForecastResult
from fusionrisk.services.collaborators import ForecastSource, HandlerClient, HttpForecastSource
from fusionrisk.services.reinforcement_sync import ReinforcementSyncClient
from fusionrisk.services.risk_engine import RiskEngine
from fusionrisk.utils.errors import DatabaseError
from conftest import SYNC_URL, TEST_TOKEN


class StaticForecasts(ForecastSource):
    def __init__(self, forecasts):
        self.forecasts = forecasts

    def fetch(self):
        return self.forecasts


class ExplodingForecasts(ForecastSource):
    def fetch(self):
        raise RuntimeError("forecast store exploded")


def forecast(event_type, category, stability=0.5):
    return ForecastResult(
        event_type=event_type,
        current_variance=0.02,
        predicted_variance=0.02,
        predicted_stability_index=stability,
        instability_probability=1 - stability,
        risk_category=category,
        sample_count=12,
    )


@pytest.fixture
def bulk_create_calls(monkeypatch):
    calls = []
    original = RiskEventRepository.bulk_create

    def spy(self, events):
        events = list(events)
        calls.append(events)
        return original(self, events)

    monkeypatch.setattr(RiskEventRepository, "bulk_create", spy)
    return calls


def sync_client_for(recorder):
    return ReinforcementSyncClient(
        sync_url=SYNC_URL,
        internal_token=TEST_TOKEN,
        authorization="Bearer caller-jwt",
        transport=httpx.MockTransport(recorder),
    )


def test_only_stable_makes_no_calls_and_no_insert(client, auth_headers, seed_records, sync_recorder, bulk_create_calls):
    seed_records("signup", [0.9] * 10 + [0.1, 0.1], 0.8)

    response = client.post("/stability/risk-engine", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["events_processed"] == 1
    assert data["risk_events"] == []
    assert sync_recorder.requests == []
    assert bulk_create_calls == []


def test_one_failed_sync_is_isolated(client, auth_headers, seed_records, sync_recorder, db_session):
    seed_records("payments", [0.1] * 10, 0.1)  # High Risk -> reset
    seed_records("onboarding", [0.3] * 10, 0.3, start=100)  # Moderate Risk -> reinforce
    sync_recorder.failing = {"payments"}

    response = client.post("/stability/risk-engine", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["events_processed"] == 1
    assert len(data["risk_events"]) == 1
    assert data["risk_events"][0]["event_type"] == "onboarding"
    assert data["risk_events"][0]["action_taken"] == "reinforce"
    assert len(sync_recorder.requests) == 2

    stored = db_session.query(FusionRiskEvent).all()
    assert [e.event_type for e in stored] == ["onboarding"]


def test_sync_payload_and_headers(db_session, sync_recorder):
    engine = RiskEngine(
        db_session,
        StaticForecasts([forecast("payments", "High Risk", stability=0.1)]),
        sync_client_for(sync_recorder),
    )

    report = engine.run()

    assert report.events_processed == 1
    request = sync_recorder.requests[0]
    assert str(request.url) == SYNC_URL
    assert request.headers["X-Internal-Token"] == TEST_TOKEN
    assert request.headers["Authorization"] == "Bearer caller-jwt"
    assert json.loads(request.content) == {"event_type": "payments", "recommendation": "reset"}


def test_single_bulk_insert_for_all_events(db_session, sync_recorder, bulk_create_calls):
    forecasts = [
        forecast("a", "High Risk", stability=0.1),
        forecast("b", "Moderate Risk", stability=0.3),
        forecast("c", "Stable", stability=0.9),
    ]

    report = RiskEngine(db_session, StaticForecasts(forecasts), sync_client_for(sync_recorder)).run()

    assert report.events_processed == 3
    assert len(bulk_create_calls) == 1
    assert [e["action_taken"] for e in bulk_create_calls[0]] == ["reset", "reinforce"]
    assert len(sync_recorder.requests) == 2


def test_unknown_category_maintains(db_session, sync_recorder):
    report = RiskEngine(
        db_session,
        StaticForecasts([forecast("mystery", "Catastrophic")]),
        sync_client_for(sync_recorder),
    ).run()

    assert report.events_processed == 1
    assert report.risk_events == []
    assert sync_recorder.requests == []


def test_no_forecasts(db_session, sync_recorder, bulk_create_calls):
    report = RiskEngine(db_session, StaticForecasts([]), sync_client_for(sync_recorder)).run()

    body = report.to_dict()
    assert body["events_processed"] == 0
    assert body["message"] == "No forecasts available for processing"
    assert bulk_create_calls == []


def test_audit_entry(db_session, sync_recorder):
    forecasts = [
        forecast("a", "High Risk", stability=0.1),
        forecast("b", "Moderate Risk", stability=0.3),
        forecast("c", "Stable", stability=0.9),
    ]

    RiskEngine(db_session, StaticForecasts(forecasts), sync_client_for(sync_recorder)).run()

    entry = db_session.query(PipelineAuditLog).one()
    assert entry.event_type == "risk_response"
    assert entry.event_source == "fusion-risk-engine"
    assert entry.event_payload["actions_distribution"] == {"maintain": 1, "reinforce": 1, "reset": 1}
    assert entry.event_payload["risk_distribution"] == {"stable": 1, "moderate": 1, "high": 1}
    assert entry.stability_score == pytest.approx(20.0)
    assert entry.event_payload["avg_instability"] == pytest.approx(0.8)


def test_audit_without_recorded_events_uses_zero(db_session, sync_recorder):
    RiskEngine(db_session, StaticForecasts([forecast("c", "Stable", 0.9)]), sync_client_for(sync_recorder)).run()

    entry = db_session.query(PipelineAuditLog).one()
    assert entry.stability_score == 0.0
    assert entry.event_payload["avg_instability"] == 0.0


def test_forecaster_http_failure_returns_500_with_body(client, auth_headers, db_session):
    def failing_forecaster(request):
        return httpx.Response(503, json={"error": "forecaster down"})

    def override_forecast_source():
        return HttpForecastSource(
            HandlerClient(
                base_url="http://functions.test",
                internal_token=TEST_TOKEN,
                transport=httpx.MockTransport(failing_forecaster),
            )
        )

    app.dependency_overrides[get_forecast_source] = override_forecast_source

    response = client.post("/stability/risk-engine", headers=auth_headers)

    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "Failed to fetch forecasts"
    assert "forecaster down" in data["details"]
    assert data["status"] == 503
    assert db_session.query(FusionRiskEvent).count() == 0


def test_http_forecast_source_parses_results():
    def forecaster(request):
        assert request.url.path.endswith("/predictive-stability-forecast")
        return httpx.Response(200, json={
            "status": "success",
            "forecasts": [forecast("signup", "Stable", 0.78).to_dict()],
        })

    source = HttpForecastSource(
        HandlerClient("http://functions.test", TEST_TOKEN, transport=httpx.MockTransport(forecaster))
    )

    results = source.fetch()

    assert len(results) == 1
    assert results[0].event_type == "signup"
    assert results[0].predicted_stability_index == pytest.approx(0.78)


def test_unexpected_error_returns_500(client, auth_headers):
    app.dependency_overrides[get_forecast_source] = lambda: ExplodingForecasts()

    response = client.post("/stability/risk-engine", headers=auth_headers)

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "details": "forecast store exploded"}


def test_inprocess_forecaster_failure_returns_500_with_body(client, auth_headers, monkeypatch, db_session):
    def broken(self, window):
        raise DatabaseError("Failed to query telemetry data", details="boom")

    monkeypatch.setattr(MetricRecordRepository, "get_recent", broken)

    response = client.post("/stability/risk-engine", headers=auth_headers)

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to fetch forecasts",
        "details": {"error": "Database error", "details": "boom"},
        "status": 500,
    }
    assert db_session.query(FusionRiskEvent).count() == 0


def test_sync_calls_counted_when_insert_fails(client, auth_headers, seed_records, sync_recorder, monkeypatch):
    seed_records("payments", [0.1] * 10, 0.1)  # High Risk -> reset

    def broken(self, events):
        raise DatabaseError("Failed to record risk events", details="disk full")

    monkeypatch.setattr(RiskEventRepository, "bulk_create", broken)
    before = get_metrics()

    response = client.post("/stability/risk-engine", headers=auth_headers)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to record risk events", "details": "disk full"}
    assert len(sync_recorder.requests) == 1
    after = get_metrics()
    assert after["reinforcement_sync_calls_total"] - before["reinforcement_sync_calls_total"] == 1
    assert after["reinforcement_sync_failures_total"] == before["reinforcement_sync_failures_total"]
    assert after["risk_events_recorded_total"] == before["risk_events_recorded_total"]

"""
Security tests for the internal token guard and CORS preflight handling.
"""

import pytest

from api.utils.auth import RequestAuthenticator
from fusionrisk.config import settings
from fusionrisk.utils.errors import AuthorizationError

HANDLERS = [
    "/stability/baseline",
    "/stability/forecast",
    "/stability/risk-engine",
    "/stability/calibration",
]


class TestRequestAuthenticator:
    def test_matching_token(self):
        assert RequestAuthenticator("s3cret").is_authorized("s3cret")

    def test_mismatch(self):
        assert not RequestAuthenticator("s3cret").is_authorized("s3cret2")
        assert not RequestAuthenticator("s3cret").is_authorized("S3CRET")

    def test_missing_header(self):
        assert not RequestAuthenticator("s3cret").is_authorized(None)
        assert not RequestAuthenticator("s3cret").is_authorized("")

    def test_unconfigured_secret_rejects_everything(self):
        authenticator = RequestAuthenticator("")
        assert not authenticator.is_authorized("")
        assert not authenticator.is_authorized("anything")

    def test_authenticate_raises(self):
        with pytest.raises(AuthorizationError) as exc_info:
            RequestAuthenticator("s3cret").authenticate("nope")
        assert exc_info.value.status_code == 403
        assert exc_info.value.to_dict() == {"error": "Unauthorized"}


@pytest.mark.parametrize("path", HANDLERS)
def test_missing_token_is_forbidden(client, path):
    response = client.post(path)

    assert response.status_code == 403
    assert response.json() == {"error": "Unauthorized"}


@pytest.mark.parametrize("path", HANDLERS)
def test_wrong_token_is_forbidden(client, path):
    response = client.post(path, headers={"X-Internal-Token": "wrong-token"})

    assert response.status_code == 403
    assert response.json() == {"error": "Unauthorized"}


def test_unconfigured_secret_is_forbidden(client, monkeypatch):
    monkeypatch.setattr(settings, "internal_webhook_token", "")

    response = client.post("/stability/baseline", headers={"X-Internal-Token": ""})

    assert response.status_code == 403


def test_forbidden_request_has_no_side_effects(client, sync_recorder, seed_records):
    seed_records("payments", [0.1] * 10, 0.1)

    response = client.post("/stability/risk-engine", headers={"X-Internal-Token": "wrong-token"})

    assert response.status_code == 403
    assert sync_recorder.requests == []


def test_risk_events_listing_requires_token(client):
    assert client.get("/stability/risk-events").status_code == 403


@pytest.mark.parametrize("path", HANDLERS + ["/anything/else"])
def test_options_preflight(client, path):
    response = client.options(path)

    assert response.status_code == 200
    assert response.text == "ok"
    assert response.headers["access-control-allow-origin"] == "*"
    assert "x-internal-token" in response.headers["access-control-allow-headers"]


def test_healthz_is_public(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"

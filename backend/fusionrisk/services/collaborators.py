"""
Upstream handler access for the risk engine and the calibration loop.

Forecasts and baselines are normally produced in-process. The HTTP sources
reach a deployed handler instead, sending the internal token and forwarding
the caller's Authorization header verbatim.
"""

from typing import List, Optional

import httpx
from sqlalchemy.orm import Session

from fusionrisk.config import Settings, settings as default_settings
from fusionrisk.domain.results import BaselineMetrics, ForecastResult
from fusionrisk.log_config import handler_logger
from fusionrisk.utils.errors import ConfigurationError, FusionRiskError, UpstreamError

logger = handler_logger("collaborator")
FORECAST_HANDLER = "predictive-stability-forecast"
BASELINE_HANDLER = "analyze-fusion-baseline"


class ForecastSource:
    """Something that yields the forecaster's current output."""

    def fetch(self) -> List[ForecastResult]:
        raise NotImplementedError


class BaselineSource:
    """Something that yields the baseline analyzer's current summary."""

    def fetch(self) -> List[BaselineMetrics]:
        raise NotImplementedError


class InProcessForecastSource(ForecastSource):
    def __init__(self, db: Session):
        self.db = db

    def fetch(self) -> List[ForecastResult]:
        from fusionrisk.services.forecaster import PredictiveForecaster

        try:
            return PredictiveForecaster(self.db).forecast().forecasts
        except FusionRiskError as e:
            raise UpstreamError(
                "Failed to fetch forecasts",
                details=e.to_dict(),
                upstream_status=e.status_code,
            )


class InProcessBaselineSource(BaselineSource):
    def __init__(self, db: Session):
        self.db = db

    def fetch(self) -> List[BaselineMetrics]:
        from fusionrisk.services.baseline_analyzer import BaselineAnalyzer

        try:
            return BaselineAnalyzer(self.db).analyze().summary
        except FusionRiskError as e:
            raise UpstreamError(
                "Failed to fetch baseline metrics",
                details=e.to_dict(),
                upstream_status=e.status_code,
            )


class HandlerClient:
    """POSTs to a deployed handler function."""

    def __init__(
        self,
        base_url: str,
        internal_token: str,
        authorization: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.internal_token = internal_token
        self.authorization = authorization or ""
        self.timeout = timeout
        self.transport = transport

    def post(self, handler: str, error_message: str) -> dict:
        url = f"{self.base_url}/{handler}"
        headers = {
            "Authorization": self.authorization,
            "X-Internal-Token": self.internal_token,
            "Content-Type": "application/json",
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(url, json={}, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"{handler} unreachable: {e}")
            raise UpstreamError(error_message, details=str(e))

        if not response.is_success:
            logger.error(f"{handler} returned {response.status_code}: {response.text}")
            raise UpstreamError(error_message, details=response.text, upstream_status=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(error_message, details=f"Invalid JSON from {handler}: {e}")


class HttpForecastSource(ForecastSource):
    def __init__(self, client: HandlerClient):
        self.client = client

    def fetch(self) -> List[ForecastResult]:
        data = self.client.post(FORECAST_HANDLER, "Failed to fetch forecasts")
        return [ForecastResult.from_dict(item) for item in data.get("forecasts") or []]


class HttpBaselineSource(BaselineSource):
    def __init__(self, client: HandlerClient):
        self.client = client

    def fetch(self) -> List[BaselineMetrics]:
        data = self.client.post(BASELINE_HANDLER, "Failed to fetch baseline metrics")
        if data.get("status") != "success":
            return []
        return [BaselineMetrics.from_dict(item) for item in data.get("summary") or []]


def _handler_client(config: Settings, authorization: Optional[str]) -> HandlerClient:
    return HandlerClient(
        base_url=config.functions_base_url,
        internal_token=config.internal_webhook_token,
        authorization=authorization,
        timeout=config.http_timeout_seconds,
    )


def build_forecast_source(
    db: Session,
    authorization: Optional[str] = None,
    config: Optional[Settings] = None,
) -> ForecastSource:
    config = config or default_settings
    if config.collaborator_transport == "inprocess":
        return InProcessForecastSource(db)
    if config.collaborator_transport == "http":
        return HttpForecastSource(_handler_client(config, authorization))
    raise ConfigurationError(f"Unknown collaborator transport: {config.collaborator_transport}")


def build_baseline_source(
    db: Session,
    authorization: Optional[str] = None,
    config: Optional[Settings] = None,
) -> BaselineSource:
    config = config or default_settings
    if config.collaborator_transport == "inprocess":
        return InProcessBaselineSource(db)
    if config.collaborator_transport == "http":
        return HttpBaselineSource(_handler_client(config, authorization))
    raise ConfigurationError(f"Unknown collaborator transport: {config.collaborator_transport}")

"""FastAPI dependencies"""
from typing import Generator, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from fusionrisk.config import settings
from fusionrisk.db.session import get_db as get_db_session, close_db_session
from fusionrisk.services.collaborators import (
    BaselineSource,
    ForecastSource,
    build_baseline_source,
    build_forecast_source,
)
from fusionrisk.services.reinforcement_sync import ReinforcementSyncClient


def get_db() -> Generator[Session, None, None]:
    """Get database session"""
    db = get_db_session()
    try:
        yield db
    finally:
        close_db_session(db)


def get_forecast_source(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> ForecastSource:
    """Where the risk engine reads forecasts from"""
    return build_forecast_source(db, authorization)


def get_baseline_source(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> BaselineSource:
    """Where the calibration loop reads the baseline from"""
    return build_baseline_source(db, authorization)


def get_sync_client(authorization: Optional[str] = Header(None)) -> ReinforcementSyncClient:
    """Reinforcement sync client forwarding the caller's Authorization header"""
    return ReinforcementSyncClient(
        sync_url=settings.sync_endpoint,
        internal_token=settings.internal_webhook_token,
        authorization=authorization,
        timeout=settings.http_timeout_seconds,
    )

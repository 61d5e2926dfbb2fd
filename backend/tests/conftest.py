"""
Shared pytest fixtures for the fusion stability test suite.

Provides an in-memory database, a test client wired to it, and helpers for
seeding metric records.
"""

import json
import os
import sys
from datetime import datetime, timedelta
from typing import List, Optional

# Environment must be set before any application module reads settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("INTERNAL_WEBHOOK_TOKEN", "test-internal-token")
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("COLLABORATOR_TRANSPORT", "inprocess")
os.environ.setdefault("SENTRY_DSN", "")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from api.dependencies import get_db, get_sync_client
from api.main import app
from fusionrisk.db.models import Base, MetricRecord
from fusionrisk.db.session import SessionLocal, close_db_session, engine
from fusionrisk.services.reinforcement_sync import ReinforcementSyncClient

TEST_TOKEN = "test-internal-token"
SYNC_URL = "http://functions.test/cffe-reinforcement-sync"
BASE_TIME = datetime(2025, 1, 1, 12, 0, 0)


@pytest.fixture(scope="function")
def db_session():
    """Fresh schema and session for each test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    yield session

    close_db_session(session)
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def auth_headers():
    return {"X-Internal-Token": TEST_TOKEN}


class SyncRecorder:
    """MockTransport handler that records reinforcement sync calls."""

    def __init__(self, failing: Optional[set] = None, status_code: int = 500):
        self.failing = failing or set()
        self.status_code = status_code
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        payload = json.loads(request.content)
        if payload["event_type"] in self.failing:
            return httpx.Response(self.status_code, json={"error": "sync failed"})
        return httpx.Response(200, json={"status": "success"})

    @property
    def payloads(self):
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def sync_recorder():
    return SyncRecorder()


@pytest.fixture
def client(db_session: Session, sync_recorder: SyncRecorder):
    """
    FastAPI test client bound to the test session.

    Reinforcement sync calls go to ``sync_recorder`` instead of the network.
    """

    def override_get_db():
        yield db_session

    def override_get_sync_client():
        return ReinforcementSyncClient(
            sync_url=SYNC_URL,
            internal_token=TEST_TOKEN,
            transport=httpx.MockTransport(sync_recorder),
        )

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sync_client] = override_get_sync_client

    yield TestClient(app)

    app.dependency_overrides.clear()


def make_record(
    event_type: str,
    confidence: Optional[float],
    feedback: Optional[float],
    adjustment: Optional[str] = "reinforce",
    offset_seconds: int = 0,
) -> MetricRecord:
    return MetricRecord(
        workflow_id=f"wf-{event_type}",
        event_type=event_type,
        confidence_score=confidence,
        feedback_score=feedback,
        adjustment_type=adjustment,
        created_at=BASE_TIME + timedelta(seconds=offset_seconds),
    )


@pytest.fixture
def seed_records(db_session: Session):
    """
    Insert metric records for one category, oldest first.

    Returns a function(event_type, confidences, feedbacks, adjustments=None,
    start=0) that creates one record per confidence value, each one second
    after the previous.
    """

    def _seed(event_type, confidences, feedbacks, adjustments=None, start=0):
        if not isinstance(feedbacks, (list, tuple)):
            feedbacks = [feedbacks] * len(confidences)
        if adjustments is None:
            adjustments = ["reinforce"] * len(confidences)
        elif not isinstance(adjustments, (list, tuple)):
            adjustments = [adjustments] * len(confidences)

        records = [
            make_record(event_type, c, f, a, offset_seconds=start + i)
            for i, (c, f, a) in enumerate(zip(confidences, feedbacks, adjustments))
        ]
        db_session.add_all(records)
        db_session.commit()
        return records

    return _seed

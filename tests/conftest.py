"""
Shared test fixtures: in-memory database, provider stubs and API client.
"""

import json
import os
import sys

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REPLICATE_API_TOKEN"] = "test-token"
os.environ["PUBLIC_BASE_URL"] = ""
os.environ["WEBHOOK_SECRET"] = ""
os.environ["MIRROR_RESULTS"] = "false"
os.environ["IMAGEKIT_BASE_URL"] = ""

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db, get_provider, get_storage
from app.core.database import Base
from app.main import app
from app.models.job import VideoJob
from app.services.video_provider import VideoProvider

VIDEO_URL = "https://replicate.delivery/pbxt/neon-sneaker.mp4"


class ProviderStub:
    """
    Records provider requests and answers with a scripted response.

    Set `response` to a (status_code, body) tuple, or to an exception
    instance to simulate a transport failure.
    """

    def __init__(self, status_code: int = 201, body=None):
        self.response = (status_code, body if body is not None else {})
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.response, Exception):
            raise self.response
        status_code, body = self.response
        if isinstance(body, (dict, list)):
            return httpx.Response(status_code, json=body)
        return httpx.Response(status_code, text=body)

    @property
    def last_payload(self) -> dict:
        return json.loads(self.requests[-1].content)

    def provider(self, api_token: str = "test-token") -> VideoProvider:
        return VideoProvider(
            api_token=api_token,
            api_base="https://provider.test/v1",
            transport=httpx.MockTransport(self.handler),
        )


def sync_body(url: str = VIDEO_URL) -> dict:
    return {"id": "pred_sync", "status": "succeeded", "output": [url]}


def deferred_body(provider_job_id: str = "pred_123") -> dict:
    return {"id": provider_job_id, "status": "starting", "output": None}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def provider_stub():
    return ProviderStub(201, sync_body())


@pytest.fixture
def client(session_factory, provider_stub):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_provider] = lambda: provider_stub.provider()
    app.dependency_overrides[get_storage] = lambda: None
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def count_jobs(db) -> int:
    db.expire_all()
    return db.query(VideoJob).count()

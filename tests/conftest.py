# ==============================================================================
# Shared Test Fixtures
# ==============================================================================
"""
Pytest fixtures shared across all test modules.

Provides:
- Settings pointing at the Valkey store with a test key prefix
- fakeredis-backed ValkeySessionRepository (fresh server per test)
- IngestionService with a controllable clock
- FastAPI TestClient running the full app lifespan
"""

from datetime import datetime, timedelta, timezone

import fakeredis
import pytest
from fastapi.testclient import TestClient

from clicktrail.api.server import create_app
from clicktrail.infrastructure.repositories import ValkeySessionRepository
from clicktrail.service.ingestion import IngestionService
from clicktrail.utils.config import Settings, StoreSettings

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class StepClock:
    """Clock that advances one second per call."""

    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        now = self.current
        self.current = now + timedelta(seconds=1)
        return now


@pytest.fixture()
def settings():
    """Settings for the Valkey store under an isolated key prefix."""
    return Settings(store=StoreSettings(impl="valkey", key_prefix="test"))


@pytest.fixture()
def fake_redis():
    """A clean fakeredis instance for each test.

    Uses decode_responses=True to match the real repository client.
    """
    server = fakeredis.FakeServer()
    return fakeredis.FakeRedis(server=server, decode_responses=True)


@pytest.fixture()
def repository(settings, fake_redis):
    """A connected ValkeySessionRepository backed by fakeredis."""
    repo = ValkeySessionRepository(settings, client=fake_redis)
    repo.connect()
    return repo


@pytest.fixture()
def clock():
    return StepClock()


@pytest.fixture()
def service(repository, clock):
    """IngestionService whose clock ticks one second per write."""
    return IngestionService(repository, clock=clock)


@pytest.fixture()
def client(settings, repository):
    """TestClient for the full app; the lifespan connects and closes the repository."""
    with TestClient(create_app(settings, repository)) as test_client:
        yield test_client

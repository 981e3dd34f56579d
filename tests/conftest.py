"""
Pytest fixtures for Taskflow tests.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Ensure test config is set before importing taskflow modules.
os.environ.setdefault("TASKFLOW_ALLOW_INSECURE_DEV", "true")
os.environ.setdefault("TASKFLOW_ENV", "development")
os.environ.setdefault("TASKFLOW_STORAGE_BACKEND", "memory")
os.environ.setdefault("TASKFLOW_QUEUE_BACKEND", "memory")
os.environ.setdefault("TASKFLOW_CACHE_BACKEND", "memory")
os.environ.setdefault("TASKFLOW_REALTIME_BACKEND", "memory")

from taskflow.config import Settings
from taskflow.models import NotificationSeverity
from taskflow.notifications.realtime import InMemoryRealtimeSink
from taskflow.observability.metrics import metrics
from taskflow.queue.inmemory import InMemoryWorkQueue
from taskflow.services import build_services
from taskflow.stores.inmemory import InMemoryEventStore, InMemoryNotificationStore, InMemoryRuleStore


class FakeClock:
    """Settable clock for queue and cache timing."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingMailSink:
    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, to: str, subject: str, body: str) -> None:
        self.sent.append((to, subject, body))


class RecordingNotificationSink:
    def __init__(self):
        self.created: list[dict[str, Any]] = []

    async def create(
        self,
        user_id: str,
        title: str,
        message: str,
        severity: NotificationSeverity = NotificationSeverity.INFO,
    ) -> None:
        self.created.append(
            {"user_id": user_id, "title": title, "message": message, "severity": severity}
        )


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def queue(clock) -> InMemoryWorkQueue:
    return InMemoryWorkQueue(clock=clock)


@pytest.fixture
def event_store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def rule_store() -> InMemoryRuleStore:
    return InMemoryRuleStore()


@pytest.fixture
def notification_store() -> InMemoryNotificationStore:
    return InMemoryNotificationStore()


@pytest.fixture
def realtime() -> InMemoryRealtimeSink:
    return InMemoryRealtimeSink()


@pytest.fixture
def mail_sink() -> RecordingMailSink:
    return RecordingMailSink()


@pytest.fixture
def notification_sink() -> RecordingNotificationSink:
    return RecordingNotificationSink()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        storage_backend="memory",
        queue_backend="memory",
        cache_backend="memory",
        realtime_backend="memory",
        worker_poll_interval_seconds=0.01,
    )


@pytest_asyncio.fixture
async def services(test_settings):
    """In-memory services with the event bus loop not started."""
    services = build_services(test_settings)
    yield services
    await services.stop()


@pytest_asyncio.fixture
async def client(services):
    """Async test client bound to in-memory services."""
    from taskflow.main import app

    app.state.services = services
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.state.services = None

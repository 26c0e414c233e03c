from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from plant_monitor.core.config import Settings
from plant_monitor.core.exceptions import NotificationError
from plant_monitor.crud.memory import InMemoryReadingStore
from plant_monitor.main import create_app
from plant_monitor.services.notifier import Notifier

NEPAL = timezone(timedelta(hours=5, minutes=45))


def local_time(hour: int, minute: int = 0) -> datetime:
    """UTC instant for a wall-clock time at the default alert offset (UTC+5:45)."""
    return datetime(2026, 5, 1, hour, minute, tzinfo=NEPAL).astimezone(timezone.utc)


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, value: datetime) -> None:
        self.now = value


class RecordingNotifier(Notifier):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent = []

    def send(self, message) -> None:
        self.sent.append(message)
        if self.fail:
            raise NotificationError("SMTP auth failed")


def make_settings(**overrides) -> Settings:
    values = dict(
        storage_backend="memory",
        alert_cooldown_minutes=30,
        presence_freshness_seconds=180,
        night_start_hour=19,
        night_end_hour=6,
        alert_utc_offset_minutes=345,
        max_readings=1000,
        reading_retention_hours=0,
        alert_recipient="grower@example.com",
        smtp_username="",
        smtp_password="",
        cors_origins_raw="http://localhost:8501",
        log_file="",
    )
    values.update(overrides)
    return Settings(**values)


def reading_payload(**overrides) -> dict:
    payload = {
        "deviceId": "D1",
        "soilValue": 2800,
        "ldrValue": 3200,
        "soilCondition": "Good",
        "lightCondition": "Good",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(local_time(10, 0))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def store() -> InMemoryReadingStore:
    return InMemoryReadingStore()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def app(settings, store, notifier, clock):
    return create_app(settings, store=store, notifier=notifier, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client

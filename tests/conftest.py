from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from edgefleet.db import get_store
from edgefleet.main import app
from edgefleet.repositories import AlertRepository, DeviceRepository, TelemetryRepository
from edgefleet.store import MemoryStore


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def devices(store, clock):
    return DeviceRepository(store, clock)


@pytest.fixture
def telemetry(store, clock):
    return TelemetryRepository(store, clock)


@pytest.fixture
def alerts(store, clock):
    return AlertRepository(store, clock)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def device_input(**overrides):
    data = {"name": "S1", "type": "sensor", "location": "L1", "status": "online"}
    data.update(overrides)
    return data


def reading_input(device_id, **overrides):
    data = {
        "deviceId": device_id,
        "batteryLevel": 50,
        "cpuUsage": 30,
        "memoryUsage": 1000,
        "memoryTotal": 8192,
        "temperature": 22,
    }
    data.update(overrides)
    return data


def alert_input(device_id, **overrides):
    data = {"deviceId": device_id, "type": "battery", "message": "Battery low", "severity": "warning"}
    data.update(overrides)
    return data

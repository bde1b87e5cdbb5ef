"""
Sample fleet for an empty store.

Seeding runs once: the device id counter doubles as the marker, since it
exists as soon as any device has ever been created (deleting every device
does not bring the sample data back).
"""
import logging
import random
from datetime import timedelta

from .repositories import AlertRepository, Clock, DeviceRepository, TelemetryRepository, utcnow
from .store import KVStore

log = logging.getLogger("seed")

SAMPLE_DEVICES = [
    # name, type, location, status, registered hours ago
    ("Temperature Sensor 01", "sensor", "Building A - Floor 2", "online", 72),
    ("Pressure Monitor 02", "monitor", "Building B - Floor 1", "online", 48),
    ("Flow Meter 03", "meter", "Building A - Basement", "warning", 24),
    ("Vibration Sensor 04", "sensor", "Building C - Floor 3", "offline", 12),
    ("Level Indicator 05", "indicator", "Building B - Floor 2", "critical", 6),
    ("Smart Gateway 06", "gateway", "Building A - Floor 1", "online", 1),
]

SAMPLE_ALERTS = [
    # index into SAMPLE_DEVICES, type, message, severity, minutes ago
    (2, "High Pressure", "Pressure reading exceeds normal threshold", "warning", 120),
    (5, "System Failure", "Gateway connection lost", "critical", 30),
]

READINGS_PER_DEVICE = 72
SAMPLE_INTERVAL = timedelta(minutes=5)
MEMORY_TOTAL = 8192.0

def is_seeded(store: KVStore) -> bool:
    return store.exists(DeviceRepository(store).next_id_key)

def _reading(rng: random.Random, device_id: int) -> dict:
    return {
        "deviceId": device_id,
        "batteryLevel": 20 + rng.random() * 70,
        "temperature": 15 + rng.random() * 25,
        "cpuUsage": 10 + rng.random() * 80,
        "memoryUsage": 1024 + rng.random() * 6144,
        "memoryTotal": MEMORY_TOTAL,
    }

def seed_if_empty(store: KVStore, rng_seed: int = 42, clock: Clock = utcnow) -> bool:
    """Populate the sample fleet. Returns False when data already exists."""
    if is_seeded(store):
        log.info("Store already has data, skipping seed")
        return False

    log.info("Seeding store with sample fleet data...")
    rng = random.Random(rng_seed)
    now = clock()
    devices = DeviceRepository(store, clock)
    telemetry = TelemetryRepository(store, clock)
    alerts = AlertRepository(store, clock)

    created = []
    for name, dev_type, location, status, hours_ago in SAMPLE_DEVICES:
        created.append(devices.create(
            {"name": name, "type": dev_type, "location": location, "status": status},
            registered_at=now - timedelta(hours=hours_ago),
        ))

    for device in created:
        # oldest first, so the per-device list ends up newest first
        for i in reversed(range(READINGS_PER_DEVICE)):
            telemetry.create(_reading(rng, device.id), timestamp=now - i * SAMPLE_INTERVAL)

    for idx, alert_type, message, severity, minutes_ago in SAMPLE_ALERTS:
        alerts.create(
            {"deviceId": created[idx].id, "type": alert_type, "message": message, "severity": severity},
            created_at=now - timedelta(minutes=minutes_ago),
        )

    log.info(
        "Seeded %d devices, %d readings, %d alerts",
        len(created), len(created) * READINGS_PER_DEVICE, len(SAMPLE_ALERTS),
    )
    return True

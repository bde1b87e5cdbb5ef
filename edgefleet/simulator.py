"""
Synthetic telemetry for demo fleets.

Each tick produces one reading per device that is not offline, with value
ranges driven by the device's status, and raises an alert (plus a status
change) when battery or temperature cross a threshold.
"""
import asyncio
import logging
import random

from .errors import FleetError
from .models import Alert, Device, Telemetry
from .repositories import AlertRepository, Clock, DeviceRepository, TelemetryRepository, utcnow
from .store import KVStore

log = logging.getLogger("simulator")

LOW_BATTERY = 20
HIGH_TEMPERATURE = 70

# status -> (battery, temperature, cpu) as (low, span)
RANGES = {
    "critical": ((0, 20), (80, 20), (80, 20)),
    "warning": ((20, 30), (60, 20), (50, 30)),
}
DEFAULT_RANGES = ((60, 40), (20, 40), (0, 50))

MEMORY_BY_TYPE = {"gateway": 8.0, "monitor": 4.0}
DEFAULT_MEMORY = 2.0

def make_reading(device: Device, rng: random.Random) -> dict:
    (b_lo, b_span), (t_lo, t_span), (c_lo, c_span) = RANGES.get(device.status, DEFAULT_RANGES)
    cpu = c_lo + rng.random() * c_span
    mem_total = MEMORY_BY_TYPE.get(device.type, DEFAULT_MEMORY)
    return {
        "deviceId": device.id,
        "batteryLevel": b_lo + rng.random() * b_span,
        "temperature": t_lo + rng.random() * t_span,
        "cpuUsage": cpu,
        "memoryUsage": cpu / 100 * mem_total * (0.8 + rng.random() * 0.4),
        "memoryTotal": mem_total,
    }

def apply_thresholds(devices: DeviceRepository, alerts: AlertRepository, device: Device, reading: Telemetry) -> Alert | None:
    """Raise at most one alert for a reading and escalate the device status to match."""
    if reading.battery_level < LOW_BATTERY and device.status != "critical":
        alert = alerts.create({
            "deviceId": device.id,
            "type": "battery",
            "message": f"{device.name} battery level critically low ({round(reading.battery_level)}%)",
            "severity": "critical",
        })
        devices.update_status(device.id, "critical")
        return alert
    if reading.temperature > HIGH_TEMPERATURE and device.status not in ("warning", "critical"):
        alert = alerts.create({
            "deviceId": device.id,
            "type": "temperature",
            "message": f"{device.name} temperature exceeded threshold ({round(reading.temperature)}°C)",
            "severity": "warning",
        })
        devices.update_status(device.id, "warning")
        return alert
    return None

def simulate_tick(store: KVStore, rng: random.Random, clock: Clock = utcnow) -> int:
    """Write one round of readings. Returns the number of readings written."""
    devices = DeviceRepository(store, clock)
    telemetry = TelemetryRepository(store, clock)
    alerts = AlertRepository(store, clock)

    written = 0
    for device in devices.list_all():
        if device.status == "offline":
            continue
        reading = telemetry.create(make_reading(device, rng))
        written += 1
        apply_thresholds(devices, alerts, device, reading)
    return written

async def run_simulator(get_store, interval: float, rng_seed: int | None = None):
    rng = random.Random(rng_seed)
    log.info("Telemetry simulator running every %ss", interval)
    while True:
        try:
            n = await asyncio.to_thread(simulate_tick, get_store(), rng)
            log.debug("simulated %d readings", n)
        except FleetError as e:
            log.warning("simulator tick failed: %s", e)
        except Exception:
            log.exception("simulator tick crashed")
        await asyncio.sleep(interval)

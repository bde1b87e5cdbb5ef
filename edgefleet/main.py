import asyncio
import logging
from typing import List

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .db import init_store, get_store
from .errors import FleetError, NotFound, ValidationError
from .models import Alert, Device, Stats, Telemetry
from .repositories import AlertRepository, DeviceRepository, TelemetryRepository, describe_errors
from .schemas import AlertCreate, DeviceCreate, DeviceUpdate, MessageOut, StatusUpdate, TelemetryCreate
from .seed import seed_if_empty
from .settings import settings
from .simulator import run_simulator
from .stats import StatsAggregator
from .store import KVStore
from .utils import add_cors, add_request_logging

logging.basicConfig(level=settings.log_level)
log = logging.getLogger("edgefleet")

app = FastAPI(title="EdgeFleet API", version="0.1.0")
add_cors(app)
add_request_logging(app)

DEVICE_TELEMETRY_LIMIT = 50
TELEMETRY_LIMIT = 100
ALERT_LIMIT = 50
PERIOD_HOURS = 24
MAX_QUERY_INT = 2**63 - 1

simulator_task: asyncio.Task | None = None

@app.on_event("startup")
async def on_startup():
    global simulator_task
    store = init_store()
    if settings.seed_on_startup:
        try:
            seed_if_empty(store, settings.seed_random_seed)
        except FleetError as e:
            log.warning("Failed to seed initial data: %s", e)
    if settings.simulate_telemetry:
        simulator_task = asyncio.create_task(run_simulator(get_store, settings.simulate_interval))
    log.info("EdgeFleet API started (store=%s)", store.name)

@app.on_event("shutdown")
async def on_shutdown():
    global simulator_task
    if simulator_task is not None:
        simulator_task.cancel()
        try:
            await simulator_task
        except asyncio.CancelledError:
            pass
        simulator_task = None

# ---------------- error mapping ----------------

def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})

@app.exception_handler(RequestValidationError)
async def request_validation_error(request: Request, exc: RequestValidationError):
    return _error(400, describe_errors(exc.errors()))

@app.exception_handler(ValidationError)
async def validation_error(request: Request, exc: ValidationError):
    return _error(400, str(exc))

@app.exception_handler(NotFound)
async def not_found(request: Request, exc: NotFound):
    return _error(404, str(exc))

@app.exception_handler(FleetError)
async def fleet_error(request: Request, exc: FleetError):
    log.error("%s %s failed: %s", request.method, request.url.path, exc)
    return _error(500, str(exc))

def _positive_int(raw: str | None, default: int) -> int:
    """Query helper: missing, malformed, non-positive or out-of-int64 values fall back to the default."""
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    return value if 0 < value <= MAX_QUERY_INT else default

# ---------------- devices ----------------

@app.get("/api/devices", response_model=List[Device])
def list_devices(store: KVStore = Depends(get_store)):
    return DeviceRepository(store).list_all()

@app.post("/api/devices", response_model=Device, status_code=201)
def create_device(body: DeviceCreate, store: KVStore = Depends(get_store)):
    return DeviceRepository(store).create(body)

@app.get("/api/devices/{device_id}", response_model=Device)
def get_device(device_id: int, store: KVStore = Depends(get_store)):
    return DeviceRepository(store).get_by_id(device_id)

@app.put("/api/devices/{device_id}", response_model=Device)
def update_device(device_id: int, body: DeviceUpdate, store: KVStore = Depends(get_store)):
    return DeviceRepository(store).update(device_id, body)

@app.delete("/api/devices/{device_id}", response_model=MessageOut)
def delete_device(device_id: int, store: KVStore = Depends(get_store)):
    DeviceRepository(store).delete(device_id)
    return MessageOut(message="Device deleted successfully")

@app.put("/api/devices/{device_id}/status", response_model=Device)
def update_device_status(device_id: int, body: StatusUpdate, store: KVStore = Depends(get_store)):
    return DeviceRepository(store).update_status(device_id, body.status)

@app.get("/api/devices/{device_id}/telemetry", response_model=List[Telemetry])
def device_telemetry_for_period(device_id: int, hours: str | None = None, store: KVStore = Depends(get_store)):
    return TelemetryRepository(store).for_period(device_id, _positive_int(hours, PERIOD_HOURS))

@app.get("/api/devices/{device_id}/telemetry/latest", response_model=Telemetry)
def device_latest_telemetry(device_id: int, store: KVStore = Depends(get_store)):
    reading = TelemetryRepository(store).latest(device_id)
    if reading is None:
        raise NotFound(f"no telemetry for device {device_id}")
    return reading

@app.get("/api/devices/{device_id}/alerts", response_model=List[Alert])
def device_alerts(device_id: int, store: KVStore = Depends(get_store)):
    return AlertRepository(store).list_by_device(device_id)

# ---------------- telemetry ----------------

@app.get("/api/telemetry", response_model=List[Telemetry])
def list_telemetry(limit: str | None = None, store: KVStore = Depends(get_store)):
    return TelemetryRepository(store).list_all(_positive_int(limit, TELEMETRY_LIMIT))

@app.get("/api/telemetry/device/{device_id}", response_model=List[Telemetry])
def list_device_telemetry(device_id: int, limit: str | None = None, store: KVStore = Depends(get_store)):
    return TelemetryRepository(store).list_by_device(device_id, _positive_int(limit, DEVICE_TELEMETRY_LIMIT))

@app.post("/api/telemetry", response_model=Telemetry, status_code=201)
def create_telemetry(body: TelemetryCreate, store: KVStore = Depends(get_store)):
    return TelemetryRepository(store).create(body)

# ---------------- alerts ----------------

@app.get("/api/alerts", response_model=List[Alert])
def list_alerts(limit: str | None = None, store: KVStore = Depends(get_store)):
    return AlertRepository(store).list_all(_positive_int(limit, ALERT_LIMIT))

@app.get("/api/alerts/unacknowledged", response_model=List[Alert])
def list_unacknowledged_alerts(store: KVStore = Depends(get_store)):
    return AlertRepository(store).list_unacknowledged()

@app.post("/api/alerts", response_model=Alert, status_code=201)
def create_alert(body: AlertCreate, store: KVStore = Depends(get_store)):
    return AlertRepository(store).create(body)

@app.put("/api/alerts/{alert_id}/acknowledge", response_model=Alert)
def acknowledge_alert(alert_id: int, store: KVStore = Depends(get_store)):
    return AlertRepository(store).acknowledge(alert_id)

# ---------------- stats ----------------

@app.get("/api/stats", response_model=Stats)
def get_stats(store: KVStore = Depends(get_store)):
    return StatsAggregator(store).compute()

@app.get("/health")
def health(store: KVStore = Depends(get_store)):
    store.ping()
    return {"status": "ok", "store": store.name}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)

"""
Device, telemetry and alert persistence on top of a KVStore.

Key layout (one JSON document per record, stored under hash field "data"):

  devices:{id}            devices:all   devices:next_id
  telemetry:{id}          telemetry:all telemetry:next_id
  alerts:{id}             alerts:all    alerts:next_id
  device:{id}:telemetry   telemetry ids for one device, newest first

Creates are three or four separate writes (counter, record, indexes) with no
transaction around them. A failure part-way can burn an id or leave a record
out of an index; listings skip whatever they cannot resolve.
"""

import logging
import sys
from datetime import datetime, timedelta, timezone
from itertools import islice
from typing import Any, Callable, Iterable, Iterator, Mapping, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .errors import DecodeError, NotFound, ValidationError
from .models import Alert, Device, Record, Telemetry
from .schemas import AlertCreate, DeviceCreate, DeviceUpdate, StatusUpdate, TelemetryCreate
from .store import KVStore

log = logging.getLogger("repositories")

DATA_FIELD = "data"

Clock = Callable[[], datetime]
EARLIEST = datetime.min.replace(tzinfo=timezone.utc)
MAX_INDEX = 2**63 - 1  # largest LRANGE index redis accepts
P = TypeVar("P", bound=BaseModel)

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def describe_errors(errors: Iterable[Mapping[str, Any]]) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(x) for x in err.get("loc", ()))
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)

def _describe(e: PydanticValidationError) -> str:
    return describe_errors(e.errors())

def parse_input(schema: type[P], data: P | Mapping[str, Any]) -> P:
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(_describe(e)) from e

def _parse_ids(raw: Iterable[str], source: str) -> list[int]:
    ids = []
    for member in raw:
        try:
            ids.append(int(member))
        except (TypeError, ValueError):
            log.warning("skipping non-numeric id %r in %s", member, source)
    return ids

class Repository:
    prefix: str = ""
    model: type[Record] = Record
    label: str = "record"

    def __init__(self, store: KVStore, clock: Clock = utcnow) -> None:
        self.store = store
        self.clock = clock

    @property
    def all_key(self) -> str:
        return f"{self.prefix}:all"

    @property
    def next_id_key(self) -> str:
        return f"{self.prefix}:next_id"

    def key(self, id: int) -> str:
        return f"{self.prefix}:{id}"

    def _next_id(self) -> int:
        return self.store.increment(self.next_id_key)

    def _save(self, rec: Record) -> None:
        self.store.set(self.key(rec.id), DATA_FIELD, rec.to_json())

    def _load(self, id: int):
        raw = self.store.get(self.key(id), DATA_FIELD)
        if raw is None:
            raise NotFound(f"{self.label} {id} not found")
        try:
            return self.model.model_validate_json(raw)
        except PydanticValidationError as e:
            raise DecodeError(f"failed to parse {self.label} {id}: {_describe(e)}") from e

    def _ids(self, newest_first: bool = False) -> list[int]:
        ids = _parse_ids(self.store.set_members(self.all_key), self.all_key)
        return sorted(ids, reverse=newest_first)

    def iter_records(self, ids: Iterable[int], where: Callable[[Any], bool] | None = None) -> Iterator:
        """Best-effort fetch: missing or corrupt records are logged and skipped."""
        for id in ids:
            try:
                rec = self._load(id)
            except (NotFound, DecodeError) as e:
                log.warning("skipping %s: %s", self.key(id), e)
                continue
            if where is None or where(rec):
                yield rec

    def iter_all(self, where: Callable[[Any], bool] | None = None) -> Iterator:
        return self.iter_records(self._ids(), where)

    def _collect(self, ids: Iterable[int], limit: int | None = None, where=None) -> list:
        it = self.iter_records(ids, where)
        return list(it if limit is None else islice(it, min(max(limit, 0), sys.maxsize)))

    def get_by_id(self, id: int):
        try:
            return self._load(id)
        except DecodeError as e:
            raise NotFound(str(e)) from e

class DeviceRepository(Repository):
    prefix = "devices"
    model = Device
    label = "device"

    def list_all(self) -> list[Device]:
        return self._collect(self._ids())

    def create(self, data: DeviceCreate | Mapping[str, Any], *, registered_at: datetime | None = None) -> Device:
        inp = parse_input(DeviceCreate, data)
        device = Device(
            id=self._next_id(),
            registered_at=registered_at or self.clock(),
            **inp.model_dump(),
        )
        self._save(device)
        self.store.add_to_set(self.all_key, device.id)
        log.info("device %s registered (%s)", device.id, device.name)
        return device

    def update(self, id: int, changes: DeviceUpdate | Mapping[str, Any]) -> Device:
        upd = parse_input(DeviceUpdate, changes)
        device = self.get_by_id(id)
        fields = upd.model_dump(exclude_unset=True, exclude_none=True)
        if fields:
            device = device.model_copy(update=fields)
            self._save(device)
        return device

    def update_status(self, id: int, status: str) -> Device:
        inp = parse_input(StatusUpdate, {"status": status})
        return self.update(id, DeviceUpdate(status=inp.status))

    def delete(self, id: int) -> None:
        # telemetry and alerts that reference the device are left in place
        self.store.delete(self.key(id))
        self.store.remove_from_set(self.all_key, id)

class TelemetryRepository(Repository):
    prefix = "telemetry"
    model = Telemetry
    label = "telemetry"

    @staticmethod
    def device_key(device_id: int) -> str:
        return f"device:{device_id}:telemetry"

    def _device_ids(self, device_id: int, start: int = 0, stop: int = -1) -> list[int]:
        key = self.device_key(device_id)
        return _parse_ids(self.store.list_range(key, start, stop), key)

    def list_all(self, limit: int | None = None) -> list[Telemetry]:
        """Most recent readings across the fleet, newest first."""
        return self._collect(self._ids(newest_first=True), limit)

    def list_by_device(self, device_id: int, limit: int) -> list[Telemetry]:
        if limit <= 0:
            return []
        return self._collect(self._device_ids(device_id, 0, min(limit, MAX_INDEX) - 1))

    def latest(self, device_id: int) -> Telemetry | None:
        ids = self._device_ids(device_id, 0, 0)
        if not ids:
            return None
        return next(self.iter_records(ids), None)

    def for_period(self, device_id: int, hours: float) -> list[Telemetry]:
        try:
            since = self.clock() - timedelta(hours=hours)
        except OverflowError:
            # window reaches past year 1: the whole history qualifies
            since = EARLIEST
        return self._collect(self._device_ids(device_id), where=lambda t: t.timestamp > since)

    def create(self, data: TelemetryCreate | Mapping[str, Any], *, timestamp: datetime | None = None) -> Telemetry:
        inp = parse_input(TelemetryCreate, data)
        reading = Telemetry(
            id=self._next_id(),
            timestamp=timestamp or self.clock(),
            **inp.model_dump(),
        )
        self._save(reading)
        self.store.list_push_front(self.device_key(reading.device_id), reading.id)
        self.store.add_to_set(self.all_key, reading.id)
        return reading

class AlertRepository(Repository):
    prefix = "alerts"
    model = Alert
    label = "alert"

    def list_all(self, limit: int | None = None) -> list[Alert]:
        return self._collect(self._ids(newest_first=True), limit)

    def list_by_device(self, device_id: int) -> list[Alert]:
        return self._collect(self._ids(newest_first=True), where=lambda a: a.device_id == device_id)

    def list_unacknowledged(self) -> list[Alert]:
        return self._collect(self._ids(newest_first=True), where=lambda a: not a.acknowledged)

    def create(self, data: AlertCreate | Mapping[str, Any], *, created_at: datetime | None = None) -> Alert:
        inp = parse_input(AlertCreate, data)
        alert = Alert(
            id=self._next_id(),
            acknowledged=False,
            created_at=created_at or self.clock(),
            **inp.model_dump(),
        )
        self._save(alert)
        self.store.add_to_set(self.all_key, alert.id)
        log.info("alert %s raised for device %s [%s] %s", alert.id, alert.device_id, alert.severity, alert.type)
        return alert

    def acknowledge(self, id: int) -> Alert:
        alert = self.get_by_id(id)
        if not alert.acknowledged:
            alert = alert.model_copy(update={"acknowledged": True})
            self._save(alert)
        return alert

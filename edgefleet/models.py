from datetime import datetime
from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

DeviceStatus = Literal["online", "offline", "warning", "critical"]
Severity = Literal["info", "warning", "critical"]

DEVICE_STATUSES: tuple[str, ...] = get_args(DeviceStatus)
SEVERITIES: tuple[str, ...] = get_args(Severity)

class Record(BaseModel):
    # camelCase on the wire and in stored JSON, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

class Device(Record):
    id: int
    name: str
    type: str
    location: str
    status: DeviceStatus
    registered_at: datetime

class Telemetry(Record):
    id: int
    device_id: int
    battery_level: float
    temperature: float
    cpu_usage: float
    memory_usage: float
    memory_total: float
    timestamp: datetime

class Alert(Record):
    id: int
    device_id: int
    type: str
    message: str
    severity: Severity
    acknowledged: bool = False
    created_at: datetime

class Stats(Record):
    total_devices: int = 0
    online_devices: int = 0
    active_alerts: int = 0
    critical_alerts: int = 0
    avg_cpu_usage: float = 0.0
    uptime_percentage: int = 0

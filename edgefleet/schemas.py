from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import DeviceStatus, Severity

class Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        allow_inf_nan=False,
    )

class DeviceCreate(Payload):
    name: str = Field(min_length=1)
    type: str = Field(min_length=1)
    location: str = Field(min_length=1)
    status: DeviceStatus

class DeviceUpdate(Payload):
    name: str | None = Field(default=None, min_length=1)
    type: str | None = Field(default=None, min_length=1)
    location: str | None = Field(default=None, min_length=1)
    status: DeviceStatus | None = None

class StatusUpdate(Payload):
    status: DeviceStatus

class TelemetryCreate(Payload):
    device_id: int = Field(gt=0)
    battery_level: float = Field(ge=0, le=100)
    temperature: float
    cpu_usage: float = Field(ge=0, le=100)
    memory_usage: float = Field(ge=0)
    memory_total: float = Field(ge=0)

class AlertCreate(Payload):
    device_id: int = Field(gt=0)
    type: str = Field(min_length=1)
    message: str = Field(min_length=1)
    severity: Severity

class MessageOut(BaseModel):
    message: str

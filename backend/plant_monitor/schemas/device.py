from datetime import datetime
from enum import Enum

from pydantic import field_validator

from plant_monitor.schemas.base import CamelModel
from plant_monitor.schemas.reading import ReadingOut
from plant_monitor.utils.timeutils import ensure_utc


class PresenceStatus(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class DevicePresenceRecord(CamelModel):
    device_id: str
    first_seen_at: datetime
    last_seen_at: datetime
    total_reading_count: int = 0
    latest_reading_id: int | None = None

    @field_validator("first_seen_at", "last_seen_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class DeviceOut(DevicePresenceRecord):
    status: PresenceStatus
    seconds_since_last_seen: float
    latest_reading: ReadingOut | None = None


class DeviceResponse(CamelModel):
    success: bool = True
    data: DeviceOut


class DeviceListResponse(CamelModel):
    success: bool = True
    count: int
    items: list[DeviceOut]

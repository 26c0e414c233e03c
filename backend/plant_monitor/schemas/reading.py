from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field, field_validator

from plant_monitor.schemas.alert import AlertDecisionOut
from plant_monitor.schemas.base import CamelModel
from plant_monitor.utils.timeutils import ensure_utc


class Condition(str, Enum):
    GOOD = "Good"
    OKAY = "Okay"
    BAD = "Bad"
    UNKNOWN = "Unknown"


class ReadingIn(CamelModel):
    device_id: str = Field(..., min_length=1, description="Reporting device identifier")
    soil_value: int = Field(..., description="Raw soil moisture ADC value")
    ldr_value: int = Field(..., description="Raw light sensor ADC value")
    soil_condition: Condition = Condition.UNKNOWN
    light_condition: Condition = Condition.UNKNOWN
    wifi_rssi: int | None = Field(default=None, alias="wifiRSSI")
    free_heap: int | None = None
    send_attempt: int | None = None
    device_timestamp: datetime | None = Field(default=None, alias="timestamp")

    @field_validator("device_id")
    @classmethod
    def _strip_device_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("deviceId must not be empty")
        return value

    @field_validator("soil_condition", "light_condition", mode="before")
    @classmethod
    def _normalize_condition(cls, value: Any) -> Any:
        if value is None:
            return Condition.UNKNOWN
        if isinstance(value, str):
            return value.strip().capitalize()
        return value

    @field_validator("device_timestamp")
    @classmethod
    def _timestamp_as_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None


class ReadingOut(CamelModel):
    id: int
    device_id: str
    received_at: datetime
    soil_value: int
    ldr_value: int
    soil_condition: Condition
    light_condition: Condition
    wifi_rssi: int | None = Field(default=None, alias="wifiRSSI")
    free_heap: int | None = None
    send_attempt: int | None = None
    device_timestamp: datetime | None = None

    @field_validator("received_at", "device_timestamp")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None


class ReadingCreateResponse(CamelModel):
    success: bool = True
    message: str
    data: ReadingOut
    total_readings: int
    device_reading_count: int
    alert: AlertDecisionOut


class ReadingResponse(CamelModel):
    success: bool = True
    data: ReadingOut


class ReadingListResponse(CamelModel):
    success: bool = True
    count: int
    total: int
    items: list[ReadingOut]


class DeleteResponse(CamelModel):
    success: bool = True
    message: str
    deleted_count: int

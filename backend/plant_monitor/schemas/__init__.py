from plant_monitor.schemas.alert import AlertDecisionOut, AlertStateOut
from plant_monitor.schemas.device import (
    DeviceListResponse,
    DeviceOut,
    DevicePresenceRecord,
    DeviceResponse,
    PresenceStatus,
)
from plant_monitor.schemas.reading import (
    Condition,
    DeleteResponse,
    ReadingCreateResponse,
    ReadingIn,
    ReadingListResponse,
    ReadingOut,
    ReadingResponse,
)

__all__ = [
    "AlertDecisionOut",
    "AlertStateOut",
    "Condition",
    "DeleteResponse",
    "DeviceListResponse",
    "DeviceOut",
    "DevicePresenceRecord",
    "DeviceResponse",
    "PresenceStatus",
    "ReadingCreateResponse",
    "ReadingIn",
    "ReadingListResponse",
    "ReadingOut",
    "ReadingResponse",
]

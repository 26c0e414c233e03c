import logging
from datetime import datetime, timedelta
from typing import List, Optional

from plant_monitor.crud.base import ReadingStore
from plant_monitor.schemas.device import DeviceOut, DevicePresenceRecord, PresenceStatus
from plant_monitor.schemas.reading import ReadingOut
from plant_monitor.utils.timeutils import Clock, ensure_utc, utc_now

logger = logging.getLogger(__name__)


def presence_status(last_seen_at: datetime, now: datetime, freshness: timedelta) -> PresenceStatus:
    if ensure_utc(now) - ensure_utc(last_seen_at) < freshness:
        return PresenceStatus.CONNECTED
    return PresenceStatus.DISCONNECTED


class PresenceTracker:
    """Keeps one presence record per device; status is derived when read."""

    def __init__(self, store: ReadingStore, freshness: timedelta, clock: Clock = utc_now) -> None:
        self.store = store
        self.freshness = freshness
        self.clock = clock

    def record(self, reading: ReadingOut, current: Optional[DevicePresenceRecord]) -> DevicePresenceRecord:
        """Build the record that follows ``current`` once ``reading`` is stored.

        Passed to ``ReadingStore.append`` so the write lands with the reading.
        """
        seen_at = reading.received_at
        if current is None:
            current = DevicePresenceRecord(
                device_id=reading.device_id,
                first_seen_at=seen_at,
                last_seen_at=seen_at,
                total_reading_count=0,
            )
        return current.model_copy(
            update={
                "last_seen_at": seen_at,
                "total_reading_count": current.total_reading_count + 1,
                "latest_reading_id": reading.id,
            }
        )

    def describe(self, record: DevicePresenceRecord, now: Optional[datetime] = None) -> DeviceOut:
        now = ensure_utc(now if now is not None else self.clock())
        latest = self.store.get(record.latest_reading_id) if record.latest_reading_id is not None else None
        return DeviceOut(
            **record.model_dump(),
            status=presence_status(record.last_seen_at, now, self.freshness),
            seconds_since_last_seen=round((now - record.last_seen_at).total_seconds(), 3),
            latest_reading=latest,
        )

    def get_device(self, device_id: str) -> Optional[DeviceOut]:
        record = self.store.get_presence(device_id)
        return self.describe(record) if record else None

    def list_devices(self) -> List[DeviceOut]:
        now = self.clock()
        return [self.describe(record, now) for record in self.store.list_presence()]

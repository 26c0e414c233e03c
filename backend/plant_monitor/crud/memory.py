import threading
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from plant_monitor.crud.base import PresenceUpdate, ReadingStore
from plant_monitor.schemas.device import DevicePresenceRecord
from plant_monitor.schemas.reading import ReadingIn, ReadingOut


class InMemoryReadingStore(ReadingStore):
    """Process-local store. Contents vanish on restart."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._readings: List[ReadingOut] = []  # insertion order, oldest first
        self._presence: Dict[str, DevicePresenceRecord] = {}
        self._next_id = 1

    def create(self, obj_in: ReadingIn, received_at: datetime) -> ReadingOut:
        with self._lock:
            reading = ReadingOut(id=self._next_id, received_at=received_at, **obj_in.model_dump())
            self._next_id += 1
            self._readings.append(reading)
        return reading

    def append(
        self,
        obj_in: ReadingIn,
        received_at: datetime,
        update_presence: PresenceUpdate,
        max_count: int = 0,
        older_than: Optional[datetime] = None,
    ) -> Tuple[ReadingOut, DevicePresenceRecord]:
        with self._lock:
            snapshot = (list(self._readings), dict(self._presence), self._next_id)
            try:
                reading = self.create(obj_in, received_at)
                record = self.save_presence(update_presence(reading, self._presence.get(reading.device_id)))
                self.prune(max_count, older_than)
            except Exception:
                self._readings, self._presence, self._next_id = snapshot
                raise
        return reading, record

    def _select(self, device_id: Optional[str], start_time: Optional[datetime]) -> List[ReadingOut]:
        with self._lock:
            rows = list(reversed(self._readings))
        if device_id:
            rows = [row for row in rows if row.device_id == device_id]
        if start_time:
            rows = [row for row in rows if row.received_at >= start_time]
        return rows

    def get_multi(
        self,
        device_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
        start_time: Optional[datetime] = None,
    ) -> List[ReadingOut]:
        return self._select(device_id, start_time)[skip : skip + limit]

    def count(self, device_id: Optional[str] = None, start_time: Optional[datetime] = None) -> int:
        if device_id is None and start_time is None:
            with self._lock:
                return len(self._readings)
        return len(self._select(device_id, start_time))

    def get_latest(self, device_id: Optional[str] = None) -> Optional[ReadingOut]:
        rows = self._select(device_id, None)
        return rows[0] if rows else None

    def get(self, reading_id: int) -> Optional[ReadingOut]:
        with self._lock:
            return next((row for row in self._readings if row.id == reading_id), None)

    def prune(self, max_count: int, older_than: Optional[datetime] = None) -> int:
        with self._lock:
            before = len(self._readings)
            if older_than is not None:
                self._readings = [row for row in self._readings if row.received_at >= older_than]
            if max_count > 0 and len(self._readings) > max_count:
                self._readings = self._readings[-max_count:]
            return before - len(self._readings)

    def delete_all(self) -> int:
        with self._lock:
            deleted = len(self._readings)
            self._readings.clear()
            self._presence.clear()
        return deleted

    def get_presence(self, device_id: str) -> Optional[DevicePresenceRecord]:
        with self._lock:
            return self._presence.get(device_id)

    def save_presence(self, record: DevicePresenceRecord) -> DevicePresenceRecord:
        with self._lock:
            self._presence[record.device_id] = record
        return record

    def list_presence(self) -> List[DevicePresenceRecord]:
        with self._lock:
            records = list(self._presence.values())
        return sorted(records, key=lambda record: record.last_seen_at, reverse=True)

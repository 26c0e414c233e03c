from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from plant_monitor.schemas.device import DevicePresenceRecord
from plant_monitor.schemas.reading import ReadingIn, ReadingOut

# (stored reading, current record or None) -> record to save
PresenceUpdate = Callable[[ReadingOut, Optional[DevicePresenceRecord]], DevicePresenceRecord]


class ReadingStore(ABC):
    """Storage contract shared by the in-memory and SQL backends.

    Readings are append-only. Queries return newest first. Presence records
    are keyed by device id and overwritten whole on save.
    """

    def init(self) -> None:
        """Prepare the backend (create tables, open files). Idempotent."""

    def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    def create(self, obj_in: ReadingIn, received_at: datetime) -> ReadingOut:
        ...

    @abstractmethod
    def append(
        self,
        obj_in: ReadingIn,
        received_at: datetime,
        update_presence: PresenceUpdate,
        max_count: int = 0,
        older_than: Optional[datetime] = None,
    ) -> Tuple[ReadingOut, DevicePresenceRecord]:
        """Store a reading, its device's presence record and retention as one unit.

        Either all three changes are kept or none are.
        """

    @abstractmethod
    def get_multi(
        self,
        device_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
        start_time: Optional[datetime] = None,
    ) -> List[ReadingOut]:
        ...

    @abstractmethod
    def count(self, device_id: Optional[str] = None, start_time: Optional[datetime] = None) -> int:
        ...

    @abstractmethod
    def get_latest(self, device_id: Optional[str] = None) -> Optional[ReadingOut]:
        ...

    @abstractmethod
    def get(self, reading_id: int) -> Optional[ReadingOut]:
        ...

    @abstractmethod
    def prune(self, max_count: int, older_than: Optional[datetime] = None) -> int:
        """Evict oldest readings beyond ``max_count`` or received before ``older_than``."""

    @abstractmethod
    def delete_all(self) -> int:
        """Drop every reading and presence record, returning the reading count removed."""

    @abstractmethod
    def get_presence(self, device_id: str) -> Optional[DevicePresenceRecord]:
        ...

    @abstractmethod
    def save_presence(self, record: DevicePresenceRecord) -> DevicePresenceRecord:
        ...

    @abstractmethod
    def list_presence(self) -> List[DevicePresenceRecord]:
        ...

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional, Tuple

from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from plant_monitor.core.database import Base, create_session_factory
from plant_monitor.core.exceptions import PersistenceError
from plant_monitor.crud.base import PresenceUpdate, ReadingStore
from plant_monitor.models.device_presence import DevicePresence
from plant_monitor.models.reading import Reading
from plant_monitor.schemas.device import DevicePresenceRecord
from plant_monitor.schemas.reading import ReadingIn, ReadingOut

logger = logging.getLogger(__name__)


def _to_reading(row: Reading) -> ReadingOut:
    return ReadingOut(
        id=row.id,
        device_id=row.device_id,
        received_at=row.received_at,
        soil_value=row.soil_value,
        ldr_value=row.ldr_value,
        soil_condition=row.soil_condition,
        light_condition=row.light_condition,
        wifi_rssi=row.wifi_rssi,
        free_heap=row.free_heap,
        send_attempt=row.send_attempt,
        device_timestamp=row.device_timestamp,
    )


def _to_presence(row: DevicePresence) -> DevicePresenceRecord:
    return DevicePresenceRecord(
        device_id=row.device_id,
        first_seen_at=row.first_seen_at,
        last_seen_at=row.last_seen_at,
        total_reading_count=row.total_reading_count,
        latest_reading_id=row.latest_reading_id,
    )


class SQLReadingStore(ReadingStore):
    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.session_factory = create_session_factory(engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(f"Storage operation failed: {exc}")
            raise PersistenceError() from exc
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def init(self) -> None:
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as exc:
            raise PersistenceError() from exc

    def close(self) -> None:
        self.engine.dispose()

    def _add_reading(self, db: Session, obj_in: ReadingIn, received_at: datetime) -> ReadingOut:
        db_obj = Reading(received_at=received_at, **obj_in.model_dump())
        db_obj.soil_condition = obj_in.soil_condition.value
        db_obj.light_condition = obj_in.light_condition.value
        db.add(db_obj)
        db.flush()
        return _to_reading(db_obj)

    def _prune_rows(self, db: Session, max_count: int, older_than: Optional[datetime]) -> int:
        deleted = 0
        if older_than is not None:
            result = db.execute(delete(Reading).where(Reading.received_at < older_than))
            deleted += result.rowcount or 0
        if max_count > 0:
            # ids grow with insertion order, so the max_count-th newest id is the cutoff
            cutoff = db.execute(
                select(Reading.id).order_by(desc(Reading.id)).offset(max_count - 1).limit(1)
            ).scalar_one_or_none()
            if cutoff is not None:
                result = db.execute(delete(Reading).where(Reading.id < cutoff))
                deleted += result.rowcount or 0
        if deleted:
            logger.debug(f"Pruned {deleted} old readings")
        return deleted

    def create(self, obj_in: ReadingIn, received_at: datetime) -> ReadingOut:
        with self._session() as db:
            reading = self._add_reading(db, obj_in, received_at)
            db.commit()
            return reading

    def append(
        self,
        obj_in: ReadingIn,
        received_at: datetime,
        update_presence: PresenceUpdate,
        max_count: int = 0,
        older_than: Optional[datetime] = None,
    ) -> Tuple[ReadingOut, DevicePresenceRecord]:
        with self._session() as db:
            reading = self._add_reading(db, obj_in, received_at)
            current = db.get(DevicePresence, reading.device_id)
            record = update_presence(reading, _to_presence(current) if current else None)
            db.merge(DevicePresence(**record.model_dump()))
            self._prune_rows(db, max_count, older_than)
            db.commit()
        return reading, record

    def _filtered(self, query, device_id: Optional[str], start_time: Optional[datetime]):
        if device_id:
            query = query.where(Reading.device_id == device_id)
        if start_time:
            query = query.where(Reading.received_at >= start_time)
        return query

    def get_multi(
        self,
        device_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
        start_time: Optional[datetime] = None,
    ) -> List[ReadingOut]:
        query = select(Reading).order_by(desc(Reading.received_at), desc(Reading.id))
        query = self._filtered(query, device_id, start_time).offset(skip).limit(limit)
        with self._session() as db:
            return [_to_reading(row) for row in db.execute(query).scalars().all()]

    def count(self, device_id: Optional[str] = None, start_time: Optional[datetime] = None) -> int:
        query = self._filtered(select(func.count(Reading.id)), device_id, start_time)
        with self._session() as db:
            return db.execute(query).scalar_one() or 0

    def get_latest(self, device_id: Optional[str] = None) -> Optional[ReadingOut]:
        items = self.get_multi(device_id=device_id, limit=1)
        return items[0] if items else None

    def get(self, reading_id: int) -> Optional[ReadingOut]:
        with self._session() as db:
            row = db.get(Reading, reading_id)
            return _to_reading(row) if row else None

    def prune(self, max_count: int, older_than: Optional[datetime] = None) -> int:
        with self._session() as db:
            deleted = self._prune_rows(db, max_count, older_than)
            db.commit()
        return deleted

    def delete_all(self) -> int:
        with self._session() as db:
            result = db.execute(delete(Reading))
            db.execute(delete(DevicePresence))
            db.commit()
            return result.rowcount or 0

    def get_presence(self, device_id: str) -> Optional[DevicePresenceRecord]:
        with self._session() as db:
            row = db.get(DevicePresence, device_id)
            return _to_presence(row) if row else None

    def save_presence(self, record: DevicePresenceRecord) -> DevicePresenceRecord:
        with self._session() as db:
            db.merge(DevicePresence(**record.model_dump()))
            db.commit()
        return record

    def list_presence(self) -> List[DevicePresenceRecord]:
        query = select(DevicePresence).order_by(desc(DevicePresence.last_seen_at))
        with self._session() as db:
            return [_to_presence(row) for row in db.execute(query).scalars().all()]

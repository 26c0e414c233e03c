import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from plant_monitor.crud.base import ReadingStore
from plant_monitor.schemas.device import DevicePresenceRecord
from plant_monitor.schemas.reading import ReadingIn, ReadingOut
from plant_monitor.services.alert_policy import AlertDecision, AlertPolicy
from plant_monitor.services.notifier import AlertMessage, compose_alert_message
from plant_monitor.services.presence import PresenceTracker
from plant_monitor.utils.timeutils import Clock, ensure_utc, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestionResult:
    reading: ReadingOut
    presence: DevicePresenceRecord
    total_readings: int
    decision: AlertDecision
    message: Optional[AlertMessage] = None


class ReadingService:
    """Stores a reading, refreshes presence, then asks the alert policy.

    The returned ``message`` is handed to the caller for detached delivery;
    nothing here talks to the notifier.
    """

    def __init__(
        self,
        store: ReadingStore,
        presence: PresenceTracker,
        policy: AlertPolicy,
        recipient: str,
        max_readings: int = 0,
        retention: Optional[timedelta] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.presence = presence
        self.policy = policy
        self.recipient = recipient
        self.max_readings = max_readings
        self.retention = retention
        self.clock = clock

    def ingest(self, reading_in: ReadingIn) -> IngestionResult:
        now = ensure_utc(self.clock())
        reading, presence = self.store.append(
            reading_in,
            received_at=now,
            update_presence=self.presence.record,
            max_count=self.max_readings,
            older_than=now - self.retention if self.retention else None,
        )
        if presence.total_reading_count == 1:
            logger.info(f"New device registered: {reading.device_id}")
        logger.info(
            f"Reading {reading.id} from {reading.device_id}: soil={reading.soil_value} "
            f"({reading.soil_condition.value}) light={reading.ldr_value} ({reading.light_condition.value})"
        )

        decision = self.policy.evaluate(reading, now=now)
        message = compose_alert_message(decision.alert, self.recipient) if decision.alert else None
        return IngestionResult(
            reading=reading,
            presence=presence,
            total_readings=self.store.count(),
            decision=decision,
            message=message,
        )

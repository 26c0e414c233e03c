import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from plant_monitor.schemas.reading import Condition, ReadingOut
from plant_monitor.utils.timeutils import Clock, civil_time, ensure_utc, in_hour_window, utc_now

logger = logging.getLogger(__name__)

NO_BAD_CONDITION = "no_bad_condition"
NIGHT_SUPPRESSED = "night_suppressed"
COOLDOWN = "cooldown"
DISPATCHED = "dispatched"

TRIGGER_SOIL = "soil"
TRIGGER_LIGHT = "light"
TRIGGER_BOTH = "both"


@dataclass(frozen=True)
class NightWindow:
    """Local civil hours [start_hour, end_hour) during which light alerts are muted."""

    start_hour: int = 19
    end_hour: int = 6
    utc_offset_minutes: int = 345

    def local_time(self, now: datetime) -> datetime:
        return civil_time(now, self.utc_offset_minutes)

    def is_night(self, now: datetime) -> bool:
        return in_hour_window(self.local_time(now).time(), self.start_hour, self.end_hour)


@dataclass(frozen=True)
class Alert:
    trigger: str
    device_id: str
    soil_value: int
    ldr_value: int
    soil_condition: str
    light_condition: str
    created_at: datetime
    local_time: datetime


@dataclass(frozen=True)
class AlertDecision:
    dispatched: bool
    reason: str
    alert: Alert | None = None

    @property
    def trigger(self) -> str | None:
        return self.alert.trigger if self.alert else None


def _trigger_for(eligible_soil: bool, eligible_light: bool) -> str:
    if eligible_soil and eligible_light:
        return TRIGGER_BOTH
    return TRIGGER_SOIL if eligible_soil else TRIGGER_LIGHT


class AlertPolicy:
    """Decides whether a reading produces an outbound alert.

    Soil alerts fire at any hour; light alerts are muted inside the night
    window. Every dispatch decision consumes the single cooldown window, so a
    failed delivery still holds off the next alert until the window elapses.
    """

    def __init__(
        self,
        cooldown: timedelta,
        night_window: NightWindow | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.cooldown = cooldown
        self.night_window = night_window or NightWindow()
        self.clock = clock
        self._lock = threading.Lock()
        self._last_alert_at: datetime | None = None
        self._alerts_dispatched = 0

    @property
    def last_alert_at(self) -> datetime | None:
        return self._last_alert_at

    @property
    def alerts_dispatched(self) -> int:
        return self._alerts_dispatched

    def _now(self, now: datetime | None) -> datetime:
        return ensure_utc(now if now is not None else self.clock())

    def _cooldown_remaining(self, now: datetime) -> timedelta:
        if self._last_alert_at is None:
            return timedelta(0)
        return max(self.cooldown - (now - self._last_alert_at), timedelta(0))

    def evaluate(self, reading: ReadingOut, now: datetime | None = None) -> AlertDecision:
        now = self._now(now)
        soil_bad = reading.soil_condition == Condition.BAD
        light_bad = reading.light_condition == Condition.BAD
        if not (soil_bad or light_bad):
            return AlertDecision(dispatched=False, reason=NO_BAD_CONDITION)

        night = self.night_window.is_night(now)
        eligible_soil = soil_bad
        eligible_light = light_bad and not night
        if not (eligible_soil or eligible_light):
            logger.info(f"Light alert for {reading.device_id} suppressed during night hours")
            return AlertDecision(dispatched=False, reason=NIGHT_SUPPRESSED)

        # check-and-set: two concurrent Bad readings must not both pass the cooldown
        with self._lock:
            if self._last_alert_at is not None and now - self._last_alert_at < self.cooldown:
                remaining = self._cooldown_remaining(now).total_seconds()
                logger.info(f"Alert for {reading.device_id} suppressed by cooldown ({remaining:.0f}s left)")
                return AlertDecision(dispatched=False, reason=COOLDOWN)
            self._last_alert_at = now
            self._alerts_dispatched += 1

        alert = Alert(
            trigger=_trigger_for(eligible_soil, eligible_light),
            device_id=reading.device_id,
            soil_value=reading.soil_value,
            ldr_value=reading.ldr_value,
            soil_condition=reading.soil_condition.value,
            light_condition=reading.light_condition.value,
            created_at=now,
            local_time=self.night_window.local_time(now),
        )
        logger.warning(f"Dispatching {alert.trigger} alert for {reading.device_id}")
        return AlertDecision(dispatched=True, reason=DISPATCHED, alert=alert)

    def state(self, now: datetime | None = None) -> dict[str, Any]:
        now = self._now(now)
        with self._lock:
            remaining = self._cooldown_remaining(now)
            last_alert_at = self._last_alert_at
            dispatched = self._alerts_dispatched
        return {
            "last_alert_at": last_alert_at,
            "cooldown_seconds": self.cooldown.total_seconds(),
            "cooldown_remaining_seconds": remaining.total_seconds(),
            "is_night": self.night_window.is_night(now),
            "local_time": self.night_window.local_time(now),
            "alerts_dispatched": dispatched,
        }

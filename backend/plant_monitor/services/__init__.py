from dataclasses import dataclass

from plant_monitor.core.config import Settings
from plant_monitor.crud.base import ReadingStore
from plant_monitor.services.alert_policy import AlertDecision, AlertPolicy, NightWindow
from plant_monitor.services.ingestion import IngestionResult, ReadingService
from plant_monitor.services.notifier import Notifier, build_notifier, dispatch_alert
from plant_monitor.services.presence import PresenceTracker
from plant_monitor.utils.timeutils import Clock, utc_now


@dataclass
class MonitorServices:
    settings: Settings
    store: ReadingStore
    presence: PresenceTracker
    policy: AlertPolicy
    readings: ReadingService
    notifier: Notifier
    clock: Clock


def build_services(
    settings: Settings,
    store: ReadingStore,
    notifier: Notifier | None = None,
    clock: Clock = utc_now,
) -> MonitorServices:
    presence = PresenceTracker(store, settings.presence_freshness, clock=clock)
    policy = AlertPolicy(
        cooldown=settings.alert_cooldown,
        night_window=NightWindow(
            start_hour=settings.night_start_hour,
            end_hour=settings.night_end_hour,
            utc_offset_minutes=settings.alert_utc_offset_minutes,
        ),
        clock=clock,
    )
    readings = ReadingService(
        store,
        presence,
        policy,
        recipient=settings.alert_recipient,
        max_readings=settings.max_readings,
        retention=settings.reading_retention,
        clock=clock,
    )
    return MonitorServices(
        settings=settings,
        store=store,
        presence=presence,
        policy=policy,
        readings=readings,
        notifier=notifier or build_notifier(settings),
        clock=clock,
    )


__all__ = [
    "AlertDecision",
    "AlertPolicy",
    "IngestionResult",
    "MonitorServices",
    "NightWindow",
    "PresenceTracker",
    "ReadingService",
    "build_services",
    "dispatch_alert",
]

from datetime import datetime

from plant_monitor.schemas.base import CamelModel


class AlertDecisionOut(CamelModel):
    dispatched: bool
    reason: str
    trigger: str | None = None


class AlertStateOut(CamelModel):
    last_alert_at: datetime | None
    cooldown_seconds: float
    cooldown_remaining_seconds: float
    is_night: bool
    local_time: datetime
    alerts_dispatched: int

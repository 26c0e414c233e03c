from plant_monitor.core.config import Settings, settings
from plant_monitor.core.database import Base

__all__ = ["Base", "Settings", "settings"]

from plant_monitor.models.reading import Reading
from plant_monitor.models.device_presence import DevicePresence

__all__ = ["Reading", "DevicePresence"]

from sqlalchemy import Column, DateTime, Integer, String

from plant_monitor.core.database import Base


class DevicePresence(Base):
    __tablename__ = "device_presence"

    device_id = Column(String, primary_key=True)
    first_seen_at = Column(DateTime(timezone=True), nullable=False)
    last_seen_at = Column(DateTime(timezone=True), nullable=False)
    total_reading_count = Column(Integer, default=0, nullable=False)
    latest_reading_id = Column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<DevicePresence(device={self.device_id}, readings={self.total_reading_count})>"

from sqlalchemy import Column, DateTime, Integer, String

from plant_monitor.core.database import Base


class Reading(Base):
    __tablename__ = "readings"

    id = Column(Integer, primary_key=True, index=True)
    device_id = Column(String, nullable=False, index=True)
    received_at = Column(DateTime(timezone=True), nullable=False, index=True)
    soil_value = Column(Integer, nullable=False)
    ldr_value = Column(Integer, nullable=False)
    soil_condition = Column(String, nullable=False, default="Unknown")
    light_condition = Column(String, nullable=False, default="Unknown")
    device_timestamp = Column(DateTime(timezone=True), nullable=True)
    wifi_rssi = Column(Integer, nullable=True)
    free_heap = Column(Integer, nullable=True)
    send_attempt = Column(Integer, nullable=True)

    def __repr__(self):
        return f"<Reading(id={self.id}, device={self.device_id}, soil={self.soil_value}, ldr={self.ldr_value})>"

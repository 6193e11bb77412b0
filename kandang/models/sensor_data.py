"""
SensorData model - telemetry readings from devices
"""

from datetime import datetime, timezone
from sqlalchemy import String, Float, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from kandang.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SensorData(Base):
    """Sensor reading from a device. Append-only."""

    __tablename__ = "sensor_data"

    id: Mapped[int] = mapped_column(primary_key=True)

    # No foreign key: readings from unregistered devices are kept too
    device_id: Mapped[str] = mapped_column(String(64), index=True)

    # Sensor data
    temperature: Mapped[float] = mapped_column(Float)  # Celsius
    humidity: Mapped[float | None] = mapped_column(Float, nullable=True)  # %
    gas_ppm: Mapped[float] = mapped_column(Float)  # ammonia, ppm

    # Timestamp
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        index=True
    )

    def __repr__(self) -> str:
        return f"<SensorData device={self.device_id} temp={self.temperature} gas={self.gas_ppm}ppm>"

    def to_dict(self) -> dict:
        """Row as returned by the read API."""
        return {
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "gas_ppm": self.gas_ppm,
        }

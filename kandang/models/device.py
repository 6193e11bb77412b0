"""
Device model - an enclosure monitor registered to a user
"""

from sqlalchemy import String, Float, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from kandang.core.database import Base


class Device(Base):
    """Monitoring device (ESP32). Provisioned out of band, read-only here."""

    __tablename__ = "devices"

    device_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    device_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Alert thresholds (NULL disables the check)
    threshold_temp: Mapped[float | None] = mapped_column(Float, nullable=True, default=35.0)  # Celsius
    threshold_gas: Mapped[float | None] = mapped_column(Float, nullable=True, default=300.0)  # ppm

    # Owner
    user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.user_id"), nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<Device {self.device_id} ({self.device_name or 'unnamed'})>"

    @property
    def display_name(self) -> str:
        """Name used in alert messages."""
        return self.device_name or self.device_id

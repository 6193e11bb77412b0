"""
Schedule model - feeding times pushed to a device
"""

from datetime import datetime
from sqlalchemy import String, DateTime, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from kandang.core.database import Base


class Schedule(Base):
    """Feeding schedule. One row per device, replaced on every write."""

    __tablename__ = "schedules"

    device_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Ordered "HH:MM" strings
    times: Mapped[list[str]] = mapped_column(JSONB, default=list)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Schedule {self.device_id} {self.times}>"

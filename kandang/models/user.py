"""
User model - a device owner reachable over WhatsApp
"""

from datetime import datetime
from sqlalchemy import String, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from kandang.core.database import Base


class User(Base):
    """Device owner."""

    __tablename__ = "users"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # Stored without the "whatsapp:" channel prefix, e.g. "+6281234567890"
    whatsapp_number: Mapped[str] = mapped_column(String(32), unique=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<User {self.user_id} ({self.whatsapp_number})>"

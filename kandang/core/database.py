"""
Smart Kandang - Database Configuration

One engine per process. The MQTT ingestion tasks and the API handlers
all draw their sessions from the same pool.
"""

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from kandang.core.config import settings


# The hosted Postgres drops idle connections; pre-ping replaces them
# before a telemetry insert picks one up.
engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
)

# Rows returned by the stores are read after their session has closed
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base for the kandang tables."""
    pass

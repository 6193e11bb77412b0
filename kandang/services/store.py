"""
Smart Kandang - Store access layer

ReadingStore, DeviceRegistry and ScheduleStore wrap the async session
factory. Every database error is re-raised as PersistenceFailure; lookup
misses return None.
"""

from contextlib import asynccontextmanager
from typing import Sequence

import asyncpg
from sqlalchemy import select, desc, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError

from kandang.core.database import async_session_maker
from kandang.core.errors import PersistenceFailure
from kandang.models.device import Device
from kandang.models.schedule import Schedule
from kandang.models.sensor_data import SensorData
from kandang.models.user import User
from kandang.services.normalizer import CanonicalReading

RECENT_READINGS_LIMIT = 20

# Connection failures surface from asyncpg unwrapped (refused socket, bad
# credentials) before SQLAlchemy gets a chance to translate them.
DB_ERRORS = (SQLAlchemyError, OSError, asyncpg.PostgresError)


@asynccontextmanager
async def _db_errors(action: str):
    try:
        yield
    except DB_ERRORS as e:
        raise PersistenceFailure(f"{action}: {e}") from e


class ReadingStore:
    """Append-only storage of sensor readings."""

    def __init__(self, session_maker=async_session_maker):
        self._session_maker = session_maker

    async def save(self, device_id: str, reading: CanonicalReading) -> SensorData:
        """Insert a reading. The timestamp is assigned here."""
        async with _db_errors(f"save reading for {device_id}"):
            async with self._session_maker() as session:
                row = SensorData(
                    device_id=device_id,
                    temperature=reading.temperature,
                    humidity=reading.humidity,
                    gas_ppm=reading.gas_ppm,
                )
                session.add(row)
                try:
                    await session.commit()
                except DB_ERRORS:
                    await session.rollback()
                    raise
                return row

    async def latest(self, device_id: str) -> SensorData | None:
        async with _db_errors(f"latest reading for {device_id}"):
            async with self._session_maker() as session:
                result = await session.execute(
                    select(SensorData)
                    .where(SensorData.device_id == device_id)
                    .order_by(desc(SensorData.timestamp))
                    .limit(1)
                )
                return result.scalars().first()

    async def recent(self, device_id: str, limit: int = RECENT_READINGS_LIMIT) -> list[SensorData]:
        """Last `limit` readings, newest first."""
        async with _db_errors(f"recent readings for {device_id}"):
            async with self._session_maker() as session:
                result = await session.execute(
                    select(SensorData)
                    .where(SensorData.device_id == device_id)
                    .order_by(desc(SensorData.timestamp))
                    .limit(limit)
                )
                return list(result.scalars().all())


class DeviceRegistry:
    """Read-only view of provisioned devices and their owners."""

    def __init__(self, session_maker=async_session_maker):
        self._session_maker = session_maker

    async def get_device(self, device_id: str) -> Device | None:
        async with _db_errors(f"lookup device {device_id}"):
            async with self._session_maker() as session:
                result = await session.execute(
                    select(Device).where(Device.device_id == device_id)
                )
                return result.scalar_one_or_none()

    async def get_device_for_contact(self, whatsapp_number: str) -> Device | None:
        """Device owned by the user with this (unprefixed) number."""
        async with _db_errors(f"lookup device for {whatsapp_number}"):
            async with self._session_maker() as session:
                result = await session.execute(
                    select(Device)
                    .join(User, Device.user_id == User.user_id)
                    .where(User.whatsapp_number == whatsapp_number)
                    .limit(1)
                )
                return result.scalars().first()

    async def get_owner_contact(self, device: Device) -> str | None:
        if device.user_id is None:
            return None
        async with _db_errors(f"lookup owner of {device.device_id}"):
            async with self._session_maker() as session:
                result = await session.execute(
                    select(User.whatsapp_number).where(User.user_id == device.user_id)
                )
                return result.scalar_one_or_none()


def build_schedule_upsert(device_id: str, times: Sequence[str]):
    """Single-statement insert-or-replace of a device schedule."""
    stmt = pg_insert(Schedule).values(device_id=device_id, times=list(times))
    return stmt.on_conflict_do_update(
        index_elements=[Schedule.device_id],
        set_={"times": stmt.excluded.times, "updated_at": func.now()},
    )


class ScheduleStore:
    """Feeding schedules, one row per device."""

    def __init__(self, session_maker=async_session_maker):
        self._session_maker = session_maker

    async def upsert(self, device_id: str, times: Sequence[str]) -> None:
        async with _db_errors(f"save schedule for {device_id}"):
            async with self._session_maker() as session:
                try:
                    await session.execute(build_schedule_upsert(device_id, times))
                    await session.commit()
                except DB_ERRORS:
                    await session.rollback()
                    raise

    async def get_times(self, device_id: str) -> list[str]:
        """Stored times, or an empty list when no schedule exists."""
        async with _db_errors(f"load schedule for {device_id}"):
            async with self._session_maker() as session:
                result = await session.execute(
                    select(Schedule.times).where(Schedule.device_id == device_id)
                )
                times = result.scalar_one_or_none()
                return list(times) if times else []

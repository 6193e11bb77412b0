"""
Tests for the store access layer.

Queries are captured from a fake session and compiled with the
PostgreSQL dialect, so no database is needed.
"""

import asyncpg
import pytest
from sqlalchemy.dialects import postgresql

from kandang.core.errors import PersistenceFailure
from kandang.models.sensor_data import SensorData
from kandang.services.normalizer import CanonicalReading
from kandang.services.store import (
    RECENT_READINGS_LIMIT,
    DeviceRegistry,
    ReadingStore,
    ScheduleStore,
)


def executed(session):
    """SQL text and bound parameters of the last executed statement."""
    compiled = session.execute.await_args.args[0].compile(dialect=postgresql.dialect())
    return " ".join(str(compiled).split()), compiled.params


class TestReadingStore:

    @pytest.mark.asyncio
    async def test_recent_is_newest_first_and_limited(self, session_maker, db_session):
        rows = [SensorData(device_id="d", temperature=31.0, gas_ppm=100.0)]
        db_session.execute.return_value.scalars.return_value.all.return_value = rows

        result = await ReadingStore(session_maker).recent("d")

        assert result == rows
        sql, params = executed(db_session)
        assert "FROM sensor_data WHERE sensor_data.device_id =" in sql
        assert "ORDER BY sensor_data.timestamp DESC LIMIT" in sql
        assert "d" in params.values()
        assert RECENT_READINGS_LIMIT == 20
        assert 20 in params.values()

    @pytest.mark.asyncio
    async def test_latest_takes_one_row(self, session_maker, db_session):
        db_session.execute.return_value.scalars.return_value.first.return_value = None

        assert await ReadingStore(session_maker).latest("d") is None

        sql, params = executed(db_session)
        assert "ORDER BY sensor_data.timestamp DESC LIMIT" in sql
        assert 1 in params.values()

    @pytest.mark.asyncio
    async def test_save_adds_row_and_commits(self, session_maker, db_session):
        row = await ReadingStore(session_maker).save("d", CanonicalReading(temperature=30.5, gas_ppm=120, humidity=None))

        db_session.add.assert_called_once_with(row)
        db_session.commit.assert_awaited_once()
        assert row.device_id == "d"
        assert row.humidity is None

    @pytest.mark.asyncio
    async def test_save_failure_rolls_back(self, session_maker, db_session):
        db_session.commit.side_effect = ConnectionResetError("connection lost")

        with pytest.raises(PersistenceFailure):
            await ReadingStore(session_maker).save("d", CanonicalReading(temperature=30, gas_ppm=1))

        db_session.rollback.assert_awaited_once()


class TestDeviceRegistry:

    @pytest.mark.asyncio
    async def test_device_for_contact_joins_owner(self, session_maker, db_session, make_device):
        device = make_device()
        db_session.execute.return_value.scalars.return_value.first.return_value = device

        result = await DeviceRegistry(session_maker).get_device_for_contact("+6281234567890")

        assert result is device
        sql, params = executed(db_session)
        assert "FROM devices JOIN users ON devices.user_id = users.user_id" in sql
        assert "WHERE users.whatsapp_number =" in sql
        assert "+6281234567890" in params.values()

    @pytest.mark.asyncio
    async def test_owner_contact(self, session_maker, db_session, make_device):
        db_session.execute.return_value.scalar_one_or_none.return_value = "+6281234567890"

        contact = await DeviceRegistry(session_maker).get_owner_contact(make_device(user_id=7))

        assert contact == "+6281234567890"
        sql, params = executed(db_session)
        assert sql.startswith("SELECT users.whatsapp_number FROM users WHERE users.user_id =")
        assert 7 in params.values()

    @pytest.mark.asyncio
    async def test_owner_contact_without_owner(self, session_maker, db_session, make_device):
        contact = await DeviceRegistry(session_maker).get_owner_contact(make_device(user_id=None))

        assert contact is None
        db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        ConnectionRefusedError(111, "Connect call failed"),
        OSError("Network is unreachable"),
        asyncpg.InvalidPasswordError("password authentication failed"),
    ])
    async def test_unreachable_database_is_persistence_failure(self, session_maker, db_session, error):
        db_session.execute.side_effect = error

        with pytest.raises(PersistenceFailure) as exc_info:
            await DeviceRegistry(session_maker).get_device("d")

        assert exc_info.value.__cause__ is error


class TestScheduleStore:

    @pytest.mark.asyncio
    async def test_missing_row_gives_empty_list(self, session_maker, db_session):
        db_session.execute.return_value.scalar_one_or_none.return_value = None

        assert await ScheduleStore(session_maker).get_times("feeder-7") == []

        sql, params = executed(db_session)
        assert sql.startswith("SELECT schedules.times FROM schedules WHERE schedules.device_id =")
        assert "feeder-7" in params.values()

    @pytest.mark.asyncio
    async def test_stored_times_returned(self, session_maker, db_session):
        db_session.execute.return_value.scalar_one_or_none.return_value = ["07:00", "18:30"]

        assert await ScheduleStore(session_maker).get_times("feeder-7") == ["07:00", "18:30"]

    @pytest.mark.asyncio
    async def test_upsert_failure_rolls_back(self, session_maker, db_session):
        db_session.execute.side_effect = ConnectionRefusedError(111, "Connect call failed")

        with pytest.raises(PersistenceFailure):
            await ScheduleStore(session_maker).upsert("feeder-7", ["07:00"])

        db_session.rollback.assert_awaited_once()
        db_session.commit.assert_not_awaited()

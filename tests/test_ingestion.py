"""
Tests for the telemetry ingestion pipeline.
"""

import json

import pytest

from kandang.core.errors import PersistenceFailure
from kandang.services.ingestion import TelemetryPipeline, device_id_from_topic
from kandang.services.normalizer import CanonicalReading


@pytest.fixture
def pipeline(readings, registry, notifier):
    return TelemetryPipeline(readings, registry, notifier)


class TestTopicParsing:

    def test_device_id_from_topic(self):
        assert device_id_from_topic("devices/kandang-01/data") == "kandang-01"

    def test_malformed_topic_gives_empty_id(self):
        assert device_id_from_topic("garbage") == ""


class TestIngestion:

    @pytest.mark.asyncio
    async def test_breach_notifies_owner(self, pipeline, readings, registry, notifier, make_device):
        device = make_device(threshold_temp=35, threshold_gas=300)
        registry.get_device.return_value = device
        registry.get_owner_contact.return_value = "+6281234567890"

        body = json.dumps({"temperature": 36, "humidity": 70, "gas_ppm": 310}).encode()
        await pipeline.handle("devices/kandang-01/data", body)

        readings.save.assert_awaited_once_with(
            "kandang-01", CanonicalReading(temperature=36, gas_ppm=310, humidity=70)
        )
        registry.get_device.assert_awaited_once_with("kandang-01")
        registry.get_owner_contact.assert_awaited_once_with(device)
        notifier.send.assert_awaited_once()
        to, message = notifier.send.await_args.args
        assert to == "+6281234567890"
        assert message.startswith("PERINGATAN! Suhu")

    @pytest.mark.asyncio
    async def test_unregistered_device_is_stored_not_alerted(self, pipeline, readings, registry, notifier):
        body = json.dumps({"temperature": 50, "gas_ppm": 900})

        await pipeline.handle("devices/unknown/data", body)

        readings.save.assert_awaited_once()
        registry.get_owner_contact.assert_not_awaited()
        notifier.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_within_limits_sends_nothing(self, pipeline, registry, notifier, make_device):
        registry.get_device.return_value = make_device()

        await pipeline.handle("devices/kandang-01/data", b'{"temperature": 30, "gas_ppm": 100}')

        registry.get_owner_contact.assert_not_awaited()
        notifier.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_owner_sends_nothing(self, pipeline, registry, notifier, make_device):
        registry.get_device.return_value = make_device()
        registry.get_owner_contact.return_value = None

        await pipeline.handle("devices/kandang-01/data", b'{"temperature": 40, "gas_ppm": 100}')

        notifier.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_list_payload_stored_like_object(self, pipeline, readings):
        await pipeline.handle("devices/d1/data", b'[{"temperature": 29, "amonia": 12}]')
        await pipeline.handle("devices/d1/data", b'{"temperature": 29, "gas_ppm": 12}')

        first, second = readings.save.await_args_list
        assert first == second


class TestRejection:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        b"not json",
        b"\xff\xfe",
        b"[]",
        b"17",
        b'{"humidity": 60, "gas_ppm": 100}',
        b'{"temperature": 30, "humidity": 60}',
    ])
    async def test_malformed_payload_not_stored(self, pipeline, readings, registry, notifier, body):
        await pipeline.handle("devices/kandang-01/data", body)

        readings.save.assert_not_awaited()
        registry.get_device.assert_not_awaited()
        notifier.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_persistence_failure_stops_pipeline(self, pipeline, readings, registry, notifier):
        readings.save.side_effect = PersistenceFailure("connection refused")

        await pipeline.handle("devices/kandang-01/data", b'{"temperature": 40, "gas_ppm": 100}')

        registry.get_device.assert_not_awaited()
        notifier.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, pipeline, registry, notifier):
        registry.get_device.side_effect = RuntimeError("boom")

        await pipeline.handle("devices/kandang-01/data", b'{"temperature": 40, "gas_ppm": 100}')

        notifier.send.assert_not_awaited()

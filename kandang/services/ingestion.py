"""
Smart Kandang - Telemetry ingestion pipeline
MQTT message -> normalize -> store -> threshold check -> WhatsApp alert
"""

import json
import logging

from kandang.core.errors import MalformedPayload, PersistenceFailure
from kandang.services.normalizer import normalize_reading
from kandang.services.thresholds import evaluate

logger = logging.getLogger(__name__)


def device_id_from_topic(topic: str) -> str:
    """devices/{device_id}/data -> device_id ('' for malformed topics)."""
    parts = topic.split("/")
    return parts[1] if len(parts) > 1 else ""


def decode_body(body: bytes | str):
    try:
        return json.loads(body)
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedPayload(f"Invalid JSON: {e}") from e


class TelemetryPipeline:
    """Processes one inbound telemetry message at a time."""

    def __init__(self, readings, registry, notifier):
        self.readings = readings
        self.registry = registry
        self.notifier = notifier

    async def handle(self, topic: str, body: bytes | str) -> None:
        """Entry point for the MQTT transport. Never raises."""
        device_id = device_id_from_topic(topic)
        try:
            await self._process(device_id, body)
        except MalformedPayload as e:
            logger.warning(f"⚠️ Discarded message from {device_id!r}: {e}")
        except PersistenceFailure as e:
            logger.error(f"❌ Database error for {device_id!r}: {e}")
        except Exception:
            logger.exception(f"❌ Error processing message from {device_id!r}")

    async def _process(self, device_id: str, body: bytes | str) -> None:
        reading = normalize_reading(decode_body(body))

        logger.info(
            f"📥 Received from {device_id}: temp={reading.temperature} gas={reading.gas_ppm}"
        )

        await self.readings.save(device_id, reading)

        device = await self.registry.get_device(device_id)
        if device is None:
            # Unregistered devices are stored but never alerted on
            return

        result = evaluate(reading, device)
        if not result.alert:
            return
        if result.temperature_breached and result.gas_breached:
            logger.info(f"Gas threshold also exceeded on {device_id}, reporting temperature only")

        contact = await self.registry.get_owner_contact(device)
        if not contact:
            return

        await self.notifier.send(contact, result.message)

"""
Smart Kandang - Service wiring

Shared clients (session factory, MQTT client, WhatsApp notifier) are
created once per process and handed to every orchestrator.
"""

from dataclasses import dataclass

from kandang.core.config import settings
from kandang.core.database import async_session_maker
from kandang.mqtt.main import MQTTProcessor
from kandang.services.commands import CommandInterpreter
from kandang.services.ingestion import TelemetryPipeline
from kandang.services.notifier import WhatsAppNotifier
from kandang.services.schedule import ScheduleSynchronizer
from kandang.services.store import DeviceRegistry, ReadingStore, ScheduleStore


@dataclass
class Services:
    readings: ReadingStore
    registry: DeviceRegistry
    notifier: WhatsAppNotifier
    pipeline: TelemetryPipeline
    commands: CommandInterpreter
    schedules: ScheduleSynchronizer
    mqtt: MQTTProcessor | None = None


def build_services(session_maker=async_session_maker) -> Services:
    readings = ReadingStore(session_maker)
    registry = DeviceRegistry(session_maker)
    notifier = WhatsAppNotifier(settings)

    pipeline = TelemetryPipeline(readings, registry, notifier)
    mqtt = MQTTProcessor(handler=pipeline.handle)

    return Services(
        readings=readings,
        registry=registry,
        notifier=notifier,
        pipeline=pipeline,
        commands=CommandInterpreter(readings, registry, notifier, tz_name=settings.tz),
        schedules=ScheduleSynchronizer(ScheduleStore(session_maker), publisher=mqtt),
        mqtt=mqtt,
    )

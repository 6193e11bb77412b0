"""
Smart Kandang - WhatsApp command interpreter

Only one command is recognized: "cek" (or "check") replies with the
latest reading of the sender's device.
"""

import enum
import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from kandang.core.config import settings
from kandang.services.notifier import strip_whatsapp_prefix
from kandang.services.thresholds import format_value

logger = logging.getLogger(__name__)

CHECK_KEYWORDS = frozenset({"cek", "check"})

MSG_NOT_REGISTERED = "Nomor Anda belum terdaftar di perangkat manapun."
MSG_NO_DATA = "Belum ada data sensor yang terekam."
MSG_SERVER_ERROR = "Maaf, terjadi kesalahan di server."


class Intent(enum.Enum):
    CHECK_STATUS = "check_status"
    UNRECOGNIZED = "unrecognized"


def classify_intent(text: str | None) -> Intent:
    if text and text.strip().casefold() in CHECK_KEYWORDS:
        return Intent.CHECK_STATUS
    return Intent.UNRECOGNIZED


def format_time(dt: datetime, tz_name: str = "Asia/Jakarta") -> str:
    """Time of day in the given timezone, Indonesian style (14.05.09)."""
    try:
        tz = ZoneInfo(tz_name)
    except Exception:
        tz = ZoneInfo("Asia/Jakarta")

    # If datetime is naive (no timezone), assume it's UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(tz).strftime("%H.%M.%S")


def _fmt(value) -> str:
    if value is None:
        return "—"
    return format_value(value)


def format_status(device_id: str, reading, tz_name: str) -> str:
    return (
        f"Update Terakhir ({device_id}):\n\n"
        f"🌡️ Suhu: {_fmt(reading.temperature)}°C\n"
        f"💧 Lembap: {_fmt(reading.humidity)}%\n"
        f"💨 Gas: {_fmt(reading.gas_ppm)} PPM\n"
        f"🕒 Waktu: {format_time(reading.timestamp, tz_name)}"
    )


class CommandInterpreter:
    """Answers inbound WhatsApp messages."""

    def __init__(self, readings, registry, notifier, tz_name: str = settings.tz):
        self.readings = readings
        self.registry = registry
        self.notifier = notifier
        self.tz_name = tz_name

    async def handle(self, sender: str, body: str | None) -> str | None:
        """
        Process one inbound message.

        Returns the reply that was dispatched, or None when the text is not
        a recognized command.
        """
        intent = classify_intent(body)
        logger.info(f"💬 Message from {sender}: {body!r} ({intent.value})")

        if intent is not Intent.CHECK_STATUS:
            return None

        try:
            reply = await self._check_status(sender)
        except Exception:
            logger.exception(f"❌ Error answering check request from {sender}")
            reply = MSG_SERVER_ERROR

        await self.notifier.send(sender, reply)
        return reply

    async def _check_status(self, sender: str) -> str:
        device = await self.registry.get_device_for_contact(strip_whatsapp_prefix(sender))
        if device is None:
            return MSG_NOT_REGISTERED

        latest = await self.readings.latest(device.device_id)
        if latest is None:
            return MSG_NO_DATA

        return format_status(device.device_id, latest, self.tz_name)

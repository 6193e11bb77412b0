"""
Smart Kandang - Feeding schedule synchronizer
"""

import logging
from typing import Sequence

logger = logging.getLogger(__name__)


def schedule_topic(device_id: str) -> str:
    return f"devices/{device_id}/commands/set_schedule"


class ScheduleSynchronizer:
    """Stores a device's feeding schedule and pushes it to the device."""

    def __init__(self, schedules, publisher):
        self.schedules = schedules
        self.publisher = publisher

    async def save(self, device_id: str, times: Sequence[str]) -> None:
        """
        Replace the schedule and send it to the device.

        The publish is fire-and-forget: if it fails the stored schedule is
        kept and the failure is only logged. Store errors propagate.
        """
        times = list(times)
        await self.schedules.upsert(device_id, times)

        topic = schedule_topic(device_id)
        try:
            published = self.publisher.publish(topic, {"times": times})
        except Exception as e:
            logger.error(f"❌ Failed to publish schedule to {topic}: {e}")
            return

        if published:
            logger.info(f"📤 Schedule sent to {topic}: {times}")
        else:
            logger.warning(f"⚠️ Schedule for {device_id} saved but not delivered to {topic}")

    async def get(self, device_id: str) -> list[str]:
        return await self.schedules.get_times(device_id)

"""
Smart Kandang - MQTT Processor
Receives telemetry from devices and pushes commands back to them
"""

import asyncio
import json
import logging
import signal

import paho.mqtt.client as mqtt

from kandang.core.config import settings

logger = logging.getLogger(__name__)

TELEMETRY_TOPIC = "devices/+/data"


def publish_json(client: mqtt.Client | None, topic: str, payload: dict) -> bool:
    """
    Publish a JSON payload with QoS 1.

    Returns:
        True if the message was handed to the client successfully
    """
    if client is None or not client.is_connected():
        logger.warning(f"⚠️ MQTT not connected, dropping message for {topic}")
        return False

    result = client.publish(topic, json.dumps(payload), qos=1)
    if result.rc == mqtt.MQTT_ERR_SUCCESS:
        return True

    logger.error(f"❌ Failed to publish to {topic}: {result.rc}")
    return False


class MQTTProcessor:
    """Connects to the broker and feeds device telemetry to a handler."""

    def __init__(self, handler=None):
        """
        Args:
            handler: coroutine function (topic, payload_bytes) run on the
                event loop for every telemetry message
        """
        self.handler = handler
        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)
        self.client.on_connect = self._on_connect
        self.client.on_message = self._on_message
        self.client.on_disconnect = self._on_disconnect
        if settings.mqtt_username:
            self.client.username_pw_set(settings.mqtt_username, settings.mqtt_password)
        if settings.mqtt_tls:
            self.client.tls_set()
        self.running = False
        self._loop: asyncio.AbstractEventLoop | None = None

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        """Called when connected to MQTT broker."""
        if reason_code.is_failure:
            logger.error(f"❌ MQTT connection refused: {reason_code}")
            return

        logger.info(f"✅ Connected to MQTT broker: {settings.mqtt_broker}:{settings.mqtt_port}")

        # Subscribe to all device telemetry (again after every reconnect)
        client.subscribe(TELEMETRY_TOPIC)
        logger.info(f"📡 Subscribed to: {TELEMETRY_TOPIC}")

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        """Called when disconnected from MQTT broker."""
        logger.warning(f"⚠️ Disconnected from MQTT broker: {reason_code}")

    def _on_message(self, client, userdata, msg):
        """Called from the paho network thread when a message is received."""
        if self._loop is None or self.handler is None:
            return

        # Hand over to the event loop; all processing happens there
        asyncio.run_coroutine_threadsafe(
            self.handler(msg.topic, msg.payload),
            self._loop
        )

    def publish(self, topic: str, payload: dict) -> bool:
        return publish_json(self.client, topic, payload)

    def start(self):
        """Connect in the background. Paho keeps reconnecting on its own."""
        self._loop = asyncio.get_running_loop()
        self.running = True

        logger.info(f"📡 Connecting to {settings.mqtt_broker}:{settings.mqtt_port}")
        self.client.connect_async(settings.mqtt_broker, settings.mqtt_port, 60)

        # Start MQTT loop in background thread
        self.client.loop_start()

    def stop(self):
        """Stop the processor."""
        self.running = False
        self.client.disconnect()
        self.client.loop_stop()
        logger.info("⏹️ MQTT Processor stopped")

    async def run(self):
        """Main run loop (standalone mode)."""
        logger.info("🚀 Starting MQTT Processor...")
        self.start()

        # Keep running until stopped
        try:
            while self.running:
                await asyncio.sleep(1)
        finally:
            self.stop()


async def main():
    """Entry point: ingestion only, without the HTTP API."""
    from kandang.services.container import build_services

    services = build_services()
    processor = services.mqtt

    # Handle shutdown signals
    def signal_handler(sig, frame):
        logger.info("⏹️ Shutting down...")
        processor.running = False

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    await processor.run()


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)
    asyncio.run(main())

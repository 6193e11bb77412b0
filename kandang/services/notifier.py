"""
Smart Kandang - WhatsApp notifier
Sends text messages through the Twilio Messages REST API
"""

import asyncio
import logging

import requests

from kandang.core.config import Settings, settings as default_settings
from kandang.core.errors import DispatchFailure

logger = logging.getLogger(__name__)

WHATSAPP_PREFIX = "whatsapp:"


def to_whatsapp_address(number: str) -> str:
    """Add the channel prefix if the address doesn't carry one."""
    if number.startswith(WHATSAPP_PREFIX):
        return number
    return f"{WHATSAPP_PREFIX}{number}"


def strip_whatsapp_prefix(address: str) -> str:
    if address.startswith(WHATSAPP_PREFIX):
        return address[len(WHATSAPP_PREFIX):]
    return address


class WhatsAppNotifier:
    """
    Outbound WhatsApp messages.

    send() never raises: delivery problems are logged and reported as
    False. Messages are not retried.
    """

    def __init__(self, config: Settings = default_settings):
        self.config = config

    @property
    def messages_url(self) -> str:
        return f"{self.config.twilio_api_url}/Accounts/{self.config.twilio_account_sid}/Messages.json"

    def _post(self, to: str, body: str) -> None:
        response = requests.post(
            self.messages_url,
            data={
                "To": to,
                "From": self.config.twilio_whatsapp_number,
                "Body": body,
            },
            auth=(self.config.twilio_account_sid, self.config.twilio_auth_token),
            timeout=self.config.twilio_timeout,
        )
        if not response.ok:
            raise DispatchFailure(f"{response.status_code} {response.text}")

    async def send(self, to: str, body: str) -> bool:
        """Send `body` to `to`. Returns True if the provider accepted it."""
        address = to_whatsapp_address(to)

        if not self.config.twilio_enabled:
            logger.warning(f"⚠️ Twilio not configured, message to {address} not sent: {body!r}")
            return False

        try:
            await asyncio.to_thread(self._post, address, body)
        except (requests.RequestException, DispatchFailure) as e:
            logger.error(f"❌ Failed to send message to {address}: {e}")
            return False

        logger.info(f"📤 Message sent to {address}")
        return True

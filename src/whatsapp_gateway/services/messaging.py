"""Outgoing message actions."""

import logging
from dataclasses import dataclass

from whatsapp_gateway.services.client_lifecycle import ClientLifecycle

logger = logging.getLogger(__name__)


def chat_id_for(number: str) -> str:
    """Return the WhatsApp chat id for a phone number."""
    return f"{number}@c.us"


@dataclass
class MessagingService:
    """Send messages through the current WhatsApp client."""

    lifecycle: ClientLifecycle

    async def send_text(self, number: str, message: str) -> None:
        """Send a text message to one number."""
        client = self.lifecycle.get_handle()
        await client.send_text(chat_id_for(number), message)

    async def send_media(
        self, number: str, path: str, filename: str, caption: str | None = None
    ) -> None:
        """Send a file stored at ``path`` under its original name."""
        client = self.lifecycle.get_handle()
        await client.send_file(chat_id_for(number), path, filename, caption or "")

    async def send_bulk(self, numbers: list[str], message: str) -> int:
        """Send the same text to every number and return how many succeeded.

        A failed send is logged and skipped.
        """
        client = self.lifecycle.get_handle()
        sent = 0
        for number in numbers:
            try:
                await client.send_text(chat_id_for(number), message)
            except Exception:
                logger.warning("Failed to send to %s", number, exc_info=True)
                continue
            sent += 1
        logger.info("Bulk send finished: %s of %s delivered", sent, len(numbers))
        return sent

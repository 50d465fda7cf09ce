"""Ownership of the single WhatsApp client handle."""

import asyncio
import logging
from dataclasses import dataclass, field

from whatsapp_gateway.adapters.whatsapp_client import (
    ClientFactory,
    ClientOptions,
    WhatsAppClient,
)
from whatsapp_gateway.config import DEFAULT_USER_AGENT
from whatsapp_gateway.domain.events import ClientEvent
from whatsapp_gateway.services.session_store import SessionRepository

logger = logging.getLogger(__name__)


class ClientNotInitializedError(RuntimeError):
    """Raised when no WhatsApp client is available."""

    def __init__(self) -> None:
        super().__init__("WhatsApp client not initialized")


@dataclass
class ClientLifecycle:
    """Create, expose and replace the WhatsApp client for one login session.

    Clients publish QR challenges and state changes on ``events``; persisting
    them is left to whoever consumes the queue.
    """

    session: str
    session_repository: SessionRepository
    client_factory: ClientFactory
    events: asyncio.Queue[ClientEvent]
    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    _client: WhatsAppClient | None = field(default=None, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    async def initialize(self) -> bool:
        """Start a new client, warm-started from the stored session token.

        Any previous client is closed first. Concurrent calls run one after
        another. Returns False when the client could not be created, leaving
        no client available.
        """
        async with self._lock:
            return await self._replace_client()

    async def _replace_client(self) -> bool:
        previous, self._client = self._client, None
        if previous is not None:
            try:
                await previous.close()
            except Exception:
                logger.exception("Failed to close previous WhatsApp client")
        try:
            record = self.session_repository.get_session(self.session)
            session_data = record.session_data if record else None
            client = await self.client_factory(
                ClientOptions(
                    session=self.session,
                    events=self.events,
                    session_data=session_data or None,
                    headless=self.headless,
                    user_agent=self.user_agent,
                )
            )
        except Exception:
            logger.exception("Error initializing WhatsApp client")
            return False
        self._client = client
        logger.info(
            "WhatsApp client is ready",
            extra={"session": self.session, "warm_start": bool(session_data)},
        )
        return True

    def get_handle(self) -> WhatsAppClient:
        """Return the current client or raise when none is available."""
        if self._client is None:
            raise ClientNotInitializedError()
        return self._client

    def release(self, client: WhatsAppClient) -> None:
        """Forget a client that has been closed, if it is still current."""
        if self._client is client:
            self._client = None

    async def shutdown(self) -> None:
        """Close the current client, if any."""
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.close()
        except Exception:
            logger.exception("Failed to close WhatsApp client on shutdown")

"""Background persistence of client events."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from whatsapp_gateway.domain.events import (
    STATE_CONNECTED,
    ClientEvent,
    QrChallenge,
)
from whatsapp_gateway.services.session_store import (
    QrCodeRepository,
    SessionRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class SessionEventConsumer:
    """Drain client events and store QR codes and session tokens."""

    events: asyncio.Queue[ClientEvent]
    qr_code_repository: QrCodeRepository
    session_repository: SessionRepository
    _task: asyncio.Task[None] | None = field(default=None, init=False)

    def start(self) -> None:
        """Start consuming events on the running loop."""
        if self._task is None:
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Cancel the consumer task."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def run(self) -> None:
        """Handle events until cancelled; failures are logged and skipped."""
        while True:
            event = await self.events.get()
            try:
                await self.handle(event)
            except Exception:
                logger.exception(
                    "Failed to persist client event",
                    extra={"event": type(event).__name__},
                )
            finally:
                self.events.task_done()

    async def handle(self, event: ClientEvent) -> None:
        """Persist a single event."""
        if isinstance(event, QrChallenge):
            logger.info(
                "QR code generated",
                extra={"session": event.session, "attempt": event.attempt},
            )
            self.qr_code_repository.upsert_qr_code(
                event.session, event.qr_code, event.generated_at
            )
            return
        logger.info("Client state: %s", event.state)
        if event.state != STATE_CONNECTED:
            return
        token = await event.client.get_session_token()
        self.session_repository.upsert_session(
            event.session, token, datetime.now(tz=UTC)
        )
        logger.info("Session data saved to the database")

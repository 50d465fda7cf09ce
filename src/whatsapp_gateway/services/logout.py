"""Logout as an ordered sequence of recorded steps."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from whatsapp_gateway.adapters.whatsapp_client import WhatsAppClient
from whatsapp_gateway.services.client_lifecycle import (
    ClientLifecycle,
    ClientNotInitializedError,
)
from whatsapp_gateway.services.session_store import (
    QrCodeRepository,
    SessionRepository,
)

logger = logging.getLogger(__name__)

STEP_OK = "ok"
STEP_FAILED = "failed"
STEP_SKIPPED = "skipped"


@dataclass(frozen=True)
class LogoutStep:
    """Outcome of one logout step."""

    name: str
    outcome: str
    detail: str | None = None


@dataclass(frozen=True)
class LogoutReport:
    """Outcomes of every logout step, in execution order."""

    steps: list[LogoutStep]

    @property
    def succeeded(self) -> bool:
        return all(step.outcome == STEP_OK for step in self.steps)

    @property
    def error(self) -> str | None:
        for step in self.steps:
            if step.outcome == STEP_FAILED:
                return step.detail
        return None


@dataclass
class LogoutService:
    """Clear stored login state and log the client out.

    Steps run in order and stop at the first failure. Completed steps are not
    rolled back.
    """

    session: str
    qr_code_repository: QrCodeRepository
    session_repository: SessionRepository
    lifecycle: ClientLifecycle

    async def logout(self) -> LogoutReport:
        """Run every step and return the report."""
        client: WhatsAppClient | None = None

        async def delete_qr_code() -> None:
            removed = self.qr_code_repository.delete_qr_code(self.session)
            if removed:
                logger.info("QR code session deleted from the database")
            else:
                logger.info("No QR code session found in the database to delete")

        async def delete_session() -> None:
            removed = self.session_repository.delete_session(self.session)
            if removed:
                logger.info("WhatsApp session data deleted from the database")
            else:
                logger.info("No WhatsApp session data found in the database")

        async def logout_client() -> None:
            nonlocal client
            client = self.lifecycle.get_handle()
            await client.logout()
            logger.info("Logged out of WhatsApp")

        async def close_client() -> None:
            if client is None:
                raise ClientNotInitializedError()
            await client.close()
            self.lifecycle.release(client)
            logger.info("WhatsApp client stopped")

        actions: list[tuple[str, Callable[[], Awaitable[None]]]] = [
            ("delete_qr_code", delete_qr_code),
            ("delete_session", delete_session),
            ("logout", logout_client),
            ("close", close_client),
        ]
        steps: list[LogoutStep] = []
        failed = False
        for name, action in actions:
            if failed:
                steps.append(LogoutStep(name=name, outcome=STEP_SKIPPED))
                continue
            try:
                await action()
            except Exception as exc:
                logger.exception("Logout step failed", extra={"step": name})
                steps.append(
                    LogoutStep(name=name, outcome=STEP_FAILED, detail=str(exc))
                )
                failed = True
                continue
            steps.append(LogoutStep(name=name, outcome=STEP_OK))
        return LogoutReport(steps=steps)

"""Scheduled message delivery."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from whatsapp_gateway.services.messaging import MessagingService

logger = logging.getLogger(__name__)


class InvalidScheduleTimeError(ValueError):
    """Raised when a scheduled time cannot be used."""


class JobScheduler(Protocol):
    """Interface for running a callback once at a given instant."""

    def start(self) -> None:
        """Start firing jobs."""

    def shutdown(self) -> None:
        """Stop firing jobs."""

    def schedule_once(
        self, run_at: datetime, func: Callable[..., Awaitable[None]], *args: object
    ) -> str:
        """Register ``func(*args)`` to run at ``run_at`` and return the job id."""


def _epoch_millis(raw: str) -> int | float | None:
    text = raw.strip()
    if text.isdigit():
        return int(text)
    try:
        return float(text)
    except ValueError:
        return None


def parse_scheduled_time(raw: object, now: datetime | None = None) -> datetime:
    """Parse an ISO-8601 string or epoch milliseconds into an aware datetime.

    Naive values are taken as UTC. The result must lie in the future.
    """
    if isinstance(raw, str):
        millis = _epoch_millis(raw)
        if millis is not None:
            raw = millis
    if isinstance(raw, bool) or raw is None:
        raise InvalidScheduleTimeError("Invalid scheduled time format.")
    if isinstance(raw, int | float):
        try:
            parsed = datetime.fromtimestamp(raw / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError) as exc:
            raise InvalidScheduleTimeError("Invalid scheduled time format.") from exc
    elif isinstance(raw, str):
        try:
            parsed = datetime.fromisoformat(raw.strip())
        except ValueError as exc:
            raise InvalidScheduleTimeError("Invalid scheduled time format.") from exc
    else:
        raise InvalidScheduleTimeError("Invalid scheduled time format.")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    if parsed <= (now or datetime.now(tz=UTC)):
        raise InvalidScheduleTimeError("Scheduled time must be in the future.")
    return parsed


@dataclass
class SchedulingService:
    """Register text messages for later delivery."""

    scheduler: JobScheduler
    messaging_service: MessagingService

    def schedule_message(self, number: str, message: str, run_at: datetime) -> str:
        """Schedule a text message and return the job id."""
        job_id = self.scheduler.schedule_once(
            run_at, self.send_scheduled, number, message
        )
        logger.info(
            "Message scheduled",
            extra={"job_id": job_id, "run_at": run_at.isoformat()},
        )
        return job_id

    async def send_scheduled(self, number: str, message: str) -> None:
        """Deliver a scheduled message; failures are only logged."""
        try:
            await self.messaging_service.send_text(number, message)
        except Exception:
            logger.exception("Error sending scheduled message to %s", number)

"""APScheduler-backed one-shot job scheduler."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from whatsapp_gateway.services.scheduling import JobScheduler


@dataclass
class ApschedulerJobScheduler(JobScheduler):
    """Run coroutine jobs on the application's event loop."""

    scheduler: AsyncIOScheduler

    @classmethod
    def create(cls) -> "ApschedulerJobScheduler":
        """Create a scheduler working in UTC."""
        return cls(scheduler=AsyncIOScheduler(timezone="UTC"))

    def start(self) -> None:
        """Start the scheduler on the running loop."""
        if not self.scheduler.running:
            self.scheduler.start()

    def shutdown(self) -> None:
        """Stop the scheduler without waiting for running jobs."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def schedule_once(
        self, run_at: datetime, func: Callable[..., Awaitable[None]], *args: object
    ) -> str:
        """Register a date-triggered job that fires even when late."""
        job = self.scheduler.add_job(
            func,
            trigger="date",
            run_date=run_at,
            args=list(args),
            misfire_grace_time=None,
        )
        return job.id

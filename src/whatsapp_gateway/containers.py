"""Dependency container wiring for the application."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from whatsapp_gateway.adapters.apscheduler_job_scheduler import (
    ApschedulerJobScheduler,
)
from whatsapp_gateway.adapters.supabase_qr_code_repository import (
    SupabaseQrCodeRepository,
)
from whatsapp_gateway.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from whatsapp_gateway.adapters.whatsapp_client import PlaywrightWhatsAppClient
from whatsapp_gateway.config import Settings
from whatsapp_gateway.domain.events import ClientEvent
from whatsapp_gateway.services.client_lifecycle import ClientLifecycle
from whatsapp_gateway.services.events import SessionEventConsumer
from whatsapp_gateway.services.logout import LogoutService
from whatsapp_gateway.services.messaging import MessagingService
from whatsapp_gateway.services.scheduling import JobScheduler, SchedulingService
from whatsapp_gateway.services.session_store import (
    QrCodeRepository,
    SessionRepository,
)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_repository: SessionRepository
    qr_code_repository: QrCodeRepository
    client_lifecycle: ClientLifecycle
    event_consumer: SessionEventConsumer
    job_scheduler: JobScheduler
    messaging_service: MessagingService
    scheduling_service: SchedulingService
    logout_service: LogoutService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    session_repository = SupabaseSessionRepository(supabase_client)
    qr_code_repository = SupabaseQrCodeRepository(supabase_client)
    events: asyncio.Queue[ClientEvent] = asyncio.Queue()
    client_lifecycle = ClientLifecycle(
        session=resolved_settings.whatsapp_session,
        session_repository=session_repository,
        client_factory=PlaywrightWhatsAppClient.create,
        events=events,
        headless=resolved_settings.whatsapp_headless,
        user_agent=resolved_settings.whatsapp_user_agent,
    )
    event_consumer = SessionEventConsumer(
        events=events,
        qr_code_repository=qr_code_repository,
        session_repository=session_repository,
    )
    job_scheduler = ApschedulerJobScheduler.create()
    messaging_service = MessagingService(client_lifecycle)
    scheduling_service = SchedulingService(
        scheduler=job_scheduler,
        messaging_service=messaging_service,
    )
    logout_service = LogoutService(
        session=resolved_settings.whatsapp_session,
        qr_code_repository=qr_code_repository,
        session_repository=session_repository,
        lifecycle=client_lifecycle,
    )

    async def close_resources() -> None:
        await client_lifecycle.shutdown()
        await event_consumer.stop()
        job_scheduler.shutdown()

    return AppContainer(
        settings=resolved_settings,
        session_repository=session_repository,
        qr_code_repository=qr_code_repository,
        client_lifecycle=client_lifecycle,
        event_consumer=event_consumer,
        job_scheduler=job_scheduler,
        messaging_service=messaging_service,
        scheduling_service=scheduling_service,
        logout_service=logout_service,
        close_resources=close_resources,
    )
